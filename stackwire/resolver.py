"""Reference resolution: validation, cycle detection and materialization order."""

import logging
from collections.abc import Sequence
from dataclasses import fields, replace
from typing import TYPE_CHECKING, Any

from stackwire.exceptions import UnresolvedReferenceError
from stackwire.expressions import Ref, transform
from stackwire.graph import find_cycle, topological_order
from stackwire.kinds import KindRegistry

if TYPE_CHECKING:
    from stackwire.descriptor import Descriptor, ReferenceEdge
    from stackwire.plan import PlanContext

logger = logging.getLogger(__name__)


def check_references(descriptor: "Descriptor", edges: Sequence["ReferenceEdge"]) -> None:
    """Every edge must point at a declared id and an attribute its kind generates."""
    for edge in edges:
        target = descriptor.find(edge.target)
        if target is None:
            raise UnresolvedReferenceError(
                f"reference {edge.target}.{edge.attribute} points at an undeclared id",
                declaration_id=edge.source,
            )
        attributes = KindRegistry.get(target.kind).attributes
        if edge.attribute not in attributes:
            raise UnresolvedReferenceError(
                f"{target.kind.value} '{edge.target}' has no attribute '{edge.attribute}'; "
                f"available: {', '.join(sorted(attributes))}",
                declaration_id=edge.source,
            )


def check_cycles(descriptor: "Descriptor", edges: Sequence["ReferenceEdge"]) -> None:
    nodes = [d.id for d in descriptor.declarations]
    if cycle := find_cycle(nodes, _edge_map(edges)):
        raise UnresolvedReferenceError(
            "reference cycle: " + " -> ".join(cycle), declaration_id=cycle[0]
        )


def materialization_order(
    descriptor: "Descriptor", edges: Sequence["ReferenceEdge"] | None = None
) -> list[str]:
    """Declaration ids ordered so every reference target comes before its source.

    Independent declarations keep program order. Raises UnresolvedReferenceError for
    dangling references and cycles.
    """
    if edges is None:
        edges = descriptor.reference_edges()
    check_references(descriptor, edges)
    check_cycles(descriptor, edges)
    order = topological_order([d.id for d in descriptor.declarations], _edge_map(edges))
    logger.debug("Materialization order: %s", ", ".join(order))
    return order


def resolve(edge: "ReferenceEdge", ctx: "PlanContext") -> Any:  # noqa: ANN401
    """Value the source of an edge consumes: the target's generated attribute."""
    return ctx.resolve(Ref(edge.target, edge.attribute))


def substitute(value: Any, ctx: "PlanContext") -> Any:  # noqa: ANN401
    """Replace every Ref inside value with the resolved attribute expression."""
    return transform(value, lambda token: ctx.resolve(token) if isinstance(token, Ref) else token)


def substitute_config[C](config: C, ctx: "PlanContext") -> C:
    """Copy of a kind config with Refs in its options resolved."""
    changes = {}
    for f in fields(config):
        if not f.init:
            continue
        value = getattr(config, f.name)
        resolved = substitute(value, ctx)
        if resolved != value:
            changes[f.name] = resolved
    return replace(config, **changes) if changes else config


def _edge_map(edges: Sequence["ReferenceEdge"]) -> dict[str, list[str]]:
    edge_map: dict[str, list[str]] = {}
    for edge in edges:
        edge_map.setdefault(edge.source, []).append(edge.target)
    return edge_map
