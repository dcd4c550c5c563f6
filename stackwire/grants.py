"""Grant edges and the least-privilege role policies they turn into."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from stackwire.aws.iam import ROLE_POLICY, policy_document
from stackwire.exceptions import UnresolvedReferenceError, ValidationError
from stackwire.kinds import KindRegistry, ResourceKind
from stackwire.naming import pascal_case, safe_name

if TYPE_CHECKING:
    from stackwire.descriptor import Descriptor
    from stackwire.plan import PlanContext

logger = logging.getLogger(__name__)

# Kinds with an execution identity that can be granted access
PRINCIPAL_KINDS = frozenset({ResourceKind.FUNCTION})


@dataclass(frozen=True)
class GrantEdge:
    principal: str
    target: str
    actions: frozenset[str]

    def merge(self, other: "GrantEdge") -> "GrantEdge":
        return GrantEdge(self.principal, self.target, self.actions | other.actions)


def create_grant(
    descriptor: "Descriptor", principal: str, target: str, actions: str | Iterable[str]
) -> GrantEdge:
    """Validate a grant against the principal and the target kind's action vocabulary."""
    principal_declaration = descriptor.find(principal)
    if principal_declaration is None:
        raise UnresolvedReferenceError(f"grant principal '{principal}' is not declared")
    if principal_declaration.kind not in PRINCIPAL_KINDS:
        raise ValidationError(
            f"{principal_declaration.kind.value} '{principal}' has no execution identity "
            "and cannot be granted access",
            declaration_id=principal,
        )
    target_declaration = descriptor.find(target)
    if target_declaration is None:
        raise UnresolvedReferenceError(
            f"grant target '{target}' is not declared", declaration_id=principal
        )

    requested = frozenset([actions] if isinstance(actions, str) else actions)
    if not requested:
        raise ValidationError(
            f"grant on '{target}' needs at least one action", declaration_id=principal
        )
    vocabulary = KindRegistry.get(target_declaration.kind).actions
    unknown = sorted(str(action) for action in requested - set(vocabulary))
    if unknown:
        allowed = ", ".join(sorted(vocabulary)) or "none"
        raise ValidationError(
            f"action(s) {', '.join(unknown)} not allowed on "
            f"{target_declaration.kind.value} '{target}'; allowed: {allowed}",
            declaration_id=principal,
        )
    return GrantEdge(principal, target, requested)


def emit_grant_policies(ctx: "PlanContext", grants: Iterable[GrantEdge]) -> None:
    """Plan one inline role policy per principal holding all of its grants.

    Statements are sorted by target and action, so policies do not change when grants are
    declared in a different order.
    """
    by_principal: dict[str, list[GrantEdge]] = {}
    for grant in grants:
        by_principal.setdefault(grant.principal, []).append(grant)

    for principal, edges in by_principal.items():
        statements = []
        used_sids: set[str] = set()
        for grant in sorted(edges, key=lambda g: g.target):
            target = ctx.declaration(grant.target)
            spec = KindRegistry.get(target.kind)
            attributes = ctx.generated_attributes(grant.target)
            for action in sorted(grant.actions):
                sid = pascal_case(f"{action}-{grant.target}")
                for i, permission in enumerate(spec.actions[action](attributes)):
                    statement_sid = _unique_sid(sid if i == 0 else f"{sid}{i}", used_sids)
                    statements.append(permission.to_statement(statement_sid))

        role_name = ctx.attribute(principal, "role_name")
        policy = ctx.plan.add(
            principal,
            ROLE_POLICY,
            safe_name(ctx.context.prefix(), principal, 128, "-p"),
            role=role_name,
            policy=policy_document(statements),
        )
        # Function waits for its policy, unless the policy refers to the function itself
        function = ctx.attribute(principal, "arn").resource
        if function not in ctx.plan.get(policy).dependencies:
            ctx.plan.add_dependency(function, policy)
        logger.info(
            "Granted '%s': %s",
            principal,
            ", ".join(f"{g.target}{{{','.join(sorted(g.actions))}}}" for g in edges),
        )


def _unique_sid(sid: str, used: set[str]) -> str:
    """Statement ids must be unique within one policy."""
    candidate, n = sid, 1
    while candidate in used:
        n += 1
        candidate = f"{sid}{n}"
    used.add(candidate)
    return candidate
