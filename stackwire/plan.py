import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from stackwire.context import AppContext
from stackwire.exceptions import SynthesisError, UnresolvedReferenceError, ValidationError
from stackwire.expressions import Attr, Ref, iter_tokens
from stackwire.graph import find_cycle, topological_order

if TYPE_CHECKING:
    from stackwire.descriptor import ResourceDeclaration
    from stackwire.kinds import ResourceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedResource:
    """One provider resource: Pulumi type token, logical name and snake_case properties."""

    name: str
    type: str
    properties: Mapping[str, Any]
    owner: str
    depends_on: tuple[str, ...] = ()
    retain_on_delete: bool = False

    @property
    def dependencies(self) -> set[str]:
        deps = {attr.resource for attr in iter_tokens(self.properties, Attr)}
        deps.update(self.depends_on)
        deps.discard(self.name)
        return deps


class Plan:
    """Ordered collection of planned provider resources."""

    def __init__(self) -> None:
        self._resources: dict[str, PlannedResource] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._resources

    def __iter__(self) -> Iterator[PlannedResource]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)

    def add(  # noqa: PLR0913
        self,
        owner: str,
        type_: str,
        name: str,
        /,
        *,
        depends_on: list[str] | tuple[str, ...] = (),
        retain_on_delete: bool = False,
        **properties: Any,  # noqa: ANN401
    ) -> str:
        """Plan a resource and return its logical name for use in ``Attr``."""
        if name in self._resources:
            existing = self._resources[name]
            raise SynthesisError(
                f"provider resource name '{name}' is already used by "
                f"'{existing.owner}' ({existing.type})",
                declaration_id=owner,
            )
        resource = PlannedResource(
            name=name,
            type=type_,
            properties={k: v for k, v in properties.items() if v is not None},
            owner=owner,
            depends_on=tuple(depends_on),
            retain_on_delete=retain_on_delete,
        )
        self._resources[name] = resource
        logger.debug("Planned %s '%s' for '%s'", type_, name, owner)
        return name

    def get(self, name: str) -> PlannedResource:
        return self._resources[name]

    def add_dependency(self, name: str, dependency: str) -> None:
        """Make an already planned resource wait for another one."""
        resource = self._resources[name]
        if dependency not in resource.depends_on:
            self._resources[name] = replace(
                resource, depends_on=(*resource.depends_on, dependency)
            )

    def ordered(self) -> tuple[PlannedResource, ...]:
        """Resources in dependency order. Dangling or cyclic attributes abort synthesis."""
        names = list(self._resources)
        edges = {name: res.dependencies for name, res in self._resources.items()}
        for name, deps in edges.items():
            missing = sorted(dep for dep in deps if dep not in self._resources)
            if missing:
                raise SynthesisError(
                    f"provider resource '{name}' refers to unplanned resource(s) "
                    f"{', '.join(missing)}",
                    declaration_id=self._resources[name].owner,
                )
        if cycle := find_cycle(names, edges):
            raise SynthesisError(
                "provider resources depend on each other in a cycle: " + " -> ".join(cycle),
                declaration_id=self._resources[cycle[0]].owner,
            )
        return tuple(self._resources[name] for name in topological_order(names, edges))


@dataclass
class _BucketPolicyTarget:
    bucket: Any
    depends_on: tuple[str, ...]
    statements: list[dict] = field(default_factory=list)


class PlanContext:
    """Everything a kind materializer may touch while planning one declaration."""

    def __init__(
        self,
        context: AppContext,
        declarations: Mapping[str, "ResourceDeclaration"],
    ) -> None:
        self.context = context
        self.plan = Plan()
        self._declarations = declarations
        self._generated: dict[str, Mapping[str, Any]] = {}
        self._bucket_policies: dict[str, _BucketPolicyTarget] = {}

    def declaration(self, declaration_id: str) -> "ResourceDeclaration":
        try:
            return self._declarations[declaration_id]
        except KeyError:
            raise UnresolvedReferenceError(
                f"no declaration with id '{declaration_id}'"
            ) from None

    def expect_kind(
        self, declaration_id: str, kind: "ResourceKind", option: str
    ) -> "ResourceDeclaration":
        declaration = self.declaration(declaration_id)
        if declaration.kind is not kind:
            raise ValidationError(
                f"option '{option}' must reference a {kind.value} declaration, "
                f"'{declaration_id}' is {declaration.kind.value}"
            )
        return declaration

    def record(self, declaration_id: str, attributes: Mapping[str, Any]) -> None:
        self._generated[declaration_id] = attributes

    def generated_attributes(self, declaration_id: str) -> Mapping[str, Any]:
        return self._generated[declaration_id]

    def attribute(self, declaration_id: str, attribute: str) -> Any:  # noqa: ANN401
        """Generated attribute of an already materialized declaration."""
        return self.resolve(Ref(declaration_id, attribute))

    def resolve(self, ref: Ref) -> Any:  # noqa: ANN401
        declaration = self.declaration(ref.target)
        if ref.target not in self._generated:
            raise UnresolvedReferenceError(
                f"'{ref.target}' is not materialized yet; reference {ref} is out of order"
            )
        attributes = self._generated[ref.target]
        if ref.attribute not in attributes:
            raise UnresolvedReferenceError(
                f"{declaration.kind.value} '{ref.target}' has no attribute '{ref.attribute}'"
            )
        return attributes[ref.attribute]

    def register_bucket(
        self, storage_id: str, bucket: Any, depends_on: list[str]  # noqa: ANN401
    ) -> None:
        self._bucket_policies[storage_id] = _BucketPolicyTarget(bucket, tuple(depends_on))

    def add_bucket_statement(self, storage_id: str, statement: dict) -> None:
        self._bucket_policies[storage_id].statements.append(statement)

    def bucket_policies(self) -> Iterator[tuple[str, Any, tuple[str, ...], list[dict]]]:
        for storage_id, target in self._bucket_policies.items():
            yield storage_id, target.bucket, target.depends_on, target.statements
