import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Unpack

import stackwire.aws  # noqa: F401  registers the resource kinds
from stackwire.aws.api_gateway import ApiGatewayConfig, ApiGatewayConfigDict, ResourcePathConfig
from stackwire.aws.api_gateway.constants import HTTPMethod
from stackwire.aws.api_gateway.routing import resource_path_id
from stackwire.aws.cloudfront import CdnConfig, CdnConfigDict
from stackwire.aws.dynamo_db import TableConfig, TableConfigDict
from stackwire.aws.function import FunctionConfig, FunctionConfigDict
from stackwire.aws.log_group import LogGroupConfig, LogGroupConfigDict
from stackwire.aws.s3 import StorageConfig, StorageConfigDict
from stackwire.context import AppContext
from stackwire.exceptions import DescriptorSealedError, StackwireError, ValidationError
from stackwire.expressions import Format, Ref, iter_tokens
from stackwire.grants import GrantEdge, create_grant
from stackwire.kinds import KindConfig, ResourceKind, parse_config
from stackwire.routes import AuthorizationInput, RouteBinding, create_binding

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")
_OUTPUT_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class ResourceDeclaration:
    id: str
    kind: ResourceKind
    config: Any
    generated_attributes: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )


@dataclass(frozen=True)
class ReferenceEdge:
    source: str
    target: str
    attribute: str


@dataclass(frozen=True)
class OutputDeclaration:
    name: str
    value: Ref | Format
    description: str | None = None


class Descriptor:
    """The resource graph of one deployment, built by explicit declare/grant/bind calls.

    Nothing talks to a cloud provider until ``stackwire.synth.synthesize`` turns the descriptor
    into an artifact. Synthesis seals the descriptor; it cannot be changed afterwards.
    """

    def __init__(self, context: AppContext) -> None:
        self.context = context
        self._declarations: dict[str, ResourceDeclaration] = {}
        self._grants: dict[tuple[str, str], GrantEdge] = {}
        self._routes: list[RouteBinding] = []
        self._outputs: dict[str, OutputDeclaration] = {}
        self._sealed = False

    def __repr__(self) -> str:
        return (
            f"Descriptor({self.context.name}/{self.context.env}: "
            f"{len(self._declarations)} declarations, {len(self._grants)} grants, "
            f"{len(self._routes)} routes)"
        )

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def declarations(self) -> tuple[ResourceDeclaration, ...]:
        """Declarations in program order."""
        return tuple(self._declarations.values())

    @property
    def grants(self) -> tuple[GrantEdge, ...]:
        return tuple(self._grants.values())

    @property
    def routes(self) -> tuple[RouteBinding, ...]:
        return tuple(self._routes)

    @property
    def outputs(self) -> tuple[OutputDeclaration, ...]:
        return tuple(self._outputs.values())

    def find(self, declaration_id: str) -> ResourceDeclaration | None:
        return self._declarations.get(declaration_id)

    def get(self, declaration_id: str) -> ResourceDeclaration:
        try:
            return self._declarations[declaration_id]
        except KeyError:
            raise KeyError(f"no declaration with id '{declaration_id}'") from None

    def declare(
        self, declaration_id: str, kind: ResourceKind | str, config: object = None
    ) -> ResourceDeclaration:
        """Register a resource declaration after validating its config against the kind."""
        kind = _parse_kind(kind, declaration_id)
        if kind is ResourceKind.RESOURCE_PATH:
            raise ValidationError(
                "resource paths are declared by binding routes", declaration_id=declaration_id
            )
        return self._declare(declaration_id, kind, {} if config is None else config)

    def storage(
        self,
        declaration_id: str,
        config: StorageConfig | None = None,
        **opts: Unpack[StorageConfigDict],
    ) -> ResourceDeclaration:
        return self.declare(declaration_id, ResourceKind.STORAGE, _merge(config, opts))

    def cdn(
        self, declaration_id: str, config: CdnConfig | None = None, **opts: Unpack[CdnConfigDict]
    ) -> ResourceDeclaration:
        return self.declare(declaration_id, ResourceKind.CDN, _merge(config, opts))

    def table(
        self,
        declaration_id: str,
        config: TableConfig | None = None,
        **opts: Unpack[TableConfigDict],
    ) -> ResourceDeclaration:
        return self.declare(declaration_id, ResourceKind.TABLE, _merge(config, opts))

    def log_group(
        self,
        declaration_id: str,
        config: LogGroupConfig | None = None,
        **opts: Unpack[LogGroupConfigDict],
    ) -> ResourceDeclaration:
        return self.declare(declaration_id, ResourceKind.LOG_GROUP, _merge(config, opts))

    def function(
        self,
        declaration_id: str,
        config: FunctionConfig | None = None,
        **opts: Unpack[FunctionConfigDict],
    ) -> ResourceDeclaration:
        return self.declare(declaration_id, ResourceKind.FUNCTION, _merge(config, opts))

    def api(
        self,
        declaration_id: str,
        config: ApiGatewayConfig | None = None,
        **opts: Unpack[ApiGatewayConfigDict],
    ) -> ResourceDeclaration:
        return self.declare(declaration_id, ResourceKind.API_GATEWAY, _merge(config, opts))

    def grant(self, principal: str, target: str, actions: str | Iterable[str]) -> GrantEdge:
        """Allow a principal's execution identity the given actions on a target.

        Grants are additive: granting the same pair again merges the actions.
        """
        self.check_not_sealed()
        edge = create_grant(self, principal, target, actions)
        key = (principal, target)
        if key in self._grants:
            edge = self._grants[key].merge(edge)
        self._grants[key] = edge
        logger.debug("Grant %s -> %s %s", principal, target, sorted(edge.actions))
        return edge

    def bind(  # noqa: PLR0913
        self,
        api: str,
        path: str | Sequence[str],
        method: str | HTTPMethod,
        handler: str,
        *,
        authorization: AuthorizationInput,
    ) -> RouteBinding:
        """Bind a (path, method) pair on a gateway to a Function.

        ``authorization`` has no default: every route states how callers authenticate.
        """
        self.check_not_sealed()
        try:
            binding = create_binding(self, api, path, method, handler, authorization)
        except StackwireError as e:
            if e.declaration_id is None:
                raise e.for_declaration(api) from e
            raise
        self._declare_resource_paths(api, binding.path)
        self._routes.append(binding)
        logger.debug("Bound %s on '%s' to '%s'", binding, api, handler)
        return binding

    def output(self, name: str, value: Ref | Format, description: str | None = None) -> None:
        self.check_not_sealed()
        if not isinstance(name, str) or not _OUTPUT_NAME_PATTERN.match(name):
            raise ValidationError(f"invalid output name {name!r}")
        if name in self._outputs:
            raise ValidationError(f"output '{name}' is already declared")
        if not isinstance(value, Ref | Format):
            raise ValidationError(
                f"output '{name}' must be a Ref or Format, got {type(value).__name__}"
            )
        self._outputs[name] = OutputDeclaration(name, value, description)

    def references(self, declaration: ResourceDeclaration) -> list[ReferenceEdge]:
        """Reference edges of one declaration: Ref values in its config plus structural ones."""
        config = declaration.config
        values = {f.name: getattr(config, f.name) for f in fields(config)}
        refs = [*iter_tokens(values, Ref), *config.references()]
        return [
            ReferenceEdge(declaration.id, ref.target, ref.attribute) for ref in dict.fromkeys(refs)
        ]

    def reference_edges(self) -> list[ReferenceEdge]:
        return [edge for d in self._declarations.values() for edge in self.references(d)]

    def seal(self, generated: Mapping[str, Mapping[str, Any]]) -> None:
        """Record generated attributes and freeze the descriptor. Called by synthesis."""
        self.check_not_sealed()
        for declaration_id, attributes in generated.items():
            self._declarations[declaration_id] = replace(
                self._declarations[declaration_id],
                generated_attributes=MappingProxyType(dict(attributes)),
            )
        self._sealed = True

    def check_not_sealed(self) -> None:
        if self._sealed:
            raise DescriptorSealedError(
                "descriptor was already synthesized; build a new one to make changes"
            )

    def _declare(
        self, declaration_id: str, kind: ResourceKind, config: object
    ) -> ResourceDeclaration:
        self.check_not_sealed()
        if declaration_id in self._declarations:
            raise ValidationError(
                f"id is already used by a {self._declarations[declaration_id].kind.value}",
                declaration_id=declaration_id,
            )
        parsed: KindConfig = parse_config(kind, declaration_id, config)
        declaration = ResourceDeclaration(declaration_id, kind, parsed)
        self._declarations[declaration_id] = declaration
        logger.debug("Declared %s '%s'", kind.value, declaration_id)
        return declaration

    def _declare_resource_paths(self, api: str, path: tuple[str, ...]) -> None:
        parent = None
        for depth in range(1, len(path) + 1):
            declaration_id = resource_path_id(api, path[:depth])
            if declaration_id not in self._declarations:
                config = ResourcePathConfig(api=api, path=path[:depth], parent=parent)
                self._declare(declaration_id, ResourceKind.RESOURCE_PATH, config)
            parent = declaration_id


def _parse_kind(kind: ResourceKind | str, declaration_id: object) -> ResourceKind:
    if not isinstance(declaration_id, str) or not _ID_PATTERN.match(declaration_id):
        raise ValidationError(
            f"invalid declaration id {declaration_id!r}; use letters, digits and dashes, "
            "starting with a letter"
        )
    if isinstance(kind, ResourceKind):
        return kind
    try:
        return ResourceKind(kind)
    except ValueError:
        raise ValidationError(
            f"unknown resource kind {kind!r}; expected one of: "
            f"{', '.join(k.value for k in ResourceKind)}",
            declaration_id=declaration_id,
        ) from None


def _merge(config: object, opts: Mapping[str, Any]) -> object:
    if config is None:
        return dict(opts)
    if opts:
        raise ValidationError("pass either a config object or keyword options, not both")
    return config
