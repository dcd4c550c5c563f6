"""Route binding: (path, method) pairs on a gateway backed by Function declarations."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal

from stackwire.aws.api_gateway import emit_api_routes
from stackwire.aws.api_gateway.config import format_path, normalize_method, parse_path
from stackwire.aws.api_gateway.constants import HTTPMethod
from stackwire.exceptions import (
    DuplicateRouteError,
    InvalidHandlerError,
    UnresolvedReferenceError,
    ValidationError,
)
from stackwire.kinds import ResourceKind

if TYPE_CHECKING:
    from stackwire.descriptor import Descriptor
    from stackwire.plan import PlanContext

logger = logging.getLogger(__name__)


class AuthorizationType(Enum):
    NONE = "none"
    API_KEY = "api_key"
    IAM = "iam"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Authorization:
    """How callers of one route authenticate.

    Examples:
    ```python
    Authorization.none()            # open route, flagged by `stackwire check`
    Authorization.api_key()         # x-api-key header, usage plan with stage throttling
    Authorization.iam()             # SigV4 signed requests
    Authorization.custom("auth-fn") # TOKEN authorizer backed by a Function declaration
    ```
    """

    type: AuthorizationType
    authorizer: str | None = None

    def __post_init__(self) -> None:
        if (self.type is AuthorizationType.CUSTOM) != (self.authorizer is not None):
            raise ValidationError("custom authorization requires an authorizer function id")

    @classmethod
    def none(cls) -> "Authorization":
        return cls(AuthorizationType.NONE)

    @classmethod
    def api_key(cls) -> "Authorization":
        return cls(AuthorizationType.API_KEY)

    @classmethod
    def iam(cls) -> "Authorization":
        return cls(AuthorizationType.IAM)

    @classmethod
    def custom(cls, authorizer: str) -> "Authorization":
        return cls(AuthorizationType.CUSTOM, authorizer)

    @classmethod
    def parse(cls, value: "AuthorizationInput") -> "Authorization":
        if isinstance(value, Authorization):
            return value
        if value == AuthorizationType.CUSTOM.value:
            raise ValidationError("use Authorization.custom('<function id>') for custom auth")
        try:
            return cls(AuthorizationType(value))
        except ValueError:
            raise ValidationError(
                f"invalid authorization {value!r}; expected Authorization or one of: "
                "none, api_key, iam"
            ) from None

    @property
    def is_authenticated(self) -> bool:
        return self.type is not AuthorizationType.NONE

    @property
    def key(self) -> str:
        if self.authorizer is None:
            return self.type.value
        return f"{self.type.value}:{self.authorizer}"


type AuthorizationInput = Authorization | Literal["none", "api_key", "iam"]


@dataclass(frozen=True)
class RouteBinding:
    api: str
    path: tuple[str, ...]
    method: str
    handler: str
    authorization: Authorization

    @property
    def path_str(self) -> str:
        return format_path(self.path)

    def __str__(self) -> str:
        return f"{self.method} {self.path_str}"


def create_binding(  # noqa: PLR0913
    descriptor: "Descriptor",
    api: str,
    path: str | Sequence[str],
    method: str | HTTPMethod,
    handler: str,
    authorization: "AuthorizationInput",
) -> RouteBinding:
    """Validate a route binding against the declarations of a descriptor."""
    gateway = descriptor.find(api)
    if gateway is None:
        raise UnresolvedReferenceError(f"no ApiGateway declaration with id '{api}'")
    if gateway.kind is not ResourceKind.API_GATEWAY:
        raise ValidationError(
            f"routes can only be bound on ApiGateway declarations, '{api}' is "
            f"{gateway.kind.value}"
        )

    binding = RouteBinding(
        api=api,
        path=parse_path(path),
        method=normalize_method(method),
        handler=handler,
        authorization=Authorization.parse(authorization),
    )

    _check_function(descriptor, handler, f"handler of {binding}")
    if binding.authorization.authorizer is not None:
        _check_function(descriptor, binding.authorization.authorizer, f"authorizer of {binding}")

    for existing in descriptor.routes:
        if existing.api != api or existing.path != binding.path:
            continue
        if existing.method == binding.method:
            raise DuplicateRouteError(f"route {binding} is already bound", declaration_id=api)
        if HTTPMethod.ANY.value in (existing.method, binding.method):
            raise DuplicateRouteError(
                f"route {binding} overlaps {existing} on the same path", declaration_id=api
            )
    return binding


def _check_function(descriptor: "Descriptor", function_id: object, role: str) -> None:
    declaration = descriptor.find(function_id) if isinstance(function_id, str) else None
    if declaration is None:
        raise InvalidHandlerError(f"{role} must be a Function declaration id, got {function_id!r}")
    if declaration.kind is not ResourceKind.FUNCTION:
        raise InvalidHandlerError(
            f"{role} must be a Function declaration, '{function_id}' is {declaration.kind.value}"
        )


def emit_routes(ctx: "PlanContext", descriptor: "Descriptor") -> None:
    """Plan the route table of every gateway in the descriptor."""
    by_api: dict[str, list[RouteBinding]] = {}
    for binding in descriptor.routes:
        by_api.setdefault(binding.api, []).append(binding)
        if not binding.authorization.is_authenticated:
            logger.warning(
                "Route %s on gateway '%s' has no authorization", binding, binding.api
            )

    for declaration in descriptor.declarations:
        if declaration.kind is not ResourceKind.API_GATEWAY:
            continue
        bindings = by_api.get(declaration.id)
        if not bindings:
            raise ValidationError(
                "gateway has no routes; bind at least one route before synthesis",
                declaration_id=declaration.id,
            )
        emit_api_routes(ctx, declaration.id, declaration.config, bindings)
