import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypedDict, final

from stackwire.aws.cors import CorsConfig, CorsConfigDict, normalize_cors
from stackwire.exceptions import ValidationError
from stackwire.expressions import Ref
from stackwire.kinds import KindConfig, check_bool, check_choice, check_int

from .constants import (
    DEFAULT_ENDPOINT_TYPE,
    DEFAULT_STAGE_NAME,
    DEFAULT_THROTTLING_BURST_LIMIT,
    DEFAULT_THROTTLING_RATE_LIMIT,
    ROUTE_MAX_LENGTH,
    ROUTE_MAX_PARAMS,
    ApiEndpointType,
    HTTPMethod,
    HTTPMethodLiteral,
    LoggingLevel,
)


class ApiGatewayConfigDict(TypedDict, total=False):
    description: str
    stage_name: str
    endpoint_type: ApiEndpointType
    throttling_rate_limit: int
    throttling_burst_limit: int
    logging_level: LoggingLevel
    data_trace_enabled: bool
    tracing_enabled: bool
    cors: bool | CorsConfig | CorsConfigDict | None


@final
@dataclass(frozen=True, kw_only=True)
class ApiGatewayConfig(KindConfig):
    description: str | None = None
    stage_name: str = DEFAULT_STAGE_NAME
    endpoint_type: ApiEndpointType = DEFAULT_ENDPOINT_TYPE
    throttling_rate_limit: int = DEFAULT_THROTTLING_RATE_LIMIT
    throttling_burst_limit: int = DEFAULT_THROTTLING_BURST_LIMIT
    logging_level: LoggingLevel = "INFO"
    data_trace_enabled: bool = False
    tracing_enabled: bool = False
    cors: bool | CorsConfig | CorsConfigDict | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.stage_name, str) or not self.stage_name:
            raise ValidationError("Stage name cannot be empty")
        if not re.match(r"^[a-zA-Z0-9_-]+$", self.stage_name):
            raise ValidationError(
                "Stage name can only contain alphanumeric characters, hyphens, and underscores"
            )
        check_choice(self.endpoint_type, ("regional", "edge"), "endpoint_type")
        check_int(self.throttling_rate_limit, "throttling_rate_limit", 0)
        check_int(self.throttling_burst_limit, "throttling_burst_limit", 0)
        check_choice(self.logging_level, ("OFF", "ERROR", "INFO"), "logging_level")
        check_bool(self.data_trace_enabled, "data_trace_enabled")
        check_bool(self.tracing_enabled, "tracing_enabled")
        if self.data_trace_enabled and self.logging_level == "OFF":
            raise ValidationError("data_trace_enabled requires logging_level ERROR or INFO")
        # Normalizing validates dict configs early
        normalize_cors(self.cors)

    @property
    def normalized_cors(self) -> CorsConfig | None:
        return normalize_cors(self.cors)


@final
@dataclass(frozen=True, kw_only=True)
class ResourcePathConfig(KindConfig):
    """One path segment of a gateway. Declared by the route binder for each path prefix."""

    api: str
    path: tuple[str, ...]
    parent: str | None = None

    def __post_init__(self) -> None:
        if not self.path:
            raise ValidationError("resource path must have at least one segment")

    @property
    def path_part(self) -> str:
        return self.path[-1]

    def references(self) -> tuple[Ref, ...]:
        if self.parent is None:
            return (Ref(self.api, "root_resource_id"),)
        return (Ref(self.parent, "id"),)


def parse_path(path: str | Sequence[str]) -> tuple[str, ...]:
    """Validate a route path and split it into segments. '/' is the root path ()."""
    if not isinstance(path, str):
        if not all(isinstance(part, str) for part in path):
            raise ValidationError("Path segments must be strings")
        path = "/" + "/".join(path)

    if not path.startswith("/"):
        raise ValidationError("Path must start with '/'")

    if len(path) > ROUTE_MAX_LENGTH:
        raise ValidationError("Path too long")

    if "{}" in path:
        raise ValidationError("Empty path parameters not allowed")

    parts = tuple(path.strip("/").split("/")) if path.strip("/") else ()
    if any(not part for part in parts):
        raise ValidationError("Empty path segments not allowed")

    params = re.findall(r"{([^}]+)}", path)

    if len(params) > ROUTE_MAX_PARAMS:
        raise ValidationError("Maximum of 10 path parameters allowed")

    if len(params) != len(set(params)):
        raise ValidationError("Duplicate path parameters not allowed")

    for index, part in enumerate(parts):
        if "{" in part or "}" in part:
            _validate_parameter(part, is_last=index == len(parts) - 1)
    return parts


def _validate_parameter(part: str, *, is_last: bool) -> None:
    if not (part.startswith("{") and part.endswith("}")) or part.count("{") != 1:
        raise ValidationError(f"Path parameter must be a whole segment: {part}")
    param = part[1:-1]
    # Greedy path parameter handling
    if param.endswith("+"):
        if param != "proxy+":
            raise ValidationError("Only {proxy+} is supported for greedy paths")
        if not is_last:
            raise ValidationError("Greedy parameter must be at the end of the path")
        return

    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", param):
        raise ValidationError(f"Invalid parameter name: {param}")


def normalize_method(method: str | HTTPMethodLiteral | HTTPMethod) -> str:
    if isinstance(method, HTTPMethod):
        return method.value
    if not isinstance(method, str):
        raise ValidationError(f"Invalid HTTP method: {method!r}")
    if method == "*":
        return HTTPMethod.ANY.value
    if method.upper() not in HTTPMethod.__members__:
        raise ValidationError(f"Invalid HTTP method: {method}")
    return method.upper()


def format_path(parts: Sequence[str]) -> str:
    return "/" + "/".join(parts)
