from collections.abc import Callable, Iterable, Mapping
from dataclasses import MISSING, dataclass, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from stackwire.exceptions import StackwireError, ValidationError
from stackwire.expressions import Ref

if TYPE_CHECKING:
    from stackwire.aws.permission import AwsPermission
    from stackwire.descriptor import ResourceDeclaration
    from stackwire.plan import PlanContext


class ResourceKind(Enum):
    STORAGE = "Storage"
    CDN = "CDN"
    TABLE = "Table"
    LOG_GROUP = "LogGroup"
    FUNCTION = "Function"
    API_GATEWAY = "ApiGateway"
    RESOURCE_PATH = "ResourcePath"


class KindConfig:
    """Mixin for kind config dataclasses."""

    def references(self) -> tuple[Ref, ...]:
        """Structural references to other declarations (besides Ref values in options)."""
        return ()


type Materializer = Callable[["PlanContext", "ResourceDeclaration", Any], Mapping[str, Any]]
type ActionPermissions = Callable[[Mapping[str, Any]], list["AwsPermission"]]


@dataclass(frozen=True)
class KindSpec:
    kind: ResourceKind
    config_type: type
    attributes: frozenset[str]
    actions: Mapping[str, ActionPermissions]
    materialize: Materializer


class KindRegistry:
    _specs: ClassVar[dict[ResourceKind, KindSpec]] = {}

    @classmethod
    def register(cls, spec: KindSpec) -> None:
        cls._specs[spec.kind] = spec

    @classmethod
    def get(cls, kind: ResourceKind) -> KindSpec:
        try:
            return cls._specs[kind]
        except KeyError:
            raise ValidationError(f"no materializer registered for kind {kind.value}") from None


def resource_kind(
    kind: ResourceKind,
    config_type: type,
    attributes: Iterable[str],
    actions: Mapping[str, ActionPermissions] | None = None,
) -> Callable[[Materializer], Materializer]:
    """Decorator to register the materializer, attributes and grant vocabulary of a kind"""

    def decorator(func: Materializer) -> Materializer:
        KindRegistry.register(
            KindSpec(kind, config_type, frozenset(attributes), dict(actions or {}), func)
        )
        return func

    return decorator


def parse_config(kind: ResourceKind, declaration_id: str, config: object) -> Any:  # noqa: ANN401
    """Turn user config (mapping or config dataclass) into the kind's validated config."""
    config_type = KindRegistry.get(kind).config_type
    try:
        if isinstance(config, config_type):
            return config
        if not isinstance(config, Mapping):
            raise ValidationError(
                f"config must be a mapping or {config_type.__name__}, "
                f"got {type(config).__name__}"
            )
        options = {f.name: f for f in fields(config_type) if f.init}
        unknown = sorted(set(config) - set(options))
        if unknown:
            raise ValidationError(
                f"unknown option(s) for {kind.value}: {', '.join(repr(o) for o in unknown)}"
            )
        missing = [
            name
            for name, f in options.items()
            if f.default is MISSING and f.default_factory is MISSING and name not in config
        ]
        if missing:
            raise ValidationError(
                f"missing required option(s) for {kind.value}: "
                f"{', '.join(repr(o) for o in missing)}"
            )
        return config_type(**config)
    except StackwireError as e:
        if e.declaration_id is None:
            raise e.for_declaration(declaration_id) from e
        raise
    except (TypeError, ValueError) as e:
        raise ValidationError(str(e), declaration_id=declaration_id) from e


def check_choice[T](value: T, choices: Iterable[T], option: str) -> T:
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(
            f"invalid value {value!r} for option '{option}'; "
            f"expected one of: {', '.join(str(c) for c in choices)}"
        )
    return value


def check_int(value: object, option: str, minimum: int, maximum: int | None = None) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"option '{option}' must be an integer, got {value!r}")
    if value < minimum or (maximum is not None and value > maximum):
        upper = f"..{maximum}" if maximum is not None else " or more"
        raise ValidationError(f"option '{option}' must be {minimum}{upper}, got {value}")


def check_bool(value: object, option: str) -> None:
    if not isinstance(value, bool):
        raise ValidationError(f"option '{option}' must be a boolean, got {value!r}")
