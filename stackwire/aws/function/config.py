import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypedDict, final

from stackwire.exceptions import ValidationError
from stackwire.expressions import Attr, Format, Ref
from stackwire.kinds import KindConfig, check_bool, check_choice, check_int

from .constants import (
    DEFAULT_MEMORY,
    DEFAULT_TIMEOUT,
    LAMBDA_RUNTIMES,
    MAX_MEMORY,
    MAX_TIMEOUT,
    MIN_MEMORY,
    RESERVED_ENV_VARS,
)

_ENV_VAR_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


class FunctionConfigDict(TypedDict, total=False):
    runtime: str
    handler: str
    code_location: str
    env_vars: dict[str, str | Ref | Format]
    timeout_seconds: int
    memory_mb: int
    tracing_enabled: bool
    log_group: str
    description: str


@final
@dataclass(frozen=True, kw_only=True)
class FunctionConfig(KindConfig):
    runtime: str
    handler: str
    code_location: str
    env_vars: Mapping[str, Any] = field(default_factory=dict)
    timeout_seconds: int = DEFAULT_TIMEOUT
    memory_mb: int = DEFAULT_MEMORY
    tracing_enabled: bool = False
    log_group: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        check_choice(self.runtime, LAMBDA_RUNTIMES, "runtime")
        self._validate_handler()
        if not isinstance(self.code_location, str) or not self.code_location.strip():
            raise ValidationError("option 'code_location' cannot be empty")
        self._validate_env_vars()
        check_int(self.timeout_seconds, "timeout_seconds", 1, MAX_TIMEOUT)
        check_int(self.memory_mb, "memory_mb", MIN_MEMORY, MAX_MEMORY)
        check_bool(self.tracing_enabled, "tracing_enabled")
        if self.log_group is not None and (
            not isinstance(self.log_group, str) or not self.log_group
        ):
            raise ValidationError("option 'log_group' must be the id of a LogGroup declaration")

    def _validate_handler(self) -> None:
        if not isinstance(self.handler, str) or "." not in self.handler:
            raise ValidationError(
                "option 'handler' must contain a dot separator between file and function name"
            )
        file_path, function_name = self.handler.rsplit(".", 1)
        if not file_path or not function_name:
            raise ValidationError(
                "option 'handler': both file path and function name must be non-empty"
            )

    def _validate_env_vars(self) -> None:
        if not isinstance(self.env_vars, Mapping):
            raise ValidationError("option 'env_vars' must be a mapping of names to values")
        for name, value in self.env_vars.items():
            if not isinstance(name, str) or not _ENV_VAR_NAME.match(name):
                raise ValidationError(f"invalid environment variable name {name!r}")
            if name in RESERVED_ENV_VARS:
                raise ValidationError(
                    f"environment variable '{name}' is reserved by the Lambda runtime"
                )
            # Ref values are already substituted when this runs during synthesis
            if not isinstance(value, str | Ref | Attr | Format):
                raise ValidationError(
                    f"environment variable '{name}' must be a string, got {type(value).__name__}"
                )

    def references(self) -> tuple[Ref, ...]:
        if self.log_group is None:
            return ()
        return (Ref(self.log_group, "name"),)
