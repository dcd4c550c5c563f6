from dataclasses import dataclass
from typing import TypedDict

VALID_CORS_METHODS = frozenset({"DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT", "*"})


def _validate_cors_field(value: str | list[str], field_name: str) -> None:
    """Validate CORS field (origins, methods, headers) for common patterns.

    Rejects:
    - Empty strings or empty lists
    - Wildcard '*' in a list (must be a string)
    - Non-string items in lists
    """
    if isinstance(value, str):
        if not value:
            raise ValueError(f"{field_name} string cannot be empty")
    elif isinstance(value, list):
        if not value:
            raise ValueError(f"{field_name} list cannot be empty")
        if "*" in value:
            raise ValueError(
                f"Wildcard '*' must be a string, not in a list. Use {field_name}='*' instead"
            )
        for item in value:
            if not isinstance(item, str) or not item:
                raise ValueError(f"Each {field_name} value must be a non-empty string")
    else:
        raise TypeError(f"{field_name} must be a string or list of strings")


class CorsConfigDict(TypedDict, total=False):
    allow_origins: str | list[str]
    allow_methods: str | list[str]
    allow_headers: str | list[str]
    allow_credentials: bool
    max_age: int | None
    expose_headers: list[str] | None


@dataclass(frozen=True, kw_only=True)
class CorsConfig:
    """CORS configuration for an API gateway.

    A list of origins is answered per request: the preflight echoes the request origin
    when it is one of the allowed origins.
    """

    allow_origins: str | list[str] = "*"
    allow_methods: str | list[str] = "*"
    allow_headers: str | list[str] = "*"
    allow_credentials: bool = False
    max_age: int | None = None
    expose_headers: list[str] | None = None

    def __post_init__(self) -> None:
        _validate_cors_field(self.allow_origins, "allow_origins")
        if self.allow_credentials and self.allow_origins == "*":
            raise ValueError("allow_credentials=True requires specific origins, cannot use '*'")

        self._validate_methods()

        _validate_cors_field(self.allow_headers, "allow_headers")

        if self.max_age is not None and self.max_age < 0:
            raise ValueError("max_age must be non-negative")

        if self.expose_headers is not None:
            if not self.expose_headers:
                raise ValueError("expose_headers list cannot be empty when specified")
            for header in self.expose_headers:
                if not isinstance(header, str) or not header:
                    raise ValueError("Each expose_headers value must be a non-empty string")

    def _validate_methods(self) -> None:
        _validate_cors_field(self.allow_methods, "allow_methods")
        methods = (
            [self.allow_methods] if isinstance(self.allow_methods, str) else self.allow_methods
        )
        for method in methods:
            if method.upper() not in VALID_CORS_METHODS:
                raise ValueError(
                    f"Invalid HTTP method '{method}'. Valid: "
                    f"{', '.join(sorted(VALID_CORS_METHODS - {'*'}))}, or '*' for all"
                )

    @property
    def allows_any_origin(self) -> bool:
        return self.allow_origins == "*"

    def to_dict(self) -> dict:
        return {
            "allow_origins": self.allow_origins,
            "allow_methods": self.allow_methods,
            "allow_headers": self.allow_headers,
            "allow_credentials": self.allow_credentials,
            "max_age": self.max_age,
            "expose_headers": self.expose_headers,
        }


def normalize_cors(cors: "CorsConfig | CorsConfigDict | bool | None") -> CorsConfig | None:
    """Normalize CORS configuration to CorsConfig or None.

    Converts:
    - True → CorsConfig with permissive defaults
    - CorsConfig → returns as-is
    - dict (CorsConfigDict) → CorsConfig(**dict) with validation
    - False or None → None (CORS disabled)
    """
    if cors is True:
        return CorsConfig()
    if isinstance(cors, CorsConfig):
        return cors
    if isinstance(cors, dict):
        return CorsConfig(**cors)
    if cors in (False, None):
        return None
    raise TypeError(f"cors must be a CorsConfig, dict, bool or None, got {type(cors).__name__}")
