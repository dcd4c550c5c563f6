"""Deferred values used in declarations and plans.

Declarations refer to each other with ``Ref`` (declaration id + generated attribute). During
synthesis every ``Ref`` is replaced by the expression the target declaration generated, which
points at a planned provider resource through ``Attr``. ``Format``, ``Json`` and ``Archive``
wrap values that can only be rendered once those attributes are known.
"""

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Ref:
    """Reference to a generated attribute of another declaration, e.g. Ref("table", "name")."""

    target: str
    attribute: str

    def __str__(self) -> str:
        return f"{self.target}.{self.attribute}"


@dataclass(frozen=True)
class Attr:
    """Output attribute of a planned provider resource (pulumi_aws snake_case attribute name)."""

    resource: str
    attribute: str


@dataclass(frozen=True, init=False)
class Format:
    """String interpolation over deferred values. Placeholders are positional ``{}``."""

    template: str
    args: tuple[Any, ...]

    def __init__(self, template: str, *args: Any) -> None:  # noqa: ANN401
        if template.count("{}") != len(args):
            raise ValueError(
                f"Format template '{template}' expects {template.count('{}')} values, "
                f"got {len(args)}"
            )
        object.__setattr__(self, "template", template)
        object.__setattr__(self, "args", tuple(args))


@dataclass(frozen=True)
class Json:
    """Document that is JSON-encoded once all deferred values inside it are known."""

    document: Any


@dataclass(frozen=True)
class Archive:
    """Code archive built from a local file or directory path."""

    path: str


_TOKENS = (Ref, Attr, Format, Json, Archive)


def transform(value: Any, fn: Callable[[Any], Any]) -> Any:  # noqa: ANN401
    """Rebuild ``value`` bottom-up, calling ``fn`` on every expression token.

    Containers (dicts, lists, tuples, sets) are copied; ``Format`` and ``Json`` have their
    contents transformed before ``fn`` sees them.
    """
    if isinstance(value, Format):
        return fn(Format(value.template, *(transform(arg, fn) for arg in value.args)))
    if isinstance(value, Json):
        return fn(Json(transform(value.document, fn)))
    if isinstance(value, _TOKENS):
        return fn(value)
    if isinstance(value, Mapping):
        return {k: transform(v, fn) for k, v in value.items()}
    if isinstance(value, list):
        return [transform(v, fn) for v in value]
    if isinstance(value, tuple):
        return tuple(transform(v, fn) for v in value)
    if isinstance(value, set | frozenset):
        return type(value)(transform(v, fn) for v in value)
    return value


def iter_tokens[T](value: Any, token_type: type[T]) -> Iterator[T]:  # noqa: ANN401
    """Yield every token of ``token_type`` nested anywhere inside ``value``."""
    if isinstance(value, token_type):
        yield value
    if isinstance(value, Format):
        for arg in value.args:
            yield from iter_tokens(arg, token_type)
    elif isinstance(value, Json):
        yield from iter_tokens(value.document, token_type)
    elif isinstance(value, Mapping):
        for v in value.values():
            yield from iter_tokens(v, token_type)
    elif isinstance(value, list | tuple | set | frozenset):
        for v in value:
            yield from iter_tokens(v, token_type)
