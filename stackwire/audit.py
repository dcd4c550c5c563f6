"""Conformance checks over a descriptor, reported by ``stackwire check``."""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from stackwire.kinds import ResourceKind

if TYPE_CHECKING:
    from stackwire.descriptor import Descriptor


class Severity(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3


@dataclass(frozen=True)
class Finding:
    severity: Severity
    declaration_id: str
    rule: str
    message: str

    def __str__(self) -> str:
        return f"{self.severity.name} [{self.declaration_id}] {self.rule}: {self.message}"


type Rule = Callable[["Descriptor"], Iterator[Finding]]

RULES: list[Rule] = []


def rule(func: Rule) -> Rule:
    RULES.append(func)
    return func


@rule
def unauthenticated_routes(descriptor: "Descriptor") -> Iterator[Finding]:
    for binding in descriptor.routes:
        if not binding.authorization.is_authenticated:
            yield Finding(
                Severity.HIGH,
                binding.api,
                "unauthenticated-route",
                f"{binding} invokes '{binding.handler}' without authorization",
            )


@rule
def public_storage(descriptor: "Descriptor") -> Iterator[Finding]:
    for declaration in _of_kind(descriptor, ResourceKind.STORAGE):
        if declaration.config.public_access:
            yield Finding(
                Severity.HIGH,
                declaration.id,
                "public-storage",
                "bucket objects are publicly readable; serve them through a CDN instead",
            )


@rule
def wildcard_cors(descriptor: "Descriptor") -> Iterator[Finding]:
    for declaration in _of_kind(descriptor, ResourceKind.API_GATEWAY):
        cors = declaration.config.normalized_cors
        if cors is not None and cors.allows_any_origin:
            yield Finding(
                Severity.MEDIUM,
                declaration.id,
                "wildcard-cors-origin",
                "CORS allows any origin",
            )


@rule
def table_without_recovery(descriptor: "Descriptor") -> Iterator[Finding]:
    for declaration in _of_kind(descriptor, ResourceKind.TABLE):
        if not declaration.config.point_in_time_recovery:
            yield Finding(
                Severity.LOW,
                declaration.id,
                "no-point-in-time-recovery",
                "table has no point-in-time recovery",
            )


@rule
def function_without_tracing(descriptor: "Descriptor") -> Iterator[Finding]:
    for declaration in _of_kind(descriptor, ResourceKind.FUNCTION):
        if not declaration.config.tracing_enabled:
            yield Finding(
                Severity.LOW, declaration.id, "tracing-disabled", "function tracing is off"
            )


def audit(descriptor: "Descriptor") -> list[Finding]:
    """All findings, most severe first, then in declaration order."""
    findings = [finding for check in RULES for finding in check(descriptor)]
    return sorted(findings, key=lambda f: -f.severity)


def _of_kind(descriptor: "Descriptor", kind: ResourceKind) -> Iterator:
    return (d for d in descriptor.declarations if d.kind is kind)
