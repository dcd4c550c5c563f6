class StackwireError(Exception):
    """Base class for all errors raised while assembling or synthesizing a descriptor."""

    def __init__(self, message: str, *, declaration_id: str | None = None):
        self.message = message
        self.declaration_id = declaration_id
        super().__init__(message)

    def __str__(self) -> str:
        if self.declaration_id is None:
            return self.message
        return f"[{self.declaration_id}] {self.message}"

    def for_declaration(self, declaration_id: str) -> "StackwireError":
        """Return a copy of this error attributed to the given declaration."""
        return type(self)(self.message, declaration_id=declaration_id)


class ValidationError(StackwireError, ValueError):
    """Raised when a configuration option is missing, unknown or out of range."""


class UnresolvedReferenceError(StackwireError):
    """Raised when a reference points at a missing declaration or attribute, or forms a cycle."""


class DuplicateRouteError(StackwireError):
    """Raised when a (path, method) pair is bound twice on the same gateway."""


class InvalidHandlerError(StackwireError):
    """Raised when a route handler or authorizer is not a Function declaration."""


class SynthesisError(StackwireError):
    """Raised when the materialization step fails, e.g. on provider resource name conflicts."""


class DescriptorSealedError(StackwireError):
    """Raised when a descriptor is modified or synthesized again after synthesis."""


class StackwireProjectError(StackwireError):
    """Raised when no stackwire app file is found in the current or parent directories."""
