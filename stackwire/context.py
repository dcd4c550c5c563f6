from dataclasses import dataclass, field
from pathlib import Path

from stackwire.config import AwsConfig


@dataclass(frozen=True)
class AppContext:
    """Context information for one assembly run.

    Held by the Descriptor it belongs to and passed explicitly; there is no global context.
    """

    name: str
    env: str
    aws: AwsConfig = field(default_factory=AwsConfig)
    root: Path | None = None

    def prefix(self, name: str | None = None) -> str:
        """Get resource name prefix or prefixed name.

        Args:
            name: Optional name to prefix. If None, returns just the prefix with trailing dash.

        Returns:
            If name is None: "{app}-{env}-"
            If name provided: "{app}-{env}-{name}"
        """
        base = f"{self.name.lower()}-{self.env.lower()}-"
        return base if name is None else f"{base}{name}"
