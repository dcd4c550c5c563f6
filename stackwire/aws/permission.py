from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class AwsPermission:
    actions: Sequence[str]
    resources: Sequence[Any]

    def to_statement(self, sid: str) -> dict[str, Any]:
        """IAM policy statement; resources may still hold deferred expressions."""
        return {
            "Sid": sid,
            "Effect": "Allow",
            "Action": list(self.actions),
            "Resource": list(self.resources),
        }
