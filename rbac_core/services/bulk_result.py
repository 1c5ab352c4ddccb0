"""Outcome of a bulk assign / revoke / grant call."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class BulkFailure:
    item: str
    error: str


@dataclass(frozen=True)
class BulkOperationResult:
    """
    Immutable summary of a bulk operation.

    - success_count: items that changed state.
    - failure_count: items that raised; details in `failures`.
    Idempotent repeats are counted as neither.
    """

    success_count: int = 0
    failure_count: int = 0
    failures: tuple[BulkFailure, ...] = field(default_factory=tuple)

    def is_full_success(self) -> bool:
        return self.failure_count == 0

    def total_count(self) -> int:
        return self.success_count + self.failure_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "failures": [{"item": f.item, "error": f.error} for f in self.failures],
        }
