"""Per-item outcomes for bulk operations.

Bulk operations run one independent call per id. They are not atomic: a
failure on one id is recorded and the batch carries on.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, UTC

from .errors import CatalogError


@dataclass
class BulkError:
    """Record of one id that failed within a bulk operation."""

    listing_id: str
    error_type: str
    error_message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_exception(cls, listing_id: str, exc: CatalogError) -> "BulkError":
        return cls(
            listing_id=listing_id,
            error_type=exc.kind,
            error_message=str(exc),
        )


@dataclass
class BulkResult:
    """Result of a bulk operation containing successes and failures."""

    succeeded: list[str] = field(default_factory=list)
    errors: list[BulkError] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def total_count(self) -> int:
        return self.success_count + self.error_count

    @property
    def failed_ids(self) -> list[str]:
        return [e.listing_id for e in self.errors]

    def __repr__(self) -> str:
        return f"BulkResult({self.success_count} succeeded, {self.error_count} failed)"


def run_bulk(listing_ids: Iterable[str], operation: Callable[[str], object]) -> BulkResult:
    """Apply ``operation`` to each id, collecting catalog errors per id."""
    result = BulkResult()
    for listing_id in listing_ids:
        try:
            operation(listing_id)
        except CatalogError as e:
            result.errors.append(BulkError.from_exception(listing_id, e))
        else:
            result.succeeded.append(listing_id)
    return result
