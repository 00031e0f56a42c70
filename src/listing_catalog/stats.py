"""Dashboard statistics over a set of listings.

Pure functions over in-memory listings; nothing here reads storage. Records
missing a type, status or creation time still count toward ``total`` but are
left out of the bucket they cannot be placed in.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, UTC
from typing import Any

from pydantic import BaseModel, Field

from .config import config
from .models.listing import Listing, ListingStatus
from .utils import utc_now


class ListingStats(BaseModel):
    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    recently_added: int = 0
    pending_approval: int = 0
    published_count: int = 0

    def share_by_type(self) -> dict[str, float]:
        return {key: percentage(count, self.total) for key, count in self.by_type.items()}

    def share_by_status(self) -> dict[str, float]:
        return {key: percentage(count, self.total) for key, count in self.by_status.items()}


def percentage(count: int, total: int) -> float:
    """count/total as a percentage; 0 when there is nothing to divide by."""
    if total <= 0:
        return 0.0
    return count / total * 100


def _read(listing: Listing | Mapping[str, Any], key: str, attr: str) -> Any:
    if isinstance(listing, Listing):
        return getattr(listing, attr)
    return listing.get(key)


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def summarize(
    listings: Iterable[Listing | Mapping[str, Any]],
    now: datetime | None = None,
    recent_window: timedelta | None = None,
) -> ListingStats:
    """Count listings by type and status, plus recency and moderation totals.

    Args:
        listings: Listing models or raw listing documents.
        now: Reference time for "recently added". Defaults to current UTC.
        recent_window: How far back counts as recent. Defaults to
            ``config.recent_window_hours``.
    """
    now = now or utc_now()
    cutoff = now - (recent_window or timedelta(hours=config.recent_window_hours))

    total = 0
    by_type: Counter[str] = Counter()
    by_status: Counter[str] = Counter()
    recent = 0

    for listing in listings:
        total += 1
        listing_type = _read(listing, "type", "type")
        if listing_type:
            by_type[str(listing_type)] += 1
        status = _read(listing, "status", "status")
        if status:
            by_status[str(status)] += 1
        created_at = _as_datetime(_read(listing, "createdAt", "created_at"))
        if created_at is not None and cutoff <= created_at <= now:
            recent += 1

    return ListingStats(
        total=total,
        by_type=dict(by_type),
        by_status=dict(by_status),
        recently_added=recent,
        pending_approval=by_status.get(ListingStatus.PENDING.value, 0),
        published_count=by_status.get(ListingStatus.PUBLISHED.value, 0),
    )
