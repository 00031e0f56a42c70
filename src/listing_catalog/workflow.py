"""Status workflow for listing moderation.

Any status may move to any other; there is no terminal state. Every
transition goes through ``ListingStore.update`` (so the merged listing is
re-validated and its version bumped) and appends one status history entry.
Re-applying the current status is accepted and still appends an entry.
"""

import logging
from collections.abc import Iterable

from .bulk import BulkResult, run_bulk
from .db.operations import ListingStore
from .errors import AuthenticationRequiredError, FieldError, ListingValidationError
from .models.listing import Actor, Listing, ListingStatus


logger = logging.getLogger(__name__)


def _coerce_status(status: ListingStatus | str) -> ListingStatus:
    try:
        return ListingStatus(status)
    except ValueError:
        raise ListingValidationError([FieldError("status", f"Invalid listing status: {status!r}")]) from None


class StatusWorkflow:
    """Moderation actions over the listing lifecycle."""

    def __init__(self, store: ListingStore):
        self.store = store

    def set_status(
        self,
        listing_id: str,
        status: ListingStatus | str,
        actor: Actor | None,
        reason: str | None = None,
    ) -> Listing:
        """Move a listing to ``status`` and record the transition.

        Raises:
            AuthenticationRequiredError: No acting identity.
            NotFoundError: Listing absent or soft-deleted.
            ListingValidationError: The listing is incomplete for the new
                status (e.g. publishing a draft with no description).
        """
        if actor is None:
            raise AuthenticationRequiredError("change listing status")
        status = _coerce_status(status)
        # a rejection reason only describes the rejected state
        patch: dict[str, object] = {
            "status": status.value,
            "statusReason": reason if status == ListingStatus.REJECTED else None,
        }

        listing = self.store.update(
            listing_id,
            patch,
            actor,
            record_status=True,
            history_reason=reason,
        )
        logger.info("Listing %s set to %s by %s", listing_id, status.value, actor.uid)
        return listing

    def publish(self, listing_id: str, actor: Actor | None) -> Listing:
        return self.set_status(listing_id, ListingStatus.PUBLISHED, actor)

    def set_pending(self, listing_id: str, actor: Actor | None) -> Listing:
        return self.set_status(listing_id, ListingStatus.PENDING, actor)

    def reject(self, listing_id: str, reason: str, actor: Actor | None) -> Listing:
        return self.set_status(listing_id, ListingStatus.REJECTED, actor, reason=reason)

    def archive(self, listing_id: str, actor: Actor | None) -> Listing:
        return self.set_status(listing_id, ListingStatus.ARCHIVED, actor)

    def bulk_set_status(
        self,
        listing_ids: Iterable[str],
        status: ListingStatus | str,
        actor: Actor | None,
        reason: str | None = None,
    ) -> BulkResult:
        """Apply one status to many listings; failures are reported per id."""
        if actor is None:
            raise AuthenticationRequiredError("change listing status")
        status = _coerce_status(status)
        return run_bulk(listing_ids, lambda listing_id: self.set_status(listing_id, status, actor, reason))
