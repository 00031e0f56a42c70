"""Database operations.

``ListingStore`` owns create/read/update/soft-delete of listing documents and
the store-native query primitive the catalog query engine builds on.

There is no in-process locking. Two concurrent updates of the same listing
race in SQLite and the later write wins, version bump included, unless the
caller opts into ``expected_version``.
"""

import json
import logging
import sqlite3
import uuid
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from ..bulk import BulkResult, run_bulk
from ..errors import (
    AuthenticationRequiredError,
    ConflictError,
    FieldError,
    ListingValidationError,
    NotFoundError,
    StorageError,
)
from ..models.listing import (
    Actor,
    Analytics,
    Listing,
    StatusHistoryEntry,
    VersionHistoryEntry,
)
from ..schemas import ListingContent, SchemaResult, schema_for
from ..utils import deep_merge, slugify, sortable_timestamp, utc_now
from .schema import init_db


logger = logging.getLogger(__name__)

_connection: sqlite3.Connection | None = None

# Stored document keys a patch may echo back but never change
READ_ONLY_FIELDS = (
    "id",
    "type",
    "slug",
    "ownerId",
    "ownerName",
    "analytics",
    "statusHistory",
    "versionHistory",
    "isDeleted",
    "deletedAt",
    "deletedBy",
    "deletionReason",
    "createdAt",
    "updatedAt",
    "updatedBy",
    "version",
)

# Keys only a status transition (record_status=True) may change
WORKFLOW_FIELDS = ("status", "statusReason")

SORT_COLUMNS = ("created_at", "name", "view_count")

ANALYTICS_COUNTERS = ("view_count", "unique_view_count", "contact_count", "favorite_count")


def get_db(db_path: Path | None = None) -> sqlite3.Connection:
    """Get database connection, initializing if needed.

    Args:
        db_path: Optional path to database. Uses config default if not provided.

    Returns:
        Database connection.
    """
    global _connection
    if _connection is None:
        _connection = init_db(db_path)
    return _connection


def close_db() -> None:
    """Close the database connection."""
    global _connection
    if _connection is not None:
        _connection.close()
        _connection = None


def _require_actor(actor: Actor | None, action: str) -> Actor:
    if actor is None:
        raise AuthenticationRequiredError(action)
    return actor


def _content_fields(content: ListingContent) -> dict[str, Any]:
    """Listing attributes taken from validated shared content."""
    return {
        "name": content.name,
        "description": content.description,
        "short_description": content.short_description,
        "status": content.status,
        "status_reason": content.status_reason,
        "industries": list(content.industries),
        "tags": list(content.tags),
        "location": content.location,
        "contact_info": content.contact_info,
        "media": content.media,
    }


def _raise_if_invalid(result: SchemaResult) -> None:
    if not result.ok:
        raise ListingValidationError(result.errors)


class ListingStore:
    """SQLite-backed listing document store.

    Args:
        conn: Connection to use. Falls back to the shared ``get_db()``
            connection when omitted.
        clock: Source of server timestamps.
    """

    def __init__(
        self,
        conn: sqlite3.Connection | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._conn = conn
        self._clock = clock

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn if self._conn is not None else get_db()

    @contextmanager
    def _storage(self, action: str, write: bool = False) -> Iterator[sqlite3.Connection]:
        """Run a block against the database, surfacing sqlite errors as StorageError."""
        conn = self.conn
        try:
            yield conn
            if write:
                conn.commit()
        except sqlite3.Error as e:
            if write:
                conn.rollback()
            logger.exception("Storage failure while trying to %s", action)
            raise StorageError(f"Failed to {action}: {e}") from e

    # --- writes -----------------------------------------------------------

    def create(self, actor: Actor | None, data: Mapping[str, Any]) -> str:
        """Validate and persist a new listing.

        Args:
            actor: Acting identity; becomes the listing's owner.
            data: Candidate listing in form shape (camelCase keys, payload
                under the type's details key).

        Returns:
            The new listing ID.

        Raises:
            AuthenticationRequiredError: No acting identity.
            UnknownTypeError: ``type`` outside the closed set.
            ListingValidationError: Schema violation.
        """
        actor = _require_actor(actor, "create a listing")
        listing_type = data.get("type")
        if listing_type is None:
            raise ListingValidationError([FieldError("type", "Listing type is required")])

        result = schema_for(listing_type).validate(data)
        _raise_if_invalid(result)

        now = self._clock()
        listing = Listing(
            id=str(uuid.uuid4()),
            slug=slugify(result.content.name),
            type=result.content.type,
            owner_id=actor.uid,
            owner_name=actor.label,
            type_details=result.details,
            analytics=Analytics(),
            created_at=now,
            updated_at=now,
            updated_by=actor.uid,
            version=1,
            **_content_fields(result.content),
        )

        with self._storage("create listing", write=True) as conn:
            self._insert(conn, listing)
            conn.execute(
                "INSERT OR IGNORE INTO user_listings (owner_id, listing_id) VALUES (?, ?)",
                (actor.uid, listing.id),
            )

        logger.info("Created %s listing %s for owner %s", listing.type.value, listing.id, actor.uid)
        return listing.id

    def update(
        self,
        listing_id: str,
        patch: Mapping[str, Any],
        actor: Actor | None,
        *,
        expected_version: int | None = None,
        record_status: bool = False,
        history_reason: str | None = None,
    ) -> Listing:
        """Merge a patch into a listing, re-validate, and bump its version.

        Args:
            listing_id: Listing to update.
            patch: Form-shaped partial listing. Nested objects merge into the
                current values; lists and scalars replace them.
            actor: Acting identity.
            expected_version: When given, reject the update with
                ConflictError unless the stored version matches.
            record_status: Append a status history entry for the resulting
                status (used by the status workflow).
            history_reason: Reason stored on that history entry.

        Returns:
            The updated listing.
        """
        actor = _require_actor(actor, "update a listing")
        current = self.get(listing_id)
        if current is None:
            raise NotFoundError(listing_id)
        if expected_version is not None and expected_version != current.version:
            raise ConflictError(listing_id, expected_version, current.version)

        document = current.to_document()
        errors = [
            FieldError(key, "Field cannot be changed")
            for key in READ_ONLY_FIELDS
            if key in patch and patch[key] != document[key]
        ]
        if not record_status:
            errors.extend(
                FieldError(key, "Status can only be changed through the status workflow")
                for key in WORKFLOW_FIELDS
                if key in patch and patch[key] != document.get(key)
            )
        if errors:
            raise ListingValidationError(errors)
        changes = sorted(key for key in patch if key not in READ_ONLY_FIELDS)

        merged = deep_merge(current.to_candidate(), {k: v for k, v in patch.items() if k in changes})
        result = schema_for(current.type).validate(merged)
        _raise_if_invalid(result)

        now = self._clock()
        content = _content_fields(result.content)
        new_version = current.version + 1
        status_history = list(current.status_history)
        if record_status:
            status_history.append(
                StatusHistoryEntry(
                    status=result.content.status,
                    reason=history_reason,
                    timestamp=now,
                    updated_by=actor.uid,
                )
            )
        updated = current.model_copy(
            update={
                **content,
                "slug": slugify(content["name"]) if content["name"] != current.name else current.slug,
                "type_details": result.details,
                "status_history": status_history,
                "version_history": [
                    *current.version_history,
                    VersionHistoryEntry(version=new_version, changes=changes, changed_by=actor.uid, changed_at=now),
                ],
                "version": new_version,
                "updated_at": now,
                "updated_by": actor.uid,
            }
        )

        with self._storage("update listing", write=True) as conn:
            self._replace(conn, updated)

        logger.info("Updated listing %s to version %d (%s)", listing_id, new_version, ", ".join(changes))
        return updated

    def soft_delete(self, listing_id: str, actor: Actor | None, reason: str | None = None) -> None:
        """Mark a listing deleted. The record stays retrievable by id.

        Raises:
            AuthenticationRequiredError: No acting identity.
            NotFoundError: Listing absent or already deleted.
        """
        actor = _require_actor(actor, "delete a listing")
        current = self.get(listing_id)
        if current is None:
            raise NotFoundError(listing_id)

        now = self._clock()
        deleted = current.model_copy(
            update={
                "is_deleted": True,
                "deleted_at": now,
                "deleted_by": actor.uid,
                "deletion_reason": reason,
                "updated_at": now,
                "updated_by": actor.uid,
            }
        )
        with self._storage("delete listing", write=True) as conn:
            self._replace(conn, deleted)

        logger.info("Soft-deleted listing %s by %s", listing_id, actor.uid)

    def bulk_soft_delete(
        self,
        listing_ids: Iterable[str],
        actor: Actor | None,
        reason: str | None = None,
    ) -> BulkResult:
        """Soft-delete each id independently; partial success is expected."""
        actor = _require_actor(actor, "delete listings")
        result = run_bulk(listing_ids, lambda listing_id: self.soft_delete(listing_id, actor, reason))
        if result.errors:
            logger.warning("Bulk delete: %r, failed ids: %s", result, result.failed_ids)
        return result

    def increment_analytics(self, listing_id: str, counter: str, amount: int = 1) -> Analytics:
        """Add to an analytics counter on behalf of a view/contact/favorite event.

        Counters never go down and this is not a content update, so the
        version stays as it is.
        """
        if counter not in ANALYTICS_COUNTERS:
            raise ValueError(f"Unknown analytics counter: {counter}")
        if amount < 1:
            raise ValueError("Analytics counters can only be incremented")
        current = self.get(listing_id)
        if current is None:
            raise NotFoundError(listing_id)

        analytics = current.analytics.model_copy(
            update={counter: getattr(current.analytics, counter) + amount}
        )
        updated = current.model_copy(update={"analytics": analytics, "updated_at": self._clock()})
        with self._storage("record listing analytics", write=True) as conn:
            self._replace(conn, updated)
        return analytics

    # --- reads ------------------------------------------------------------

    def get(self, listing_id: str, include_deleted: bool = False) -> Listing | None:
        """Get a listing by ID, bypassing catalog filtering.

        Args:
            listing_id: The listing ID.
            include_deleted: Return soft-deleted listings too.

        Returns:
            The listing, or None if absent (or deleted and not requested).
        """
        with self._storage("get listing") as conn:
            row = conn.execute("SELECT document FROM listings WHERE id = ?", (listing_id,)).fetchone()
        if row is None:
            return None
        listing = Listing.from_document(json.loads(row["document"]))
        if listing.is_deleted and not include_deleted:
            return None
        return listing

    def listings_for_owner(self, owner_id: str) -> list[str]:
        """IDs linked into an owner's listing set, oldest first."""
        with self._storage("get owner listings") as conn:
            rows = conn.execute(
                "SELECT listing_id FROM user_listings WHERE owner_id = ? ORDER BY linked_at, rowid",
                (owner_id,),
            ).fetchall()
        return [row["listing_id"] for row in rows]

    def all_listings(self, include_deleted: bool = False) -> list[Listing]:
        """Every listing, newest first."""
        sql = "SELECT document FROM listings"
        if not include_deleted:
            sql += " WHERE is_deleted = 0"
        sql += " ORDER BY created_at DESC, id DESC"
        with self._storage("get all listings") as conn:
            rows = conn.execute(sql).fetchall()
        return [Listing.from_document(json.loads(row["document"])) for row in rows]

    def fetch_page(
        self,
        *,
        listing_type: str | None = None,
        status: str | None = None,
        industries: list[str] | None = None,
        sort_column: str = "created_at",
        descending: bool = True,
        after: tuple[Any, str] | None = None,
        limit: int,
    ) -> list[Listing]:
        """Store-native catalog query: equality filters, ordering, keyset resume, limit.

        Soft-deleted listings are always excluded.

        Args:
            listing_type: Equality filter on type.
            status: Equality filter on status.
            industries: Matches listings whose industries intersect this set.
                Empty or None means no industry filter.
            sort_column: One of SORT_COLUMNS. Ties order by id.
            descending: Sort direction for both the column and the id.
            after: (sort value, id) keyset position to resume after.
            limit: Maximum rows to return.
        """
        if sort_column not in SORT_COLUMNS:
            raise ValueError(f"Unsupported sort column: {sort_column}")

        clauses = ["is_deleted = 0"]
        params: list[Any] = []
        if listing_type is not None:
            clauses.append("type = ?")
            params.append(listing_type)
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        if industries:
            placeholders = ", ".join("?" for _ in industries)
            clauses.append(
                f"EXISTS (SELECT 1 FROM json_each(listings.industries) WHERE json_each.value IN ({placeholders}))"
            )
            params.extend(industries)
        if after is not None:
            op = "<" if descending else ">"
            clauses.append(f"({sort_column}, id) {op} (?, ?)")
            params.extend(after)

        direction = "DESC" if descending else "ASC"
        sql = (
            f"SELECT document FROM listings WHERE {' AND '.join(clauses)} "
            f"ORDER BY {sort_column} {direction}, id {direction} LIMIT ?"
        )
        params.append(limit)

        with self._storage("query listings") as conn:
            rows = conn.execute(sql, params).fetchall()
        return [Listing.from_document(json.loads(row["document"])) for row in rows]

    # --- row mapping ------------------------------------------------------

    @staticmethod
    def _row(listing: Listing) -> tuple[Any, ...]:
        return (
            listing.type.value,
            listing.status.value,
            listing.name,
            listing.slug,
            listing.owner_id,
            json.dumps(listing.industries),
            listing.analytics.view_count,
            int(listing.is_deleted),
            listing.version,
            sortable_timestamp(listing.created_at),
            sortable_timestamp(listing.updated_at),
            json.dumps(listing.to_document()),
            listing.id,
        )

    def _insert(self, conn: sqlite3.Connection, listing: Listing) -> None:
        conn.execute(
            """
            INSERT INTO listings (
                type, status, name, slug, owner_id, industries, view_count,
                is_deleted, version, created_at, updated_at, document, id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            self._row(listing),
        )

    def _replace(self, conn: sqlite3.Connection, listing: Listing) -> None:
        conn.execute(
            """
            UPDATE listings SET
                type = ?, status = ?, name = ?, slug = ?, owner_id = ?,
                industries = ?, view_count = ?, is_deleted = ?, version = ?,
                created_at = ?, updated_at = ?, document = ?
            WHERE id = ?
            """,
            self._row(listing),
        )


def sort_value(listing: Listing, sort_column: str) -> Any:
    """The value ``fetch_page`` compares for a listing in the given sort column."""
    if sort_column == "created_at":
        return sortable_timestamp(listing.created_at)
    if sort_column == "name":
        return listing.name
    if sort_column == "view_count":
        return listing.analytics.view_count
    raise ValueError(f"Unsupported sort column: {sort_column}")


__all__ = [
    "ListingStore",
    "close_db",
    "get_db",
    "sort_value",
]
