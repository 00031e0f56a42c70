"""Catalog query engine.

Translates catalog filter/sort/page parameters into a store-native keyset
query, then refines the fetched page in memory.

Search is a two-stage pipeline on purpose:

1. the store fetches ``page_size + 1`` listings matching type/status/
   industries, in sort order, after the cursor position;
2. ``search_term`` is applied to that page only.

So a page can hold fewer than ``page_size`` items, or none, while later
pages still contain matches. ``has_more`` and ``cursor`` describe the
store-level fetch, not the searched result.

Following cursors with an unchanged filter and sort visits every non-deleted
match exactly once, provided nothing is inserted or deleted mid-traversal.
"""

import base64
import binascii
import json
import logging
from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .config import config
from .db.operations import ListingStore, sort_value
from .errors import ListingValidationError
from .models.base import CamelModel
from .models.listing import Listing, ListingStatus, ListingType
from .schemas import field_errors


logger = logging.getLogger(__name__)


class SortField(StrEnum):
    CREATED_AT = "createdAt"
    NAME = "name"
    VIEW_COUNT = "analytics.viewCount"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


_SORT_COLUMNS: dict[SortField, str] = {
    SortField.CREATED_AT: "created_at",
    SortField.NAME: "name",
    SortField.VIEW_COUNT: "view_count",
}


class CatalogFilter(CamelModel):
    type: ListingType | None = None
    status: ListingStatus | None = None
    industries: list[str] = Field(default_factory=list)
    search_term: str | None = None


class CatalogSort(CamelModel):
    sort_field: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @property
    def column(self) -> str:
        return _SORT_COLUMNS[self.sort_field]

    @property
    def descending(self) -> bool:
        return self.sort_order == SortOrder.DESC


class PageRequest(CamelModel):
    page_size: int = Field(default_factory=lambda: config.default_page_size, ge=1)
    cursor: str | None = None


class CatalogPage(BaseModel):
    """One page of catalog results."""

    items: list[Listing]
    has_more: bool
    cursor: str | None = None

    @property
    def listings(self) -> list[Listing]:
        return self.items


def encode_cursor(listing: Listing, sort: CatalogSort) -> str:
    """Opaque token meaning "resume after this listing in this sort order"."""
    position = {
        "f": sort.column,
        "o": sort.sort_order.value,
        "v": sort_value(listing, sort.column),
        "id": listing.id,
    }
    raw = json.dumps(position, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(token: str | None, sort: CatalogSort) -> tuple[Any, str] | None:
    """Resolve a cursor to a keyset position, or None to start from the beginning.

    Malformed cursors, and cursors produced under a different sort, fall back
    to the start instead of failing.
    """
    if not token:
        return None
    try:
        position = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
        column, order, value, listing_id = position["f"], position["o"], position["v"], position["id"]
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError):
        logger.warning("Ignoring malformed catalog cursor %r", token)
        return None
    if column != sort.column or order != sort.sort_order.value:
        logger.warning("Ignoring cursor for sort %s %s; query sorts by %s %s", column, order, sort.column, sort.sort_order.value)
        return None
    if not isinstance(listing_id, str) or not _valid_sort_value(value, column):
        logger.warning("Ignoring malformed catalog cursor %r", token)
        return None
    return value, listing_id


def _valid_sort_value(value: Any, column: str) -> bool:
    # bool is an int subclass but never a stored view count
    if column == "view_count":
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, str)


def matches_search(listing: Listing, search_term: str | None) -> bool:
    """Case-insensitive substring match against name and description."""
    term = (search_term or "").strip().lower()
    if not term:
        return True
    return term in listing.name.lower() or term in (listing.description or "").lower()


def refine(listings: Iterable[Listing], search_term: str | None) -> list[Listing]:
    """Second, in-memory stage of the search pipeline."""
    return [listing for listing in listings if matches_search(listing, search_term)]


class CatalogQuery:
    """Filtered, sorted, cursor-paginated reads over the listing catalog."""

    def __init__(self, store: ListingStore, max_page_size: int | None = None):
        self.store = store
        self.max_page_size = max_page_size or config.max_page_size

    def query(
        self,
        filter: CatalogFilter | None = None,
        sort: CatalogSort | None = None,
        page: PageRequest | None = None,
    ) -> CatalogPage:
        """Run one catalog page query.

        Args:
            filter: Type/status/industry constraints and optional search term.
            sort: Sort field and direction; defaults to newest first.
            page: Page size and the cursor from the previous page, if any.

        Returns:
            The page items, whether the store holds more, and the cursor for
            the next call.
        """
        filter = filter or CatalogFilter()
        sort = sort or CatalogSort()
        page = page or PageRequest()
        page_size = min(page.page_size, self.max_page_size)

        fetched = self.store.fetch_page(
            listing_type=filter.type.value if filter.type else None,
            status=filter.status.value if filter.status else None,
            industries=filter.industries,
            sort_column=sort.column,
            descending=sort.descending,
            after=decode_cursor(page.cursor, sort),
            limit=page_size + 1,
        )

        has_more = len(fetched) > page_size
        page_items = fetched[:page_size]
        cursor = encode_cursor(page_items[-1], sort) if page_items else None

        items = refine(page_items, filter.search_term)
        logger.debug(
            "Catalog page: fetched=%d returned=%d has_more=%s", len(page_items), len(items), has_more
        )
        return CatalogPage(items=items, has_more=has_more, cursor=cursor)

    def query_params(self, params: Mapping[str, Any]) -> CatalogPage:
        """Run a query from flat caller parameters.

        Accepts ``type``, ``status``, ``industries``, ``searchTerm``,
        ``sortField``, ``sortOrder``, ``pageSize`` and ``cursor``; blank
        values mean "not set".

        Raises:
            ListingValidationError: A parameter has an unsupported value.
        """
        cleaned = {k: v for k, v in params.items() if v not in (None, "")}
        try:
            filter = CatalogFilter.model_validate(cleaned)
            sort = CatalogSort.model_validate(cleaned)
            page = PageRequest.model_validate(cleaned)
        except ValidationError as e:
            raise ListingValidationError(field_errors(e)) from e
        return self.query(filter, sort, page)
