"""Error taxonomy for catalog operations."""

from dataclasses import dataclass


GENERIC_FAILURE_MESSAGE = "Operation failed, try again"


@dataclass(frozen=True)
class FieldError:
    """A single validation failure at a dot-notation field path."""

    path: str
    message: str


class CatalogError(Exception):
    """Base class for every error raised by the catalog core."""

    kind = "catalog_error"

    @property
    def user_message(self) -> str:
        """Text suitable for showing to an end user."""
        return f"{GENERIC_FAILURE_MESSAGE}: {self}"


class ListingValidationError(CatalogError):
    """Candidate listing data violated its type's schema."""

    kind = "validation_error"

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        summary = "; ".join(f"{e.path}: {e.message}" for e in self.errors)
        super().__init__(summary or "Invalid listing data")

    @property
    def paths(self) -> list[str]:
        return [e.path for e in self.errors]

    def field_messages(self) -> dict[str, str]:
        """Map each failing field path to its message (first message wins)."""
        messages: dict[str, str] = {}
        for error in self.errors:
            messages.setdefault(error.path, error.message)
        return messages

    @property
    def user_message(self) -> str:
        return str(self)


class NotFoundError(CatalogError):
    """Operation targeted a listing that is absent or soft-deleted."""

    kind = "not_found"

    def __init__(self, listing_id: str):
        self.listing_id = listing_id
        super().__init__(f"Listing {listing_id} not found")


class AuthenticationRequiredError(CatalogError):
    """A mutating operation was called without an acting identity."""

    kind = "authentication_required"

    def __init__(self, action: str = "perform this action"):
        super().__init__(f"Authentication required to {action}")


class UnknownTypeError(CatalogError):
    """Schema lookup for a listing type outside the closed set."""

    kind = "unknown_type"

    def __init__(self, listing_type: object):
        self.listing_type = listing_type
        super().__init__(f"Unknown listing type: {listing_type!r}")


class StorageError(CatalogError):
    """Opaque failure surfaced from the persistence layer."""

    kind = "storage_error"


class ConflictError(CatalogError):
    """Update was built against a version other than the stored one."""

    kind = "conflict"

    def __init__(self, listing_id: str, expected: int, actual: int):
        self.listing_id = listing_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Listing {listing_id} is at version {actual}, update expected version {expected}"
        )
