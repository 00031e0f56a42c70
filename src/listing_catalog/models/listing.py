"""Listing data models."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from ..utils import utc_now
from .base import CamelModel
from .details import TypeDetails


class ListingType(StrEnum):
    BUSINESS = "business"
    FRANCHISE = "franchise"
    STARTUP = "startup"
    INVESTOR = "investor"
    DIGITAL_ASSET = "digital_asset"


class ListingStatus(StrEnum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"
    ARCHIVED = "archived"


# Key each listing type's payload is submitted under by the form layer
DETAILS_KEYS: dict[ListingType, str] = {
    ListingType.BUSINESS: "businessDetails",
    ListingType.FRANCHISE: "franchiseDetails",
    ListingType.STARTUP: "startupDetails",
    ListingType.INVESTOR: "investorDetails",
    ListingType.DIGITAL_ASSET: "digitalAssetDetails",
}


class Actor(BaseModel):
    """Acting identity supplied by the authentication provider."""

    uid: str = Field(..., min_length=1)
    display_name: str | None = None
    email: str | None = None

    @property
    def label(self) -> str:
        """Name recorded as a listing's owner name."""
        return self.display_name or self.email or self.uid


class Location(CamelModel):
    country: str | None = None
    state: str | None = None
    city: str | None = None
    address: str | None = None
    pincode: str | None = None


class ContactInfo(CamelModel):
    email: str | None = None
    phone: str | None = None
    alternate_phone: str | None = None
    website: str | None = None
    contact_name: str | None = None
    designation: str | None = None
    preferred_contact_method: str | None = None


class MediaReference(CamelModel):
    """Opaque pointer to an uploaded file; never content-checked here."""

    url: str | None = None
    path: str | None = None
    alt: str | None = None


class Media(CamelModel):
    featured_image: MediaReference | None = None
    gallery: list[MediaReference] = Field(default_factory=list)


class Analytics(CamelModel):
    view_count: int = 0
    unique_view_count: int = 0
    contact_count: int = 0
    favorite_count: int = 0


class StatusHistoryEntry(CamelModel, frozen=True):
    status: ListingStatus
    reason: str | None = None
    timestamp: datetime
    updated_by: str


class VersionHistoryEntry(CamelModel, frozen=True):
    version: int
    changes: list[str]
    changed_by: str
    changed_at: datetime


class Listing(CamelModel):
    """Full listing record as persisted."""

    id: str = Field(..., description="Unique listing ID")
    slug: str
    type: ListingType
    status: ListingStatus = ListingStatus.DRAFT
    status_reason: str | None = None
    owner_id: str
    owner_name: str | None = None

    name: str
    description: str | None = None
    short_description: str | None = None
    industries: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    location: Location = Field(default_factory=Location)
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    type_details: TypeDetails
    media: Media = Field(default_factory=Media)

    analytics: Analytics = Field(default_factory=Analytics)
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)
    version_history: list[VersionHistoryEntry] = Field(default_factory=list)

    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by: str | None = None
    deletion_reason: str | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    updated_by: str | None = None
    version: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _details_match_type(self) -> "Listing":
        if self.type_details.kind != self.type:
            raise ValueError(
                f"type_details of kind {self.type_details.kind!r} does not match listing type {self.type.value!r}"
            )
        return self

    @property
    def details_key(self) -> str:
        return DETAILS_KEYS[self.type]

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored JSON document (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Listing":
        return cls.model_validate(document)

    def to_candidate(self) -> dict[str, Any]:
        """Editable content in the shape the form layer submits.

        Used as the base that update patches are merged onto before the
        merged result is re-validated.
        """
        document = self.to_document()
        details = document["typeDetails"]
        details.pop("kind", None)
        candidate = {
            key: document[key]
            for key in (
                "name",
                "description",
                "shortDescription",
                "type",
                "status",
                "statusReason",
                "industries",
                "tags",
                "location",
                "contactInfo",
                "media",
            )
        }
        candidate[self.details_key] = details
        return candidate
