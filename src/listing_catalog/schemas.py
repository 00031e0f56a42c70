"""Listing schema registry.

Maps each listing type to the schema that validates a submitted listing:
shared fields (name, description, location, contact info) plus the payload
for that type. Pure, no I/O.
"""

import copy
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Annotated, Any

from pydantic import BaseModel, Field, StringConstraints, ValidationError, field_validator

from .errors import FieldError, UnknownTypeError
from .models.base import CamelModel
from .models.details import (
    BusinessDetails,
    DigitalAssetDetails,
    FranchiseDetails,
    InvestorDetails,
    StartupDetails,
    TypeDetails,
)
from .models.listing import (
    DETAILS_KEYS,
    ContactInfo,
    ListingStatus,
    ListingType,
    Location,
    Media,
)


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^[+]?(\d{1,3})?[-\s.]?\(?\d{3}\)?[-\s.]?\d{3}[-\s.]?\d{4}$")

MIN_DESCRIPTION_LENGTH = 50


class ContactInput(ContactInfo):
    @field_validator("email")
    @classmethod
    def _email_format(cls, value: str | None) -> str | None:
        if value and not EMAIL_PATTERN.match(value.strip()):
            raise ValueError("Invalid email address")
        return value

    @field_validator("phone")
    @classmethod
    def _phone_format(cls, value: str | None) -> str | None:
        if value and not PHONE_PATTERN.match(value.strip()):
            raise ValueError("Invalid phone number")
        return value


class ListingContent(CamelModel):
    """Type-independent fields of a submitted listing."""

    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
    description: Annotated[str, StringConstraints(strip_whitespace=True, max_length=5000)] | None = None
    short_description: Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)] | None = None
    type: ListingType
    status: ListingStatus = ListingStatus.DRAFT
    status_reason: str | None = None
    industries: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    location: Location = Field(default_factory=Location)
    contact_info: ContactInput = Field(default_factory=ContactInput)
    media: Media = Field(default_factory=Media)


@dataclass(frozen=True)
class SchemaResult:
    """Outcome of validating one candidate listing."""

    ok: bool
    content: ListingContent | None = None
    details: TypeDetails | None = None
    errors: list[FieldError] = field(default_factory=list)


def _clean_message(message: str) -> str:
    # pydantic prefixes messages raised from our validators
    return message.removeprefix("Value error, ")


def field_errors(exc: ValidationError, prefix: str | None = None) -> list[FieldError]:
    """Convert a pydantic ValidationError to dot-notation FieldErrors."""
    errors = []
    for err in exc.errors():
        parts = [str(part) for part in err["loc"]]
        if prefix:
            parts.insert(0, prefix)
        errors.append(FieldError(path=".".join(parts) or "__root__", message=_clean_message(err["msg"])))
    return errors


def _beyond_draft_errors(content: ListingContent) -> list[FieldError]:
    """Fields that may stay blank while a listing is a draft."""
    if content.status == ListingStatus.DRAFT:
        return []
    errors = []
    if not content.description:
        errors.append(FieldError("description", "Description is required"))
    elif len(content.description) < MIN_DESCRIPTION_LENGTH:
        errors.append(
            FieldError("description", f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters")
        )
    if not content.short_description:
        errors.append(FieldError("shortDescription", "Short description is required"))
    for part in ("country", "state", "city"):
        if not getattr(content.location, part):
            errors.append(FieldError(f"location.{part}", f"{part.capitalize()} is required"))
    if not content.contact_info.email:
        errors.append(FieldError("contactInfo.email", "Contact email is required"))
    return errors


@dataclass(frozen=True)
class ListingSchema:
    """Validation schema and default field set for one listing type."""

    listing_type: ListingType
    details_model: type[BaseModel]
    default_details: dict[str, Any]

    @property
    def details_key(self) -> str:
        return DETAILS_KEYS[self.listing_type]

    def defaults(self) -> dict[str, Any]:
        """Blank candidate a form can start from."""
        return {
            "name": "",
            "type": self.listing_type.value,
            "description": "",
            "shortDescription": "",
            "status": ListingStatus.DRAFT.value,
            "industries": [],
            "tags": [],
            "location": {"country": "IN", "state": "", "city": "", "address": "", "pincode": ""},
            "contactInfo": {"email": "", "phone": "", "website": "", "preferredContactMethod": "email"},
            self.details_key: copy.deepcopy(self.default_details),
        }

    def validate(self, candidate: Mapping[str, Any]) -> SchemaResult:
        """Validate shared fields and this type's payload.

        Payloads submitted under other types' keys are ignored. Unknown
        top-level fields are ignored as well.
        """
        errors: list[FieldError] = []
        submitted_type = candidate.get("type")
        if submitted_type is not None and submitted_type != self.listing_type.value:
            errors.append(FieldError("type", f"Listing type must be {self.listing_type.value!r}"))

        content = None
        try:
            content = ListingContent.model_validate({**candidate, "type": self.listing_type.value})
        except ValidationError as e:
            errors.extend(field_errors(e))

        details = None
        raw_details = candidate.get(self.details_key)
        if raw_details is None:
            errors.append(FieldError(self.details_key, "Field required"))
        else:
            try:
                details = self.details_model.model_validate(raw_details)
            except ValidationError as e:
                errors.extend(field_errors(e, prefix=self.details_key))

        if content is not None:
            errors.extend(_beyond_draft_errors(content))

        if errors:
            return SchemaResult(ok=False, errors=errors)
        return SchemaResult(ok=True, content=content, details=details)


def _current_year() -> int:
    return datetime.now(UTC).year


_SCHEMAS: dict[ListingType, ListingSchema] = {
    ListingType.BUSINESS: ListingSchema(
        ListingType.BUSINESS,
        BusinessDetails,
        {
            "businessType": "",
            "establishedYear": _current_year(),
            "operations": {"employees": {"count": 0, "fullTime": 0, "partTime": 0}},
            "financials": {"annualRevenue": {"value": None, "currency": "INR"}, "profitMargin": {"percentage": None}},
            "sale": {"askingPrice": {"value": None, "currency": "INR"}, "reasonForSelling": "", "isNegotiable": True},
        },
    ),
    ListingType.FRANCHISE: ListingSchema(
        ListingType.FRANCHISE,
        FranchiseDetails,
        {
            "franchiseType": "",
            "totalOutlets": 0,
            "establishedYear": _current_year(),
            "investment": {
                "investmentRange": {
                    "min": {"value": None, "currency": "INR"},
                    "max": {"value": None, "currency": "INR"},
                },
                "franchiseFee": {"value": None, "currency": "INR"},
                "royaltyFee": {"percentage": None},
            },
            "terms": {"contractDuration": {"years": 5}, "territoryRights": {"isExclusive": False}},
            "support": {
                "initialSupport": {"hasTrainingProvided": True, "trainingDuration": ""},
                "ongoingSupport": {"isAvailable": True},
            },
        },
    ),
    ListingType.STARTUP: ListingSchema(
        ListingType.STARTUP,
        StartupDetails,
        {
            "stage": "",
            "foundedYear": _current_year(),
            "funding": {"current": {"targetAmount": {"value": None, "currency": "INR"}}},
            "team": {"founders": [{"name": "", "role": ""}]},
        },
    ),
    ListingType.INVESTOR: ListingSchema(
        ListingType.INVESTOR,
        InvestorDetails,
        {
            "investorType": "",
            "investment": {"capacity": {"minInvestment": {"value": None, "currency": "INR"}}},
            "focus": {"industries": {"primary": [], "secondary": []}},
        },
    ),
    ListingType.DIGITAL_ASSET: ListingSchema(
        ListingType.DIGITAL_ASSET,
        DigitalAssetDetails,
        {
            "assetType": "",
            "url": "",
            "traffic": {"overview": {"monthlyVisitors": 0}},
            "sale": {"price": {"asking": {"value": None, "currency": "INR"}}, "isNegotiable": True},
        },
    ),
}


def schema_for(listing_type: str | ListingType) -> ListingSchema:
    """Resolve a listing type to its schema.

    Raises:
        UnknownTypeError: If the type is outside the closed set.
    """
    try:
        key = ListingType(listing_type)
    except ValueError:
        raise UnknownTypeError(listing_type) from None
    return _SCHEMAS[key]


def supported_types() -> list[str]:
    return [t.value for t in _SCHEMAS]
