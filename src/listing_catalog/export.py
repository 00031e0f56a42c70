"""Flat tabular export of listings.

Downstream tooling reads these columns by name, so the column set and the
per-type price lookup must stay as they are.
"""

import csv
from collections.abc import Iterable
from typing import TextIO

from pydantic import BaseModel

from .config import config
from .models.details import (
    BusinessDetails,
    DigitalAssetDetails,
    FranchiseDetails,
    StartupDetails,
)
from .models.listing import Listing


EXPORT_COLUMNS = ["id", "name", "type", "status", "location", "created_at", "price", "owner", "views", "contacts"]

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}


class ExportRow(BaseModel):
    id: str
    name: str
    type: str
    status: str
    location: str
    created_at: str
    price: str
    owner: str
    views: int
    contacts: int


def resolve_price(listing: Listing) -> float | None:
    """Headline price for a listing; investors have none."""
    details = listing.type_details
    if isinstance(details, BusinessDetails):
        return details.sale.asking_price.value
    if isinstance(details, FranchiseDetails):
        return details.investment.investment_range.minimum.value
    if isinstance(details, StartupDetails):
        target = details.funding.current.target_amount
        return target.value if target else None
    if isinstance(details, DigitalAssetDetails):
        return details.sale.price.asking.value
    return None


def _group_indian(digits: str) -> str:
    """12345678 -> 1,23,45,678 (en-IN grouping)."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join([*groups, tail])


def format_currency(amount: float | int | None, currency: str | None = None) -> str:
    """Format an amount the way the admin UI shows prices, e.g. 500000 -> '₹5,00,000'.

    Up to two decimals are kept, trailing zeros dropped. None gives ''.
    """
    if amount is None:
        return ""
    currency = currency or config.currency
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    integer, fraction = f"{abs(float(amount)):.2f}".split(".")
    fraction = fraction.rstrip("0")
    text = symbol + _group_indian(integer) + (f".{fraction}" if fraction else "")
    return f"-{text}" if amount < 0 else text


def _location_label(listing: Listing) -> str:
    parts = (listing.location.city, listing.location.state, listing.location.country)
    return ", ".join(p for p in parts if p)


def export_row(listing: Listing, currency: str | None = None) -> ExportRow:
    return ExportRow(
        id=listing.id,
        name=listing.name,
        type=listing.type.value,
        status=listing.status.value,
        location=_location_label(listing),
        created_at=listing.created_at.isoformat(),
        price=format_currency(resolve_price(listing), currency),
        owner=listing.owner_name or listing.owner_id,
        views=listing.analytics.view_count,
        contacts=listing.analytics.contact_count,
    )


def export_rows(listings: Iterable[Listing], currency: str | None = None) -> list[ExportRow]:
    return [export_row(listing, currency) for listing in listings]


def write_csv(listings: Iterable[Listing], fp: TextIO, currency: str | None = None) -> int:
    """Write a header plus one row per listing to ``fp``.

    Returns:
        Number of listing rows written.
    """
    writer = csv.DictWriter(fp, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    count = 0
    for row in export_rows(listings, currency):
        writer.writerow(row.model_dump())
        count += 1
    return count
