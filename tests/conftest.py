"""Shared fixtures for catalog tests."""

import copy
from datetime import datetime, timedelta, UTC

import pytest

from listing_catalog.db.operations import ListingStore
from listing_catalog.db.schema import init_db
from listing_catalog.models.listing import Actor


DESCRIPTION = (
    "Neighbourhood bakery with a loyal morning crowd, two ovens and a "
    "catering contract with three nearby offices."
)

DETAILS = {
    "business": (
        "businessDetails",
        {
            "businessType": "food_beverage",
            "establishedYear": 2012,
            "financials": {"profitMargin": {"percentage": 18}},
            "sale": {"askingPrice": {"value": 500000, "currency": "INR"}, "reasonForSelling": "Retiring"},
        },
    ),
    "franchise": (
        "franchiseDetails",
        {
            "franchiseType": "food",
            "totalOutlets": 12,
            "investment": {
                "investmentRange": {"min": {"value": 1500000}, "max": {"value": 2500000}},
                "royaltyFee": {"percentage": 6},
            },
        },
    ),
    "startup": (
        "startupDetails",
        {
            "stage": "seed",
            "funding": {"current": {"targetAmount": {"value": 2000000}}},
            "team": {"founders": [{"name": "Asha Rao", "role": "CEO"}]},
        },
    ),
    "investor": (
        "investorDetails",
        {
            "investorType": "angel",
            "investment": {"capacity": {"minInvestment": {"value": 100000}}},
            "focus": {"industries": {"primary": ["tech"]}},
        },
    ),
    "digital_asset": (
        "digitalAssetDetails",
        {
            "assetType": "website",
            "traffic": {"overview": {"monthlyVisitors": 12000}},
            "sale": {"price": {"asking": {"value": 350000}}},
        },
    ),
}


class TickingClock:
    """Deterministic server clock; each reading is one second after the last."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def make_listing_data(listing_type: str = "business", **overrides) -> dict:
    """Valid form-shaped listing data for the given type."""
    details_key, details = DETAILS[listing_type]
    data = {
        "name": "Corner Bakery",
        "type": listing_type,
        "description": DESCRIPTION,
        "shortDescription": "Profitable bakery",
        "industries": ["food_beverage"],
        "location": {"country": "IN", "state": "Karnataka", "city": "Bengaluru"},
        "contactInfo": {"email": "owner@cornerbakery.in", "phone": "+91 987 654 3210"},
        details_key: copy.deepcopy(details),
    }
    data.update(overrides)
    return data


@pytest.fixture
def test_db(tmp_path):
    """Create a temporary test database."""
    conn = init_db(tmp_path / "test.db")
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store(test_db, clock):
    return ListingStore(test_db, clock=clock)


@pytest.fixture
def owner():
    return Actor(uid="user-1", display_name="Priya Nair", email="priya@example.com")


@pytest.fixture
def moderator():
    return Actor(uid="mod-1", email="mod@example.com")


@pytest.fixture
def listing_data():
    """Factory for valid listing form data: ``listing_data("startup", name=...)``."""
    return make_listing_data
