"""Tests for database operations."""

import pytest

from listing_catalog.db.operations import ListingStore
from listing_catalog.errors import (
    AuthenticationRequiredError,
    ConflictError,
    ListingValidationError,
    NotFoundError,
    StorageError,
    UnknownTypeError,
)
from listing_catalog.models.details import FranchiseDetails
from listing_catalog.models.listing import ListingStatus, ListingType
from listing_catalog.schemas import schema_for


class TestCreate:
    """Tests for creating listings."""

    def test_create_and_get_listing(self, store, owner, listing_data):
        """Test that a created listing comes back with server-assigned metadata."""
        listing_id = store.create(owner, listing_data())

        listing = store.get(listing_id)
        assert listing is not None
        assert listing.id == listing_id
        assert listing.slug == "corner-bakery"
        assert listing.status == ListingStatus.DRAFT
        assert listing.version == 1
        assert listing.analytics.model_dump() == {
            "view_count": 0,
            "unique_view_count": 0,
            "contact_count": 0,
            "favorite_count": 0,
        }
        assert listing.owner_id == "user-1"
        assert listing.owner_name == "Priya Nair"
        assert listing.created_at == listing.updated_at
        assert listing.status_history == []

    @pytest.mark.parametrize("listing_type", [t.value for t in ListingType])
    def test_type_and_details_round_trip(self, store, owner, listing_data, listing_type):
        """Test that type and payload come back unchanged for every type."""
        data = listing_data(listing_type)
        listing_id = store.create(owner, data)

        listing = store.get(listing_id)
        schema = schema_for(listing_type)
        assert listing.type == listing_type
        assert listing.type_details == schema.details_model.model_validate(data[schema.details_key])

    def test_explicit_status_is_kept(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data(status="pending"))
        assert store.get(listing_id).status == ListingStatus.PENDING

    def test_requires_actor(self, store, listing_data):
        with pytest.raises(AuthenticationRequiredError):
            store.create(None, listing_data())

    def test_rejects_invalid_payload(self, store, owner, listing_data):
        data = listing_data()
        data["businessDetails"]["establishedYear"] = 1800
        with pytest.raises(ListingValidationError) as exc_info:
            store.create(owner, data)
        assert "businessDetails.establishedYear" in exc_info.value.paths
        assert store.all_listings() == []

    def test_rejects_missing_type(self, store, owner, listing_data):
        data = listing_data()
        del data["type"]
        with pytest.raises(ListingValidationError) as exc_info:
            store.create(owner, data)
        assert exc_info.value.paths == ["type"]

    def test_rejects_unknown_type(self, store, owner, listing_data):
        with pytest.raises(UnknownTypeError):
            store.create(owner, listing_data(type="yacht"))

    def test_links_listing_to_owner(self, store, owner, moderator, listing_data):
        first = store.create(owner, listing_data())
        second = store.create(owner, listing_data(name="Second Shop"))
        store.create(moderator, listing_data(name="Someone Else"))

        assert store.listings_for_owner(owner.uid) == [first, second]


class TestUpdate:
    """Tests for updating listings."""

    def test_rename_regenerates_slug_and_bumps_version(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())

        updated = store.update(listing_id, {"name": "Corner Bakery Deluxe"}, owner)

        assert updated.slug == "corner-bakery-deluxe"
        assert updated.version == 2
        reloaded = store.get(listing_id)
        assert reloaded.name == "Corner Bakery Deluxe"
        assert reloaded.slug == "corner-bakery-deluxe"
        assert reloaded.version == 2
        assert reloaded.updated_at > reloaded.created_at

    def test_slug_kept_when_name_unchanged(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        updated = store.update(listing_id, {"shortDescription": "Now with a cafe"}, owner)
        assert updated.slug == "corner-bakery"
        assert updated.version == 2

    def test_version_increments_by_one_per_update(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        for expected in range(2, 6):
            assert store.update(listing_id, {"tags": [f"v{expected}"]}, owner).version == expected

    def test_nested_patch_merges_into_payload(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())

        store.update(listing_id, {"businessDetails": {"sale": {"askingPrice": {"value": 650000}}}}, owner)

        details = store.get(listing_id).type_details
        assert details.sale.asking_price.value == 650000
        assert details.sale.reason_for_selling == "Retiring"
        assert details.established_year == 2012

    def test_merged_result_is_revalidated(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        with pytest.raises(ListingValidationError) as exc_info:
            store.update(listing_id, {"businessDetails": {"establishedYear": 1800}}, owner)
        assert exc_info.value.paths == ["businessDetails.establishedYear"]
        assert store.get(listing_id).version == 1

    def test_type_cannot_change(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        with pytest.raises(ListingValidationError) as exc_info:
            store.update(listing_id, {"type": "franchise"}, owner)
        assert exc_info.value.paths == ["type"]
        assert store.get(listing_id).type == ListingType.BUSINESS

    def test_read_only_fields_may_be_echoed_unchanged(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        updated = store.update(listing_id, {"type": "business", "version": 1, "tags": ["bakery"]}, owner)
        assert updated.tags == ["bakery"]
        assert updated.version == 2

    def test_read_only_fields_cannot_change(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        with pytest.raises(ListingValidationError) as exc_info:
            store.update(listing_id, {"ownerId": "intruder", "slug": "hijacked"}, owner)
        assert sorted(exc_info.value.paths) == ["ownerId", "slug"]

    def test_plain_update_cannot_change_status(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        with pytest.raises(ListingValidationError) as exc_info:
            store.update(listing_id, {"status": "published", "statusReason": "self-approved"}, owner)
        assert exc_info.value.paths == ["status", "statusReason"]

        listing = store.get(listing_id)
        assert listing.status == ListingStatus.DRAFT
        assert listing.status_history == []
        assert listing.version == 1

    def test_plain_update_may_echo_status(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        updated = store.update(listing_id, {"status": "draft", "tags": ["bakery"]}, owner)
        assert updated.status == ListingStatus.DRAFT
        assert updated.status_history == []

    def test_records_version_history(self, store, owner, moderator, listing_data):
        listing_id = store.create(owner, listing_data())
        store.update(listing_id, {"name": "Corner Bakery Deluxe", "tags": ["cafe"]}, moderator)

        history = store.get(listing_id).version_history
        assert len(history) == 1
        assert history[0].version == 2
        assert history[0].changes == ["name", "tags"]
        assert history[0].changed_by == "mod-1"

    def test_requires_actor(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        with pytest.raises(AuthenticationRequiredError):
            store.update(listing_id, {"name": "Nope"}, None)

    def test_missing_listing(self, store, owner):
        with pytest.raises(NotFoundError):
            store.update("missing-id", {"name": "Anything"}, owner)

    def test_deleted_listing(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        store.soft_delete(listing_id, owner)
        with pytest.raises(NotFoundError):
            store.update(listing_id, {"name": "Back Again"}, owner)

    def test_stale_expected_version_conflicts(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        store.update(listing_id, {"tags": ["one"]}, owner, expected_version=1)
        with pytest.raises(ConflictError) as exc_info:
            store.update(listing_id, {"tags": ["two"]}, owner, expected_version=1)
        assert exc_info.value.actual == 2

    def test_without_expected_version_last_write_wins(self, store, owner, moderator, listing_data):
        listing_id = store.create(owner, listing_data())
        store.update(listing_id, {"tags": ["owner"]}, owner)
        store.update(listing_id, {"tags": ["moderator"]}, moderator)
        listing = store.get(listing_id)
        assert listing.tags == ["moderator"]
        assert listing.version == 3


class TestGetAndDelete:
    """Tests for direct lookups and soft deletion."""

    def test_get_missing_returns_none(self, store):
        assert store.get("missing-id") is None

    def test_soft_delete_hides_from_get_but_keeps_record(self, store, owner, moderator, listing_data):
        listing_id = store.create(owner, listing_data())

        store.soft_delete(listing_id, moderator, reason="duplicate")

        assert store.get(listing_id) is None
        deleted = store.get(listing_id, include_deleted=True)
        assert deleted.is_deleted is True
        assert deleted.deleted_by == "mod-1"
        assert deleted.deleted_at is not None
        assert deleted.deletion_reason == "duplicate"
        assert deleted.version == 1

    def test_soft_delete_missing(self, store, owner):
        with pytest.raises(NotFoundError):
            store.soft_delete("missing-id", owner)

    def test_soft_delete_twice(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        store.soft_delete(listing_id, owner)
        with pytest.raises(NotFoundError):
            store.soft_delete(listing_id, owner)

    def test_soft_delete_requires_actor(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        with pytest.raises(AuthenticationRequiredError):
            store.soft_delete(listing_id, None)

    def test_bulk_delete_reports_partial_failure(self, store, owner, listing_data):
        first = store.create(owner, listing_data())
        second = store.create(owner, listing_data(name="Second Shop"))
        store.soft_delete(second, owner)

        result = store.bulk_soft_delete([first, "missing-id", second], owner)

        assert result.succeeded == [first]
        assert result.failed_ids == ["missing-id", second]
        assert {e.error_type for e in result.errors} == {"not_found"}
        assert result.total_count == 3
        assert store.get(first) is None

    def test_bulk_delete_requires_actor(self, store):
        with pytest.raises(AuthenticationRequiredError):
            store.bulk_soft_delete(["a", "b"], None)

    def test_all_listings_excludes_deleted(self, store, owner, listing_data):
        kept = store.create(owner, listing_data())
        gone = store.create(owner, listing_data(name="Gone Shop"))
        store.soft_delete(gone, owner)

        assert [item.id for item in store.all_listings()] == [kept]
        assert {item.id for item in store.all_listings(include_deleted=True)} == {kept, gone}


class TestAnalytics:
    """Tests for analytics counters."""

    def test_increment_does_not_bump_version(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())

        store.increment_analytics(listing_id, "view_count")
        analytics = store.increment_analytics(listing_id, "view_count", amount=4)

        assert analytics.view_count == 5
        listing = store.get(listing_id)
        assert listing.analytics.view_count == 5
        assert listing.version == 1

    def test_counters_only_go_up(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        with pytest.raises(ValueError):
            store.increment_analytics(listing_id, "view_count", amount=-1)

    def test_unknown_counter(self, store, owner, listing_data):
        listing_id = store.create(owner, listing_data())
        with pytest.raises(ValueError):
            store.increment_analytics(listing_id, "shares")


class TestStorageErrors:
    """Tests for persistence failures."""

    def test_sqlite_errors_surface_as_storage_error(self, test_db, owner, listing_data):
        store = ListingStore(test_db)
        test_db.close()
        with pytest.raises(StorageError):
            store.get("any-id")

    def test_failed_write_is_not_retried(self, test_db, owner, listing_data):
        store = ListingStore(test_db)
        test_db.execute("DROP TABLE user_listings")
        with pytest.raises(StorageError):
            store.create(owner, listing_data())
        assert store.all_listings() == []


def test_franchise_details_keep_their_class(store, owner, listing_data):
    listing_id = store.create(owner, listing_data("franchise"))
    details = store.get(listing_id).type_details
    assert isinstance(details, FranchiseDetails)
    assert details.investment.investment_range.minimum.value == 1500000
