"""
Unit tests for catalog models.
Tests metadata validation, claim snapshots and document conversion.
"""

import pytest
from bson import ObjectId
from pydantic import ValidationError

from catalog.exceptions import ConflictError, NotFoundError
from catalog.models import BookInfo, CatalogItem, ClaimKind, Relation


class TestBookInfo:
    """Test cases for BookInfo model."""

    def test_valid_camel_case_payload(self, book_info):
        """Test parsing the wire format."""
        info = BookInfo.model_validate(book_info("abc123"))

        assert info.google_id == "abc123"
        assert info.published_date == "2020-01-01"
        assert info.page_count == 320
        assert info.image_links.small_thumbnail == "http://example.com/small.jpg"

    def test_subtitle_is_optional(self, book_info):
        data = book_info()
        del data["subtitle"]

        info = BookInfo.model_validate(data)

        assert info.subtitle is None

    @pytest.mark.parametrize("field", ["title", "authors", "publisher", "pageCount", "imageLinks", "language"])
    def test_required_fields(self, book_info, field):
        """Test that the schema rejects missing required fields."""
        data = book_info()
        del data[field]

        with pytest.raises(ValidationError):
            BookInfo.model_validate(data)

    def test_blank_google_id_rejected(self, book_info):
        with pytest.raises(ValidationError) as exc_info:
            BookInfo.model_validate(book_info("   "))

        assert "googleId must not be blank" in str(exc_info.value)

    def test_negative_page_count_rejected(self, book_info):
        data = book_info()
        data["pageCount"] = -1

        with pytest.raises(ValidationError):
            BookInfo.model_validate(data)

    def test_unknown_fields_ignored(self, book_info):
        data = book_info()
        data["ownedBy"] = ["mallory"]

        info = BookInfo.model_validate(data)

        assert "ownedBy" not in info.model_dump(by_alias=True)


class TestCatalogItemClaims:
    """Test cases for value-returning claim operations."""

    def test_with_claim_returns_new_snapshot(self, sample_item):
        updated = sample_item.with_claim("carol", ClaimKind.OWNED)

        assert updated.owned_by == ("alice", "carol")
        assert sample_item.owned_by == ("alice",)
        assert updated.version == sample_item.version

    def test_with_claim_wanted(self, sample_item):
        updated = sample_item.with_claim("carol", ClaimKind.WANTED)

        assert updated.wanted_by == ("bob", "carol")
        assert updated.owned_by == ("alice",)

    @pytest.mark.parametrize("user", ["alice", "bob"])
    @pytest.mark.parametrize("kind", [ClaimKind.OWNED, ClaimKind.WANTED])
    def test_with_claim_conflicts_for_existing_relation(self, sample_item, user, kind):
        with pytest.raises(ConflictError):
            sample_item.with_claim(user, kind)

    def test_without_user_removes_owner(self, sample_item):
        updated, kind = sample_item.without_user("alice")

        assert kind is ClaimKind.OWNED
        assert updated.owned_by == ()
        assert updated.wanted_by == ("bob",)
        assert not updated.is_orphaned

    def test_without_user_removes_wanter(self, sample_item):
        updated, kind = sample_item.without_user("bob")

        assert kind is ClaimKind.WANTED
        assert updated.wanted_by == ()

    def test_without_user_checks_owned_first(self, sample_item):
        """A corrupt item listing the user twice loses the owned claim first."""
        item = sample_item.model_copy(update={"wanted_by": ("alice",)})

        updated, kind = item.without_user("alice")

        assert kind is ClaimKind.OWNED
        assert updated.wanted_by == ("alice",)

    def test_without_unknown_user_raises(self, sample_item):
        with pytest.raises(NotFoundError):
            sample_item.without_user("carol")

    def test_orphaned_after_last_removal(self, sample_item):
        item, _ = sample_item.without_user("alice")
        item, _ = item.without_user("bob")

        assert item.is_orphaned

    def test_relation_of(self, sample_item):
        assert sample_item.relation_of("alice") is Relation.OWNED
        assert sample_item.relation_of("bob") is Relation.WANTED
        assert sample_item.relation_of("carol") is Relation.NONE

    def test_snapshot_is_immutable(self, sample_item):
        with pytest.raises(ValidationError):
            sample_item.owned_by = ("mallory",)


class TestCatalogItemDocuments:
    """Test cases for MongoDB document conversion."""

    def test_to_document_uses_snake_case(self, sample_item):
        document = sample_item.to_document()

        assert document["google_id"] == "B1"
        assert document["image_links"]["small_thumbnail"] == "http://example.com/small.jpg"
        assert document["owned_by"] == ["alice"]
        assert document["wanted_by"] == ["bob"]
        assert document["version"] == 3
        assert "_id" not in document
        assert "id" not in document

    def test_from_document(self, sample_item):
        object_id = ObjectId()
        document = sample_item.to_document()
        document["_id"] = object_id

        item = CatalogItem.from_document(document)

        assert item.id == str(object_id)
        assert item.info == sample_item.info
        assert item.owned_by == ("alice",)
        assert item.wanted_by == ("bob",)
        assert item.version == 3

    def test_from_document_without_relation_fields(self, sample_item):
        document = sample_item.info.model_dump()
        document["_id"] = ObjectId()

        item = CatalogItem.from_document(document)

        assert item.owned_by == ()
        assert item.wanted_by == ()
        assert item.version == 0
