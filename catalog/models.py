"""
Pydantic models for catalog items, ownership claims and swap matches.
Implements the Book schema with all required fields and metadata.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .exceptions import ConflictError, NotFoundError


class ClaimKind(str, Enum):
    """Enum for the relation a user can declare to a book."""
    OWNED = "owned"
    WANTED = "wanted"


class Relation(str, Enum):
    """Enum for a requester's relation to a book, including no relation."""
    OWNED = "owned"
    WANTED = "wanted"
    NONE = "none"


class ImageLinks(BaseModel):
    """Cover image links as provided by the book data source."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    small_thumbnail: str = Field(..., description="Small thumbnail URL")
    thumbnail: str = Field(..., description="Thumbnail URL")


class BookInfo(BaseModel):
    """
    Descriptive book metadata carried through the catalog unchanged.
    Field names are camelCase on the wire and snake_case in storage.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "googleId": "zyTCAlFPjgYC",
                "title": "The Google Story",
                "authors": ["David A. Vise", "Mark Malseed"],
                "publisher": "Random House Digital, Inc.",
                "publishedDate": "2005-11-15",
                "description": "Here is the story behind one of the most remarkable Internet successes of our time.",
                "pageCount": 207,
                "categories": ["Browsers (Computer programs)"],
                "imageLinks": {
                    "smallThumbnail": "http://books.google.com/books/content?id=zyTCAlFPjgYC&zoom=5",
                    "thumbnail": "http://books.google.com/books/content?id=zyTCAlFPjgYC&zoom=1"
                },
                "language": "en"
            }
        },
    )

    google_id: str = Field(..., min_length=1, description="External catalog identifier")
    title: str = Field(..., description="Book title")
    subtitle: Optional[str] = Field(None, description="Book subtitle")
    authors: List[str] = Field(..., description="Book authors")
    publisher: str = Field(..., description="Publisher")
    published_date: str = Field(..., description="Publish date as given by the source")
    description: str = Field(..., description="Book description")
    page_count: int = Field(..., ge=0, description="Number of pages")
    categories: List[str] = Field(..., description="Book categories")
    image_links: ImageLinks = Field(..., description="Cover image links")
    language: str = Field(..., description="Language code")

    @field_validator('google_id')
    @classmethod
    def validate_google_id(cls, v):
        """Reject blank external identifiers."""
        if not v.strip():
            raise ValueError('googleId must not be blank')
        return v


class CatalogItem(BaseModel):
    """
    A stored book together with its relation sets.

    Instances are immutable snapshots: claim changes return a new item
    which the ledger then persists.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(None, description="Internal identifier (ObjectId hex)")
    info: BookInfo
    owned_by: Tuple[str, ...] = Field(default=(), description="Users owning the book")
    wanted_by: Tuple[str, ...] = Field(default=(), description="Users wanting the book")
    version: int = Field(default=0, ge=0, description="Optimistic concurrency version")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def external_id(self) -> str:
        return self.info.google_id

    @property
    def is_orphaned(self) -> bool:
        """True when no user owns or wants the book."""
        return not self.owned_by and not self.wanted_by

    def relation_of(self, user: str) -> Relation:
        if user in self.owned_by:
            return Relation.OWNED
        if user in self.wanted_by:
            return Relation.WANTED
        return Relation.NONE

    def holds_claim(self, user: str) -> bool:
        return self.relation_of(user) is not Relation.NONE

    def with_claim(self, user: str, kind: ClaimKind) -> "CatalogItem":
        """
        Return a copy with ``user`` added to the relation set for ``kind``.

        Raises:
            ConflictError: if the user already owns or wants the book
        """
        if self.holds_claim(user):
            raise ConflictError(
                "Book already added as owned or wanted",
                {"external_id": self.external_id, "user": user},
            )
        if kind is ClaimKind.OWNED:
            return self.model_copy(update={"owned_by": self.owned_by + (user,)})
        return self.model_copy(update={"wanted_by": self.wanted_by + (user,)})

    def without_user(self, user: str) -> Tuple["CatalogItem", ClaimKind]:
        """
        Return a copy with ``user`` removed and the kind of claim that was dropped.
        The owned set is checked before the wanted set.

        Raises:
            NotFoundError: if the user holds no claim on the book
        """
        if user in self.owned_by:
            owned = tuple(u for u in self.owned_by if u != user)
            return self.model_copy(update={"owned_by": owned}), ClaimKind.OWNED
        if user in self.wanted_by:
            wanted = tuple(u for u in self.wanted_by if u != user)
            return self.model_copy(update={"wanted_by": wanted}), ClaimKind.WANTED
        raise NotFoundError(
            "User holds no claim on this book",
            {"item_id": self.id, "user": user},
        )

    def to_document(self) -> Dict[str, Any]:
        """Convert to a MongoDB document (without ``_id``)."""
        document = self.info.model_dump()
        document.update({
            "owned_by": list(self.owned_by),
            "wanted_by": list(self.wanted_by),
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        })
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "CatalogItem":
        """Build an item from a MongoDB document."""
        document = dict(document)
        item_id = document.pop("_id", None)
        owned_by = document.pop("owned_by", None) or []
        wanted_by = document.pop("wanted_by", None) or []
        version = document.pop("version", 0)
        created_at = document.pop("created_at", None)
        updated_at = document.pop("updated_at", None)
        return cls(
            id=str(item_id) if item_id is not None else None,
            info=BookInfo.model_validate(document),
            owned_by=tuple(owned_by),
            wanted_by=tuple(wanted_by),
            version=version,
            created_at=created_at,
            updated_at=updated_at,
        )


class Match(BaseModel):
    """
    A direct two-party swap: the requester wants ``to_get`` (owned by
    ``other_user``) and ``other_user`` wants ``to_give`` (owned by the requester).
    """
    model_config = ConfigDict(frozen=True)

    to_get: CatalogItem
    to_give: CatalogItem
    other_user: str
