"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from catalog.models import CatalogItem, ImageLinks, Match, Relation


class CamelModel(BaseModel):
    """Base model rendering field names in camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookResponse(CamelModel):
    """Book response model for API; relation sets are not exposed."""
    id: str = Field(..., description="Unique book identifier")
    google_id: str = Field(..., description="External catalog identifier")
    title: str = Field(..., description="Book title")
    subtitle: Optional[str] = Field(None, description="Book subtitle")
    authors: List[str] = Field(..., description="Book authors")
    publisher: str = Field(..., description="Publisher")
    published_date: str = Field(..., description="Publish date")
    description: str = Field(..., description="Book description")
    page_count: int = Field(..., description="Number of pages")
    categories: List[str] = Field(..., description="Book categories")
    image_links: ImageLinks = Field(..., description="Cover image links")
    language: str = Field(..., description="Language code")

    @classmethod
    def from_item(cls, item: CatalogItem) -> "BookResponse":
        return cls(id=item.id, **item.info.model_dump())


class BookListResponse(BaseModel):
    """Response model for a user's owned and wanted books."""
    owned: List[BookResponse] = Field(..., description="Books the user owns")
    wanted: List[BookResponse] = Field(..., description="Books the user wants")


class BookDetailResponse(BaseModel):
    """Response model for a single book annotated with the requester's relation."""
    info: BookResponse = Field(..., description="Book data")
    type: Relation = Field(..., description="Requester's relation to the book")


class MatchResponse(CamelModel):
    """A direct swap between the requester and another user."""
    to_give: BookResponse = Field(..., description="Book the requester owns and the other user wants")
    to_get: BookResponse = Field(..., description="Book the other user owns and the requester wants")
    other_user: str = Field(..., description="User to swap with")

    @classmethod
    def from_match(cls, match: Match) -> "MatchResponse":
        return cls(
            to_give=BookResponse.from_item(match.to_give),
            to_get=BookResponse.from_item(match.to_get),
            other_user=match.other_user
        )


class BookCreateRequest(BaseModel):
    """Request body for registering a book as owned or wanted."""
    info: Dict[str, Any] = Field(default_factory=dict, description="Book data including googleId")
    type: Optional[str] = Field(None, description="Relation type: owned or wanted")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "info": {
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
            },
            "type": "owned"
        }
    })


class CreatedResponse(BaseModel):
    """Response model for a created or updated book."""
    id: str = Field(..., description="Book identifier")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[Any] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
    total_books: Optional[int] = Field(None, description="Books in the catalog")
    owned_books: Optional[int] = Field(None, description="Books with at least one owner")
    wanted_books: Optional[int] = Field(None, description="Books wanted by at least one user")
