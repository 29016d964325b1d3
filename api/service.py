"""
Catalog service layer for the FastAPI application.
"""

from typing import Dict, List

import structlog

from api.models import (
    BookCreateRequest, BookDetailResponse, BookListResponse, BookResponse,
    CreatedResponse, MatchResponse
)
from catalog.database import MongoDBManager
from catalog.exceptions import StorageError
from catalog.ledger import OwnershipLedger
from catalog.matching import MatchFinder
from catalog.models import CatalogItem

logger = structlog.get_logger(__name__)


class APICatalogService:
    """Wires the ownership ledger and match finder to API response models."""

    def __init__(self, repository: MongoDBManager):
        self.repository = repository
        self.ledger = OwnershipLedger(repository)
        self.matcher = MatchFinder(self.ledger)

    async def list_books(self, user: str) -> BookListResponse:
        """
        Get every book the user owns or wants.

        Args:
            user: Requesting user id

        Returns:
            BookListResponse with owned and wanted books
        """
        owned, wanted = await self.ledger.list_for(user)
        return BookListResponse(
            owned=[BookResponse.from_item(item) for item in owned],
            wanted=[BookResponse.from_item(item) for item in wanted]
        )

    async def find_matches(self, user: str) -> List[MatchResponse]:
        matches = await self.matcher.find_matches(user)
        return [MatchResponse.from_match(match) for match in matches]

    async def load_book(self, book_id: str) -> CatalogItem:
        return await self.ledger.get_item(book_id)

    async def get_book(self, book_id: str, user: str) -> BookDetailResponse:
        """
        Get a single book annotated with the user's relation to it.

        Raises:
            NotFoundError: If the book does not exist
        """
        item = await self.ledger.get_item(book_id)
        return BookDetailResponse(
            info=BookResponse.from_item(item),
            type=self.ledger.relation_of(item, user)
        )

    async def add_book(self, user: str, request: BookCreateRequest) -> CreatedResponse:
        """
        Register a book as owned or wanted by the user.

        Raises:
            InvalidInputError: If the book data or relation type is invalid
            ConflictError: If the user already owns or wants the book
        """
        item_id = await self.ledger.add_claim(
            request.info.get("googleId"),
            request.info,
            user,
            request.type
        )
        return CreatedResponse(id=item_id)

    async def remove_book(self, item: CatalogItem, user: str) -> None:
        await self.ledger.remove_claim_from(item, user)

    async def remove_all_books(self, user: str) -> int:
        return await self.ledger.remove_all_claims(user)

    async def health_check(self) -> Dict:
        """
        Perform database health check, with catalog statistics when reachable.

        Returns:
            Dictionary with health status and optional ``stats``
        """
        health = await self.repository.health_check()
        if health.get("status") != "healthy":
            logger.warning("Catalog store unhealthy", **health)
            return health

        try:
            health["stats"] = await self.repository.get_database_stats()
        except StorageError as e:
            logger.warning("Catalog statistics unavailable", error=e.message)
        return health
