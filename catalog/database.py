"""
MongoDB database utilities for async operations.
Handles connection, indexing, and CRUD operations for catalog items.
"""

from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError, PyMongoError
import structlog

from .exceptions import ConflictError, StorageError
from .models import CatalogItem, ClaimKind

logger = structlog.get_logger(__name__)

RELATION_FIELDS = {
    ClaimKind.OWNED: "owned_by",
    ClaimKind.WANTED: "wanted_by",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoDBManager:
    """
    Async MongoDB manager for catalog items.
    Handles connection, indexing, and CRUD operations.

    ``save_item`` and ``delete_item`` only apply when the stored version
    still matches the snapshot being written, so a concurrent update on
    the same item surfaces as a ConflictError instead of being lost.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        collection_name: str,
        timeout_ms: int = 5000
    ):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the collection
            timeout_ms: Server selection timeout in milliseconds
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(
                self.connection_url,
                serverSelectionTimeoutMS=self.timeout_ms
            )
            self.database = self.client[self.database_name]
            self.collection = self.database[self.collection_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

            await self._create_indexes()

        except PyMongoError as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise StorageError("Failed to connect to MongoDB", {"error": str(e)}) from e

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """
        Create indexes for deduplication and relation lookups.
        """
        # Unique external identifier rejects duplicate creation
        await self.collection.create_index("google_id", unique=True)

        # Multikey indexes for "all items where relation set contains user"
        await self.collection.create_index("owned_by")
        await self.collection.create_index("wanted_by")

        logger.info("Successfully created MongoDB indexes")

    async def find_by_id(self, item_id: str) -> Optional[CatalogItem]:
        """
        Retrieve an item by its internal identifier.

        Args:
            item_id: ObjectId as a hex string

        Returns:
            CatalogItem or None if not found or the id is malformed
        """
        if not ObjectId.is_valid(item_id):
            return None
        try:
            document = await self.collection.find_one({"_id": ObjectId(item_id)})
        except PyMongoError as e:
            logger.error("Failed to get item by ID", item_id=item_id, error=str(e))
            raise StorageError("Failed to retrieve item", {"item_id": item_id}) from e
        return CatalogItem.from_document(document) if document else None

    async def find_by_external_id(self, external_id: str) -> Optional[CatalogItem]:
        """
        Retrieve an item by its external catalog identifier.

        Args:
            external_id: Google Books volume id

        Returns:
            CatalogItem or None if not found
        """
        try:
            document = await self.collection.find_one({"google_id": external_id})
        except PyMongoError as e:
            logger.error("Failed to get item by external ID", external_id=external_id, error=str(e))
            raise StorageError("Failed to retrieve item", {"external_id": external_id}) from e
        return CatalogItem.from_document(document) if document else None

    async def find_by_relation(self, kind: ClaimKind, user: str) -> List[CatalogItem]:
        """
        Retrieve every item whose relation set for ``kind`` contains ``user``.

        Args:
            kind: Which relation set to match
            user: User identifier

        Returns:
            List of CatalogItem in natural (insertion) order
        """
        field = RELATION_FIELDS[kind]
        try:
            cursor = self.collection.find({field: user})
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to get items by relation", relation=field, user=user, error=str(e))
            raise StorageError("Failed to retrieve items", {"relation": field, "user": user}) from e

        logger.debug("Retrieved items by relation", relation=field, user=user, count=len(documents))
        return [CatalogItem.from_document(document) for document in documents]

    async def insert_item(self, item: CatalogItem) -> CatalogItem:
        """
        Insert a new item.

        Args:
            item: CatalogItem without an id

        Returns:
            The stored item with its id and timestamps

        Raises:
            ConflictError: if an item with the same external id exists
        """
        now = _utcnow()
        stored = item.model_copy(update={"version": 0, "created_at": now, "updated_at": now})
        try:
            result = await self.collection.insert_one(stored.to_document())
        except DuplicateKeyError as e:
            logger.warning("Item already exists", external_id=item.external_id)
            raise ConflictError(
                "A book with this external identifier already exists",
                {"external_id": item.external_id},
            ) from e
        except PyMongoError as e:
            logger.error("Failed to insert item", external_id=item.external_id, error=str(e))
            raise StorageError("Failed to insert item", {"external_id": item.external_id}) from e

        logger.debug("Successfully inserted item", external_id=item.external_id)
        return stored.model_copy(update={"id": str(result.inserted_id)})

    async def save_item(self, item: CatalogItem) -> CatalogItem:
        """
        Overwrite a stored item if its version is unchanged since it was read.

        Args:
            item: Snapshot carrying the version that was read

        Returns:
            The stored item with its bumped version

        Raises:
            ConflictError: if the item was modified or removed concurrently
        """
        stored = item.model_copy(update={"version": item.version + 1, "updated_at": _utcnow()})
        try:
            result = await self.collection.replace_one(
                {"_id": ObjectId(item.id), "version": item.version},
                stored.to_document()
            )
        except PyMongoError as e:
            logger.error("Failed to save item", item_id=item.id, error=str(e))
            raise StorageError("Failed to save item", {"item_id": item.id}) from e

        if result.matched_count == 0:
            logger.warning("Item modified concurrently", item_id=item.id, version=item.version)
            raise ConflictError(
                "The book was modified concurrently, retry the request",
                {"item_id": item.id},
            )

        logger.debug("Successfully saved item", item_id=item.id, version=stored.version)
        return stored

    async def delete_item(self, item: CatalogItem) -> None:
        """
        Delete a stored item if its version is unchanged since it was read.

        Raises:
            ConflictError: if the item was modified or removed concurrently
        """
        try:
            result = await self.collection.delete_one(
                {"_id": ObjectId(item.id), "version": item.version}
            )
        except PyMongoError as e:
            logger.error("Failed to delete item", item_id=item.id, error=str(e))
            raise StorageError("Failed to delete item", {"item_id": item.id}) from e

        if result.deleted_count == 0:
            logger.warning("Item modified concurrently", item_id=item.id, version=item.version)
            raise ConflictError(
                "The book was modified concurrently, retry the request",
                {"item_id": item.id},
            )

        logger.debug("Successfully deleted item", item_id=item.id)

    async def get_database_stats(self) -> Dict[str, Any]:
        """Get catalog statistics for monitoring."""
        try:
            stats = await self.database.command("dbStats")
            total_books = await self.collection.estimated_document_count()
            owned_books = await self.collection.count_documents({"owned_by.0": {"$exists": True}})
            wanted_books = await self.collection.count_documents({"wanted_by.0": {"$exists": True}})

            return {
                "database_size": stats.get("dataSize", 0),
                "total_books": total_books,
                "owned_books": owned_books,
                "wanted_books": wanted_books,
                "last_updated": datetime.now(timezone.utc).isoformat()
            }

        except PyMongoError as e:
            logger.error("Failed to get database stats", error=str(e))
            raise StorageError("Failed to get database stats", {"error": str(e)}) from e

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            items_count = await self.collection.count_documents({})
            return {
                "status": "healthy",
                "books_collection": "accessible",
                "books_count": items_count
            }
        except PyMongoError as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
