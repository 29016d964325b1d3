"""
Pytest configuration and shared fixtures.
"""

from typing import Dict, List, Optional

import pytest
from bson import ObjectId

from catalog.exceptions import ConflictError
from catalog.ledger import OwnershipLedger
from catalog.matching import MatchFinder
from catalog.models import CatalogItem, ClaimKind


class InMemoryRepository:
    """
    Dict-backed store with the same contract as MongoDBManager:
    unique external ids and version-checked save/delete.
    """

    def __init__(self):
        self.items: Dict[str, CatalogItem] = {}
        self.writes: List[str] = []

    async def find_by_id(self, item_id: str) -> Optional[CatalogItem]:
        return self.items.get(item_id)

    async def find_by_external_id(self, external_id: str) -> Optional[CatalogItem]:
        for item in self.items.values():
            if item.external_id == external_id:
                return item
        return None

    async def find_by_relation(self, kind: ClaimKind, user: str) -> List[CatalogItem]:
        field = "owned_by" if kind is ClaimKind.OWNED else "wanted_by"
        return [item for item in self.items.values() if user in getattr(item, field)]

    async def insert_item(self, item: CatalogItem) -> CatalogItem:
        if await self.find_by_external_id(item.external_id) is not None:
            raise ConflictError("A book with this external identifier already exists")
        stored = item.model_copy(update={"id": str(ObjectId()), "version": 0})
        self.items[stored.id] = stored
        self.writes.append("insert")
        return stored

    async def save_item(self, item: CatalogItem) -> CatalogItem:
        current = self.items.get(item.id)
        if current is None or current.version != item.version:
            raise ConflictError("The book was modified concurrently, retry the request")
        stored = item.model_copy(update={"version": item.version + 1})
        self.items[stored.id] = stored
        self.writes.append("save")
        return stored

    async def delete_item(self, item: CatalogItem) -> None:
        current = self.items.get(item.id)
        if current is None or current.version != item.version:
            raise ConflictError("The book was modified concurrently, retry the request")
        del self.items[item.id]
        self.writes.append("delete")

    async def health_check(self) -> Dict:
        return {"status": "healthy", "books_count": len(self.items)}

    async def get_database_stats(self) -> Dict:
        items = list(self.items.values())
        return {
            "database_size": 0,
            "total_books": len(items),
            "owned_books": sum(1 for item in items if item.owned_by),
            "wanted_books": sum(1 for item in items if item.wanted_by),
        }


def make_book_info(google_id: str = "B1", title: Optional[str] = None) -> Dict:
    """Book data in the camelCase wire format."""
    return {
        "googleId": google_id,
        "title": title or f"Book {google_id}",
        "subtitle": "A subtitle",
        "authors": ["Jane Author"],
        "publisher": "Test Publisher",
        "publishedDate": "2020-01-01",
        "description": "A test book description",
        "pageCount": 320,
        "categories": ["Fiction"],
        "imageLinks": {
            "smallThumbnail": "http://example.com/small.jpg",
            "thumbnail": "http://example.com/thumb.jpg"
        },
        "language": "en"
    }


@pytest.fixture
def book_info():
    """Factory for valid book data."""
    return make_book_info


@pytest.fixture
def repository():
    """Empty in-memory catalog store."""
    return InMemoryRepository()


@pytest.fixture
def ledger(repository):
    return OwnershipLedger(repository)


@pytest.fixture
def matcher(ledger):
    return MatchFinder(ledger)


@pytest.fixture
def add_claim(ledger):
    """Register a claim with generated book data, returning the item id."""
    async def _add(google_id: str, user: str, kind: str) -> str:
        return await ledger.add_claim(google_id, make_book_info(google_id), user, kind)
    return _add


@pytest.fixture
def sample_item():
    """A stored item owned by alice and wanted by bob."""
    from catalog.models import BookInfo

    return CatalogItem(
        id=str(ObjectId()),
        info=BookInfo.model_validate(make_book_info("B1")),
        owned_by=("alice",),
        wanted_by=("bob",),
        version=3
    )


def _assert_invariants(repository: InMemoryRepository) -> None:
    """No user both owns and wants an item, and no stored item is unreferenced."""
    for item in repository.items.values():
        assert not set(item.owned_by) & set(item.wanted_by)
        assert not item.is_orphaned
        assert len(set(item.owned_by)) == len(item.owned_by)
        assert len(set(item.wanted_by)) == len(item.wanted_by)


@pytest.fixture
def check_invariants(repository):
    """Assert the relation-set invariants over every stored item."""
    return lambda: _assert_invariants(repository)


# API fixtures
@pytest.fixture(scope="session")
def rsa_keys():
    """RSA key pair as (private PEM, base64-encoded public PEM)."""
    import base64
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return private_pem, base64.b64encode(public_pem).decode("ascii")


@pytest.fixture
def api_keys(rsa_keys):
    """Configure the API to verify tokens signed with the test key."""
    from unittest.mock import patch
    from api.config import config as api_config

    with patch.object(api_config, "public_key", rsa_keys[1]), \
            patch.object(api_config, "jwt_algorithm", "RS256"):
        yield rsa_keys


@pytest.fixture
def make_token(api_keys):
    """Factory for signed access tokens."""
    import jwt
    from datetime import datetime, timedelta, timezone

    def _make(user: str = "alice", expires_in: int = 3600, **claims) -> str:
        payload = {"sub": user, "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in)}
        payload.update(claims)
        return jwt.encode(payload, api_keys[0], algorithm="RS256")
    return _make


@pytest.fixture
def auth_headers(make_token):
    """Factory for Authorization headers."""
    def _headers(user: str = "alice") -> dict:
        return {"Authorization": f"Bearer {make_token(user)}"}
    return _headers


@pytest.fixture
def catalog_service(repository):
    from api.service import APICatalogService
    return APICatalogService(repository)
