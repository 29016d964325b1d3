"""
Ownership ledger: per-book owned/wanted claims.

Every mutating call performs exactly one write (insert, save or delete)
of a single item. Concurrency control is left to the repository, which
rejects stale snapshots with a ConflictError.
"""

import asyncio
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from utilities.logger import LedgerLogger
from .database import MongoDBManager
from .exceptions import ConflictError, InvalidInputError, NotFoundError
from .models import BookInfo, CatalogItem, ClaimKind, Relation


def parse_claim_kind(kind: Union[ClaimKind, str, None]) -> ClaimKind:
    """
    Coerce a raw relation kind into a ClaimKind.

    Raises:
        InvalidInputError: if the value is not ``owned`` or ``wanted``
    """
    try:
        return ClaimKind(kind)
    except (TypeError, ValueError):
        raise InvalidInputError(
            "Relation type must be 'owned' or 'wanted'",
            {"type": kind},
        ) from None


def parse_book_info(metadata: Mapping[str, Any]) -> BookInfo:
    """
    Validate descriptive metadata against the book schema.

    Raises:
        InvalidInputError: on any schema violation
    """
    try:
        return BookInfo.model_validate(metadata)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        raise InvalidInputError("Book data failed validation", {"errors": errors}) from e


class OwnershipLedger:
    """Maintains the owned/wanted relation sets of catalog items."""

    def __init__(self, repository: MongoDBManager, ledger_logger: Optional[LedgerLogger] = None):
        """
        Args:
            repository: Store providing point lookups, relation queries and
                versioned insert/save/delete
            ledger_logger: Event logger, a default one is created if omitted
        """
        self.repository = repository
        self.events = ledger_logger or LedgerLogger()

    async def add_claim(
        self,
        external_id: Optional[str],
        metadata: Mapping[str, Any],
        user: str,
        kind: Union[ClaimKind, str, None]
    ) -> str:
        """
        Record that ``user`` owns or wants the book identified by ``external_id``.

        The book is created from ``metadata`` when the external id is unseen.

        Args:
            external_id: External catalog identifier (Google Books id)
            metadata: Descriptive book fields, used only on creation
            user: Requesting user id
            kind: ``owned`` or ``wanted``

        Returns:
            Internal id of the persisted item

        Raises:
            InvalidInputError: missing or non-string external id, bad kind or
                invalid metadata
            ConflictError: the user already owns or wants the book, or the
                item was created/modified concurrently
        """
        if external_id is None or (isinstance(external_id, str) and not external_id.strip()):
            raise InvalidInputError("The requested data was not provided", {"field": "googleId"})
        if not isinstance(external_id, str):
            raise InvalidInputError("googleId must be a string", {"field": "googleId"})
        claim_kind = parse_claim_kind(kind)

        existing = await self.repository.find_by_external_id(external_id)
        if existing is not None:
            try:
                updated = existing.with_claim(user, claim_kind)
            except ConflictError:
                self.events.log_claim_rejected(external_id, user, reason="already claimed")
                raise
            stored = await self.repository.save_item(updated)
            created = False
        else:
            info = parse_book_info({**(metadata or {}), "googleId": external_id})
            item = CatalogItem(info=info).with_claim(user, claim_kind)
            stored = await self.repository.insert_item(item)
            created = True

        self.events.log_claim_added(stored.id, external_id, user, claim_kind.value, created)
        return stored.id

    async def remove_claim(self, item_id: str, user: str) -> None:
        """
        Remove ``user`` from whichever relation set of the item contains it.

        The item is deleted when both sets end up empty, saved otherwise.

        Raises:
            NotFoundError: the item does not exist or the user holds no claim on it
            ConflictError: the item was modified concurrently
        """
        item = await self.get_item(item_id)
        await self.remove_claim_from(item, user)

    async def remove_claim_from(self, item: CatalogItem, user: str) -> None:
        """
        Remove ``user`` from an already loaded item snapshot.

        Raises:
            NotFoundError: the user holds no claim on the item
            ConflictError: the item changed since the snapshot was read
        """
        await self._remove_from(item, user)

    async def remove_all_claims(self, user: str) -> int:
        """
        Remove ``user`` from every item it owns or wants.

        Removals run concurrently and are awaited together; the first failure
        is raised after the others have settled. Completed removals are not
        rolled back.

        Returns:
            Number of items the user was removed from
        """
        owned, wanted = await self.list_for(user)
        items = owned + wanted

        results = await asyncio.gather(
            *(self._remove_from(item, user) for item in items),
            return_exceptions=True
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            self.events.log_bulk_removal(user, len(items) - len(failures), success=False)
            raise failures[0]

        self.events.log_bulk_removal(user, len(items))
        return len(items)

    async def list_for(self, user: str) -> Tuple[List[CatalogItem], List[CatalogItem]]:
        """
        Return ``(owned, wanted)`` items for ``user``.
        """
        owned, wanted = await asyncio.gather(
            self.repository.find_by_relation(ClaimKind.OWNED, user),
            self.repository.find_by_relation(ClaimKind.WANTED, user),
        )
        return owned, wanted

    async def list_wanted(self, user: str) -> List[CatalogItem]:
        return await self.repository.find_by_relation(ClaimKind.WANTED, user)

    async def get_item(self, item_id: str) -> CatalogItem:
        """
        Raises:
            NotFoundError: if no item has this id
        """
        item = await self.repository.find_by_id(item_id)
        if item is None:
            raise NotFoundError("The requested resource was not found", {"item_id": item_id})
        return item

    @staticmethod
    def relation_of(item: CatalogItem, user: str) -> Relation:
        return item.relation_of(user)

    async def _remove_from(self, item: CatalogItem, user: str) -> None:
        updated, kind = item.without_user(user)
        if updated.is_orphaned:
            await self.repository.delete_item(updated)
            self.events.log_item_deleted(item.id, item.external_id)
        else:
            await self.repository.save_item(updated)
        self.events.log_claim_removed(item.id, user, kind.value)
