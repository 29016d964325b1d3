"""
Match finder for direct two-party book swaps.
"""

from typing import List, Optional

from utilities.logger import LedgerLogger
from .ledger import OwnershipLedger
from .models import Match


class MatchFinder:
    """
    Finds swaps where the requester wants a book another user owns and that
    user wants a book the requester owns.

    The search walks wanted books -> their owners -> the owners' wanted books,
    so its cost grows with |wanted| * owners * |owner's wanted|. Indexing
    wanters per item and wanted items per owner would turn it into a join.
    """

    def __init__(self, ledger: OwnershipLedger, ledger_logger: Optional[LedgerLogger] = None):
        self.ledger = ledger
        self.events = ledger_logger or LedgerLogger("catalog.matching")

    async def find_matches(self, user: str) -> List[Match]:
        """
        Compute every direct swap available to ``user``.

        Matches are returned in traversal order and are not de-duplicated:
        each (wanted book, owner, owner's wanted book) combination is its own
        entry. A failed lookup aborts the whole search.

        Args:
            user: Requesting user id

        Returns:
            List of Match
        """
        wanted_books = await self.ledger.list_wanted(user)

        matches = []
        for wanted_book in wanted_books:
            for owner in wanted_book.owned_by:
                for owner_wanted_book in await self.ledger.list_wanted(owner):
                    if user in owner_wanted_book.owned_by:
                        matches.append(Match(
                            to_get=wanted_book,
                            to_give=owner_wanted_book,
                            other_user=owner
                        ))

        self.events.log_matches_found(user, len(wanted_books), len(matches))
        return matches
