"""
Catalog package for the book swap service.

This package contains:
- Book metadata and catalog item models
- MongoDB persistence for catalog items
- Ownership ledger (owned/wanted claims)
- Match finder for direct two-party swaps
"""

__version__ = "1.0.0"
