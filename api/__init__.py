"""
FastAPI RESTful API for the Book Swap catalog.

This module provides a REST API for:
- Registering books a user owns or wants
- Listing a user's owned and wanted books
- Finding direct two-party swap matches
- JWT bearer authentication
"""
