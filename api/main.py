"""
FastAPI main application for the Book Swap API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Depends, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.auth import get_current_user, require_relation
from api.config import config as api_config
from api.models import (
    BookCreateRequest, BookDetailResponse, BookListResponse, CreatedResponse,
    ErrorResponse, HealthResponse, MatchResponse
)
from api.service import APICatalogService
from catalog.database import MongoDBManager
from catalog.exceptions import (
    CatalogError, ConflictError, ForbiddenError, InvalidInputError,
    NotFoundError, StorageError, UnauthenticatedError
)
from utilities.config import config
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)

# Global catalog service
catalog_service: APICatalogService = None

ERROR_STATUS_CODES = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Book Swap API")

    global catalog_service
    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        collection_name=config.mongodb_collection,
        timeout_ms=config.mongodb_timeout_ms
    )
    try:
        await db_manager.connect()
    except StorageError as e:
        logger.error("Failed to connect to database", error=str(e))
        raise
    logger.info("Database connection established")

    catalog_service = APICatalogService(db_manager)

    yield

    # Shutdown
    logger.info("Shutting down Book Swap API")
    catalog_service = None
    await db_manager.disconnect()


# Create FastAPI application
app = FastAPI(
    title=api_config.api_title,
    description=api_config.api_description,
    version=api_config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=api_config.cors_allow_methods,
    allow_headers=api_config.cors_allow_headers,
)


def _status_code_for(exc: CatalogError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# Exception handlers
@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError):
    """Map catalog errors to HTTP responses."""
    status_code = _status_code_for(exc)
    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    if status_code >= 500:
        logger.error("Catalog failure", error=exc.message, details=exc.details, path=request.url.path)
        detail = (exc.details or None) if api_config.debug else None
    else:
        detail = exc.details or None

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.message,
            detail=detail,
            status_code=status_code
        ).model_dump(),
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400."""
    errors = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="The requested data was not provided",
            detail={"errors": errors},
            status_code=status.HTTP_400_BAD_REQUEST
        ).model_dump()
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            status_code=exc.status_code
        ).model_dump(),
        headers=exc.headers
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if api_config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump()
    )


def get_catalog_service() -> APICatalogService:
    """Return the catalog service created at startup."""
    if catalog_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service not available"
        )
    return catalog_service


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    stats = {}
    if catalog_service is not None:
        health_info = await catalog_service.health_check()
        db_status = health_info.get("status", "unknown")
        stats = health_info.get("stats", {})

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=api_config.api_version,
        database_status=db_status,
        total_books=stats.get("total_books"),
        owned_books=stats.get("owned_books"),
        wanted_books=stats.get("wanted_books")
    )


books_router = APIRouter(prefix="/books", tags=["Books"])


@books_router.get("", response_model=BookListResponse)
async def list_books(
    user: str = Depends(get_current_user),
    service: APICatalogService = Depends(get_catalog_service)
):
    """Get all books the requester owns or wants."""
    return await service.list_books(user)


@books_router.get("/matches", response_model=List[MatchResponse])
async def find_matches(
    user: str = Depends(get_current_user),
    service: APICatalogService = Depends(get_catalog_service)
):
    """
    Get every direct swap available to the requester.

    Each match pairs a book the requester wants (**toGet**) with a book the
    requester owns (**toGive**) that **otherUser** wants.
    """
    return await service.find_matches(user)


@books_router.get("/{book_id}", response_model=BookDetailResponse)
async def get_book(
    book_id: str,
    user: str = Depends(get_current_user),
    service: APICatalogService = Depends(get_catalog_service)
):
    """
    Get a single book with the requester's relation to it.

    - **book_id**: Book identifier (MongoDB ObjectId)
    """
    return await service.get_book(book_id, user)


@books_router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def add_book(
    request: BookCreateRequest,
    user: str = Depends(get_current_user),
    service: APICatalogService = Depends(get_catalog_service)
):
    """
    Register a book as owned or wanted by the requester.

    - **info**: Book data, **googleId** is required
    - **type**: owned or wanted
    """
    return await service.add_book(user, request)


@books_router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def remove_book(
    book_id: str,
    user: str = Depends(get_current_user),
    service: APICatalogService = Depends(get_catalog_service)
):
    """Remove the requester from a book; the book is deleted when nobody is left."""
    item = await service.load_book(book_id)
    require_relation(item, user)
    await service.remove_book(item, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@books_router.delete("", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def remove_all_books(
    user: str = Depends(get_current_user),
    service: APICatalogService = Depends(get_catalog_service)
):
    """Remove the requester from every book they own or want."""
    await service.remove_all_books(user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


api_router = APIRouter(prefix=api_config.api_prefix)
api_router.include_router(books_router)
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=api_config.log_level.lower()
    )
