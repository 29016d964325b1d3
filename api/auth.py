"""
Authentication and authorization for the FastAPI API.
"""

from typing import Optional

import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.config import config
from catalog.exceptions import ForbiddenError, UnauthenticatedError
from catalog.models import CatalogItem, Relation

logger = structlog.get_logger(__name__)

# Security scheme; missing credentials are reported as 401 by get_current_user
security = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> str:
    """
    Verify a signed access token and return its subject.

    Args:
        token: Encoded JWT

    Returns:
        The ``sub`` claim, used as the user identifier

    Raises:
        UnauthenticatedError: If the token is invalid, expired or has no subject
    """
    public_key = config.get_public_key()
    if public_key is None:
        logger.error("No valid public key configured for token verification")
        raise UnauthenticatedError("Access token invalid or not provided.")

    try:
        payload = jwt.decode(
            token,
            public_key,
            algorithms=[config.jwt_algorithm],
            options={"require": ["sub"]}
        )
    except jwt.PyJWTError as e:
        logger.warning("Invalid access token", error=str(e))
        raise UnauthenticatedError("Access token invalid or not provided.") from e

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        logger.warning("Access token has no usable subject")
        raise UnauthenticatedError("Access token invalid or not provided.")
    return subject


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """
    Resolve the requesting user from the ``Authorization: Bearer`` header.

    Args:
        credentials: HTTP authorization credentials

    Returns:
        User identifier

    Raises:
        UnauthenticatedError: If the header is missing, not Bearer, or the token is invalid
    """
    if credentials is None:
        raise UnauthenticatedError("Access token invalid or not provided.")
    return decode_access_token(credentials.credentials)


def require_relation(item: CatalogItem, user: str) -> Relation:
    """
    Ensure ``user`` owns or wants ``item`` before it may be mutated.

    Returns:
        The user's relation to the item

    Raises:
        ForbiddenError: If the user has no relation to the item
    """
    relation = item.relation_of(user)
    if relation is Relation.NONE:
        logger.warning("Permission denied", item_id=item.id, user=user)
        raise ForbiddenError(
            "Permission to the requested resource was denied.",
            {"item_id": item.id}
        )
    return relation
