"""
API configuration settings.
"""

import base64
import binascii
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Swap API"
    api_version: str = "1.0.0"
    api_description: str = "A REST API for registering owned and wanted books and finding swaps"
    api_prefix: str = "/api/v1"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Security Settings
    public_key: Optional[str] = None  # Base64-encoded PEM used to verify access tokens
    jwt_algorithm: str = "RS256"

    # CORS Settings
    cors_origins: List[str] = ["*"]  # Configure appropriately for production
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # Ignore extra fields from .env
    )

    def get_public_key(self) -> Optional[bytes]:
        """Decode the configured public key, None when unset or not valid base64."""
        if not self.public_key:
            return None
        try:
            return base64.b64decode(self.public_key, validate=True)
        except (binascii.Error, ValueError):
            return None


# Global config instance
config = APIConfig()
