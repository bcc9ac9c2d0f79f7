"""
Authentication Utilities
=======================

Authentication dependencies for API endpoints.
Provides API key validation and hashing, and caller identification.
"""

import hashlib
from typing import Optional
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader

from saaskit.config.settings import get_settings

USER_ID_HEADER = "X-User-ID"

# API key header
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key_hash(api_key: str) -> str:
    """
    Hash API key for storage and comparison.

    Args:
        api_key: API key to hash

    Returns:
        Hashed API key
    """
    return hashlib.sha256(api_key.encode()).hexdigest()


async def validate_api_key(api_key: Optional[str] = Depends(api_key_header)) -> str:
    """
    Validate API key.

    Args:
        api_key: API key from header

    Returns:
        API key if valid

    Raises:
        HTTPException: If API key is invalid
    """
    settings = get_settings()

    # Skip validation in development mode if configured
    if settings.debug and settings.skip_api_key_validation:
        return "development_key"

    if not api_key:
        raise HTTPException(
            status_code=401, detail="API key is required", headers={"WWW-Authenticate": "ApiKey"}
        )

    if api_key not in settings.api_keys:
        if get_api_key_hash(api_key) not in settings.api_key_hashes:
            raise HTTPException(
                status_code=401, detail="Invalid API key", headers={"WWW-Authenticate": "ApiKey"}
            )

    return api_key


async def identify_user(request: Request, api_key: str = Depends(validate_api_key)) -> None:
    """
    Attach the calling user to the request.

    A trusted caller holding a valid API key names the user it acts for
    in the X-User-ID header. An identity already set by upstream
    middleware is kept.
    """
    if getattr(request.state, "user_id", None):
        return
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    if user_id:
        request.state.user_id = user_id
