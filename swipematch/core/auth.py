# swipematch/core/auth.py
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from swipematch.core.config import settings
from swipematch.log.logging import logger

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str = Depends(api_key_header)) -> str:
    """
    Guard for internal endpoints called by other services.

    Actor ids on public endpoints come from the upstream auth gateway and are
    trusted as-is; only the internal routes check a shared key.
    """
    if not api_key:
        logger.warning("Internal API call without API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
        )

    if not secrets.compare_digest(api_key, settings.internal_api_key):
        logger.warning("Internal API call with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )
    return api_key
