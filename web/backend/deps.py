from typing import AsyncGenerator, Optional

import httpx
from fastapi import Header

from album_keeper.core.config import Config, load_config
from album_keeper.core.database import get_db_connection
from album_keeper.domain.exceptions import UnauthorizedError


async def get_db() -> AsyncGenerator:
    """FastAPI dependency for database connections."""
    with get_db_connection() as conn:
        yield conn


def get_config() -> Config:
    """FastAPI dependency for configuration."""
    return load_config()


async def get_current_user(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Caller identity set by the session layer in front of the API (None for guests)."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


async def require_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    user_id = await get_current_user(x_user_id)
    if user_id is None:
        raise UnauthorizedError()
    return user_id


async def get_probe_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client for readiness probes against the archive."""
    async with httpx.AsyncClient() as client:
        yield client
