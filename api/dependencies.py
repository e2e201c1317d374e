"""
FastAPI dependencies
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import get_session_maker
from ingestion.extractors.tidal_api import TidalAPIClient


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session per request"""
    async with get_session_maker()() as session:
        yield session


def get_api_client() -> TidalAPIClient:
    """Tidal API client configured from settings"""
    return TidalAPIClient()
