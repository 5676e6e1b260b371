"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from cavok import __version__
from cavok.database import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)) -> dict:
    """Report liveness and database reachability."""
    await db.execute(text("SELECT 1"))
    return {"status": "ok", "version": __version__}
