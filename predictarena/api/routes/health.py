from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from predictarena import __version__
from predictarena.infrastructure.db.database import get_db

router = APIRouter()


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        await db.rollback()
        db_status = "error"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": __version__,
        "database": db_status,
    }
