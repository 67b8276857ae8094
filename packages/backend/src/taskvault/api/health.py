"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
database is reachable. Never fails itself: a broken database shows up as
"degraded" in the body.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault import __version__
from taskvault.db.engine import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and database connectivity."""
    checks = {"version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e.__class__.__name__}"

    healthy = checks["database"] == "ok"
    return {
        "success": True,
        "message": "Server is running" if healthy else "Server is running (degraded)",
        "data": checks,
    }
