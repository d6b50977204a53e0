from fastapi import APIRouter, Depends
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from procedure_tracker.core.config import settings
from procedure_tracker.core.database import get_db
from procedure_tracker.models import Acknowledgment, Procedure, Profile

router = APIRouter()

SERVICE_NAME = "procedure-tracker-api"


@router.get("/health")
async def health_check():
    """Liveness only; no API key and no database access."""
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/health/detailed")
async def detailed_health_check(db: AsyncSession = Depends(get_db)):
    """Database reachability plus row counts of the three stores."""
    report = {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {},
    }

    try:
        await db.execute(text("SELECT 1"))
        report["checks"]["database"] = {"status": "healthy"}
    except Exception as e:
        report["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        report["status"] = "degraded"
        return report

    try:
        counts = {}
        for name, model in (("profiles", Profile), ("procedures", Procedure), ("acknowledgments", Acknowledgment)):
            counts[name] = (await db.execute(select(func.count(model.id)))).scalar() or 0
        report["checks"]["tables"] = {"status": "healthy", "rows": counts}
    except Exception as e:
        # Reachable but schema missing, e.g. before init_db or migrations ran
        report["checks"]["tables"] = {"status": "unhealthy", "error": str(e)}
        report["status"] = "degraded"

    return report
