from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import time

from ....core.cache import cache
from ....core.database import get_db
from ....models.user import User
from ....proctoring import SessionManager
from ....utils.timezone import get_timezone_info
from ... import deps

router = APIRouter()


@router.get("/")
async def get_basic_health():
    """Get basic system health status - no authentication required"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "service": "examguard-api",
        "timezone": get_timezone_info(),
    }


@router.get("/system")
async def get_system_health(
    current_user: User = Depends(deps.get_current_active_superuser),
    db: Session = Depends(get_db),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    """Get database, cache and live-session status"""
    health_status = {
        "timestamp": time.time(),
        "overall_status": "healthy",
        "services": {},
        "alerts": []
    }

    try:
        start_time = time.time()
        db.execute(text("SELECT 1"))
        health_status["services"]["database"] = {
            "status": "healthy",
            "response_time": round((time.time() - start_time) * 1000, 2)
        }
    except Exception as e:
        health_status["services"]["database"] = {
            "status": "error",
            "error": str(e)
        }
        health_status["overall_status"] = "unhealthy"

    start_time = time.time()
    cache_healthy = await cache.ahealth_check()
    health_status["services"]["cache"] = {
        "status": "healthy" if cache_healthy else "unavailable",
        "response_time": round((time.time() - start_time) * 1000, 2)
    }
    if not cache_healthy:
        # Live snapshots are the only thing lost without Redis
        health_status["alerts"].append("Cache unavailable, live snapshots disabled")
        if health_status["overall_status"] == "healthy":
            health_status["overall_status"] = "degraded"

    health_status["services"]["proctoring"] = {
        "status": "healthy",
        "active_sessions": len(manager.active_sessions())
    }

    return health_status
