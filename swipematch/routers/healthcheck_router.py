from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from swipematch.core.config import settings
from swipematch.log.logging import logger
from swipematch.services.engine import SwipeEngine, get_engine
from swipematch.utils.db_utils import get_db_cursor

router = APIRouter(tags=["healthcheck"])


async def _check_postgres() -> Dict[str, Any]:
    async with get_db_cursor() as cursor:
        await cursor.execute("SELECT 1 AS ok")
        row = await cursor.fetchone()
    return {"status": "healthy" if row and row["ok"] == 1 else "unhealthy"}


@router.get(
    "/healthcheck",
    description="Health check endpoint",
    responses={
        200: {"description": "Health check passed"},
        500: {"description": "Health check failed"},
    },
)
async def health_check(withlog: bool = False, engine: SwipeEngine = Depends(get_engine)):
    if withlog:
        logger.debug("healthcheck debug log")
        logger.info("healthcheck info log")
        logger.warning("healthcheck warning log")
        logger.error("healthcheck error log")

    checks: Dict[str, Any] = {"storage_backend": settings.storage_backend}
    if settings.storage_backend == "postgres":
        try:
            checks["postgres"] = await _check_postgres()
        except Exception as e:
            logger.error("Postgres health check failed", error=str(e))
            raise HTTPException(status_code=500, detail=f"postgres: {str(e)}")

    checks["pending_reconciliation"] = len(await engine.reconciler.pending())
    return {"status": "healthy", "service": settings.service_name, "checks": checks}
