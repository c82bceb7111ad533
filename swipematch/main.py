from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI

from swipematch.core.config import settings
from swipematch.log.logging import logger
from swipematch.metrics import init_app as init_metrics
from swipematch.routers.cards_router import router as cards_router
from swipematch.routers.healthcheck_router import router as healthcheck_router
from swipematch.routers.internal_router import router as internal_router
from swipematch.routers.matches_router import router as matches_router
from swipematch.routers.swipes_router import router as swipes_router
from swipematch.services.engine import build_engine, set_engine
from swipematch.utils.db_utils import close_all_connection_pools, get_connection_pool


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown.

    Args:
        app: FastAPI application instance
    """
    try:
        logger.info("Starting application", environment=settings.environment)

        if settings.storage_backend == "postgres":
            logger.info("Initializing database connection pools")
            await get_connection_pool("default")
            logger.info("Database connection pools initialized")

        engine = build_engine()
        set_engine(engine)

        if settings.reconciliation_enabled:
            await engine.reconciler.start()
            logger.info("Match reconciler started")

        logger.info("Application started successfully")

        yield

        logger.info("Shutting down application")

        await engine.reconciler.stop()
        await engine.dispatcher.close()
        set_engine(None)

        logger.info("Closing database connection pools")
        await close_all_connection_pools()
        logger.info("Database connection pools closed")

        logger.info("Application shut down successfully")

    except Exception as e:
        logger.exception("Application lifecycle error: {error}", error=str(e))
        raise


app = FastAPI(
    lifespan=lifespan,
    title="Swipe Match API",
    description="Swipe recording, card queues and mutual-interest matching for candidates and companies.",
    version="1.0.0",
    debug=settings.debug,
)

init_metrics(app)

app.include_router(swipes_router)
app.include_router(cards_router)
app.include_router(matches_router)
app.include_router(internal_router)
app.include_router(healthcheck_router)


@app.get("/")
async def root() -> Dict[str, str]:
    """
    Health check endpoint.

    Returns:
        Dict containing the service status message
    """
    return {"message": "Swipe Match Service is running!"}
