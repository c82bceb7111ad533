"""
Engine assembly.

Builds the stores and services for the configured storage backend and holds
the instance the routers depend on.
"""

from dataclasses import dataclass
from typing import Optional

from swipematch.core.config import settings
from swipematch.core.interfaces import (
    ActorDirectory,
    MatchRepository,
    NotificationChannel,
    ReportRepository,
    SwipeRepository,
)
from swipematch.log.logging import logger
from swipematch.services.card_queue import CardQueueProvider
from swipematch.services.match_detector import MatchDetector
from swipematch.services.notification_dispatcher import (
    MatchNotificationDispatcher,
    build_notification_channel,
)
from swipematch.services.reconciler import MatchReconciler
from swipematch.services.swipe_service import SwipeService
from swipematch.services.swipe_store import SwipeRecordStore


@dataclass
class SwipeEngine:
    directory: ActorDirectory
    swipes: SwipeRepository
    matches: MatchRepository
    reports: ReportRepository
    store: SwipeRecordStore
    detector: MatchDetector
    dispatcher: MatchNotificationDispatcher
    reconciler: MatchReconciler
    cards: CardQueueProvider
    service: SwipeService


def _build_stores(backend: str):
    if backend == "postgres":
        from swipematch.repositories.postgres import (
            PostgresActorDirectory,
            PostgresMatchRepository,
            PostgresReportRepository,
            PostgresSwipeRepository,
        )

        return (
            PostgresActorDirectory(),
            PostgresSwipeRepository(),
            PostgresMatchRepository(),
            PostgresReportRepository(),
        )

    if backend == "memory":
        from swipematch.repositories.memory import (
            InMemoryActorDirectory,
            InMemoryMatchRepository,
            InMemoryReportRepository,
            InMemorySwipeRepository,
        )

        return (
            InMemoryActorDirectory(),
            InMemorySwipeRepository(),
            InMemoryMatchRepository(),
            InMemoryReportRepository(),
        )

    raise ValueError(f"Unknown storage backend: {backend}")


def build_engine(
    backend: Optional[str] = None,
    channel: Optional[NotificationChannel] = None,
) -> SwipeEngine:
    """
    Assemble an engine.

    Args:
        backend: "memory" or "postgres"; defaults to ``STORAGE_BACKEND``
        channel: Notification channel; defaults to the configured one
    """
    backend = backend or settings.storage_backend
    directory, swipes, matches, reports = _build_stores(backend)

    store = SwipeRecordStore(swipes, directory)
    detector = MatchDetector(swipes, matches)
    dispatcher = MatchNotificationDispatcher(channel or build_notification_channel())
    reconciler = MatchReconciler(
        swipes, detector, dispatcher, interval=settings.reconciliation_interval
    )
    cards = CardQueueProvider(directory, store, reports)
    service = SwipeService(
        store=store,
        detector=detector,
        dispatcher=dispatcher,
        reconciler=reconciler,
        directory=directory,
        matches=matches,
        reports=reports,
    )
    logger.info("Swipe engine assembled", backend=backend)
    return SwipeEngine(
        directory=directory,
        swipes=swipes,
        matches=matches,
        reports=reports,
        store=store,
        detector=detector,
        dispatcher=dispatcher,
        reconciler=reconciler,
        cards=cards,
        service=service,
    )


_engine: Optional[SwipeEngine] = None


def set_engine(engine: Optional[SwipeEngine]) -> None:
    global _engine
    _engine = engine


def get_engine() -> SwipeEngine:
    """FastAPI dependency returning the running engine, building it on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine
