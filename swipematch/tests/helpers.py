"""
Shared test doubles and seed data.
"""

import asyncio
from typing import Any, Dict, List

from swipematch.core.exceptions import NotificationDeliveryFailure
from swipematch.core.interfaces import NotificationChannel
from swipematch.models.domain import Actor, ActorRole, Listing, ListingKind


class RecordingChannel(NotificationChannel):
    """Keeps published events in memory; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.events: List[Dict[str, Any]] = []
        self.fail = fail
        self.closed = False

    async def publish(self, event: Dict[str, Any]) -> None:
        if self.fail:
            raise NotificationDeliveryFailure("channel down")
        self.events.append(event)

    async def close(self) -> None:
        self.closed = True


class StalledChannel(NotificationChannel):
    """Publish never returns, like a broker that accepts the connection and goes quiet."""

    def __init__(self):
        self.attempts = 0

    async def publish(self, event: Dict[str, Any]) -> None:
        self.attempts += 1
        await asyncio.sleep(3600)

    async def close(self) -> None:
        pass


ACTORS = [
    Actor(id="C1", role=ActorRole.CANDIDATE),
    Actor(id="C2", role=ActorRole.CANDIDATE),
    Actor(id="F1", role=ActorRole.COMPANY),
    Actor(id="F2", role=ActorRole.COMPANY),
    Actor(id="R1", role=ActorRole.COMPANY, acts_for="F1"),
]

LISTINGS = [
    Listing(id="J1", owner_id="F1", kind=ListingKind.JOB, title="Backend Engineer"),
    Listing(id="J2", owner_id="F1", kind=ListingKind.JOB, title="Data Engineer"),
    Listing(id="J3", owner_id="F2", kind=ListingKind.JOB, title="Store Manager"),
    Listing(id="P1", owner_id="C1", kind=ListingKind.CANDIDATE_PROFILE, title="Candidate One"),
    Listing(id="P2", owner_id="C2", kind=ListingKind.CANDIDATE_PROFILE, title="Candidate Two"),
]


async def seed_directory(engine) -> None:
    for actor in ACTORS:
        await engine.directory.add_actor(actor)
    for listing in LISTINGS:
        await engine.directory.add_listing(listing)
