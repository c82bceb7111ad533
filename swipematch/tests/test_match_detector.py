import asyncio
from datetime import datetime, timedelta, UTC
from unittest.mock import AsyncMock

import pytest

from swipematch.core.config import settings
from swipematch.core.exceptions import ConcurrentMatchConflict, PersistenceFailure
from swipematch.models.domain import ListingKind, Match, SwipeDirection, SwipeRecord
from swipematch.services.engine import build_engine
from swipematch.services.match_detector import MatchDetector
from swipematch.tests.helpers import RecordingChannel, StalledChannel, seed_directory


@pytest.mark.asyncio
async def test_mutual_like_creates_single_match_and_notifies_once(engine, channel):
    first = await engine.service.submit_swipe("C1", "J1", SwipeDirection.LIKE)
    assert first.match_created is False

    second = await engine.service.submit_swipe("F1", "P1", SwipeDirection.LIKE)
    assert second.match_created is True
    assert second.match.candidate_id == "C1"
    assert second.match.company_id == "F1"

    # Liking another job of the same company does not create a second match
    third = await engine.service.submit_swipe("C1", "J2", SwipeDirection.LIKE)
    assert third.match_created is False

    assert len(await engine.matches.list_by_candidate("C1")) == 1
    assert len(channel.events) == 2
    assert {e["recipient_id"] for e in channel.events} == {"C1", "F1"}


@pytest.mark.asyncio
async def test_dislike_is_never_evaluated(engine):
    engine.detector.evaluate_for_match = AsyncMock()

    outcome = await engine.service.submit_swipe("C1", "J1", SwipeDirection.DISLIKE)

    assert outcome.match_created is False
    engine.detector.evaluate_for_match.assert_not_called()


@pytest.mark.asyncio
async def test_superlike_counts_as_like(engine):
    await engine.service.submit_swipe("C1", "J3", SwipeDirection.SUPERLIKE)
    outcome = await engine.service.submit_swipe("F2", "P1", SwipeDirection.LIKE)

    assert outcome.match_created is True
    assert outcome.match.company_id == "F2"


@pytest.mark.asyncio
async def test_delegate_like_matches_for_company(engine):
    await engine.service.submit_swipe("C1", "J1", SwipeDirection.LIKE)
    outcome = await engine.service.submit_swipe("R1", "P1", SwipeDirection.LIKE)

    assert outcome.match_created is True
    assert outcome.match.company_id == "F1"
    assert [m.id for m in await engine.service.matches_for("R1")] == [outcome.match.id]


@pytest.mark.asyncio
async def test_withdrawn_like_does_not_match(engine):
    now = datetime.now(UTC)
    await engine.service.submit_swipe("C1", "J1", SwipeDirection.LIKE, timestamp=now)
    await engine.service.submit_swipe(
        "C1", "J1", SwipeDirection.DISLIKE, timestamp=now + timedelta(seconds=1)
    )

    outcome = await engine.service.submit_swipe("F1", "P1", SwipeDirection.LIKE)

    assert outcome.match_created is False
    assert await engine.matches.get_for_pair("C1", "F1") is None


@pytest.mark.asyncio
async def test_concurrent_mutual_likes_create_one_match(engine, channel):
    outcomes = await asyncio.gather(
        engine.service.submit_swipe("C1", "J1", SwipeDirection.LIKE),
        engine.service.submit_swipe("F1", "P1", SwipeDirection.LIKE),
    )

    assert sum(1 for o in outcomes if o.match_created) == 1
    assert len(await engine.matches.list_by_company("F1")) == 1
    assert len(channel.events) == 2


@pytest.mark.asyncio
async def test_evaluation_failure_keeps_swipe_and_queues_it(engine, channel):
    engine.detector.evaluate_for_match = AsyncMock(side_effect=PersistenceFailure("db down"))

    outcome = await engine.service.submit_swipe("C1", "J1", SwipeDirection.LIKE)

    assert outcome.match_created is False
    assert await engine.swipes.get("C1", "J1") is not None
    assert await engine.reconciler.pending() == {outcome.swipe.id}
    assert channel.events == []


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_swipe(engine):
    engine.dispatcher.channel = RecordingChannel(fail=True)

    await engine.service.submit_swipe("C1", "J1", SwipeDirection.LIKE)
    outcome = await engine.service.submit_swipe("F1", "P1", SwipeDirection.LIKE)

    assert outcome.match_created is True
    assert await engine.matches.get_for_pair("C1", "F1") is not None


@pytest.mark.asyncio
async def test_stalled_notification_does_not_block_swipe(engine):
    engine.dispatcher.channel = StalledChannel()
    engine.dispatcher.timeout = 0.05

    await engine.service.submit_swipe("C1", "J1", SwipeDirection.LIKE)
    outcome = await asyncio.wait_for(
        engine.service.submit_swipe("F1", "P1", SwipeDirection.LIKE), timeout=2
    )

    assert outcome.match_created is True
    assert await engine.matches.get_for_pair("C1", "F1") is not None


async def _mutual_swipe_log(engine):
    await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE)
    await engine.store.record_swipe("F1", "P1", SwipeDirection.LIKE)
    await engine.store.record_swipe("C2", "J3", SwipeDirection.LIKE)
    await engine.store.record_swipe("F2", "P2", SwipeDirection.SUPERLIKE)
    await engine.store.record_swipe("F2", "P1", SwipeDirection.LIKE)
    return await engine.store.list_swipes()


@pytest.mark.asyncio
async def test_recompute_is_idempotent(engine):
    swipes = await _mutual_swipe_log(engine)

    created = await engine.detector.recompute_matches(swipes)
    again = await engine.detector.recompute_matches(swipes)

    assert {m.pair_key for m in created} == {("C1", "F1"), ("C2", "F2")}
    assert again == []


@pytest.mark.asyncio
async def test_recompute_ignores_order_and_duplicates(engine):
    swipes = await _mutual_swipe_log(engine)

    other = build_engine(backend="memory", channel=RecordingChannel())
    await seed_directory(other)
    for swipe in swipes:
        await other.swipes.upsert(swipe)

    replayed = list(reversed(swipes)) + swipes
    created = await other.detector.recompute_matches(replayed)

    assert sorted(m.pair_key for m in created) == [("C1", "F1"), ("C2", "F2")]


def _swipe(**overrides) -> SwipeRecord:
    values = dict(
        id="s1",
        viewer_id="C1",
        principal_id="C1",
        target_id="J1",
        target_kind=ListingKind.JOB,
        target_owner_id="F1",
        direction=SwipeDirection.LIKE,
        swiped_at=datetime.now(UTC),
    )
    values.update(overrides)
    return SwipeRecord(**values)


@pytest.mark.asyncio
async def test_reciprocal_lookup_targets_counterpart_listings():
    swipes = AsyncMock()
    swipes.has_positive_swipe.return_value = False
    detector = MatchDetector(swipes, AsyncMock(), conflict_retries=1)

    await detector.has_reciprocal_like(_swipe())

    swipes.has_positive_swipe.assert_awaited_once_with(
        principal_id="F1",
        target_owner_id="C1",
        target_kind=ListingKind.CANDIDATE_PROFILE,
    )


@pytest.mark.asyncio
async def test_conflicting_insert_is_retried():
    swipes = AsyncMock()
    swipes.has_positive_swipe.return_value = True
    matches = AsyncMock()
    matches.get_for_pair.return_value = None
    winner = Match(id="m1", candidate_id="C1", company_id="F1", created_at=datetime.now(UTC))
    matches.create_if_absent.side_effect = [ConcurrentMatchConflict("not visible"), (winner, True)]

    detector = MatchDetector(swipes, matches, conflict_retries=3)
    match = await detector.evaluate_for_match(_swipe())

    assert match == winner
    assert matches.create_if_absent.await_count == 2


@pytest.mark.asyncio
async def test_conflict_retries_are_bounded():
    swipes = AsyncMock()
    swipes.has_positive_swipe.return_value = True
    matches = AsyncMock()
    matches.get_for_pair.return_value = None
    matches.create_if_absent.side_effect = ConcurrentMatchConflict("not visible")

    detector = MatchDetector(swipes, matches, conflict_retries=2)
    with pytest.raises(ConcurrentMatchConflict):
        await detector.evaluate_for_match(_swipe())

    assert matches.create_if_absent.await_count == 2


@pytest.mark.asyncio
async def test_lost_race_returns_none():
    swipes = AsyncMock()
    swipes.has_positive_swipe.return_value = True
    matches = AsyncMock()
    matches.get_for_pair.return_value = None
    existing = Match(id="m0", candidate_id="C1", company_id="F1", created_at=datetime.now(UTC))
    matches.create_if_absent.return_value = (existing, False)

    detector = MatchDetector(swipes, matches, conflict_retries=1)

    assert await detector.evaluate_for_match(_swipe()) is None


def test_conflict_retries_default_and_explicit_values(monkeypatch):
    monkeypatch.setattr(settings, "match_conflict_retries", 4)

    assert MatchDetector(AsyncMock(), AsyncMock()).conflict_retries == 4
    assert MatchDetector(AsyncMock(), AsyncMock(), conflict_retries=0).conflict_retries == 0
