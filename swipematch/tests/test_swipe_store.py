from datetime import datetime, timedelta, UTC

import pytest

from swipematch.core.exceptions import InvalidSwipe
from swipematch.models.domain import ListingKind, SwipeDirection


@pytest.mark.asyncio
async def test_record_swipe_denormalizes_target(engine):
    swipe = await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE)

    assert swipe.viewer_id == "C1"
    assert swipe.principal_id == "C1"
    assert swipe.target_kind == ListingKind.JOB
    assert swipe.target_owner_id == "F1"
    assert await engine.store.get_swipe(swipe.id) == swipe


@pytest.mark.asyncio
async def test_second_swipe_replaces_first(engine):
    first = await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE)
    second = await engine.store.record_swipe("C1", "J1", SwipeDirection.DISLIKE)

    assert second.id == first.id
    stored = await engine.swipes.get("C1", "J1")
    assert stored.direction == SwipeDirection.DISLIKE
    assert len(await engine.store.list_swipes()) == 1


@pytest.mark.asyncio
async def test_older_submission_does_not_overwrite_newer(engine):
    now = datetime.now(UTC)
    await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE, timestamp=now)
    stored = await engine.store.record_swipe(
        "C1", "J1", SwipeDirection.DISLIKE, timestamp=now - timedelta(seconds=5)
    )

    assert stored.direction == SwipeDirection.LIKE
    assert (await engine.swipes.get("C1", "J1")).direction == SwipeDirection.LIKE


@pytest.mark.asyncio
async def test_equal_timestamp_later_arrival_wins(engine):
    now = datetime.now(UTC)
    await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE, timestamp=now)
    stored = await engine.store.record_swipe("C1", "J1", SwipeDirection.DISLIKE, timestamp=now)

    assert stored.direction == SwipeDirection.DISLIKE


@pytest.mark.asyncio
async def test_future_timestamp_does_not_pin_the_pair(engine):
    tomorrow = datetime.now(UTC) + timedelta(days=1)
    first = await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE, timestamp=tomorrow)
    assert first.swiped_at <= datetime.now(UTC)

    stored = await engine.store.record_swipe("C1", "J1", SwipeDirection.DISLIKE)

    assert stored.direction == SwipeDirection.DISLIKE
    assert (await engine.swipes.get("C1", "J1")).direction == SwipeDirection.DISLIKE
    assert len(await engine.store.list_swipes()) == 1


@pytest.mark.asyncio
async def test_naive_timestamp_is_treated_as_utc(engine):
    naive = datetime(2024, 5, 1, 12, 0, 0)
    stored = await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE, timestamp=naive)

    assert stored.swiped_at == naive.replace(tzinfo=UTC)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "viewer_id, target_id, reason",
    [
        ("ghost", "J1", "unknown_viewer"),
        ("C1", "missing", "unknown_target"),
        ("C1", "P1", "self_swipe"),
        ("F1", "J1", "self_swipe"),
        ("R1", "J2", "self_swipe"),
        ("C1", "P2", "wrong_kind"),
        ("F1", "J3", "wrong_kind"),
    ],
)
async def test_invalid_swipes_are_rejected(engine, viewer_id, target_id, reason):
    with pytest.raises(InvalidSwipe) as exc_info:
        await engine.store.record_swipe(viewer_id, target_id, SwipeDirection.LIKE)

    assert exc_info.value.reason == reason
    assert await engine.store.list_swipes() == []


@pytest.mark.asyncio
async def test_recording_swipes_never_creates_matches(engine):
    await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE)
    await engine.store.record_swipe("F1", "P1", SwipeDirection.LIKE)

    assert await engine.matches.list_by_candidate("C1") == []


@pytest.mark.asyncio
async def test_undo_last_swipe_clears_most_recent(engine):
    now = datetime.now(UTC)
    await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE, timestamp=now)
    await engine.store.record_swipe(
        "C1", "J3", SwipeDirection.DISLIKE, timestamp=now + timedelta(seconds=1)
    )

    undone = await engine.store.undo_last_swipe("C1")

    assert undone.target_id == "J3"
    assert await engine.swipes.get("C1", "J3") is None
    assert await engine.swipes.get("C1", "J1") is not None


@pytest.mark.asyncio
async def test_undo_without_swipes_returns_none(engine):
    assert await engine.store.undo_last_swipe("C2") is None


@pytest.mark.asyncio
async def test_erase_viewer_removes_only_their_swipes(engine):
    await engine.store.record_swipe("C1", "J1", SwipeDirection.LIKE)
    await engine.store.record_swipe("C1", "J3", SwipeDirection.LIKE)
    await engine.store.record_swipe("C2", "J1", SwipeDirection.LIKE)

    assert await engine.store.erase_viewer("C1") == 2
    remaining = await engine.store.list_swipes()
    assert [s.viewer_id for s in remaining] == ["C2"]
