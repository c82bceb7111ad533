import pytest

from swipematch.core.config import settings
from swipematch.core.exceptions import UnknownActor
from swipematch.models.domain import ListingKind, ReportReason, SwipeDirection
from swipematch.utils.ordering import card_sort_key


async def _drain(engine, actor_id, limit, session=None):
    """Page through one session and return the delivered listing ids."""
    page = await engine.cards.next_cards(actor_id, limit=limit, session=session)
    seen = [listing.id for listing in page.cards]
    while page.next_cursor is not None:
        page = await engine.cards.next_cards(
            actor_id, limit=limit, session=page.session, cursor=page.next_cursor
        )
        seen.extend(listing.id for listing in page.cards)
    return seen


@pytest.mark.asyncio
async def test_candidate_sees_only_jobs(engine):
    page = await engine.cards.next_cards("C1", limit=10)

    assert {listing.id for listing in page.cards} == {"J1", "J2", "J3"}
    assert all(listing.kind == ListingKind.JOB for listing in page.cards)
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_company_sees_profiles_but_not_own(engine):
    page = await engine.cards.next_cards("F1", limit=10)

    assert {listing.id for listing in page.cards} == {"P1", "P2"}


@pytest.mark.asyncio
async def test_swiped_listings_are_excluded(engine):
    await engine.store.record_swipe("C1", "J1", SwipeDirection.DISLIKE)

    page = await engine.cards.next_cards("C1", limit=10)

    assert {listing.id for listing in page.cards} == {"J2", "J3"}


@pytest.mark.asyncio
async def test_delegate_shares_company_swipes(engine):
    await engine.store.record_swipe("F1", "P1", SwipeDirection.LIKE)

    page = await engine.cards.next_cards("R1", limit=10)

    assert [listing.id for listing in page.cards] == ["P2"]


@pytest.mark.asyncio
async def test_reported_listing_is_hidden_from_reporter_only(engine):
    await engine.service.report_listing("C1", "J3", ReportReason.SPAM)

    own = await engine.cards.next_cards("C1", limit=10)
    other = await engine.cards.next_cards("C2", limit=10)

    assert "J3" not in {listing.id for listing in own.cards}
    assert "J3" in {listing.id for listing in other.cards}


@pytest.mark.asyncio
async def test_pagination_delivers_each_listing_once(engine):
    seen = await _drain(engine, "C1", limit=1)

    assert sorted(seen) == ["J1", "J2", "J3"]


@pytest.mark.asyncio
async def test_session_order_is_stable(engine):
    first = await engine.cards.next_cards("C1", limit=10, session="abc123")
    second = await engine.cards.next_cards("C1", limit=10, session="abc123")

    expected = sorted(["J1", "J2", "J3"], key=lambda lid: card_sort_key("abc123", lid))
    assert [listing.id for listing in first.cards] == expected
    assert [listing.id for listing in second.cards] == expected


@pytest.mark.asyncio
async def test_listing_swiped_between_pages_drops_out(engine):
    session = "fixedseed"
    order = sorted(["J1", "J2", "J3"], key=lambda lid: card_sort_key(session, lid))

    page = await engine.cards.next_cards("C1", limit=1, session=session)
    assert [listing.id for listing in page.cards] == order[:1]

    await engine.store.record_swipe("C1", order[1], SwipeDirection.LIKE)
    page = await engine.cards.next_cards("C1", limit=1, session=session, cursor=page.next_cursor)

    assert [listing.id for listing in page.cards] == [order[2]]


@pytest.mark.asyncio
async def test_new_session_gets_a_seed(engine):
    page = await engine.cards.next_cards("C1")

    assert page.session
    assert len(page.cards) == 3


@pytest.mark.asyncio
async def test_limit_is_clamped(engine, monkeypatch):
    monkeypatch.setattr(settings, "cards_max_limit", 2)

    page = await engine.cards.next_cards("C1", limit=100)

    assert len(page.cards) == 2
    assert page.next_cursor is not None


@pytest.mark.asyncio
async def test_unknown_actor_raises(engine):
    with pytest.raises(UnknownActor):
        await engine.cards.next_cards("ghost")
