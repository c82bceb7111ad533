import pytest
from fastapi.testclient import TestClient

from swipematch.core.config import settings
from swipematch.main import app
from swipematch.services.engine import build_engine, get_engine
from swipematch.tests.helpers import RecordingChannel

ACTOR_PAYLOADS = [
    {"id": "C1", "role": "candidate"},
    {"id": "C2", "role": "candidate"},
    {"id": "F1", "role": "company"},
    {"id": "F2", "role": "company"},
    {"id": "R1", "role": "company", "actsFor": "F1"},
]


def _job(listing_id, owner_id, company_name):
    return {
        "id": listing_id,
        "ownerId": owner_id,
        "kind": "job",
        "title": f"Job {listing_id}",
        "attributes": {
            "companyName": company_name,
            "location": "Berlin",
            "employmentType": "full_time",
            "requiredSkills": ["Python"],
        },
    }


def _profile(listing_id, owner_id, name):
    return {
        "id": listing_id,
        "ownerId": owner_id,
        "kind": "candidate_profile",
        "title": name,
        "attributes": {"name": name, "location": "Hamburg", "skills": ["SQL"]},
    }


LISTING_PAYLOADS = [
    _job("J1", "F1", "Acme"),
    _job("J2", "F1", "Acme"),
    _job("J3", "F2", "Globex"),
    _profile("P1", "C1", "Candidate One"),
    _profile("P2", "C2", "Candidate Two"),
]


@pytest.fixture
def internal_headers():
    return {"X-API-Key": settings.internal_api_key}


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def client(channel, internal_headers):
    engine = build_engine(backend="memory", channel=channel)
    app.dependency_overrides[get_engine] = lambda: engine
    client = TestClient(app)

    for payload in ACTOR_PAYLOADS:
        assert client.put("/internal/actors", json=payload, headers=internal_headers).status_code == 200
    for payload in LISTING_PAYLOADS:
        assert client.post("/internal/listings", json=payload, headers=internal_headers).status_code == 201

    yield client
    app.dependency_overrides.clear()


def _swipe(client, viewer_id, target_id, direction="like"):
    return client.post(
        "/swipes",
        json={"viewerId": viewer_id, "targetId": target_id, "direction": direction},
    )


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Swipe Match Service is running!"}


def test_healthcheck(client):
    response = client.get("/healthcheck")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["checks"]["pending_reconciliation"] == 0


def test_internal_routes_require_api_key(client):
    missing = client.put("/internal/actors", json={"id": "X", "role": "candidate"})
    wrong = client.put(
        "/internal/actors",
        json={"id": "X", "role": "candidate"},
        headers={"X-API-Key": "not-the-key"},
    )

    assert missing.status_code == 401
    assert wrong.status_code == 403


def test_mutual_like_reports_match(client, channel):
    first = _swipe(client, "C1", "J1")
    assert first.status_code == 200
    assert first.json()["matchCreated"] is False
    assert first.json()["swipeId"]

    second = _swipe(client, "F1", "P1")
    body = second.json()
    assert body["matchCreated"] is True
    assert body["matchId"]

    matches = client.get("/matches", params={"actorId": "C1"}).json()
    assert matches["count"] == 1
    assert matches["items"][0]["companyId"] == "F1"
    assert matches["items"][0]["id"] == body["matchId"]
    assert len(channel.events) == 2


def test_delegate_sees_company_matches(client):
    _swipe(client, "C1", "J2")
    _swipe(client, "R1", "P1")

    matches = client.get("/matches", params={"actorId": "R1"}).json()

    assert matches["count"] == 1
    assert matches["items"][0]["candidateId"] == "C1"


def test_self_swipe_is_rejected(client):
    response = _swipe(client, "C1", "P1")

    assert response.status_code == 422
    assert response.json()["detail"]["reason"] == "self_swipe"


def test_unknown_direction_is_rejected(client):
    response = _swipe(client, "C1", "J1", direction="maybe")

    assert response.status_code == 422


def test_cards_pagination(client):
    first = client.get("/cards", params={"actorId": "C1", "limit": 2})
    assert first.status_code == 200
    page = first.json()
    assert len(page["cards"]) == 2
    assert page["nextCursor"] is not None
    assert "companyName" in page["cards"][0]["attributes"]

    second = client.get(
        "/cards",
        params={
            "actorId": "C1",
            "limit": 2,
            "session": page["session"],
            "cursor": page["nextCursor"],
        },
    ).json()

    delivered = [card["id"] for card in page["cards"] + second["cards"]]
    assert sorted(delivered) == ["J1", "J2", "J3"]
    assert second["nextCursor"] is None


def test_cards_cursor_requires_session(client):
    response = client.get("/cards", params={"actorId": "C1", "cursor": "a" * 32})

    assert response.status_code == 400


def test_cards_unknown_actor(client):
    response = client.get("/cards", params={"actorId": "ghost"})

    assert response.status_code == 404


def test_undo_last_swipe(client):
    _swipe(client, "C1", "J1", direction="dislike")

    undone = client.delete("/swipes/last", params={"viewerId": "C1"}).json()
    again = client.delete("/swipes/last", params={"viewerId": "C1"}).json()

    assert undone["undone"] is True
    assert undone["swipe"]["targetId"] == "J1"
    assert again == {"undone": False, "swipe": None}


def test_report_listing(client):
    response = client.post(
        "/reports", json={"reporterId": "C1", "listingId": "J3", "reason": "spam"}
    )
    assert response.status_code == 201
    assert response.json()["reason"] == "spam"

    cards = client.get("/cards", params={"actorId": "C1"}).json()["cards"]
    assert "J3" not in [card["id"] for card in cards]


def test_report_unknown_listing(client):
    response = client.post(
        "/reports", json={"reporterId": "C1", "listingId": "missing", "reason": "fake"}
    )

    assert response.status_code == 404


def test_erase_actor(client, internal_headers):
    _swipe(client, "C1", "J1")
    client.post("/reports", json={"reporterId": "C1", "listingId": "J3", "reason": "other"})

    response = client.delete("/internal/actors/C1", headers=internal_headers)

    assert response.status_code == 200
    assert response.json() == {"actorId": "C1", "swipes": 1, "reports": 1}


def test_recompute_matches(client, internal_headers):
    _swipe(client, "C1", "J1")
    _swipe(client, "F1", "P1")

    response = client.post("/internal/matches/recompute", headers=internal_headers)

    assert response.status_code == 200
    assert response.json() == {"created": 0, "matchIds": []}


def test_listing_attributes_are_validated(client, internal_headers):
    payload = _job("J9", "F1", "Acme")
    del payload["attributes"]["companyName"]

    response = client.post("/internal/listings", json=payload, headers=internal_headers)

    assert response.status_code == 422


def test_candidate_cannot_own_job(client, internal_headers):
    response = client.post(
        "/internal/listings", json=_job("J9", "C1", "Acme"), headers=internal_headers
    )

    assert response.status_code == 422


def test_delegate_must_act_for_company(client, internal_headers):
    response = client.put(
        "/internal/actors",
        json={"id": "R2", "role": "company", "actsFor": "C1"},
        headers=internal_headers,
    )

    assert response.status_code == 422


def test_delegate_cannot_act_for_another_delegate(client, internal_headers):
    response = client.put(
        "/internal/actors",
        json={"id": "R2", "role": "company", "actsFor": "R1"},
        headers=internal_headers,
    )

    assert response.status_code == 422
    assert client.get("/cards", params={"actorId": "R2"}).status_code == 404


def test_actor_with_swipes_keeps_its_principal(client, internal_headers):
    assert _swipe(client, "R1", "P1").status_code == 200

    response = client.put(
        "/internal/actors",
        json={"id": "R1", "role": "company", "actsFor": "F2"},
        headers=internal_headers,
    )

    assert response.status_code == 409
    assert _swipe(client, "C1", "J1").json()["matchCreated"] is True


def test_actor_without_swipes_can_be_reassigned(client, internal_headers):
    response = client.put(
        "/internal/actors",
        json={"id": "R1", "role": "company", "actsFor": "F2"},
        headers=internal_headers,
    )

    assert response.status_code == 200
    assert response.json()["actsFor"] == "F2"
