import pytest
from httpx import ASGITransport, AsyncClient

from nightly_scores.api import create_app
from nightly_scores.config_loader import Settings
from nightly_scores.notify import MemoryNotifier
from nightly_scores.persistence import SnapshotStore
from nightly_scores.scrape import PUSH_SECRET_HEADER

SECRET = "a" * 40


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client(tmp_path, monkeypatch):
    monkeypatch.delenv("NIGHTLY_SCORES_DB_PATH", raising=False)
    settings = Settings(push_secret=SECRET, recipients="ops@example.test", test_email="qa@example.test")
    notifier = MemoryNotifier()
    app = create_app(settings, store=SnapshotStore(tmp_path / "db.sqlite"), notifier=notifier)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        async_client.app = app
        async_client.notifier = notifier
        yield async_client


def _payload() -> dict:
    return {
        "source": "scheduled-scrape",
        "generated_at_utc": "2025-01-15T07:00:00+00:00",
        "rows": [
            {
                "player": "Jaren Jackson Jr",
                "game_date": "2025-01-14",
                "game_url": "https://www.flashscore.com/match/abc/",
                "minutes": "31",
                "points": "24",
                "rebounds": 9,
                "assists": 5,
                "steals": 2,
                "turnovers": None,
            },
            {"player": "   ", "points": 10},
            {"game_date": "2025-01-14"},
            "not a row",
        ],
    }


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.anyio
async def test_push_requires_secret(client: AsyncClient):
    resp = await client.post("/push", json=_payload())
    assert resp.status_code == 401
    resp = await client.post("/push", json=_payload(), headers={PUSH_SECRET_HEADER: "wrong"})
    assert resp.status_code == 401
    assert client.notifier.sent == []


@pytest.mark.anyio
async def test_unauthenticated_push_is_rejected_before_parsing(client: AsyncClient):
    resp = await client.post("/push", content=b"{not json", headers={"content-type": "application/json"})
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_push_rejects_invalid_json(client: AsyncClient):
    resp = await client.post(
        "/push",
        content=b"[1, 2",
        headers={PUSH_SECRET_HEADER: SECRET, "content-type": "application/json"},
    )
    assert resp.status_code == 400
    resp = await client.post("/push", json=[1, 2], headers={PUSH_SECRET_HEADER: SECRET})
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_push_sanitizes_rows_and_sends_report(client: AsyncClient):
    resp = await client.post("/push", json=_payload(), headers={PUSH_SECRET_HEADER: SECRET})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["sent"] is True
    assert body["rows"] == 1

    message = client.notifier.sent[0]
    assert message.recipients == ["ops@example.test"]
    lines = message.attachment.decode("utf-8").splitlines()
    assert lines[1] == "Jaren Jackson Jr,2025-01-14,https://www.flashscore.com/match/abc/,31,24,9,5,2,0"

    last = await client.get("/last-push", headers={PUSH_SECRET_HEADER: SECRET})
    assert last.status_code == 200
    assert last.json()["generated_at_utc"] == "2025-01-15T07:00:00+00:00"
    assert last.json()["rows"][0]["points"] == 24


@pytest.mark.anyio
async def test_push_without_rows_is_stored_but_not_sent(client: AsyncClient):
    resp = await client.post(
        "/push",
        json={"generated_at_utc": "2025-01-15T07:00:00+00:00", "rows": []},
        headers={PUSH_SECRET_HEADER: SECRET},
    )
    assert resp.status_code == 200
    assert resp.json()["sent"] is False
    assert resp.json()["reason"] == "No rows"
    assert client.notifier.sent == []

    last = await client.get("/last-push", headers={PUSH_SECRET_HEADER: SECRET})
    assert last.json()["rows"] == []


@pytest.mark.anyio
async def test_last_push_missing_and_resend(client: AsyncClient):
    resp = await client.get("/last-push", headers={PUSH_SECRET_HEADER: SECRET})
    assert resp.status_code == 404

    await client.post("/push", json=_payload(), headers={PUSH_SECRET_HEADER: SECRET})
    resp = await client.post("/last-push/resend", headers={PUSH_SECRET_HEADER: SECRET})
    assert resp.status_code == 200
    assert resp.json()["rows"] == 1
    assert client.notifier.sent[-1].recipients == ["qa@example.test"]


@pytest.mark.anyio
async def test_push_with_out_of_range_number_is_coerced(client: AsyncClient):
    body = b'{"generated_at_utc": "2025-01-15T07:00:00+00:00", "rows": [{"player": "Big Number", "points": 1e400}]}'
    resp = await client.post(
        "/push",
        content=body,
        headers={PUSH_SECRET_HEADER: SECRET, "content-type": "application/json"},
    )
    assert resp.status_code == 200
    assert resp.json()["rows"] == 1

    last = await client.get("/last-push", headers={PUSH_SECRET_HEADER: SECRET})
    assert last.json()["rows"][0]["points"] == 0
