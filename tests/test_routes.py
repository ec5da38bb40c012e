from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


@pytest.fixture
def wired(repo, dispatcher):
    with patch("family_ledger.api.routes.repo", repo), \
         patch("family_ledger.api.routes.dispatcher", dispatcher):
        yield repo


def test_classify_returns_tagged_command():
    response = client.post("/classify", json={"message": "delete #3"})

    assert response.status_code == 200
    command = response.json()["command"]
    assert command["kind"] == "delete"
    assert command["index"] == 3
    assert command["category"] is None


def test_classify_unknown():
    response = client.post("/classify", json={"message": "   "})
    assert response.json()["command"] == {"kind": "unknown"}


def test_classify_requires_message():
    response = client.post("/classify", json={})
    assert response.status_code == 422


def test_message_round_trip(wired):
    response = client.post(
        "/messages", json={"user_id": "u1", "message": "50 lunch noodles"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["text"].startswith("Recorded!")
    assert "help" in body["quick_replies"]

    listed = client.get("/expenses", params={"user_id": "u1", "period": "today"})
    assert [e["note"] for e in listed.json()] == ["noodles"]


def test_expenses_rejects_unknown_period(wired):
    response = client.get("/expenses", params={"user_id": "u1", "period": "year"})
    assert response.status_code == 422


def test_get_and_delete_expense(wired):
    expense = wired.create_expense("u1", 40, "snack")

    assert client.get(f"/expenses/{expense.id}").json()["amount"] == 40
    assert client.delete(f"/expenses/{expense.id}").status_code == 200
    assert client.get(f"/expenses/{expense.id}").status_code == 404
    assert client.delete(f"/expenses/{expense.id}").status_code == 404


def test_health(wired):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"] == "ok"


def test_health_degraded_when_ledger_fails(wired):
    with patch.object(wired, "ping", side_effect=OSError("disk gone")):
        body = client.get("/health").json()
    assert body["status"] == "degraded"


def test_lifespan_without_token_skips_bot_and_closes_ledger():
    ledger = MagicMock()
    with patch("main.settings.telegram_bot_token", ""), \
         patch("family_ledger.deps.repo", ledger):
        with TestClient(app) as running:
            assert running.get("/").status_code == 200
            assert getattr(app.state, "bot", None) is None
            ledger.close.assert_not_called()

    ledger.close.assert_called_once()


def test_lifespan_starts_and_stops_polling():
    bot_app = MagicMock()
    bot_app.initialize = AsyncMock()
    bot_app.start = AsyncMock()
    bot_app.stop = AsyncMock()
    bot_app.shutdown = AsyncMock()
    bot_app.updater.start_polling = AsyncMock()
    bot_app.updater.stop = AsyncMock()

    with patch("main.settings.telegram_bot_token", "123:abc"), \
         patch("family_ledger.bot.handler.build_bot_app", return_value=bot_app), \
         patch("family_ledger.deps.repo", MagicMock()):
        with TestClient(app):
            bot_app.updater.start_polling.assert_awaited_once_with(drop_pending_updates=True)

    bot_app.updater.stop.assert_awaited_once()
    bot_app.shutdown.assert_awaited_once()
    assert app.state.bot is None
