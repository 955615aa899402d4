"""
Tests for the HTTP surface (health check and Telegram webhook).

TestClient is used without a context manager, so startup hooks
(which contact Telegram and Google) do not run.
"""

from fastapi.testclient import TestClient

from calendar_bot import main


def test_health():
    client = TestClient(main.app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "environment": "development", "version": "0.1.0"}


def test_root():
    client = TestClient(main.app)
    assert client.get("/").json()["service"] == "Calendar Assistant Bot"


def test_webhook_hands_off_update(monkeypatch):
    received = []

    async def fake_handle(update_data):
        received.append(update_data)

    monkeypatch.setattr(main, "handle_telegram_update", fake_handle)
    client = TestClient(main.app)

    response = client.post("/telegram/webhook", json={"update_id": 1})

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_webhook_rejects_bad_secret(monkeypatch):
    monkeypatch.setenv("TELEGRAM_WEBHOOK_SECRET", "s3cret")
    client = TestClient(main.app)

    response = client.post(
        "/telegram/webhook",
        json={"update_id": 1},
        headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
    )

    assert response.status_code == 403


def test_webhook_accepts_good_secret(monkeypatch):
    async def fake_handle(update_data):
        return None

    monkeypatch.setenv("TELEGRAM_WEBHOOK_SECRET", "s3cret")
    monkeypatch.setattr(main, "handle_telegram_update", fake_handle)
    client = TestClient(main.app)

    response = client.post(
        "/telegram/webhook",
        json={"update_id": 1},
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )

    assert response.status_code == 200
