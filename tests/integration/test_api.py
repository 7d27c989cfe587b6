"""Tests for the HTTP API."""

import pytest

from webhook_dispatcher import api
from webhook_dispatcher.dispatcher import WebhookDispatcher


@pytest.fixture
def dispatcher(session, config):
    dispatcher = WebhookDispatcher(config, session=session)
    yield dispatcher
    dispatcher.shutdown(timeout=1)


@pytest.fixture
def client(dispatcher):
    app = api.init_api(dispatcher)
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
    api.dispatcher = None


def register(client, **body):
    body.setdefault("url", "https://example.com/hook")
    body.setdefault("events", ["job.created"])
    return client.post("/api/webhooks", json=body)


def test_register_webhook(client):
    response = register(client, secret="s")

    assert response.status_code == 201
    webhook = response.get_json()["webhook"]
    assert webhook["url"] == "https://example.com/hook"
    assert webhook["events"] == ["job.created"]
    assert webhook["enabled"] is True
    assert webhook["has_secret"] is True
    assert "secret" not in webhook


@pytest.mark.parametrize(
    "body",
    [
        {"events": ["e"]},
        {"url": "https://example.com"},
        {"url": "https://example.com", "events": "e"},
        {"url": "", "events": ["e"]},
        {"url": "https://example.com", "events": []},
    ],
)
def test_register_rejects_bad_input(client, body):
    response = client.post("/api/webhooks", json=body)

    assert response.status_code == 400
    assert "error" in response.get_json()


def test_list_get_patch_delete(client):
    webhook_id = register(client).get_json()["webhook"]["id"]

    listed = client.get("/api/webhooks").get_json()["webhooks"]
    assert [w["id"] for w in listed] == [webhook_id]

    assert client.get(f"/api/webhooks/{webhook_id}").get_json()["webhook"]["id"] == webhook_id

    patched = client.patch(f"/api/webhooks/{webhook_id}", json={"enabled": False})
    assert patched.status_code == 200
    assert patched.get_json()["webhook"]["enabled"] is False

    deleted = client.delete(f"/api/webhooks/{webhook_id}")
    assert deleted.status_code == 200
    assert deleted.get_json() == {"success": True, "id": webhook_id}


def test_unknown_webhook_returns_404(client):
    assert client.get("/api/webhooks/missing").status_code == 404
    assert client.delete("/api/webhooks/missing").status_code == 404
    assert client.patch("/api/webhooks/missing", json={"enabled": True}).status_code == 404


def test_trigger_event(client, dispatcher):
    register(client, events=["job.created"])
    register(client, events=["job.done"])

    response = client.post("/api/events/job.created", json={"jobId": "42"})

    assert response.status_code == 202
    assert response.get_json() == {"enqueued": 1}
    assert len(dispatcher.queue) == 1
    assert dispatcher.queue.peek().payload == b'{"jobId":"42"}'


def test_trigger_requires_json(client):
    response = client.post("/api/events/job.created", data="plain", content_type="text/plain")
    assert response.status_code == 400


def test_health(client):
    body = client.get("/health").get_json()

    assert body["status"] == "ok"
    assert body["queue_size"] == 0
    assert body["workers_running"] is False
