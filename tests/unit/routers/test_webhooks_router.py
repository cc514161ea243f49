"""
Tests for POST /api/clerk - Svix-signed identity events
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from svix.webhooks import Webhook, WebhookVerificationError

from synthoria.core.config import Settings, get_settings
from synthoria.core.exceptions import BadRequestError
from synthoria.routers.webhooks import verify_event

SECRET = "whsec_dGVzdC13ZWJob29rLXNlY3JldA=="


def signed(event: dict, secret: str = SECRET):
    body = json.dumps(event)
    msg_id = "msg_2abc"
    timestamp = datetime.now(tz=timezone.utc)
    signature = Webhook(secret).sign(msg_id, timestamp, body)
    headers = {
        "svix-id": msg_id,
        "svix-timestamp": str(int(timestamp.timestamp())),
        "svix-signature": signature,
        "content-type": "application/json",
    }
    return body, headers


@pytest.fixture
def users():
    service = Mock()
    service.upsert = AsyncMock()
    service.delete = AsyncMock()
    return service


@pytest.fixture
def client(make_client, users):
    return make_client(user_service=users, user_id=None)


@pytest.mark.unit
class TestIdentityWebhook:

    @pytest.mark.parametrize("event_type", ["user.created", "user.updated"])
    def test_upserts_user(self, client, users, event_type):
        data = {"id": "user_2abc", "first_name": "Ada", "last_name": "Lovelace"}
        body, headers = signed({"type": event_type, "data": data})

        response = client.post("/api/clerk", content=body, headers=headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        users.upsert.assert_awaited_once_with(data)

    def test_deletes_user(self, client, users):
        body, headers = signed({"type": "user.deleted", "data": {"id": "user_2abc", "deleted": True}})

        response = client.post("/api/clerk", content=body, headers=headers)

        assert response.status_code == 200
        users.delete.assert_awaited_once_with("user_2abc")

    def test_other_events_ignored(self, client, users):
        body, headers = signed({"type": "session.created", "data": {"id": "sess_1"}})

        response = client.post("/api/clerk", content=body, headers=headers)

        assert response.status_code == 200
        users.upsert.assert_not_awaited()
        users.delete.assert_not_awaited()

    def test_bad_signature(self, client, users):
        body, headers = signed({"type": "user.created", "data": {"id": "u"}}, secret="whsec_b3RoZXItc2VjcmV0")

        response = client.post("/api/clerk", content=body, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid webhook signature"}
        users.upsert.assert_not_awaited()

    def test_missing_headers(self, client):
        response = client.post("/api/clerk", content=json.dumps({"type": "user.created"}))

        assert response.status_code == 400
        assert response.json()["error"] == "Missing webhook signature headers"

    def test_missing_secret(self, make_client, users):
        client = make_client(user_service=users, user_id=None)
        client.app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, clerk_webhook_secret="")
        body, headers = signed({"type": "user.created", "data": {"id": "u"}})

        response = client.post("/api/clerk", content=body, headers=headers)

        assert response.status_code == 500
        users.upsert.assert_not_awaited()


@pytest.mark.unit
class TestVerifyEvent:

    def test_returns_event(self):
        body, headers = signed({"type": "user.created", "data": {"id": "u"}})

        assert verify_event(body.encode(), headers, SECRET)["type"] == "user.created"

    def test_mismatch_keeps_cause(self):
        body, headers = signed({"type": "user.created", "data": {"id": "u"}}, secret="whsec_b3RoZXItc2VjcmV0")

        with pytest.raises(BadRequestError) as exc_info:
            verify_event(body.encode(), headers, SECRET)

        assert isinstance(exc_info.value.__cause__, WebhookVerificationError)
