import json
import os
from datetime import datetime, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy import select
from svix.webhooks import Webhook

from rfpflow.models.organization import Organization
from rfpflow.models.user import User
from rfpflow.services import user_sync_service


def webhook_headers(body):
    msg_id = "msg_test"
    now = datetime.now(timezone.utc)
    signature = Webhook(os.environ["CLERK_WEBHOOK_SECRET"]).sign(msg_id, now, body)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(now.timestamp())),
        "svix-signature": signature,
        "content-type": "application/json",
    }


def user_event(event_type, user_id="user_hook", email="hook@example.com", **data):
    return json.dumps({
        "type": event_type,
        "data": {
            "id": user_id,
            "first_name": "Hana",
            "last_name": "Hook",
            "primary_email_address_id": "idn_2",
            "email_addresses": [
                {"id": "idn_1", "email_address": "old@example.com"},
                {"id": "idn_2", "email_address": email},
            ],
            **data,
        },
    })


def test_primary_email_prefers_flagged_address():
    data = json.loads(user_event("user.created"))["data"]
    assert user_sync_service.primary_email(data) == "hook@example.com"
    assert user_sync_service.primary_email({"email_addresses": [{"email_address": "a@example.org"}]}) == "a@example.org"
    assert user_sync_service.primary_email({}) is None


async def test_first_user_becomes_admin_of_default_org(db):
    first, created = await user_sync_service.sync_user(db, "user_first", "first@example.com")
    second, _ = await user_sync_service.sync_user(db, "user_second", "second@example.com")

    assert created is True
    assert first.role == "admin"
    assert second.role == "member"
    assert first.organization_id == second.organization_id

    orgs = (await db.execute(select(Organization))).scalars().all()
    assert len(orgs) == 1


async def test_email_owned_by_another_identity_is_rejected(db, member):
    with pytest.raises(HTTPException) as exc:
        await user_sync_service.sync_user(db, "user_impostor", member.email)
    assert exc.value.status_code == 400


async def test_sync_user_endpoint_creates_then_updates(client, org, auth):
    headers = auth("user_new")
    response = await client.post(
        "/api/sync-user", json={"email": "fresh@example.com", "first_name": "Fay"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["created"] is True
    assert response.json()["user"]["role"] == "admin"

    response = await client.post(
        "/api/sync-user", json={"email": "fresh@example.com", "first_name": "Faye"}, headers=headers
    )
    assert response.json()["created"] is False
    assert response.json()["user"]["first_name"] == "Faye"
    assert response.json()["user"]["last_login_at"] is not None


async def test_sync_user_requires_email(client, org, auth):
    response = await client.post("/api/sync-user", json={}, headers=auth("user_anon"))
    assert response.status_code == 400
    assert response.json()["detail"] == "Email is required"


async def test_webhook_creates_updates_and_deactivates(client, db, org):
    body = user_event("user.created")
    response = await client.post("/api/webhooks/clerk", content=body, headers=webhook_headers(body))
    assert response.status_code == 200
    assert response.json()["created"] is True

    body = user_event("user.updated", first_name="Hanna")
    response = await client.post("/api/webhooks/clerk", content=body, headers=webhook_headers(body))
    assert response.json()["created"] is False

    body = json.dumps({"type": "user.deleted", "data": {"id": "user_hook", "deleted": True}})
    response = await client.post("/api/webhooks/clerk", content=body, headers=webhook_headers(body))
    assert response.json()["deactivated"] is True

    user = (await db.execute(select(User).where(User.id == "user_hook"))).scalar_one()
    assert user.first_name == "Hanna"
    assert user.is_active is False


async def test_webhook_rejects_bad_signature(client, org):
    body = user_event("user.created")
    headers = webhook_headers(body)
    headers["svix-signature"] = "v1,AAAA"
    response = await client.post("/api/webhooks/clerk", content=body, headers=headers)
    assert response.status_code == 400


async def test_webhook_ignores_other_events(client, org):
    body = json.dumps({"type": "session.created", "data": {"id": "sess_1"}})
    response = await client.post("/api/webhooks/clerk", content=body, headers=webhook_headers(body))
    assert response.status_code == 200
    assert response.json()["ignored"] is True


async def test_webhook_rejects_undecodable_body(client, org):
    response = await client.post(
        "/api/webhooks/clerk", content=b"\xff\xfe", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400


async def test_webhook_rejects_signed_payload_that_is_not_an_object(client, org):
    body = json.dumps([1, 2])
    response = await client.post("/api/webhooks/clerk", content=body, headers=webhook_headers(body))
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid webhook payload"

    body = json.dumps({"type": "user.created", "data": ["user_hook"]})
    response = await client.post("/api/webhooks/clerk", content=body, headers=webhook_headers(body))
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing user id"
