import os
import time
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from svix.webhooks import Webhook

from rfpflow.core.config import settings
from rfpflow.core.security import verify_session_token, verify_webhook, WebhookVerificationError


def signed_headers(body, msg_id="msg_1", sent_at=None):
    sent_at = sent_at or datetime.now(timezone.utc)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(sent_at.timestamp())),
        "svix-signature": Webhook(settings.CLERK_WEBHOOK_SECRET).sign(msg_id, sent_at, body),
    }


def test_valid_session_token_returns_claims():
    token = jwt.encode({"sub": "user_1", "exp": int(time.time()) + 60}, os.environ["CLERK_JWT_KEY"], algorithm="HS256")
    claims = verify_session_token(token)
    assert claims["sub"] == "user_1"


def test_expired_or_foreign_tokens_are_rejected():
    expired = jwt.encode({"sub": "user_1", "exp": int(time.time()) - 60}, os.environ["CLERK_JWT_KEY"], algorithm="HS256")
    foreign = jwt.encode({"sub": "user_1"}, "another-key", algorithm="HS256")
    assert verify_session_token(expired) is None
    assert verify_session_token(foreign) is None
    assert verify_session_token("not-a-jwt") is None


def test_token_without_subject_is_rejected():
    token = jwt.encode({"email": "a@example.org"}, os.environ["CLERK_JWT_KEY"], algorithm="HS256")
    assert verify_session_token(token) is None


def test_webhook_returns_decoded_payload():
    body = '{"type": "user.created", "data": {"id": "user_1"}}'
    event = verify_webhook(body.encode(), signed_headers(body))
    assert event["data"]["id"] == "user_1"


def test_webhook_accepts_any_matching_signature_entry():
    body = '{"type": "user.created"}'
    headers = signed_headers(body)
    headers["svix-signature"] = "v1,Ym9ndXM= " + headers["svix-signature"]
    assert verify_webhook(body.encode(), headers)["type"] == "user.created"


def test_webhook_rejects_tampered_body():
    headers = signed_headers('{"type": "user.created"}')
    with pytest.raises(WebhookVerificationError):
        verify_webhook(b'{"type": "user.deleted"}', headers)


def test_webhook_rejects_stale_timestamp():
    body = "{}"
    headers = signed_headers(body, sent_at=datetime.now(timezone.utc) - timedelta(hours=1))
    with pytest.raises(WebhookVerificationError):
        verify_webhook(body.encode(), headers)


def test_webhook_requires_headers_and_secret(monkeypatch):
    with pytest.raises(WebhookVerificationError):
        verify_webhook(b"{}", {})

    headers = signed_headers("{}")
    monkeypatch.setattr(settings, "CLERK_WEBHOOK_SECRET", None)
    with pytest.raises(WebhookVerificationError):
        verify_webhook(b"{}", headers)
