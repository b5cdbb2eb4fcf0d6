"""Svix-style webhook signature verification."""

import base64
import json

import pytest

from mlc.auth.webhooks import WebhookVerificationError, sign, verify_webhook

SECRET = "whsec_" + base64.b64encode(b"unit-test-secret").decode()
NOW = 1_760_000_000
BODY = json.dumps({"type": "user.created", "data": {"id": "user_1"}}).encode()


def _headers(body: bytes = BODY, timestamp: int = NOW, msg_id: str = "msg_1", secret: str = SECRET) -> dict:
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(timestamp),
        "svix-signature": sign(secret, msg_id, timestamp, body),
    }


class TestVerifyWebhook:
    def test_valid_signature_returns_payload(self):
        payload = verify_webhook(SECRET, _headers(), BODY, now=NOW)
        assert payload["type"] == "user.created"

    def test_any_matching_entry_is_accepted(self):
        headers = _headers()
        headers["svix-signature"] = f"v1,bm90LWl0 {headers['svix-signature']}"
        assert verify_webhook(SECRET, headers, BODY, now=NOW)["data"]["id"] == "user_1"

    def test_tampered_body_rejected(self):
        with pytest.raises(WebhookVerificationError):
            verify_webhook(SECRET, _headers(), BODY + b" ", now=NOW)

    def test_wrong_secret_rejected(self):
        other = "whsec_" + base64.b64encode(b"someone-else").decode()
        with pytest.raises(WebhookVerificationError):
            verify_webhook(SECRET, _headers(secret=other), BODY, now=NOW)

    def test_missing_headers_rejected(self):
        headers = _headers()
        del headers["svix-signature"]
        with pytest.raises(WebhookVerificationError, match="Missing"):
            verify_webhook(SECRET, headers, BODY, now=NOW)

    def test_stale_timestamp_rejected(self):
        with pytest.raises(WebhookVerificationError, match="tolerance"):
            verify_webhook(SECRET, _headers(timestamp=NOW - 301), BODY, now=NOW)

    def test_timestamp_within_tolerance_accepted(self):
        assert verify_webhook(SECRET, _headers(timestamp=NOW - 299), BODY, now=NOW)

    def test_non_numeric_timestamp_rejected(self):
        headers = _headers()
        headers["svix-timestamp"] = "yesterday"
        with pytest.raises(WebhookVerificationError):
            verify_webhook(SECRET, headers, BODY, now=NOW)

    def test_signature_format(self):
        assert sign(SECRET, "msg_1", NOW, BODY).startswith("v1,")
