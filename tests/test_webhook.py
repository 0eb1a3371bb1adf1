"""
Tests for the serverless webhook entry point.
"""
import io
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from api import telegram_webhook


@pytest.fixture
def process(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_WEBHOOK_SECRET", "s3cret")
    process = AsyncMock()
    monkeypatch.setattr(telegram_webhook, "process_telegram_update", process)
    return process


def _post(body: bytes, secret: str = "s3cret"):
    request = telegram_webhook.handler.__new__(telegram_webhook.handler)
    request.headers = {"content-length": str(len(body)), telegram_webhook.SECRET_HEADER: secret}
    request.rfile = io.BytesIO(body)
    request.wfile = io.BytesIO()
    request.send_response = MagicMock()
    request.end_headers = MagicMock()
    request.do_POST()
    return request.send_response.call_args.args[0], request.wfile.getvalue()


def test_update_is_processed(process):
    payload = {"update_id": 1, "message": {"text": "完成"}}

    assert _post(json.dumps(payload).encode()) == (200, b"ok")
    process.assert_awaited_once_with(payload)


def test_wrong_secret_is_rejected(process):
    assert _post(b"{}", secret="nope") == (401, b"unauthorized")
    process.assert_not_awaited()


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]"])
def test_malformed_body_is_rejected(process, body):
    assert _post(body) == (400, b"invalid json")
    process.assert_not_awaited()


def test_processing_error_is_a_500(process):
    process.side_effect = RuntimeError("boom")
    assert _post(b'{"update_id": 7}') == (500, b"processing error")
