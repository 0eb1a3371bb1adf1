from __future__ import annotations

import asyncio
import hmac
import json
import logging
from http.server import BaseHTTPRequestHandler

from checkin_bot.config import load_settings
from checkin_bot.server import process_telegram_update

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

SECRET_HEADER = "x-telegram-bot-api-secret-token"


class handler(BaseHTTPRequestHandler):
    def _respond(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.end_headers()
        self.wfile.write(body)

    def _authorized(self) -> bool:
        expected = load_settings().webhook_secret
        if not expected:
            return True
        return hmac.compare_digest(self.headers.get(SECRET_HEADER, "").strip(), expected)

    def do_POST(self) -> None:
        if not self._authorized():
            self._respond(401, b"unauthorized")
            return

        try:
            update = json.loads(self.rfile.read(int(self.headers.get("content-length") or 0)) or b"{}")
        except ValueError:
            update = None
        if not isinstance(update, dict):
            self._respond(400, b"invalid json")
            return

        try:
            asyncio.run(process_telegram_update(update))
        except Exception:
            logger.exception("Processing Telegram update %s failed", update.get("update_id"))
            self._respond(500, b"processing error")
            return
        self._respond(200, b"ok")

    def do_GET(self) -> None:
        self._respond(200, b"check-in webhook alive")
