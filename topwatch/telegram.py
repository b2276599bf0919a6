"""Telegram Bot API client."""

import html
import logging
import re
from typing import Any

from .errors import NotifierError
from .http import request_json

logger = logging.getLogger(__name__)

TELEGRAM_BASE_URL = "https://api.telegram.org"
MAX_CAPTION_LENGTH = 1024

_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")


def format_telegram_html(text: str) -> str:
    """Escape text for HTML parse mode and convert **bold** markers to <b>."""
    escaped = html.escape(text.strip())
    return _BOLD_RE.sub(r"<b>\1</b>", escaped)


def send_message_payload(chat_id: str, formatted_text: str) -> dict[str, Any]:
    return {
        "chat_id": chat_id,
        "text": formatted_text,
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }


def send_photo_payload(chat_id: str, image_url: str) -> dict[str, Any]:
    return {"chat_id": chat_id, "photo": image_url, "parse_mode": "HTML"}


class TelegramClient:
    """Posts messages to a single channel."""

    def __init__(self, token: str, chat_id: str, base_url: str = TELEGRAM_BASE_URL):
        self.token = token
        self.chat_id = chat_id
        self.base_url = base_url.rstrip("/")

    def _call(self, method: str, payload: dict[str, Any]) -> int | None:
        """Call a Bot API method and return the resulting message id."""
        # Sends are never retried
        response = request_json(
            "POST",
            f"{self.base_url}/bot{self.token}/{method}",
            service=f"Telegram {method}",
            body=payload,
            retries=0,
            error_cls=NotifierError,
        )
        if not isinstance(response, dict) or response.get("ok") is not True:
            raise NotifierError(f"Telegram returned non-ok response for {method}")
        result = response.get("result")
        message_id = result.get("message_id") if isinstance(result, dict) else None
        if not isinstance(message_id, int) or isinstance(message_id, bool) or message_id == 0:
            return None
        return message_id

    def send_message(self, text: str) -> int | None:
        """Send a text message; `text` is formatted before sending."""
        return self._send_formatted(format_telegram_html(text))

    def _send_formatted(self, formatted_text: str) -> int | None:
        return self._call("sendMessage", send_message_payload(self.chat_id, formatted_text))

    def send_photo(self, image_url: str, caption: str) -> int | None:
        """Send a photo with the text as caption.

        Telegram limits captions to 1024 characters. A longer caption is
        sent as a separate message right after the photo.
        """
        formatted = format_telegram_html(caption)
        payload = send_photo_payload(self.chat_id, image_url)
        if len(formatted) <= MAX_CAPTION_LENGTH:
            payload["caption"] = formatted

        message_id = self._call("sendPhoto", payload)
        if "caption" not in payload:
            return self._send_formatted(formatted)
        return message_id

    def send(self, text: str, image_url: str = "") -> int | None:
        """Post `text`, as a photo caption when an image URL is given.

        Falls back to a plain message if the photo cannot be sent.

        Raises:
            NotifierError: If the message could not be sent.
        """
        if image_url:
            try:
                return self.send_photo(image_url, text)
            except NotifierError as e:
                logger.warning("sendPhoto failed, sending text only: %s", e)
        return self.send_message(text)
