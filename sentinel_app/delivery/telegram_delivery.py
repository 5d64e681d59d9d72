"""Telegram Bot API report delivery mechanism."""

import json
import socket
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import ProxyHandler, Request, build_opener

from ..config.defaults import TelegramParams
from ..errors import ConfigurationError
from .base import (
    BaseReportDelivery,
    DeliveryResult,
    DeliveryStatus,
    ReportDeliveryPermanentError,
    ReportDeliveryRetryableError,
)

# Telegram rejects messages longer than this
MAX_MESSAGE_LENGTH = 4096
CODE_FENCE = "```"


def truncate_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Cut ``text`` to ``limit`` characters, closing a code block left open by the cut."""
    if len(text) <= limit:
        return text
    cut = text[:limit]
    if cut.count(CODE_FENCE) % 2 == 0:
        return cut

    closing = "\n" + CODE_FENCE
    cut = text[:limit - len(closing)]
    if cut.count(CODE_FENCE) % 2:
        cut += closing
    return cut


class TelegramReportDelivery(BaseReportDelivery):
    """Sends reports through the Bot API ``sendMessage`` method."""

    def __init__(self, config: TelegramParams, name: str = "telegram",
                 proxy: Optional[str] = None):
        super().__init__(name, config)
        self.config: TelegramParams = config

        if not config.bot_token or not config.chat_id:
            raise ConfigurationError(
                "Telegram bot_token and chat_id are required",
                field="telegram.bot_token"
            )

        handlers = []
        if proxy:
            proxy_url = proxy if "://" in proxy else f"http://{proxy}"
            handlers.append(ProxyHandler({"http": proxy_url, "https": proxy_url}))
        self._opener = build_opener(*handlers)

    def _method_url(self, method: str) -> str:
        return f"{self.config.api_base.rstrip('/')}/bot{self.config.bot_token}/{method}"

    def deliver(self, text: str) -> DeliveryResult:
        """Post the report to the configured chat."""
        if len(text) > MAX_MESSAGE_LENGTH:
            self.logger.warning(
                "Report exceeds Telegram message limit, truncating",
                delivery_name=self.name,
                length=len(text)
            )
            text = truncate_message(text)

        payload = {"chat_id": self.config.chat_id, "text": text}
        if self.config.parse_mode:
            payload["parse_mode"] = self.config.parse_mode

        data = json.dumps(payload).encode("utf-8")
        req = Request(
            self._method_url("sendMessage"),
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST"
        )

        try:
            with self._opener.open(req, timeout=self.config.timeout_seconds) as response:
                body = response.read().decode("utf-8")
        except HTTPError as e:
            # The Bot API reports 4xx errors with a JSON description
            description = self._describe_error(e)
            self.logger.warning(
                "Telegram HTTP error",
                delivery_name=self.name,
                error_code=e.code,
                description=description
            )
            if e.code >= 500 or e.code == 429:
                raise ReportDeliveryRetryableError(f"HTTP {e.code}: {description}") from e
            raise ReportDeliveryPermanentError(f"HTTP {e.code}: {description}") from e
        except (URLError, socket.timeout, OSError) as e:
            self.logger.warning("Telegram network error", delivery_name=self.name, error=str(e))
            raise ReportDeliveryRetryableError(f"Network error: {e}") from e

        try:
            response_data = json.loads(body)
        except ValueError as e:
            raise ReportDeliveryRetryableError(f"Invalid Telegram response: {body[:200]}") from e

        if not response_data.get("ok"):
            raise ReportDeliveryPermanentError(
                f"Telegram API error: {response_data.get('description', 'unknown error')}"
            )

        self.logger.info("Report sent to Telegram", delivery_name=self.name, length=len(text))
        return DeliveryResult(status=DeliveryStatus.SUCCESS, message="Sent to Telegram")

    def _describe_error(self, error: HTTPError) -> str:
        try:
            body = json.loads(error.read().decode("utf-8"))
        except (ValueError, OSError, AttributeError):
            return str(error.reason)
        if isinstance(body, dict) and body.get("description"):
            return str(body["description"])
        return str(error.reason)

    def health_check(self) -> bool:
        """Call ``getMe`` to confirm the token is accepted."""
        req = Request(self._method_url("getMe"), method="GET")
        try:
            with self._opener.open(req, timeout=self.config.timeout_seconds) as response:
                return bool(json.loads(response.read().decode("utf-8")).get("ok"))
        except (HTTPError, URLError, socket.timeout, OSError, ValueError) as e:
            self.logger.warning("Health check failed", delivery_name=self.name, error=str(e))
            return False
