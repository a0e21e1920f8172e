"""
============================================================================
REACHABILITY MONITOR - NOTIFIER TRANSPORTS
============================================================================
The notifier capability consumed by the AlertDispatcher:

    async send(subject, body) -> NotifyResult

Transports return ``NotifyResult.failure(reason)`` for delivery problems
instead of raising; retry and backoff are the dispatcher's job.

    Notifier            ← abstract capability
    ├── LogNotifier     ← writes the alert to the log (default)
    ├── WebhookNotifier ← JSON POST via httpx
    └── TelegramNotifier← aiogram Bot.send_message
============================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.exceptions import TelegramAPIError

from config.constants import Defaults
from config.settings import NotifierSettings
from monitoring.models import NotifyResult
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Notifier")


class Notifier(ABC):
    """Abstract alert transport."""

    name: str = "notifier"

    @abstractmethod
    async def send(self, subject: str, body: str) -> NotifyResult:
        """Deliver one alert."""

    async def close(self) -> None:
        """Release transport resources."""


# ============================================================================
# LOG NOTIFIER
# ============================================================================

class LogNotifier(Notifier):
    """Writes alerts to the log. Used when no transport is configured."""

    name = "log"

    async def send(self, subject: str, body: str) -> NotifyResult:
        logger.warning(f"[ALERT] {subject}\n{body}")
        return NotifyResult.success()


# ============================================================================
# WEBHOOK NOTIFIER
# ============================================================================

class WebhookNotifier(Notifier):
    """
    POSTs ``{"subject", "body", "sent_at"}`` as JSON to a URL.

    Any 2xx response is success; other statuses and transport errors are
    failures carrying the reason.
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"User-Agent": Defaults.USER_AGENT},
        )

    async def send(self, subject: str, body: str) -> NotifyResult:
        payload = {
            "subject": subject,
            "body": body,
            "sent_at": TimeHelper.get_utc_now().isoformat(),
        }
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.TimeoutException:
            return NotifyResult.failure(f"webhook timed out ({self.url})")
        except httpx.HTTPError as e:
            return NotifyResult.failure(f"webhook transport error: {str(e)[:200]}")

        if response.is_success:
            return NotifyResult.success()
        return NotifyResult.failure(f"webhook returned HTTP {response.status_code}")

    async def close(self) -> None:
        await self._client.aclose()


# ============================================================================
# TELEGRAM NOTIFIER
# ============================================================================

class TelegramNotifier(Notifier):
    """
    Sends alerts to a Telegram chat through an aiogram Bot.

    Parameters
    ----------
    token : str | None
        Bot API token; ignored when *bot* is given.
    chat_id : int | str
        Destination chat.
    bot : aiogram.Bot | Any
        Pre-built bot (or any object with an async ``send_message``).
    """

    name = "telegram"

    def __init__(self, chat_id: Any, token: Optional[str] = None, bot: Any = None):
        if bot is None:
            if not token:
                raise ValueError("TelegramNotifier needs a token or a bot")
            bot = Bot(token=token, default=DefaultBotProperties(parse_mode="HTML"))
        self.bot = bot
        self.chat_id = chat_id

    async def send(self, subject: str, body: str) -> NotifyResult:
        text = f"<b>{_escape_html(subject)}</b>\n\n{_escape_html(body)}"
        try:
            await self.bot.send_message(chat_id=self.chat_id, text=text)
        except TelegramAPIError as e:
            return NotifyResult.failure(f"telegram error: {str(e)[:200]}")
        return NotifyResult.success()

    async def close(self) -> None:
        session = getattr(self.bot, "session", None)
        if session is not None:
            await session.close()


def _escape_html(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


# ============================================================================
# FACTORY
# ============================================================================

def build_notifier(settings: NotifierSettings) -> Notifier:
    """Pick the transport described by *settings*."""
    if settings.telegram_token is not None and settings.telegram_chat_id is not None:
        logger.info("Using Telegram notifier")
        return TelegramNotifier(
            chat_id=settings.telegram_chat_id,
            token=settings.telegram_token.get_secret_value(),
        )

    if settings.webhook_url:
        logger.info(f"Using webhook notifier → {settings.webhook_url}")
        return WebhookNotifier(settings.webhook_url, timeout=settings.timeout)

    logger.info("No notifier transport configured — alerts go to the log")
    return LogNotifier()
