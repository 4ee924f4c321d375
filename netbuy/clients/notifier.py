"""
Observers - where round progress and trade outcomes are reported.

One method, one structured payload. Delivery is best effort: the scheduler
logs and swallows NotificationError.

Usage:
    observer = TelegramObserver(bot_token, chat_id)
    await observer.notify(PumpEvent(EventKind.TRADE, "Buy ok", trade=result))
"""
import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import aiohttp

from ..errors import NotificationError
from ..models import EventKind, PumpEvent, TradeDirection, LAMPORTS_PER_SOL

logger = logging.getLogger(__name__)


TELEGRAM_API = "https://api.telegram.org"


def format_event(event: PumpEvent) -> str:
    """Human-readable one-liner for an event."""
    prefix = f"[R{event.round}] " if event.round else ""
    trade = event.trade
    if trade is None:
        return f"{prefix}{event.message}"

    status = "OK" if trade.success else "FAILED"
    if trade.direction == TradeDirection.BUY:
        amount = f"{trade.executed_amount / LAMPORTS_PER_SOL:.4f}/{trade.requested_amount / LAMPORTS_PER_SOL:.4f} SOL"
    else:
        amount = f"{trade.executed_amount}/{trade.requested_amount} units"
    line = f"{prefix}{trade.direction.value.upper()} {status} ({trade.wallet_role}) {amount}"
    if trade.signatures:
        line += f" tx={trade.signatures[-1][:16]}..."
    reason = trade.failure_reason()
    if reason:
        line += f" error={reason}"
    return line


class Observer(ABC):

    @abstractmethod
    async def notify(self, event: PumpEvent) -> None:
        """Deliver one event. May raise NotificationError."""


class LoggingObserver(Observer):
    """Writes events to the log."""

    async def notify(self, event: PumpEvent) -> None:
        text = format_event(event)
        if event.kind == EventKind.ERROR or (event.trade is not None and not event.trade.success):
            logger.error(text)
        else:
            logger.info(text)


class TelegramObserver(Observer):
    """Posts events to a chat through the Telegram Bot HTTP API."""

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10.0):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> Optional["TelegramObserver"]:
        token = os.getenv("TELEGRAM_BOT_TOKEN")
        chat_id = os.getenv("TELEGRAM_CHAT_ID")
        if not token or not chat_id:
            return None
        return cls(token, chat_id)

    async def notify(self, event: PumpEvent) -> None:
        url = f"{TELEGRAM_API}/bot{self.bot_token}/sendMessage"
        payload = {'chat_id': self.chat_id, 'text': format_event(event)}
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(url, json=payload) as resp:
                    if resp.status != 200:
                        body = await resp.text()
                        raise NotificationError(f"Telegram returned {resp.status}: {body[:200]}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotificationError(f"Telegram delivery failed: {e}") from e


class FanoutObserver(Observer):
    """Delivers to several observers; one failing does not skip the rest."""

    def __init__(self, observers: Sequence[Observer]):
        self.observers = list(observers)

    async def notify(self, event: PumpEvent) -> None:
        errors = []
        for observer in self.observers:
            try:
                await observer.notify(event)
            except NotificationError as e:
                errors.append(str(e))
        if errors:
            raise NotificationError("; ".join(errors))
