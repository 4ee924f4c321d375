"""Tests for observers and event formatting"""

import asyncio

import pytest

from netbuy.clients import notifier
from netbuy.clients.notifier import FanoutObserver, LoggingObserver, TelegramObserver, format_event
from netbuy.errors import NotificationError
from netbuy.models import ChunkResult, EventKind, PumpEvent, TradeDirection, TradeResult

from conftest import RecordingObserver


def buy_result(success=True):
    chunk = ChunkResult(amount=50_000_000, success=success, signature="5xSig1234567890abcdef")
    return TradeResult("mint", TradeDirection.BUY, "wallet2", 50_000_000, chunks=[chunk])


class TestFormatEvent:
    """Test format_event"""

    def test_plain(self):
        assert format_event(PumpEvent(EventKind.STOPPED, "Pump stopped", round=4)) == "[R4] Pump stopped"

    def test_trade_ok(self):
        text = format_event(PumpEvent(EventKind.TRADE, "Buy ok", round=2, trade=buy_result()))
        assert text.startswith("[R2] BUY OK (wallet2) 0.0500/0.0500 SOL")
        assert "tx=5xSig1234567890a" in text

    def test_trade_failed(self):
        text = format_event(PumpEvent(EventKind.TRADE, "Buy failed", trade=buy_result(success=False)))
        assert "FAILED" in text
        assert "0.0000/0.0500 SOL" in text


class FailingObserver(RecordingObserver):
    async def notify(self, event):
        raise NotificationError("down")


class TestObservers:
    """Test observer delivery"""

    def test_logging_observer(self, caplog):
        event = PumpEvent(EventKind.TRADE, "Buy failed", trade=buy_result(success=False))
        with caplog.at_level("INFO"):
            asyncio.run(LoggingObserver().notify(event))
        assert any(r.levelname == "ERROR" for r in caplog.records)

    def test_fanout_continues_after_failure(self):
        recorder = RecordingObserver()
        fanout = FanoutObserver([FailingObserver(), recorder])

        with pytest.raises(NotificationError):
            asyncio.run(fanout.notify(PumpEvent(EventKind.ROUND_STARTED, "Round 1")))
        assert len(recorder.events) == 1

    def test_telegram_from_env(self, monkeypatch):
        monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
        monkeypatch.delenv("TELEGRAM_CHAT_ID", raising=False)
        assert TelegramObserver.from_env() is None

        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
        monkeypatch.setenv("TELEGRAM_CHAT_ID", "42")
        observer = TelegramObserver.from_env()
        assert observer.chat_id == "42"

    def test_telegram_unreachable(self, monkeypatch):
        monkeypatch.setattr(notifier, "TELEGRAM_API", "http://127.0.0.1:9")
        observer = TelegramObserver("123:abc", "42", timeout=2)
        with pytest.raises(NotificationError):
            asyncio.run(observer.notify(PumpEvent(EventKind.STOPPED, "bye")))
