"""
Pacer - cancellable sleeps shared by the trader, distributor and scheduler.

Every suspension point between chunks, wallets, buys and rounds goes
through one Pacer, so a stop request is seen at the next boundary and
never inside a submission.
"""
import asyncio


class Pacer:
    """
    Usage:
        pacer = Pacer()
        if not await pacer.sleep(1.5):
            return  # stop requested
    """

    def __init__(self, time_scale: float = 1.0):
        self.time_scale = time_scale
        self._stop = asyncio.Event()

    def request_stop(self) -> None:
        self._stop.set()

    def reset(self) -> None:
        self._stop = asyncio.Event()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def should_continue(self) -> bool:
        return not self._stop.is_set()

    async def sleep(self, seconds: float) -> bool:
        """Sleep unless stopped. True means carry on."""
        if self._stop.is_set():
            return False
        delay = max(0.0, seconds * self.time_scale)
        if delay == 0:
            await asyncio.sleep(0)
            return not self._stop.is_set()
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False
