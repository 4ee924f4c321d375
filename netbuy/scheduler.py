"""
Pump Scheduler
==============

Top-level cancellable loop: repeated buy (+ optional sell) rounds with
growing buy size and jittered pacing.

State machine:
    IDLE --start()--> RUNNING --stop()--> STOPPING --(loop observes)--> IDLE

Round:
1. Read the current buy amount (configured value, times the growth factor
   after every completed round; no cap at this layer)
2. Run buys_per_round buys, single-wallet chunked or multi-wallet,
   separated by a fixed pacing delay
3. Sell sell_fraction_percent of holdings when > 0
4. Sleep inter_round_delay_sec * (0.8 + U(0, 0.4))
5. Repeat while running, up to max_rounds rounds when that is set

Trade failures are reported to the observer and never end the loop. Only
ConfigurationError, stop() or shutdown() do. stop() is honoured at the next
chunk, wallet, buy or round boundary; a submission in flight always
finishes first.

Usage:
    scheduler = PumpScheduler.create(ledger, wallets, RelayConfig.from_env(), LoggingObserver())
    scheduler.configure(PumpSession(token=mint, buy_amount_per_round=0.05))
    await scheduler.start()
    ...
    scheduler.stop()
"""
import asyncio
import logging
from typing import Optional, Sequence

from .clients.ledger import LedgerClient
from .clients.notifier import Observer, LoggingObserver
from .clients.pools import PoolLocator, RaydiumPoolLocator
from .clients.swaps import SwapBuilder, RaydiumSwapBuilder
from .config import PumpSession, RelayConfig
from .errors import ConfigurationError
from .execution.chunk_planner import ChunkPlanner
from .execution.endpoints import EndpointPool
from .execution.pacing import Pacer
from .execution.relay import RelaySubmitter
from .execution.risk import RiskAssessor
from .execution.trader import TradeExecutor
from .execution.wallets import WalletDistributor
from .models import (
    EventKind,
    LAMPORTS_PER_SOL,
    ProtectionLevel,
    PumpEvent,
    PumpStatus,
    RunState,
    SchedulerState,
    StartResult,
    StopResult,
    TradeDirection,
    TradeIntent,
    TradeResult,
    WalletIdentity,
)
from .randomness import RandomSource, DEFAULT_RANDOM

logger = logging.getLogger(__name__)


ROUND_JITTER_BASE = 0.8
ROUND_JITTER_SPAN = 0.4


class PumpScheduler:
    """
    Owns the session, the run flags and the loop task. At most one loop
    runs per scheduler; a second start() is rejected, not queued.
    """

    def __init__(
        self,
        wallets: Sequence[WalletIdentity],
        trader: TradeExecutor,
        distributor: WalletDistributor,
        risk: RiskAssessor,
        observer: Optional[Observer] = None,
        config: Optional[RelayConfig] = None,
        rng: Optional[RandomSource] = None,
        time_scale: float = 1.0,
    ):
        if not wallets or not wallets[0].active:
            raise ConfigurationError("an active main wallet is required")
        self.wallets = tuple(wallets)
        self.trader = trader
        self.distributor = distributor
        self.risk = risk
        self.observer = observer or LoggingObserver()
        self.config = config or RelayConfig()
        self.rng = rng or DEFAULT_RANDOM
        self.time_scale = time_scale

        self._session: Optional[PumpSession] = None
        self._pending_session: Optional[PumpSession] = None
        self._state = RunState()
        self._phase = SchedulerState.IDLE
        self._pacer = Pacer(time_scale)
        self._task: Optional[asyncio.Task] = None

        # Stats
        self.current_round = 0
        self.rounds_completed = 0
        self.trades_ok = 0
        self.trades_failed = 0
        self.volume_sol = 0.0
        self.net_spent_sol = 0.0             # buys minus quoted sell proceeds

    @classmethod
    def create(
        cls,
        ledger: LedgerClient,
        wallets: Sequence[WalletIdentity],
        config: Optional[RelayConfig] = None,
        observer: Optional[Observer] = None,
        pools: Optional[PoolLocator] = None,
        swaps: Optional[SwapBuilder] = None,
        rng: Optional[RandomSource] = None,
        time_scale: float = 1.0,
    ) -> "PumpScheduler":
        """Wire the default component graph around a ledger client."""
        config = config or RelayConfig()
        rng = rng or DEFAULT_RANDOM
        relay = RelaySubmitter(EndpointPool.from_config(config, rng=rng), ledger, config, rng=rng)
        trader = TradeExecutor(
            ledger,
            pools or RaydiumPoolLocator(),
            swaps or RaydiumSwapBuilder(),
            relay,
            ChunkPlanner(rng=rng),
            config=config,
        )
        distributor = WalletDistributor(
            wallets, trader, rng=rng, max_participants=config.max_wallets_per_round
        )
        return cls(
            wallets, trader, distributor, RiskAssessor(ledger),
            observer=observer, config=config, rng=rng, time_scale=time_scale,
        )

    @property
    def main_wallet(self) -> WalletIdentity:
        return self.wallets[0]

    @property
    def session(self) -> Optional[PumpSession]:
        return self._session

    @property
    def running(self) -> bool:
        return self._state.running

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def configure(self, session: PumpSession) -> None:
        """
        Replace the session as a whole.

        While running, only non-shape fields may change; the new session is
        applied at the start of the next round.

        Raises:
            ConfigurationError: invalid session, or a shape change while running
        """
        session.validate()
        if self._state.running:
            changed = self._session.shape_differs(session) if self._session else []
            if changed:
                raise ConfigurationError(f"cannot change {', '.join(changed)} while running")
            self._pending_session = session.copy()
            logger.info("Configuration staged for the next round")
            return

        self._session = session.copy()
        self._pending_session = None
        self._state.current_round_buy_amount = session.buy_amount_per_round
        logger.info(f"Configured: {self._session.to_dict()}")

    async def start(self) -> StartResult:
        if self._state.running:
            return StartResult.ALREADY_RUNNING
        if self._session is None or not self._session.is_configured:
            return StartResult.NOT_CONFIGURED

        self._pacer = Pacer(self.time_scale)
        self._state = RunState(
            running=True,
            current_round_buy_amount=self._session.buy_amount_per_round,
        )
        self._phase = SchedulerState.RUNNING
        self.current_round = 0
        self._task = asyncio.create_task(self._run())
        logger.info(f"Pump loop started for {self._session.token}")
        return StartResult.OK

    def stop(self) -> StopResult:
        """Request a graceful stop. running stays True until the loop sees it."""
        if not self._state.running:
            return StopResult.NOT_RUNNING
        self._phase = SchedulerState.STOPPING
        self._pacer.request_stop()
        logger.info("Stop requested")
        return StopResult.OK

    async def wait_stopped(self, timeout: Optional[float] = None) -> None:
        if self._task is not None:
            await asyncio.wait_for(asyncio.shield(self._task), timeout)

    async def shutdown(self, grace_sec: Optional[float] = None) -> None:
        """Process exit: stop now, let an in-flight chunk finish, then cancel."""
        self._state.shutting_down = True
        if self._task is None or self._task.done():
            return
        self.stop()
        grace = self.config.shutdown_grace_sec if grace_sec is None else grace_sec
        try:
            await asyncio.wait_for(asyncio.shield(self._task), grace)
        except asyncio.TimeoutError:
            logger.warning("In-flight work did not finish in time, cancelling loop")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._state.running = False
            self._phase = SchedulerState.IDLE

    def status(self) -> PumpStatus:
        return PumpStatus(
            running=self._state.running,
            state=self._phase,
            current_round=self.current_round,
            current_buy_amount=self._state.current_round_buy_amount,
            rounds_completed=self.rounds_completed,
            trades_ok=self.trades_ok,
            trades_failed=self.trades_failed,
            volume_sol=self.volume_sol,
            net_spent_sol=self.net_spent_sol,
        )

    async def sell_all(self) -> TradeResult:
        """
        One-shot full sell from the main wallet, independent of the loop.

        Raises:
            ConfigurationError: no token configured
            InsufficientBalance: nothing to sell
            PoolNotFound: no pool for the token
        """
        session = self._session
        if session is None or not session.is_configured:
            raise ConfigurationError("token is not set")

        self.trader.slippage_bps = session.slippage_bps
        amount = 0
        try:
            amount = await self.trader.sellable_amount(self.main_wallet, session.token, 100)
            intent = TradeIntent(session.token, TradeDirection.SELL, amount, ProtectionLevel.MEDIUM)
            result = await self.trader.execute(
                intent, self.main_wallet, protect=session.mev_protection_enabled, chunked=False
            )
        except Exception as e:
            await self._record(TradeResult(
                token=session.token,
                direction=TradeDirection.SELL,
                wallet_role=self.main_wallet.role,
                requested_amount=amount,
                error=str(e) or type(e).__name__,
            ), "Sell all")
            raise
        await self._record(result, "Sell all")
        return result

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        reason = "stopped"
        try:
            while self._pacer.should_continue():
                self._apply_pending_session()
                session = self._session
                if self._round_limit_reached(session):
                    reason = "round limit reached"
                    break
                self.current_round += 1
                await self._emit(PumpEvent(
                    EventKind.ROUND_STARTED,
                    f"Round {self.current_round}: buying {self._state.current_round_buy_amount:.4f} SOL",
                    round=self.current_round,
                ))

                if not await self._run_round(session):
                    break

                self.rounds_completed += 1
                await self._emit(PumpEvent(
                    EventKind.ROUND_COMPLETED,
                    f"Round {self.current_round} complete, net spent {self.net_spent_sol:.4f} SOL",
                    round=self.current_round,
                    net_spent_sol=self.net_spent_sol,
                ))
                self._state.current_round_buy_amount *= session.buy_growth_factor
                if self._round_limit_reached(self._pending_session or session):
                    reason = "round limit reached"
                    break

                jitter = ROUND_JITTER_BASE + self.rng.uniform(0, ROUND_JITTER_SPAN)
                if not await self._pacer.sleep(session.inter_round_delay_sec * jitter):
                    break
        except ConfigurationError as e:
            reason = f"configuration error: {e}"
            logger.error(f"Pump loop aborted: {e}")
            await self._emit(PumpEvent(EventKind.ERROR, f"Pump loop aborted: {e}", round=self.current_round))
        finally:
            self._state.running = False
            self._phase = SchedulerState.IDLE
            self._apply_pending_session()
            logger.info(f"Pump loop ended after {self.rounds_completed} rounds ({reason})")

        await self._emit(PumpEvent(
            EventKind.STOPPED,
            f"Pump stopped after {self.rounds_completed} rounds, {self.volume_sol:.4f} SOL bought, "
            f"net spent {self.net_spent_sol:.4f} SOL",
            round=self.current_round,
            net_spent_sol=self.net_spent_sol,
        ))

    def _apply_pending_session(self) -> None:
        if self._pending_session is not None:
            self._session = self._pending_session
            self._pending_session = None
            logger.info("Staged configuration applied")

    def _round_limit_reached(self, session: PumpSession) -> bool:
        return session.max_rounds > 0 and self.current_round >= session.max_rounds

    async def _run_round(self, session: PumpSession) -> bool:
        """One round. False when a stop request cut it short."""
        self.trader.slippage_bps = session.slippage_bps
        level = await self._protection_level(session)
        buy_lamports = int(round(self._state.current_round_buy_amount * LAMPORTS_PER_SOL))

        for i in range(session.buys_per_round):
            if i > 0:
                if not await self._pacer.sleep(self.config.buy_pacing_sec):
                    return False
            elif not self._pacer.should_continue():
                return False
            await self._buy(session, buy_lamports, level)

        if session.sell_fraction_percent > 0:
            if not self._pacer.should_continue():
                return False
            await self._sell(session, level)

        return self._pacer.should_continue()

    async def _protection_level(self, session: PumpSession) -> ProtectionLevel:
        if session.protection_override is not None:
            return session.protection_override
        if not session.mev_protection_enabled:
            return ProtectionLevel.MEDIUM
        assessment = await self.risk.assess(session.token)
        return assessment.protection_level

    async def _buy(self, session: PumpSession, lamports: int, level: ProtectionLevel) -> None:
        try:
            if session.multi_wallet_enabled:
                results = await self.distributor.coordinated_buy(
                    session.token, lamports, session.mev_protection_enabled, level, pacer=self._pacer
                )
            else:
                intent = TradeIntent(session.token, TradeDirection.BUY, lamports, level)
                results = [await self.trader.execute(
                    intent,
                    self.main_wallet,
                    protect=session.mev_protection_enabled,
                    chunked=session.mev_protection_enabled,
                    pacer=self._pacer,
                )]
        except ConfigurationError:
            raise
        except Exception as e:
            results = [TradeResult(
                token=session.token,
                direction=TradeDirection.BUY,
                wallet_role=self.main_wallet.role,
                requested_amount=lamports,
                error=str(e) or type(e).__name__,
            )]

        for result in results:
            await self._record(result, "Buy")

    async def _sell(self, session: PumpSession, level: ProtectionLevel) -> None:
        try:
            amount = await self.trader.sellable_amount(
                self.main_wallet, session.token, session.sell_fraction_percent
            )
            intent = TradeIntent(session.token, TradeDirection.SELL, amount, level)
            result = await self.trader.execute(
                intent,
                self.main_wallet,
                protect=session.mev_protection_enabled,
                chunked=session.mev_protection_enabled and session.sell_fraction_percent < 100,
                pacer=self._pacer,
            )
        except ConfigurationError:
            raise
        except Exception as e:
            result = TradeResult(
                token=session.token,
                direction=TradeDirection.SELL,
                wallet_role=self.main_wallet.role,
                requested_amount=0,
                error=str(e) or type(e).__name__,
            )
        await self._record(result, "Sell")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def _record(self, result: TradeResult, label: str) -> None:
        """Update stats and send exactly one notification for a trade attempt."""
        if result.success:
            self.trades_ok += 1
        else:
            self.trades_failed += 1
        if result.direction == TradeDirection.BUY:
            self.volume_sol += result.executed_amount / LAMPORTS_PER_SOL
            self.net_spent_sol += result.executed_amount / LAMPORTS_PER_SOL
        else:
            self.net_spent_sol -= result.quoted_out / LAMPORTS_PER_SOL

        await self._emit(PumpEvent(
            EventKind.TRADE,
            f"{label} {'ok' if result.success else 'failed'}",
            round=self.current_round,
            trade=result,
        ))

    async def _emit(self, event: PumpEvent) -> None:
        try:
            await self.observer.notify(event)
        except Exception as e:
            logger.warning(f"Notification dropped ({event.kind.value}): {e}")
