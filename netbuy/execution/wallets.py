"""
Wallet Distributor
==================

Spreads one buy across up to three active identities so it looks like
several small, independent buyers.

Amount split:
    each participant but the last takes U(0.2, 0.4) of what remains;
    the last takes the remainder (exact sum, strictly positive).
    The per-wallet order is then shuffled so role and amount rank are
    uncorrelated.

Inter-wallet gap:
    U(500, 8000) ms, plus U(0, 2000) ms with probability 0.3 (bimodal).

Execution is strictly sequential. Parallel legs would land in the same
slot and defeat the timing spread. A failing wallet is recorded and the
next one still runs.

Note: this randomizes amounts and timing only. The identities remain
linkable on-chain (common funding, same token) and no anonymity is implied.
"""
import logging
from typing import List, Optional, Sequence

from ..errors import ConfigurationError
from ..models import (
    ProtectionLevel,
    TradeDirection,
    TradeIntent,
    TradeResult,
    WalletAssignment,
    WalletIdentity,
)
from ..randomness import RandomSource, DEFAULT_RANDOM
from .pacing import Pacer
from .trader import TradeExecutor

logger = logging.getLogger(__name__)


MAX_PARTICIPANTS = 3
SPLIT_FRACTION = (0.2, 0.4)
GAP_MS = (500.0, 8000.0)
BURST_PROBABILITY = 0.3
BURST_MS = (0.0, 2000.0)


class WalletDistributor:
    """
    Usage:
        distributor = WalletDistributor(wallets, trader)
        results = await distributor.coordinated_buy(mint, lamports, use_protection=True)
    """

    def __init__(
        self,
        wallets: Sequence[WalletIdentity],
        trader: TradeExecutor,
        rng: Optional[RandomSource] = None,
        max_participants: int = MAX_PARTICIPANTS,
    ):
        if not wallets:
            raise ConfigurationError("at least the main wallet is required")
        self._wallets = tuple(wallets)
        self.trader = trader
        self.rng = rng or DEFAULT_RANDOM
        self.max_participants = max(1, min(max_participants, MAX_PARTICIPANTS))

    @property
    def wallets(self) -> List[WalletIdentity]:
        return list(self._wallets)

    def active_wallets(self) -> List[WalletIdentity]:
        return [w for w in self._wallets if w.active]

    def select_participants(self) -> List[WalletIdentity]:
        """Main identity plus randomly chosen active extras, capped."""
        active = self.active_wallets()
        if len(active) <= self.max_participants:
            return active
        main, extras = active[0], active[1:]
        self.rng.shuffle(extras)
        return [main] + extras[:self.max_participants - 1]

    def distribute(self, total_amount: float, wallet_count: int) -> List[float]:
        """wallet_count positive amounts summing to total_amount, shuffled."""
        if wallet_count < 1:
            raise ValueError("wallet_count must be >= 1")

        remaining = total_amount
        amounts = []
        for _ in range(wallet_count - 1):
            share = remaining * self.rng.uniform(*SPLIT_FRACTION)
            amounts.append(share)
            remaining -= share
        amounts.append(remaining)

        self.rng.shuffle(amounts)
        return amounts

    def inter_wallet_delay_ms(self) -> float:
        delay = self.rng.uniform(*GAP_MS)
        if self.rng.random() < BURST_PROBABILITY:
            delay += self.rng.uniform(*BURST_MS)
        return delay

    def plan(self, total_amount: float, limit: Optional[int] = None) -> List[WalletAssignment]:
        participants = self.select_participants()
        if limit is not None:
            participants = participants[:max(1, limit)]
        amounts = self.distribute(total_amount, len(participants))
        assignments = []
        for i, (identity, amount) in enumerate(zip(participants, amounts)):
            delay = 0.0 if i == 0 else self.inter_wallet_delay_ms()
            assignments.append(WalletAssignment(identity, amount, delay))
        return assignments

    async def coordinated_buy(
        self,
        token: str,
        total_amount: int,
        use_protection: bool,
        level: ProtectionLevel = ProtectionLevel.MEDIUM,
        pacer: Optional[Pacer] = None,
    ) -> List[TradeResult]:
        """
        Buy total_amount lamports of token across the selected wallets.

        Returns one TradeResult per wallet that was started. No more wallets
        take part than there are lamports to give each one.

        Raises:
            ConfigurationError: the token cannot be traded
        """
        pacer = pacer or Pacer()
        assignments = self.plan(float(total_amount), limit=total_amount)
        units = _to_units([a.amount for a in assignments], total_amount)

        results: List[TradeResult] = []
        for i, (assignment, amount) in enumerate(zip(assignments, units)):
            identity = assignment.identity
            if i > 0:
                logger.debug(f"Waiting {assignment.delay_before_ms:.0f}ms before {identity.role}")
                if not await pacer.sleep(assignment.delay_before_ms / 1000):
                    break
            elif not pacer.should_continue():
                break

            intent = TradeIntent(token, TradeDirection.BUY, amount, level)
            try:
                result = await self.trader.execute(
                    intent, identity, protect=use_protection, chunked=False, pacer=pacer
                )
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error(f"[{identity.role}] coordinated buy failed: {e}")
                result = TradeResult(
                    token=token,
                    direction=TradeDirection.BUY,
                    wallet_role=identity.role,
                    requested_amount=amount,
                    error=str(e) or type(e).__name__,
                )
            results.append(result)

        return results


def _to_units(amounts: List[float], total: int) -> List[int]:
    """
    Integer split with the rounding remainder on the last entry.

    Every entry gets at least one unit when total allows it; a short last
    entry borrows from the largest one.
    """
    units = [max(1, int(a)) for a in amounts[:-1]]
    units.append(total - sum(units))
    while len(units) > 1 and units[-1] < 1:
        largest = max(range(len(units) - 1), key=units.__getitem__)
        if units[largest] <= 1:
            break
        units[largest] -= 1
        units[-1] += 1
    return units
