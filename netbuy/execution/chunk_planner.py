"""
Chunk Planner
=============

Splits a trade into randomized sub-amounts separated by randomized delays.

    raw_i   = total / n * (1 + U(-variance/2, +variance/2))
    chunk_i = raw_i / sum(raw) * total

The rescale keeps the sum equal to the total whatever variance was drawn.
The last chunk absorbs floating-point residue and carries no delay.

Usage:
    planner = ChunkPlanner()
    plan = planner.plan(1.0, ProtectionLevel.MEDIUM)
    for chunk in plan:
        ...
"""
import logging
from typing import Dict, Optional

from ..config import DEFAULT_PROFILES, ProtectionProfile
from ..models import Chunk, ChunkPlan, ProtectionLevel
from ..randomness import RandomSource, DEFAULT_RANDOM

logger = logging.getLogger(__name__)


class ChunkPlanner:
    """Builds ChunkPlans from a per-level profile table."""

    def __init__(
        self,
        profiles: Optional[Dict[ProtectionLevel, ProtectionProfile]] = None,
        rng: Optional[RandomSource] = None,
    ):
        self.profiles = dict(profiles or DEFAULT_PROFILES)
        self.rng = rng or DEFAULT_RANDOM

    def profile(self, level: ProtectionLevel) -> ProtectionProfile:
        return self.profiles[level]

    def plan(
        self,
        total_amount: float,
        level: ProtectionLevel,
        chunk_count: Optional[int] = None,
    ) -> ChunkPlan:
        """
        Args:
            total_amount: Amount to split (any unit)
            level: Protection level selecting count, variance and delays
            chunk_count: Override the profile's chunk count (1 = single shot)

        Returns:
            ChunkPlan whose amounts sum to total_amount
        """
        profile = self.profile(level)
        n = profile.chunk_count if chunk_count is None else chunk_count

        if n <= 1 or total_amount <= 0:
            return ChunkPlan([Chunk(amount=total_amount, delay_after_ms=None)])

        base = total_amount / n
        half = profile.variance / 2
        raw = [base * (1 + self.rng.uniform(-half, half)) for _ in range(n)]
        raw_sum = sum(raw)
        amounts = [r / raw_sum * total_amount for r in raw]
        amounts[-1] = total_amount - sum(amounts[:-1])

        chunks = []
        for i, amount in enumerate(amounts):
            delay = None
            if i < n - 1:
                delay = self.rng.uniform(profile.min_delay_ms, profile.max_delay_ms)
            chunks.append(Chunk(amount=amount, delay_after_ms=delay))

        plan = ChunkPlan(chunks)
        logger.debug(
            f"Plan {level.value}: {n} chunks "
            f"[{', '.join(f'{c.amount:.6f}' for c in chunks)}]"
        )
        return plan
