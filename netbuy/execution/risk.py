"""
Risk Assessor
=============

Coarse, best-effort protection-level classification from a token's recent
on-chain activity. This is a placeholder policy, NOT front-run detection:
it never inspects the mempool and has no validated link to actual
sandwich risk. It only measures how busy and contended the token is.

Indicators (from the <=50 most recent transactions on the mint):
- tx_per_min:      activity density over the sample window
- same_slot_ratio: consecutive transactions landing in the same slot
- failure_ratio:   share of failed transactions (bot contention)

    score = 0.5 * min(1, tx_per_min / 30)
          + 0.3 * same_slot_ratio
          + 0.2 * failure_ratio

Mapping: score < 0.3 -> low, [0.3, 0.7) -> medium, >= 0.7 -> high.

Any lookup failure or empty sample returns the neutral default
(score 0.5, medium). This component never aborts a trade.
"""
import logging
from typing import List

import numpy as np
from solders.pubkey import Pubkey

from ..clients.ledger import LedgerClient
from ..models import ProtectionLevel, RiskAssessment, TxActivity

logger = logging.getLogger(__name__)


MAX_SAMPLE = 50
DENSITY_SATURATION_PER_MIN = 30.0

WEIGHT_DENSITY = 0.5
WEIGHT_SAME_SLOT = 0.3
WEIGHT_FAILURE = 0.2


def score_activity(sample: List[TxActivity]) -> RiskAssessment:
    """Score a non-empty activity sample."""
    n = len(sample)
    slots = np.array([tx.slot for tx in sample], dtype=np.int64)
    failed = np.array([tx.failed for tx in sample], dtype=bool)
    times = np.array([tx.block_time for tx in sample if tx.block_time is not None], dtype=np.float64)

    if times.size >= 2:
        span_min = max((times.max() - times.min()) / 60.0, 1.0 / 60.0)
        tx_per_min = n / span_min
    else:
        # No timing: treat a full sample as saturated
        tx_per_min = DENSITY_SATURATION_PER_MIN * n / MAX_SAMPLE

    same_slot_ratio = float(np.mean(np.diff(slots) == 0)) if n >= 2 else 0.0
    failure_ratio = float(failed.mean())
    density = min(1.0, tx_per_min / DENSITY_SATURATION_PER_MIN)

    score = (
        WEIGHT_DENSITY * density
        + WEIGHT_SAME_SLOT * same_slot_ratio
        + WEIGHT_FAILURE * failure_ratio
    )
    score = float(np.clip(score, 0.0, 1.0))

    return RiskAssessment(
        risk_score=score,
        protection_level=ProtectionLevel.from_risk_score(score),
        sample_size=n,
        indicators={
            'tx_per_min': float(tx_per_min),
            'same_slot_ratio': same_slot_ratio,
            'failure_ratio': failure_ratio,
        },
    )


class RiskAssessor:
    """Samples recent activity through the ledger client and scores it."""

    def __init__(self, ledger: LedgerClient, sample_size: int = MAX_SAMPLE):
        self.ledger = ledger
        self.sample_size = min(sample_size, MAX_SAMPLE)

    async def assess(self, token: str) -> RiskAssessment:
        try:
            sample = await self.ledger.get_recent_activity(
                Pubkey.from_string(token), limit=self.sample_size
            )
        except Exception as e:
            logger.warning(f"Risk lookup for {token} failed, using neutral default: {e}")
            return RiskAssessment.neutral()

        sample = list(sample)[:self.sample_size]
        if not sample:
            logger.debug(f"No recent activity for {token}, using neutral default")
            return RiskAssessment.neutral()

        assessment = score_activity(sample)
        logger.debug(
            f"Risk {token[:8]}...: score={assessment.risk_score:.2f} "
            f"level={assessment.protection_level.value} n={assessment.sample_size}"
        )
        return assessment
