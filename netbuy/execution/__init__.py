"""
Execution Module
================

Trade obfuscation and relay scheduling.

Components:
- EndpointPool: private relay endpoints + public fallback
- RiskAssessor: best-effort protection level from recent activity
- ChunkPlanner: randomized split of one trade into chunks
- RelaySubmitter: private-first submission with public fallback
- TradeExecutor: single-identity swap execution
- WalletDistributor: sequential multi-wallet buys
- Pacer: cancellable sleeps
"""

from .endpoints import EndpointPool
from .risk import RiskAssessor, score_activity
from .chunk_planner import ChunkPlanner
from .relay import RelaySubmitter, RelayReceipt, RelayRejected
from .quote import ConstantProductQuote
from .trader import TradeExecutor
from .wallets import WalletDistributor
from .pacing import Pacer

__all__ = [
    'EndpointPool',
    'RiskAssessor',
    'score_activity',
    'ChunkPlanner',
    'RelaySubmitter',
    'RelayReceipt',
    'RelayRejected',
    'ConstantProductQuote',
    'TradeExecutor',
    'WalletDistributor',
    'Pacer',
]
