"""
Clients Module
==============

Adapters for the collaborators the engine consumes: the Solana ledger,
the Raydium pool locator and swap builder, and observers.
"""

from .ledger import LedgerClient, SolanaLedgerClient
from .pools import PoolLocator, RaydiumPoolLocator, parse_pool_keys, WSOL_MINT
from .swaps import SwapBuilder, RaydiumSwapBuilder
from .notifier import Observer, LoggingObserver, TelegramObserver, FanoutObserver, format_event

__all__ = [
    # Ledger
    'LedgerClient',
    'SolanaLedgerClient',
    # Pools
    'PoolLocator',
    'RaydiumPoolLocator',
    'parse_pool_keys',
    'WSOL_MINT',
    # Swaps
    'SwapBuilder',
    'RaydiumSwapBuilder',
    # Observers
    'Observer',
    'LoggingObserver',
    'TelegramObserver',
    'FanoutObserver',
    'format_event',
]
