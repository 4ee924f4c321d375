"""
Net-Buy Engine - Obfuscated Pump Cycles on Solana
=================================================

Repeated net-buy rounds against a token's Raydium pool, with each trade
split, delayed, spread over wallets and relayed privately so the pattern
is harder to front-run.

Usage:
    from netbuy import PumpScheduler, PumpSession, RelayConfig
    from netbuy.clients import SolanaLedgerClient

    config = RelayConfig.from_env()
    ledger = SolanaLedgerClient(config.public_rpc_url)
    scheduler = PumpScheduler.create(ledger, load_wallets_from_env(), config)

    scheduler.configure(PumpSession(token="<mint>", buy_amount_per_round=0.05))
    await scheduler.start()
    print(scheduler.status())
    scheduler.stop()

Control surface: configure / start / stop / status / sell_all.
"""

# Scheduler
from .scheduler import PumpScheduler

# Configuration
from .config import (
    PumpSession,
    RelayConfig,
    ProtectionProfile,
    DEFAULT_PROFILES,
    DEFAULT_SESSION,
    load_wallets_from_env,
    parse_secret_key,
)

# Data models
from .models import (
    TradeDirection,
    ProtectionLevel,
    TradeIntent,
    TradeResult,
    ChunkPlan,
    WalletIdentity,
    RiskAssessment,
    PumpEvent,
    PumpStatus,
    EventKind,
    StartResult,
    StopResult,
)

# Errors
from .errors import (
    NetBuyError,
    ConfigurationError,
    PoolNotFound,
    RelayError,
    InsufficientBalance,
    NotificationError,
)

# Randomness
from .randomness import RandomSource


__all__ = [
    # Scheduler
    'PumpScheduler',
    # Config
    'PumpSession',
    'RelayConfig',
    'ProtectionProfile',
    'DEFAULT_PROFILES',
    'DEFAULT_SESSION',
    'load_wallets_from_env',
    'parse_secret_key',
    # Models
    'TradeDirection',
    'ProtectionLevel',
    'TradeIntent',
    'TradeResult',
    'ChunkPlan',
    'WalletIdentity',
    'RiskAssessment',
    'PumpEvent',
    'PumpStatus',
    'EventKind',
    'StartResult',
    'StopResult',
    # Errors
    'NetBuyError',
    'ConfigurationError',
    'PoolNotFound',
    'RelayError',
    'InsufficientBalance',
    'NotificationError',
    # Randomness
    'RandomSource',
]

__version__ = "0.1.0"
