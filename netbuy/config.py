"""
Net-Buy Configuration
=====================

Session parameters for the pump loop, relay settings and the protection
profile table, all in one place.

Usage:
    from netbuy.config import PumpSession, RelayConfig

    session = PumpSession(token="<mint>", buy_amount_per_round=0.05)
    session.validate()

    relay = RelayConfig.from_env()
"""

import json
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

import base58
from solders.keypair import Keypair

from .errors import ConfigurationError
from .models import ProtectionLevel, WalletIdentity


# Jito block-engine regions (sendTransaction JSON-RPC)
JITO_ENDPOINTS = [
    "https://mainnet.block-engine.jito.wtf/api/v1/transactions",
    "https://amsterdam.mainnet.block-engine.jito.wtf/api/v1/transactions",
    "https://frankfurt.mainnet.block-engine.jito.wtf/api/v1/transactions",
    "https://ny.mainnet.block-engine.jito.wtf/api/v1/transactions",
    "https://tokyo.mainnet.block-engine.jito.wtf/api/v1/transactions",
]

# Jito tip accounts (relay beneficiaries)
JITO_TIP_ACCOUNTS = [
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4bVmkdzGTbQrWMT7wekGuLt",
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
]

PUBLIC_RPC_URL = "https://api.mainnet-beta.solana.com"

DEFAULT_TIP_LAMPORTS = 1_000_000          # 0.001 SOL
MAX_SLIPPAGE_BPS = 5000


@dataclass(frozen=True)
class ProtectionProfile:
    """How one protection level splits and spaces a trade."""
    chunk_count: int
    variance: float
    min_delay_ms: float
    max_delay_ms: float


DEFAULT_PROFILES: Dict[ProtectionLevel, ProtectionProfile] = {
    ProtectionLevel.LOW: ProtectionProfile(chunk_count=2, variance=0.1, min_delay_ms=100, max_delay_ms=1000),
    ProtectionLevel.MEDIUM: ProtectionProfile(chunk_count=3, variance=0.2, min_delay_ms=200, max_delay_ms=2000),
    ProtectionLevel.HIGH: ProtectionProfile(chunk_count=5, variance=0.3, min_delay_ms=500, max_delay_ms=3000),
}


@dataclass
class PumpSession:
    """
    Pump loop configuration.

    Replaced as a whole through PumpScheduler.configure(); the loop reads
    it once at the start of every round.
    """

    # === Target ===
    token: str = ""

    # === Round shape ===
    buy_amount_per_round: float = 0.01       # SOL
    sell_fraction_percent: float = 0.0       # % of holdings sold per round
    inter_round_delay_sec: float = 30.0
    buy_growth_factor: float = 1.0           # multiplied in after every round
    buys_per_round: int = 1
    max_rounds: int = 0                      # 0 runs until stopped

    # === Execution ===
    mev_protection_enabled: bool = True
    multi_wallet_enabled: bool = False
    slippage_bps: int = 100                  # 1%
    protection_override: Optional[ProtectionLevel] = None

    # Fields that may not change while the loop is running
    SHAPE_FIELDS = (
        'token',
        'buy_amount_per_round',
        'sell_fraction_percent',
        'buy_growth_factor',
        'buys_per_round',
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    def validate(self) -> None:
        """Raise ConfigurationError on the first invalid field."""
        if not self.token:
            raise ConfigurationError("token is not set")
        if self.buy_amount_per_round <= 0:
            raise ConfigurationError("buy_amount_per_round must be > 0")
        if not 0 <= self.sell_fraction_percent <= 100:
            raise ConfigurationError("sell_fraction_percent must be within [0, 100]")
        if self.inter_round_delay_sec < 0:
            raise ConfigurationError("inter_round_delay_sec must be >= 0")
        if self.buy_growth_factor < 1.0:
            raise ConfigurationError("buy_growth_factor must be >= 1.0")
        if self.buys_per_round < 1:
            raise ConfigurationError("buys_per_round must be >= 1")
        if self.max_rounds < 0:
            raise ConfigurationError("max_rounds must be >= 0")
        if not 0 <= self.slippage_bps <= MAX_SLIPPAGE_BPS:
            raise ConfigurationError(f"slippage_bps must be within [0, {MAX_SLIPPAGE_BPS}]")

    def shape_differs(self, other: "PumpSession") -> List[str]:
        """Names of shape fields that differ between two sessions."""
        return [name for name in self.SHAPE_FIELDS if getattr(self, name) != getattr(other, name)]

    def copy(self, **changes) -> "PumpSession":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        if self.protection_override is not None:
            data['protection_override'] = self.protection_override.value
        return data


@dataclass
class RelayConfig:
    """Submission paths, tip and pacing."""

    private_endpoints: List[str] = field(default_factory=lambda: list(JITO_ENDPOINTS))
    public_rpc_url: str = PUBLIC_RPC_URL
    tip_lamports: int = DEFAULT_TIP_LAMPORTS
    tip_accounts: List[str] = field(default_factory=lambda: list(JITO_TIP_ACCOUNTS))
    request_timeout: float = 10.0            # seconds, per relay POST

    # === Pacing ===
    buy_pacing_sec: float = 2.0              # between buys inside a round
    max_wallets_per_round: int = 3
    shutdown_grace_sec: float = 30.0

    # === Fees ===
    compute_unit_limit: int = 200_000
    priority_fee_microlamports: int = 100_000

    @classmethod
    def from_env(cls) -> "RelayConfig":
        config = cls()
        endpoints = os.getenv("RELAY_ENDPOINTS")
        if endpoints:
            config.private_endpoints = [u.strip() for u in endpoints.split(",") if u.strip()]
        config.public_rpc_url = os.getenv("RPC_URL", config.public_rpc_url)
        tip = os.getenv("JITO_TIP_LAMPORTS")
        if tip:
            try:
                config.tip_lamports = int(tip)
            except ValueError:
                raise ConfigurationError(f"JITO_TIP_LAMPORTS is not an integer: {tip!r}")
        if config.tip_lamports < 0:
            raise ConfigurationError("JITO_TIP_LAMPORTS must be >= 0")
        return config


def parse_secret_key(secret: str) -> Keypair:
    """Accept a base58 secret key or a JSON array of 64 bytes."""
    secret = secret.strip()
    try:
        if secret.startswith("["):
            raw = bytes(json.loads(secret))
        else:
            raw = base58.b58decode(secret)
        return Keypair.from_bytes(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid secret key: {e}")


def load_wallets_from_env() -> List[WalletIdentity]:
    """
    Main identity from MAIN_PRIVATE_KEY, extras from EXTRA_PRIVATE_KEYS
    (comma or semicolon separated).
    """
    main_secret = os.getenv("MAIN_PRIVATE_KEY")
    if not main_secret:
        raise ConfigurationError("MAIN_PRIVATE_KEY is not set")

    wallets = [WalletIdentity(parse_secret_key(main_secret), role="main")]
    extras = os.getenv("EXTRA_PRIVATE_KEYS", "")
    for i, secret in enumerate(s for s in extras.replace(";", ",").split(",") if s.strip()):
        wallets.append(WalletIdentity(parse_secret_key(secret), role=f"wallet{i + 2}"))
    return wallets


DEFAULT_SESSION = PumpSession()
