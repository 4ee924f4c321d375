"""
Net-Buy Models - Shared Data Structures
=======================================

Data structures passed between the planner, relay, distributor and
scheduler. Amounts on the wire are integer base units (lamports for SOL,
raw units for tokens); plans work in floats and are converted once with
ChunkPlan.to_units().
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from enum import Enum
import time

from solders.keypair import Keypair
from solders.pubkey import Pubkey


LAMPORTS_PER_SOL = 1_000_000_000


class TradeDirection(Enum):
    BUY = "buy"
    SELL = "sell"


class ProtectionLevel(Enum):
    """Coarse protection class controlling chunk count, variance and delays."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_risk_score(cls, score: float) -> "ProtectionLevel":
        if score < 0.3:
            return cls.LOW
        if score < 0.7:
            return cls.MEDIUM
        return cls.HIGH


class EndpointKind(Enum):
    PRIVATE = "private"
    PUBLIC = "public"


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class StartResult(Enum):
    OK = "ok"
    ALREADY_RUNNING = "already_running"
    NOT_CONFIGURED = "not_configured"


class StopResult(Enum):
    OK = "ok"
    NOT_RUNNING = "not_running"


class EventKind(Enum):
    ROUND_STARTED = "round_started"
    ROUND_COMPLETED = "round_completed"
    TRADE = "trade"
    ERROR = "error"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TradeIntent:
    """One requested trade. Built fresh per call, never mutated."""
    token: str
    direction: TradeDirection
    total_amount: int                       # base units of the input asset
    protection_level: ProtectionLevel


@dataclass(frozen=True)
class Chunk:
    amount: float
    delay_after_ms: Optional[float] = None  # None on the final chunk


@dataclass(frozen=True)
class ChunkPlan:
    """Ordered sub-amounts whose sum equals the requested total."""
    chunks: List[Chunk]

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self.chunks)

    @property
    def total(self) -> float:
        return sum(c.amount for c in self.chunks)

    @property
    def delays_ms(self) -> List[float]:
        return [c.delay_after_ms for c in self.chunks if c.delay_after_ms is not None]

    def to_units(self) -> List[int]:
        """
        Round each chunk to whole base units.

        The rounding remainder lands on the last chunk so the integer sum
        matches round(total) exactly.
        """
        if not self.chunks:
            return []
        target = int(round(self.total))
        units = [int(c.amount) for c in self.chunks[:-1]]
        units.append(target - sum(units))
        return units


@dataclass(frozen=True)
class RelayEndpoint:
    url: str
    kind: EndpointKind


@dataclass(frozen=True)
class WalletIdentity:
    """Signing identity. Read-only everywhere except where it is loaded."""
    keypair: Keypair
    role: str = "main"
    active: bool = True

    @property
    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    def __repr__(self) -> str:
        return f"WalletIdentity(role={self.role!r}, pubkey={self.pubkey}, active={self.active})"


@dataclass
class RiskAssessment:
    """
    Best-effort activity heuristic. Not a front-run detector: it only
    looks at the density and failure rate of recent transactions.
    """
    risk_score: float
    protection_level: ProtectionLevel
    sample_size: int = 0
    indicators: Dict[str, float] = field(default_factory=dict)
    fallback: bool = False

    @classmethod
    def neutral(cls) -> "RiskAssessment":
        return cls(risk_score=0.5, protection_level=ProtectionLevel.MEDIUM, fallback=True)


@dataclass(frozen=True)
class PoolDescriptor:
    """Raydium AMM v4 pool keys (base58 strings)."""
    id: str
    program_id: str
    base_mint: str
    quote_mint: str
    base_decimals: int
    quote_decimals: int
    authority: str
    open_orders: str
    target_orders: str
    base_vault: str
    quote_vault: str
    market_program_id: str
    market_id: str
    market_authority: str
    market_base_vault: str
    market_quote_vault: str
    market_bids: str
    market_asks: str
    market_event_queue: str

    def token_is_base(self, token: str) -> bool:
        return self.base_mint == token

    def token_decimals(self, token: str) -> int:
        return self.base_decimals if self.token_is_base(token) else self.quote_decimals


@dataclass
class ChunkResult:
    """Outcome of one submitted transaction."""
    amount: int
    success: bool
    signature: str = ""
    path: Optional[EndpointKind] = None
    error: Optional[str] = None
    latency_ms: float = 0.0
    quoted_out: int = 0                     # expected output units from the pool quote


@dataclass
class TradeResult:
    """Outcome of one trade attempt (one intent, one identity)."""
    token: str
    direction: TradeDirection
    wallet_role: str
    requested_amount: int
    chunks: List[ChunkResult] = field(default_factory=list)
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def success(self) -> bool:
        return self.error is None and bool(self.chunks) and all(c.success for c in self.chunks)

    @property
    def executed_amount(self) -> int:
        return sum(c.amount for c in self.chunks if c.success)

    @property
    def signatures(self) -> List[str]:
        return [c.signature for c in self.chunks if c.success and c.signature]

    @property
    def quoted_out(self) -> int:
        return sum(c.quoted_out for c in self.chunks if c.success)

    def failure_reason(self) -> Optional[str]:
        if self.error:
            return self.error
        for c in self.chunks:
            if not c.success:
                return c.error
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'token': self.token,
            'direction': self.direction.value,
            'wallet': self.wallet_role,
            'requested_amount': self.requested_amount,
            'executed_amount': self.executed_amount,
            'success': self.success,
            'signatures': self.signatures,
            'error': self.failure_reason(),
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class WalletAssignment:
    identity: WalletIdentity
    amount: float
    delay_before_ms: float = 0.0            # 0 for the first participant


@dataclass
class RunState:
    """Loop flags. Mutated only by the scheduler."""
    running: bool = False
    shutting_down: bool = False
    current_round_buy_amount: float = 0.0


@dataclass
class PumpEvent:
    """Structured payload handed to the observer."""
    kind: EventKind
    message: str
    round: int = 0
    trade: Optional[TradeResult] = None
    net_spent_sol: float = 0.0               # set on ROUND_COMPLETED and STOPPED
    timestamp: float = field(default_factory=time.time)


@dataclass
class PumpStatus:
    running: bool
    state: SchedulerState
    current_round: int
    current_buy_amount: float
    rounds_completed: int = 0
    trades_ok: int = 0
    trades_failed: int = 0
    volume_sol: float = 0.0
    net_spent_sol: float = 0.0               # buys minus quoted sell proceeds

    def to_dict(self) -> Dict[str, Any]:
        return {
            'running': self.running,
            'state': self.state.value,
            'current_round': self.current_round,
            'current_buy_amount': self.current_buy_amount,
            'rounds_completed': self.rounds_completed,
            'trades_ok': self.trades_ok,
            'trades_failed': self.trades_failed,
            'volume_sol': self.volume_sol,
            'net_spent_sol': self.net_spent_sol,
        }


@dataclass(frozen=True)
class TxActivity:
    """One recent transaction touching an address."""
    signature: str
    slot: int
    block_time: Optional[int] = None
    failed: bool = False
