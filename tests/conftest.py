"""Shared fakes for the net-buy tests"""

import asyncio
from typing import Any, List, Optional

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from netbuy.clients.ledger import LedgerClient
from netbuy.clients.notifier import Observer
from netbuy.clients.pools import PoolLocator, WSOL_MINT
from netbuy.clients.swaps import SwapBuilder
from netbuy.config import RelayConfig
from netbuy.errors import NotificationError, PoolNotFound
from netbuy.models import EventKind, PoolDescriptor, PumpEvent, WalletIdentity
from netbuy.randomness import RandomSource


def new_address() -> str:
    return str(Pubkey.new_unique())


class FakeLedger(LedgerClient):
    """In-memory ledger. Every account exists unless missing_accounts says otherwise."""

    def __init__(self, token_balance: int = 1_000_000_000, activity=None):
        self.token_balance = token_balance
        self.activity = list(activity or [])
        self.activity_error: Optional[Exception] = None
        self.missing_accounts = set()
        self.fail_public = False
        self.confirm_result = True
        self.submitted: List[bytes] = []
        self.confirmed: List[str] = []
        # Optional gate: confirm() waits on it after setting confirm_started
        self.gate: Optional[asyncio.Event] = None
        self.confirm_started: Optional[asyncio.Event] = None

    async def get_balance(self, owner: Pubkey) -> int:
        return 10 * 10**9

    async def get_account_info(self, address: Pubkey) -> Optional[Any]:
        if str(address) in self.missing_accounts:
            return None
        return object()

    async def get_token_account_balance(self, account: Pubkey) -> int:
        return self.token_balance

    async def submit_raw_transaction(self, payload: bytes) -> str:
        if self.fail_public:
            raise RuntimeError("rpc unavailable")
        self.submitted.append(payload)
        return f"public-sig-{len(self.submitted)}"

    async def confirm(self, signature: str) -> bool:
        if self.gate is not None:
            if self.confirm_started is not None:
                self.confirm_started.set()
            await self.gate.wait()
        self.confirmed.append(signature)
        return self.confirm_result

    async def get_latest_blockhash(self) -> Hash:
        return Hash.default()

    async def get_recent_activity(self, address: Pubkey, limit: int = 50):
        if self.activity_error is not None:
            raise self.activity_error
        return self.activity[:limit]


class FakePoolLocator(PoolLocator):

    def __init__(self, missing: bool = False):
        self.missing = missing
        self.lookups: List[str] = []

    async def find_pool(self, token: str) -> PoolDescriptor:
        self.lookups.append(token)
        if self.missing:
            raise PoolNotFound(token)
        return make_pool(token)


class FakeSwapBuilder(SwapBuilder):
    """Stands in a plain transfer for the swap and records amounts."""

    def __init__(self):
        self.amounts: List[int] = []

    def build_swap(self, pool, source_account, dest_account, owner, amount_in, min_amount_out, direction):
        self.amounts.append(amount_in)
        return [transfer(TransferParams(from_pubkey=owner, to_pubkey=dest_account, lamports=1))]


class RecordingObserver(Observer):
    """Keeps every event; can stop a scheduler after a number of events of one kind."""

    def __init__(self, fail: bool = False):
        self.events: List[PumpEvent] = []
        self.fail = fail
        self.scheduler = None
        self.stop_on: Optional[EventKind] = None
        self.stop_after = 0

    def stop_when(self, scheduler, kind: EventKind, count: int):
        self.scheduler = scheduler
        self.stop_on = kind
        self.stop_after = count

    def of_kind(self, kind: EventKind) -> List[PumpEvent]:
        return [e for e in self.events if e.kind == kind]

    async def notify(self, event: PumpEvent) -> None:
        self.events.append(event)
        if self.scheduler is not None and event.kind == self.stop_on:
            if len(self.of_kind(self.stop_on)) >= self.stop_after:
                self.scheduler.stop()
        if self.fail:
            raise NotificationError("chat unreachable")


class ScriptedRandomSource(RandomSource):
    """
    Deterministic source: each draw takes the next fraction in [0, 1]
    (cycling) and maps it onto the requested range.
    """

    def __init__(self, fractions=(0.5,)):
        super().__init__(seed=0)
        self.fractions = list(fractions)
        self._i = 0

    def _next(self) -> float:
        value = self.fractions[self._i % len(self.fractions)]
        self._i += 1
        return value

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self._next()

    def random(self) -> float:
        return self._next()

    def choice(self, items):
        return items[0]

    def shuffle(self, items) -> None:
        pass


def make_pool(token: str) -> PoolDescriptor:
    return PoolDescriptor(
        id=new_address(),
        program_id=new_address(),
        base_mint=token,
        quote_mint=WSOL_MINT,
        base_decimals=6,
        quote_decimals=9,
        authority=new_address(),
        open_orders=new_address(),
        target_orders=new_address(),
        base_vault=new_address(),
        quote_vault=new_address(),
        market_program_id=new_address(),
        market_id=new_address(),
        market_authority=new_address(),
        market_base_vault=new_address(),
        market_quote_vault=new_address(),
        market_bids=new_address(),
        market_asks=new_address(),
        market_event_queue=new_address(),
    )


def make_wallets(count: int = 1) -> List[WalletIdentity]:
    roles = ["main"] + [f"wallet{i + 2}" for i in range(count - 1)]
    return [WalletIdentity(Keypair(), role=role) for role in roles]


@pytest.fixture
def token() -> str:
    return new_address()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def public_only_config() -> RelayConfig:
    """No private relays, no pacing: submissions go straight to the ledger."""
    return RelayConfig(
        private_endpoints=[],
        public_rpc_url="http://localhost:8899",
        buy_pacing_sec=0.0,
        shutdown_grace_sec=1.0,
    )
