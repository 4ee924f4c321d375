"""
Ledger Client
=============

Balance, account and submission calls against a Solana RPC node.

LedgerClient is the interface the engine consumes; SolanaLedgerClient
implements it with solana-py's AsyncClient.

Usage:
    ledger = SolanaLedgerClient("https://api.mainnet-beta.solana.com")
    lamports = await ledger.get_balance(wallet.pubkey)
    sig = await ledger.submit_raw_transaction(bytes(tx))
    ok = await ledger.confirm(sig)
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from ..models import TxActivity

logger = logging.getLogger(__name__)


class LedgerClient(ABC):
    """Network boundary for reads and raw submission."""

    @abstractmethod
    async def get_balance(self, owner: Pubkey) -> int:
        """SOL balance in lamports."""

    @abstractmethod
    async def get_account_info(self, address: Pubkey) -> Optional[Any]:
        """Account object, or None when the account does not exist."""

    @abstractmethod
    async def get_token_account_balance(self, account: Pubkey) -> int:
        """Raw token amount held by a token account (0 if absent)."""

    @abstractmethod
    async def submit_raw_transaction(self, payload: bytes) -> str:
        """Send a signed transaction through the public path. Returns the signature."""

    @abstractmethod
    async def confirm(self, signature: str) -> bool:
        """True when the transaction landed without error."""

    @abstractmethod
    async def get_latest_blockhash(self) -> Hash:
        pass

    @abstractmethod
    async def get_recent_activity(self, address: Pubkey, limit: int = 50) -> List[TxActivity]:
        """Most recent transactions referencing an address, newest first."""

    async def close(self) -> None:
        pass


class SolanaLedgerClient(LedgerClient):
    """solana-py backed ledger client."""

    def __init__(self, rpc_url: str, confirm_poll_sec: float = 0.5):
        self.rpc_url = rpc_url
        self.confirm_poll_sec = confirm_poll_sec
        self._client = AsyncClient(rpc_url, commitment=Confirmed)

    async def get_balance(self, owner: Pubkey) -> int:
        resp = await self._client.get_balance(owner)
        return resp.value

    async def get_account_info(self, address: Pubkey) -> Optional[Any]:
        resp = await self._client.get_account_info(address)
        return resp.value

    async def get_token_account_balance(self, account: Pubkey) -> int:
        try:
            resp = await self._client.get_token_account_balance(account)
        except RPCException as e:
            # Missing token accounts come back as an RPC error
            logger.debug(f"Token balance lookup for {account} failed: {e}")
            return 0
        return int(resp.value.amount)

    async def submit_raw_transaction(self, payload: bytes) -> str:
        resp = await self._client.send_raw_transaction(
            payload,
            opts=TxOpts(skip_preflight=True, preflight_commitment=Confirmed),
        )
        return str(resp.value)

    async def confirm(self, signature: str) -> bool:
        resp = await self._client.confirm_transaction(
            Signature.from_string(signature),
            commitment=Confirmed,
            sleep_seconds=self.confirm_poll_sec,
        )
        status = resp.value[0] if resp.value else None
        if status is None:
            return False
        if status.err is not None:
            logger.warning(f"Transaction {signature[:16]}... failed on-chain: {status.err}")
            return False
        return True

    async def get_latest_blockhash(self) -> Hash:
        resp = await self._client.get_latest_blockhash()
        return resp.value.blockhash

    async def get_recent_activity(self, address: Pubkey, limit: int = 50) -> List[TxActivity]:
        resp = await self._client.get_signatures_for_address(address, limit=limit)
        return [
            TxActivity(
                signature=str(item.signature),
                slot=item.slot,
                block_time=item.block_time,
                failed=item.err is not None,
            )
            for item in resp.value
        ]

    async def close(self) -> None:
        await self._client.close()
