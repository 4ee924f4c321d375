"""
Relay Submitter
===============

Sends one signed transaction through a private relay, falling back to the
public RPC path.

Flow per call:
1. Pick one private endpoint uniformly at random
2. POST the transaction (JSON-RPC sendTransaction, base64)
3. On network error, timeout or rejection: log and submit the same bytes
   through the public path
4. Public failure raises RelayError

Exactly one private attempt is made per call. There is no retry loop on
either path; latency stays bounded and the public path is last resort.

The tip transfer must be inside the signed transaction, so callers add
tip_instructions() when building it.
"""
import asyncio
import base64
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import aiohttp
from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from ..clients.ledger import LedgerClient
from ..config import RelayConfig
from ..errors import RelayError
from ..models import EndpointKind, RelayEndpoint, WalletIdentity
from ..randomness import RandomSource, DEFAULT_RANDOM
from .endpoints import EndpointPool

logger = logging.getLogger(__name__)


class RelayRejected(Exception):
    """The relay answered but refused the transaction."""


@dataclass(frozen=True)
class RelayReceipt:
    signature: str
    endpoint: RelayEndpoint
    latency_ms: float = 0.0

    @property
    def path(self) -> EndpointKind:
        return self.endpoint.kind


class RelaySubmitter:
    """
    Private-first transaction submission.

    Usage:
        relay = RelaySubmitter(EndpointPool.from_config(cfg), ledger, cfg)
        ixs += relay.tip_instructions(wallet.pubkey, protect=True)
        receipt = await relay.submit(bytes(tx), wallet, protect=True)
    """

    def __init__(
        self,
        pool: EndpointPool,
        ledger: LedgerClient,
        config: Optional[RelayConfig] = None,
        rng: Optional[RandomSource] = None,
    ):
        self.pool = pool
        self.ledger = ledger
        self.config = config or RelayConfig()
        self.rng = rng or DEFAULT_RANDOM
        self._session: Optional[aiohttp.ClientSession] = None
        self.stats: Dict[str, int] = {
            "private_txs": 0,
            "public_txs": 0,
            "fallbacks": 0,
            "failures": 0,
        }

    # ------------------------------------------------------------------
    # Tip
    # ------------------------------------------------------------------

    def tip_instructions(self, payer: Pubkey, protect: bool) -> List[Instruction]:
        """Fixed-size tip transfer to a relay beneficiary, when enabled."""
        if not protect or self.config.tip_lamports <= 0 or not self.config.tip_accounts:
            return []
        if not self.pool.has_private:
            return []
        beneficiary = Pubkey.from_string(self.rng.choice(self.config.tip_accounts))
        return [transfer(TransferParams(
            from_pubkey=payer,
            to_pubkey=beneficiary,
            lamports=self.config.tip_lamports,
        ))]

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        payload: bytes,
        identity: WalletIdentity,
        protect: bool = True,
    ) -> RelayReceipt:
        start = time.time()
        private_error = ""

        endpoint = self.pool.pick_private() if protect else None
        if endpoint is not None:
            try:
                signature = await self._post_private(endpoint, payload)
                self.stats["private_txs"] += 1
                logger.debug(f"[{identity.role}] relayed via {endpoint.url}: {signature[:16]}...")
                return RelayReceipt(signature, endpoint, (time.time() - start) * 1000)
            except (aiohttp.ClientError, asyncio.TimeoutError, RelayRejected, ValueError) as e:
                private_error = str(e) or type(e).__name__
                self.stats["fallbacks"] += 1
                logger.warning(
                    f"[{identity.role}] relay {endpoint.url} failed ({private_error}), "
                    f"falling back to public path"
                )

        try:
            signature = await self.ledger.submit_raw_transaction(payload)
        except Exception as e:
            self.stats["failures"] += 1
            public_error = str(e) or type(e).__name__
            logger.error(f"[{identity.role}] public submission failed: {public_error}")
            raise RelayError(
                f"Submission failed on all paths: {public_error}",
                private_error=private_error,
                public_error=public_error,
            ) from e

        self.stats["public_txs"] += 1
        return RelayReceipt(signature, self.pool.public_endpoint, (time.time() - start) * 1000)

    async def _post_private(self, endpoint: RelayEndpoint, payload: bytes) -> str:
        """One JSON-RPC sendTransaction POST. Returns the signature."""
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendTransaction",
            "params": [
                base64.b64encode(payload).decode(),
                {"encoding": "base64"},
            ],
        }
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)
        async with session.post(endpoint.url, json=body, timeout=timeout) as resp:
            if resp.status != 200:
                text = await resp.text()
                raise RelayRejected(f"HTTP {resp.status}: {text[:200]}")
            data = await resp.json(content_type=None)

        if not isinstance(data, dict):
            raise RelayRejected("malformed response")
        error = data.get("error")
        if error:
            raise RelayRejected(str(error.get("message", error) if isinstance(error, dict) else error))
        result = data.get("result")
        if not result:
            raise RelayRejected("empty result")
        return str(result)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
