"""
Trade Executor
==============

Runs one TradeIntent for one identity:

1. Locate the pool (PoolNotFound propagates to the caller)
2. Ensure the identity's token account exists (create if absent)
3. Plan chunks (single shot unless chunking is requested)
4. For each chunk: build swap tx -> sign -> relay -> confirm
5. Pace between chunks; a stop request is honoured between chunks only

Buys wrap SOL into a temporary wSOL account (transfer + sync native) and
close it after the swap; sells swap into that account and close it to
unwrap. Chunk failures are recorded in the TradeResult, not raised.

Usage:
    trader = TradeExecutor(ledger, pools, swaps, relay, planner)
    result = await trader.execute(intent, wallet, protect=True, chunked=True)
"""
import logging
import time
from typing import List, Optional, Tuple

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction
from spl.token.constants import TOKEN_PROGRAM_ID, WRAPPED_SOL_MINT
from spl.token.instructions import (
    CloseAccountParams,
    SyncNativeParams,
    close_account,
    create_associated_token_account,
    get_associated_token_address,
    sync_native,
)

from ..clients.ledger import LedgerClient
from ..clients.pools import PoolLocator
from ..clients.swaps import SwapBuilder
from ..config import RelayConfig
from ..errors import ConfigurationError, InsufficientBalance, RelayError
from ..models import (
    ChunkResult,
    PoolDescriptor,
    TradeDirection,
    TradeIntent,
    TradeResult,
    WalletIdentity,
)
from .chunk_planner import ChunkPlanner
from .pacing import Pacer
from .quote import ConstantProductQuote
from .relay import RelaySubmitter

logger = logging.getLogger(__name__)


class TradeExecutor:
    """Single-identity trade execution on a Raydium AMM v4 pool."""

    def __init__(
        self,
        ledger: LedgerClient,
        pools: PoolLocator,
        swaps: SwapBuilder,
        relay: RelaySubmitter,
        planner: ChunkPlanner,
        config: Optional[RelayConfig] = None,
        slippage_bps: int = 100,
    ):
        self.ledger = ledger
        self.pools = pools
        self.swaps = swaps
        self.relay = relay
        self.planner = planner
        self.config = config or RelayConfig()
        self.slippage_bps = slippage_bps

    # ------------------------------------------------------------------
    # Account preparation
    # ------------------------------------------------------------------

    async def ensure_token_account(self, identity: WalletIdentity, mint: str) -> Pubkey:
        """Associated token account for (identity, mint), created if absent."""
        mint_key = Pubkey.from_string(mint)
        ata = get_associated_token_address(identity.pubkey, mint_key)
        if await self.ledger.get_account_info(ata) is not None:
            return ata

        logger.info(f"[{identity.role}] creating token account {ata} for {mint[:8]}...")
        ix = create_associated_token_account(identity.pubkey, identity.pubkey, mint_key)
        payload = await self._sign([ix], identity)
        receipt = await self.relay.submit(payload, identity, protect=False)
        if not await self.ledger.confirm(receipt.signature):
            raise RelayError(f"Token account creation for {identity.role} did not confirm")
        return ata

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    async def execute(
        self,
        intent: TradeIntent,
        identity: WalletIdentity,
        protect: bool = True,
        chunked: bool = True,
        pacer: Optional[Pacer] = None,
    ) -> TradeResult:
        """
        Execute an intent for one identity.

        Raises:
            PoolNotFound: no pool for the token
            ConfigurationError: the token or identity cannot be traded
        """
        pacer = pacer or Pacer()
        result = TradeResult(
            token=intent.token,
            direction=intent.direction,
            wallet_role=identity.role,
            requested_amount=intent.total_amount,
        )

        pool = await self.pools.find_pool(intent.token)

        try:
            token_account = await self.ensure_token_account(identity, intent.token)
        except ConfigurationError:
            raise
        except Exception as e:
            result.error = f"token account preparation failed: {e}"
            return result

        plan = self.planner.plan(
            float(intent.total_amount),
            intent.protection_level,
            chunk_count=None if chunked else 1,
        )
        units = plan.to_units()

        for i, (chunk, amount) in enumerate(zip(plan, units)):
            if i > 0 and not pacer.should_continue():
                result.error = "stopped before completion"
                break
            if amount > 0:
                chunk_result = await self._execute_chunk(
                    pool, identity, intent, token_account, amount, protect
                )
                result.chunks.append(chunk_result)
            if chunk.delay_after_ms is not None:
                if not await pacer.sleep(chunk.delay_after_ms / 1000):
                    if i < len(units) - 1:
                        result.error = "stopped before completion"
                    break

        if not result.chunks and result.error is None:
            result.error = "no chunk executed"
        return result

    async def sellable_amount(self, identity: WalletIdentity, token: str, fraction_pct: float) -> int:
        """
        Raw token units to sell for a fraction of current holdings.

        Raises:
            InsufficientBalance: computed amount is below one unit
        """
        ata = get_associated_token_address(identity.pubkey, Pubkey.from_string(token))
        balance = await self.ledger.get_token_account_balance(ata)
        amount = int(balance * fraction_pct / 100)
        if amount < 1:
            raise InsufficientBalance(
                f"{identity.role} holds {balance} units of {token}; {fraction_pct}% is below one unit"
            )
        return amount

    async def _execute_chunk(
        self,
        pool: PoolDescriptor,
        identity: WalletIdentity,
        intent: TradeIntent,
        token_account: Pubkey,
        amount: int,
        protect: bool,
    ) -> ChunkResult:
        start = time.time()
        try:
            instructions, quoted = await self._build_swap_instructions(
                pool, identity, intent, token_account, amount
            )
            instructions += self.relay.tip_instructions(identity.pubkey, protect)
            payload = await self._sign(instructions, identity)

            receipt = await self.relay.submit(payload, identity, protect=protect)
            confirmed = await self.ledger.confirm(receipt.signature)
            return ChunkResult(
                amount=amount,
                success=confirmed,
                signature=receipt.signature,
                path=receipt.path,
                error=None if confirmed else "transaction not confirmed",
                latency_ms=(time.time() - start) * 1000,
                quoted_out=quoted if confirmed else 0,
            )
        except Exception as e:
            logger.error(f"[{identity.role}] {intent.direction.value} chunk of {amount} failed: {e}")
            return ChunkResult(
                amount=amount,
                success=False,
                error=str(e) or type(e).__name__,
                latency_ms=(time.time() - start) * 1000,
            )

    async def _build_swap_instructions(
        self,
        pool: PoolDescriptor,
        identity: WalletIdentity,
        intent: TradeIntent,
        token_account: Pubkey,
        amount: int,
    ) -> Tuple[List[Instruction], int]:
        owner = identity.pubkey
        wsol_account = get_associated_token_address(owner, WRAPPED_SOL_MINT)

        instructions = [
            set_compute_unit_limit(self.config.compute_unit_limit),
            set_compute_unit_price(self.config.priority_fee_microlamports),
        ]
        if await self.ledger.get_account_info(wsol_account) is None:
            instructions.append(create_associated_token_account(owner, owner, WRAPPED_SOL_MINT))

        expected = await self._quote(pool, intent, amount)
        min_out = ConstantProductQuote.min_amount_out(expected, self.slippage_bps)

        if intent.direction == TradeDirection.BUY:
            instructions.append(transfer(TransferParams(from_pubkey=owner, to_pubkey=wsol_account, lamports=amount)))
            instructions.append(sync_native(SyncNativeParams(program_id=TOKEN_PROGRAM_ID, account=wsol_account)))
            source, dest = wsol_account, token_account
        else:
            source, dest = token_account, wsol_account

        instructions += self.swaps.build_swap(
            pool, source, dest, owner, amount, min_out, intent.direction
        )
        instructions.append(close_account(CloseAccountParams(
            program_id=TOKEN_PROGRAM_ID,
            account=wsol_account,
            dest=owner,
            owner=owner,
        )))
        return instructions, expected

    async def _quote(self, pool: PoolDescriptor, intent: TradeIntent, amount: int) -> int:
        """Expected output units for `amount` at current vault reserves."""
        if pool.token_is_base(intent.token):
            token_vault, sol_vault = pool.base_vault, pool.quote_vault
        else:
            token_vault, sol_vault = pool.quote_vault, pool.base_vault

        token_reserve = await self.ledger.get_token_account_balance(Pubkey.from_string(token_vault))
        sol_reserve = await self.ledger.get_token_account_balance(Pubkey.from_string(sol_vault))

        if intent.direction == TradeDirection.BUY:
            return ConstantProductQuote.amount_out(amount, sol_reserve, token_reserve)
        return ConstantProductQuote.amount_out(amount, token_reserve, sol_reserve)

    async def _sign(self, instructions: List[Instruction], identity: WalletIdentity) -> bytes:
        blockhash = await self.ledger.get_latest_blockhash()
        message = MessageV0.try_compile(identity.pubkey, instructions, [], blockhash)
        return bytes(VersionedTransaction(message, [identity.keypair]))
