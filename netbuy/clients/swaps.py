"""
Raydium Swap Builder
====================

Builds the Raydium AMM v4 swap-base-in instruction.

Account layout (18 accounts):
    0: token program (read)
    1: amm id (write)
    2: amm authority (read)
    3: amm open orders (write)
    4: amm target orders (write)
    5: pool base vault (write)
    6: pool quote vault (write)
    7: market program (read)
    8: market (write)
    9: market bids (write)
    10: market asks (write)
    11: market event queue (write)
    12: market base vault (write)
    13: market quote vault (write)
    14: market authority (read)
    15: user source token account (write)
    16: user destination token account (write)
    17: user owner (signer)

Instruction data: u8 tag (9) + amount_in (u64) + min_amount_out (u64).
"""
import struct
from abc import ABC, abstractmethod
from typing import List

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID

from ..models import PoolDescriptor, TradeDirection


SWAP_BASE_IN_TAG = 9


class SwapBuilder(ABC):

    @abstractmethod
    def build_swap(
        self,
        pool: PoolDescriptor,
        source_account: Pubkey,
        dest_account: Pubkey,
        owner: Pubkey,
        amount_in: int,
        min_amount_out: int,
        direction: TradeDirection,
    ) -> List[Instruction]:
        """Instructions performing one swap."""


def _meta(address: str, writable: bool) -> AccountMeta:
    return AccountMeta(Pubkey.from_string(address), is_signer=False, is_writable=writable)


class RaydiumSwapBuilder(SwapBuilder):

    def build_swap(
        self,
        pool: PoolDescriptor,
        source_account: Pubkey,
        dest_account: Pubkey,
        owner: Pubkey,
        amount_in: int,
        min_amount_out: int,
        direction: TradeDirection,
    ) -> List[Instruction]:
        if amount_in <= 0:
            raise ValueError(f"amount_in must be positive for a {direction.value}")

        data = struct.pack("<BQQ", SWAP_BASE_IN_TAG, amount_in, max(0, min_amount_out))

        accounts = [
            AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            _meta(pool.id, True),
            _meta(pool.authority, False),
            _meta(pool.open_orders, True),
            _meta(pool.target_orders, True),
            _meta(pool.base_vault, True),
            _meta(pool.quote_vault, True),
            _meta(pool.market_program_id, False),
            _meta(pool.market_id, True),
            _meta(pool.market_bids, True),
            _meta(pool.market_asks, True),
            _meta(pool.market_event_queue, True),
            _meta(pool.market_base_vault, True),
            _meta(pool.market_quote_vault, True),
            _meta(pool.market_authority, False),
            AccountMeta(source_account, is_signer=False, is_writable=True),
            AccountMeta(dest_account, is_signer=False, is_writable=True),
            AccountMeta(owner, is_signer=True, is_writable=False),
        ]

        return [Instruction(Pubkey.from_string(pool.program_id), data, accounts)]
