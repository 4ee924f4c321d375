"""
Pool Locator - find the Raydium AMM v4 pool pairing a token with SOL.

Usage:
    locator = RaydiumPoolLocator()
    pool = await locator.find_pool("<mint>")
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import aiohttp

from ..errors import PoolNotFound
from ..models import PoolDescriptor

logger = logging.getLogger(__name__)


RAYDIUM_API = "https://api-v3.raydium.io"
RAYDIUM_AMM_V4 = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
WSOL_MINT = "So11111111111111111111111111111111111111112"


class PoolLocator(ABC):

    @abstractmethod
    async def find_pool(self, token: str) -> PoolDescriptor:
        """Pool for token. Raises PoolNotFound when none exists."""


def parse_pool_keys(keys: dict) -> PoolDescriptor:
    """Build a PoolDescriptor from a Raydium /pools/key/ids entry."""
    return PoolDescriptor(
        id=keys['id'],
        program_id=keys['programId'],
        base_mint=keys['mintA']['address'],
        quote_mint=keys['mintB']['address'],
        base_decimals=int(keys['mintA']['decimals']),
        quote_decimals=int(keys['mintB']['decimals']),
        authority=keys['authority'],
        open_orders=keys['openOrders'],
        target_orders=keys['targetOrders'],
        base_vault=keys['vault']['A'],
        quote_vault=keys['vault']['B'],
        market_program_id=keys['marketProgramId'],
        market_id=keys['marketId'],
        market_authority=keys['marketAuthority'],
        market_base_vault=keys['marketBaseVault'],
        market_quote_vault=keys['marketQuoteVault'],
        market_bids=keys['marketBids'],
        market_asks=keys['marketAsks'],
        market_event_queue=keys['marketEventQueue'],
    )


class RaydiumPoolLocator(PoolLocator):
    """
    Two-step lookup against the Raydium v3 API:
    1. /pools/info/mint - deepest standard pool for (token, WSOL)
    2. /pools/key/ids   - full account keys for that pool
    """

    def __init__(self, base_url: str = RAYDIUM_API, timeout: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._cache: Dict[str, PoolDescriptor] = {}

    async def find_pool(self, token: str) -> PoolDescriptor:
        if token in self._cache:
            return self._cache[token]

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                pool_id = await self._find_pool_id(session, token)
                if not pool_id:
                    raise PoolNotFound(token)
                keys = await self._fetch_keys(session, pool_id)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Pool lookup for {token} failed: {e}")
            raise PoolNotFound(token) from e

        if not keys:
            raise PoolNotFound(token)

        try:
            pool = parse_pool_keys(keys)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed pool keys for {token}: {e!r}")
            raise PoolNotFound(token) from e
        self._cache[token] = pool
        logger.info(f"Pool {pool.id} for {token}")
        return pool

    async def _find_pool_id(self, session: aiohttp.ClientSession, token: str) -> Optional[str]:
        params = {
            'mint1': token,
            'mint2': WSOL_MINT,
            'poolType': 'standard',
            'poolSortField': 'liquidity',
            'sortType': 'desc',
            'pageSize': '10',
            'page': '1',
        }
        async with session.get(f"{self.base_url}/pools/info/mint", params=params) as resp:
            if resp.status != 200:
                return None
            data = await resp.json()

        pools: List[dict] = (data.get('data') or {}).get('data') or []
        for pool in pools:
            if pool.get('programId') == RAYDIUM_AMM_V4:
                return pool.get('id')
        return None

    async def _fetch_keys(self, session: aiohttp.ClientSession, pool_id: str) -> Optional[dict]:
        async with session.get(f"{self.base_url}/pools/key/ids", params={'ids': pool_id}) as resp:
            if resp.status != 200:
                return None
            data = await resp.json()
        entries = data.get('data') or []
        return entries[0] if entries else None
