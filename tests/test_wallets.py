"""Tests for multi-wallet distribution"""

import asyncio

import pytest

from netbuy.errors import ConfigurationError
from netbuy.execution.chunk_planner import ChunkPlanner
from netbuy.execution.endpoints import EndpointPool
from netbuy.execution.pacing import Pacer
from netbuy.execution.relay import RelaySubmitter
from netbuy.execution.trader import TradeExecutor
from netbuy.execution.wallets import WalletDistributor, _to_units
from netbuy.models import TradeDirection, TradeResult, WalletIdentity
from netbuy.randomness import RandomSource

from conftest import FakeLedger, FakePoolLocator, FakeSwapBuilder, ScriptedRandomSource, make_wallets


def make_trader(ledger, config, pools=None):
    relay = RelaySubmitter(EndpointPool.from_config(config), ledger, config)
    return TradeExecutor(ledger, pools or FakePoolLocator(), FakeSwapBuilder(), relay, ChunkPlanner(), config=config)


class FailingFirstTrader:
    """Trader double whose first call raises."""

    def __init__(self):
        self.calls = []

    async def execute(self, intent, identity, protect=True, chunked=True, pacer=None):
        self.calls.append((identity.role, intent.total_amount, chunked))
        if len(self.calls) == 1:
            raise RuntimeError("rpc timeout")
        return TradeResult(intent.token, TradeDirection.BUY, identity.role, intent.total_amount)


class TestDistribute:
    """Test amount splitting"""

    @pytest.mark.parametrize("amounts,total", [
        ([0.5, 0.6, 1.9], 3),
        ([2.9, 0.05, 0.05], 3),
        ([0.4, 1.6], 2),
        ([333.3, 333.3, 333.4], 1000),
    ])
    def test_units_positive_and_exact(self, amounts, total):
        units = _to_units(amounts, total)
        assert len(units) == len(amounts)
        assert all(u >= 1 for u in units)
        assert sum(units) == total

    @pytest.mark.parametrize("count", [1, 2, 3])
    def test_positive_and_exact(self, count):
        for seed in range(30):
            distributor = WalletDistributor(make_wallets(3), trader=None, rng=RandomSource(seed))
            amounts = distributor.distribute(0.3, count)
            assert len(amounts) == count
            assert all(a > 0 for a in amounts)
            assert sum(amounts) == pytest.approx(0.3, abs=1e-12)

    def test_split_fractions(self):
        """With no shuffle: 20% of total, then 40% of the rest, then the remainder"""
        distributor = WalletDistributor(make_wallets(3), trader=None, rng=ScriptedRandomSource([0.0, 1.0]))
        amounts = distributor.distribute(1.0, 3)
        assert amounts == pytest.approx([0.2, 0.32, 0.48])

    def test_invalid_count(self):
        distributor = WalletDistributor(make_wallets(1), trader=None)
        with pytest.raises(ValueError):
            distributor.distribute(1.0, 0)

    def test_requires_wallet(self):
        with pytest.raises(ConfigurationError):
            WalletDistributor([], trader=None)


class TestParticipants:
    """Test participant selection and delays"""

    def test_capped_at_three_with_main(self):
        wallets = make_wallets(5)
        distributor = WalletDistributor(wallets, trader=None, rng=RandomSource(4))
        for _ in range(20):
            chosen = distributor.select_participants()
            assert len(chosen) == 3
            assert chosen[0].role == "main"
            assert len({w.role for w in chosen}) == 3

    def test_inactive_skipped(self):
        wallets = make_wallets(3)
        wallets[1] = WalletIdentity(wallets[1].keypair, role=wallets[1].role, active=False)
        distributor = WalletDistributor(wallets, trader=None)
        assert [w.role for w in distributor.select_participants()] == ["main", "wallet3"]

    def test_plan_three_wallets(self):
        """0.3 over 3 wallets: positive amounts summing to 0.3, 2 bounded delays"""
        for seed in range(30):
            distributor = WalletDistributor(make_wallets(3), trader=None, rng=RandomSource(seed))
            plan = distributor.plan(0.3)

            assert len(plan) == 3
            assert sum(a.amount for a in plan) == pytest.approx(0.3)
            assert plan[0].delay_before_ms == 0
            for assignment in plan[1:]:
                assert 500 <= assignment.delay_before_ms <= 10000

    def test_burst_added(self):
        distributor = WalletDistributor(make_wallets(2), trader=None, rng=ScriptedRandomSource([0.0]))
        # gap 500ms, burst drawn (0.0 < 0.3) and adds 0ms
        assert distributor.inter_wallet_delay_ms() == 500.0

        distributor = WalletDistributor(make_wallets(2), trader=None, rng=ScriptedRandomSource([1.0]))
        # gap 8000ms, no burst (1.0 >= 0.3)
        assert distributor.inter_wallet_delay_ms() == 8000.0


class TestCoordinatedBuy:
    """Test sequential execution"""

    def test_each_wallet_buys_once(self, token, public_only_config):
        async def run():
            ledger = FakeLedger()
            trader = make_trader(ledger, public_only_config)
            distributor = WalletDistributor(make_wallets(3), trader, rng=RandomSource(11))
            results = await distributor.coordinated_buy(
                token, 300_000_000, use_protection=True, pacer=Pacer(time_scale=0)
            )
            return results, trader.swaps.amounts

        results, amounts = asyncio.run(run())

        assert len(results) == 3
        assert all(r.success for r in results)
        assert sorted(r.wallet_role for r in results) == ["main", "wallet2", "wallet3"]
        # one swap per wallet, exact lamport total
        assert len(amounts) == 3
        assert sum(amounts) == 300_000_000

    def test_failure_does_not_skip_rest(self, token):
        trader = FailingFirstTrader()
        distributor = WalletDistributor(make_wallets(3), trader, rng=RandomSource(2))
        results = asyncio.run(distributor.coordinated_buy(
            token, 90_000, use_protection=False, pacer=Pacer(time_scale=0)
        ))

        assert len(results) == 3
        assert results[0].error == "rpc timeout"
        assert not results[0].success
        assert len(trader.calls) == 3
        assert all(chunked is False for _, _, chunked in trader.calls)

    def test_pool_missing_recorded(self, token, public_only_config):
        async def run():
            ledger = FakeLedger()
            trader = make_trader(ledger, public_only_config, pools=FakePoolLocator(missing=True))
            distributor = WalletDistributor(make_wallets(2), trader)
            return await distributor.coordinated_buy(token, 1000, True, pacer=Pacer(time_scale=0))

        results = asyncio.run(run())
        assert len(results) == 2
        assert all("No liquidity pool" in r.error for r in results)

    def test_small_total_limits_wallets(self, token, public_only_config):
        """2 lamports over 3 wallets: 2 legs of 1 lamport each"""
        async def run():
            ledger = FakeLedger()
            trader = make_trader(ledger, public_only_config)
            distributor = WalletDistributor(make_wallets(3), trader, rng=RandomSource(3))
            results = await distributor.coordinated_buy(token, 2, True, pacer=Pacer(time_scale=0))
            return results, trader.swaps.amounts

        results, amounts = asyncio.run(run())

        assert len(results) == 2
        assert all(r.success for r in results)
        assert [r.executed_amount for r in results] == [1, 1]
        assert amounts == [1, 1]

    def test_configuration_error_propagates(self, token):
        class RejectingTrader:
            async def execute(self, intent, identity, protect=True, chunked=True, pacer=None):
                raise ConfigurationError(f"{intent.token} is not a tradeable mint")

        distributor = WalletDistributor(make_wallets(3), RejectingTrader())
        with pytest.raises(ConfigurationError):
            asyncio.run(distributor.coordinated_buy(token, 1000, False, pacer=Pacer(time_scale=0)))

    def test_stop_between_wallets(self, token):
        trader = FailingFirstTrader()
        distributor = WalletDistributor(make_wallets(3), trader)
        pacer = Pacer(time_scale=0)

        async def run():
            pacer.request_stop()
            return await distributor.coordinated_buy(token, 1000, False, pacer=pacer)

        results = asyncio.run(run())
        assert results == []
        assert trader.calls == []
