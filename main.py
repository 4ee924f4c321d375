#!/usr/bin/env python3
"""
Net-Buy Pump - Entry Point
==========================

Runs obfuscated buy/sell rounds against a token's Raydium pool.

Environment:
    MAIN_PRIVATE_KEY      base58 or JSON-array secret key (required)
    EXTRA_PRIVATE_KEYS    comma separated secondary keys (multi-wallet)
    RPC_URL               public RPC endpoint
    RELAY_ENDPOINTS       comma separated private relay URLs
    JITO_TIP_LAMPORTS     tip per protected transaction
    TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID   optional notifications

Usage:
    # Pump for 10 minutes, 0.05 SOL per round, +10% per round
    python main.py --token <mint> --buy 0.05 --growth 1.1 --duration 600

    # Sell everything held by the main wallet
    python main.py --token <mint> --sell-all

    # Risk level for a token, no trading
    python main.py --token <mint> --assess
"""
import asyncio
import argparse
import logging
import sys
import time

from netbuy import PumpScheduler, PumpSession, RelayConfig, load_wallets_from_env
from netbuy.clients import FanoutObserver, LoggingObserver, SolanaLedgerClient, TelegramObserver
from netbuy.config import DEFAULT_PROFILES
from netbuy.errors import NetBuyError
from netbuy.execution import RiskAssessor
from netbuy.models import ProtectionLevel, StartResult, StopResult


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def show_config(session: PumpSession, config: RelayConfig):
    """Display session, relay settings and the protection profiles."""
    print(f"\n{'='*60}")
    print(f"  NET-BUY CONFIGURATION")
    print(f"{'='*60}")

    print(f"\nSESSION:")
    for key, value in session.to_dict().items():
        print(f"  {key:24} {value}")

    print(f"\nRELAY:")
    print(f"  Public RPC:       {config.public_rpc_url}")
    print(f"  Private relays:   {len(config.private_endpoints)}")
    for url in config.private_endpoints:
        print(f"    {url}")
    print(f"  Tip:              {config.tip_lamports} lamports")
    print(f"  Buy pacing:       {config.buy_pacing_sec}s")
    print(f"  Wallets/round:    {config.max_wallets_per_round}")

    print(f"\nPROTECTION PROFILES:")
    for level, profile in DEFAULT_PROFILES.items():
        print(
            f"  {level.value:8} chunks={profile.chunk_count} "
            f"variance={profile.variance:.0%} "
            f"delay={profile.min_delay_ms:.0f}-{profile.max_delay_ms:.0f}ms"
        )
    print(f"{'='*60}\n")


def build_observer():
    observers = [LoggingObserver()]
    telegram = TelegramObserver.from_env()
    if telegram is not None:
        observers.append(telegram)
    return FanoutObserver(observers)


async def assess(token: str, config: RelayConfig):
    """Print the risk assessment for a token."""
    ledger = SolanaLedgerClient(config.public_rpc_url)
    try:
        result = await RiskAssessor(ledger).assess(token)
    finally:
        await ledger.close()

    print(f"\nRISK {token}")
    print(f"  Score:   {result.risk_score:.2f}{' (neutral default)' if result.fallback else ''}")
    print(f"  Level:   {result.protection_level.value}")
    print(f"  Sample:  {result.sample_size} txs")
    for name, value in result.indicators.items():
        print(f"  {name:16} {value:.3f}")


async def sell_all(session: PumpSession, config: RelayConfig):
    """One-shot full sell from the main wallet."""
    ledger = SolanaLedgerClient(config.public_rpc_url)
    scheduler = PumpScheduler.create(ledger, load_wallets_from_env(), config, build_observer())
    try:
        scheduler.configure(session)
        result = await scheduler.sell_all()
        print(f"\nSell all: {'OK' if result.success else 'FAILED'}")
        for sig in result.signatures:
            print(f"  tx {sig}")
        if not result.success:
            print(f"  error: {result.failure_reason()}")
    finally:
        await scheduler.trader.relay.close()
        await ledger.close()


async def run_pump(session: PumpSession, config: RelayConfig, duration: int):
    """Run the pump loop for duration seconds (0 = until interrupted)."""
    ledger = SolanaLedgerClient(config.public_rpc_url)
    scheduler = PumpScheduler.create(ledger, load_wallets_from_env(), config, build_observer())
    scheduler.configure(session)

    print(f"\n{'='*60}")
    print(f"  STARTING NET-BUY PUMP")
    print(f"{'='*60}")
    print(f"  Token:      {session.token}")
    print(f"  Buy:        {session.buy_amount_per_round} SOL x{session.buys_per_round} (growth {session.buy_growth_factor}x)")
    print(f"  Sell:       {session.sell_fraction_percent}% per round")
    print(f"  Rounds:     {session.max_rounds or 'until stopped'}")
    print(f"  Delay:      ~{session.inter_round_delay_sec}s")
    print(f"  Protection: {'on' if session.mev_protection_enabled else 'off'}")
    print(f"  Wallets:    {len(scheduler.wallets) if session.multi_wallet_enabled else 1}")
    print(f"{'='*60}\n")

    try:
        result = await scheduler.start()
        if result != StartResult.OK:
            print(f"Could not start: {result.value}")
            return

        start = time.time()
        while scheduler.running and (duration <= 0 or time.time() - start < duration):
            await asyncio.sleep(10)
            status = scheduler.status()
            elapsed = int(time.time() - start)
            print(
                f"[{elapsed:4}s] "
                f"Round: {status.current_round:3} | "
                f"Buy: {status.current_buy_amount:.4f} SOL | "
                f"OK/Fail: {status.trades_ok}/{status.trades_failed} | "
                f"Volume: {status.volume_sol:.4f} SOL | "
                f"Net: {status.net_spent_sol:.4f} SOL"
            )

        if scheduler.stop() == StopResult.OK:
            await scheduler.wait_stopped()
    except (KeyboardInterrupt, asyncio.CancelledError):
        print("\n\nInterrupted by user")
    finally:
        await scheduler.shutdown()
        await scheduler.trader.relay.close()
        await ledger.close()

    status = scheduler.status()
    print(f"\nRounds: {status.rounds_completed} | Trades: {status.trades_ok} ok, {status.trades_failed} failed | Volume: {status.volume_sol:.4f} SOL | Net spent: {status.net_spent_sol:.4f} SOL")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Net-Buy Pump",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --token <mint> --buy 0.05 --duration 600
  python main.py --token <mint> --buy 0.02 --buys 3 --multi-wallet
  python main.py --token <mint> --buy 0.02 --sell-pct 50 --rounds 20
  python main.py --token <mint> --sell-all
  python main.py --token <mint> --assess
  python main.py --show-config
        """,
    )

    parser.add_argument("--token", default="", help="Token mint address")
    parser.add_argument("--buy", type=float, default=0.01, help="SOL per buy (default: 0.01)")
    parser.add_argument("--sell-pct", type=float, default=0.0, help="Percent of holdings sold per round (default: 0)")
    parser.add_argument("--delay", type=float, default=30.0, help="Seconds between rounds (default: 30)")
    parser.add_argument("--growth", type=float, default=1.0, help="Buy growth factor per round (default: 1.0)")
    parser.add_argument("--buys", type=int, default=1, help="Buys per round (default: 1)")
    parser.add_argument("--rounds", type=int, default=0, help="Stop after this many rounds, 0 = no limit")
    parser.add_argument("--slippage-bps", type=int, default=100, help="Slippage tolerance in bps (default: 100)")
    parser.add_argument(
        "--protection",
        choices=[level.value for level in ProtectionLevel],
        help="Fix the protection level instead of assessing risk",
    )
    parser.add_argument("--no-mev", action="store_true", help="Disable chunking and private relays")
    parser.add_argument("--multi-wallet", action="store_true", help="Spread buys over EXTRA_PRIVATE_KEYS")
    parser.add_argument("--duration", type=int, default=0, help="Run duration in seconds, 0 = until Ctrl+C")
    parser.add_argument("--sell-all", action="store_true", help="Sell all holdings and exit")
    parser.add_argument("--assess", action="store_true", help="Show risk assessment and exit")
    parser.add_argument("--show-config", action="store_true", help="Show configuration and exit")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    session = PumpSession(
        token=args.token,
        buy_amount_per_round=args.buy,
        sell_fraction_percent=args.sell_pct,
        inter_round_delay_sec=args.delay,
        buy_growth_factor=args.growth,
        buys_per_round=args.buys,
        max_rounds=args.rounds,
        mev_protection_enabled=not args.no_mev,
        multi_wallet_enabled=args.multi_wallet,
        slippage_bps=args.slippage_bps,
        protection_override=ProtectionLevel(args.protection) if args.protection else None,
    )

    try:
        config = RelayConfig.from_env()

        if args.show_config:
            show_config(session, config)
            return 0

        session.validate()

        if args.assess:
            asyncio.run(assess(session.token, config))
        elif args.sell_all:
            asyncio.run(sell_all(session, config))
        else:
            asyncio.run(run_pump(session, config, args.duration))
    except NetBuyError as e:
        logging.getLogger(__name__).error(str(e))
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")

    return 0


if __name__ == "__main__":
    sys.exit(main())
