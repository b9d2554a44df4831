"""BlackBook CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from blackbook import __version__
from blackbook.betting import Asset, Bet, BettingError, Direction, PriceFeed
from blackbook.betting.service import LiveBettingService
from blackbook.config import Settings, get_settings
from blackbook.services.coingecko import CoinGeckoClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# BlackBook Price Action Configuration
# Operational parameters for the live betting engine.
# Secrets (LOGFIRE_TOKEN, LEDGER__API_TOKEN, COINGECKO__API_KEY) belong in .env.

feed:
  assets: [BTC, SOL]
  refresh_interval_seconds: 5
  request_timeout_seconds: 10
  max_price_age_seconds: 30

betting:
  permitted_durations: [60, 900]
  payout_multiplier: 2.0
  settled_history_limit: 50
  history_display_limit: 10

ledger:
  mode: paper
  timeout_seconds: 10
  paper_balances:
    alice: 1000
    bob: 1000

coingecko:
  cache_ttl_seconds: 0
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from blackbook.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _format_bet(bet: Bet) -> str:
    line = (
        f"{bet.id}  {bet.account}  {bet.asset.value} {bet.direction.value}  "
        f"{bet.amount:g} @ ${bet.start_price:,.2f}  [{bet.status.value}]"
    )
    if bet.end_price is not None:
        line += f"  end ${bet.end_price:,.2f} ({bet.price_change_pct:+.2f}%)"
    return line


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration template."""
    data_dir = Path(args.data_dir).resolve()

    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Copy .env.example to .env and add any API keys")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m blackbook prices' to check the price feed")
        print("4. Run 'python -m blackbook run' to start live betting\n")
        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== BlackBook Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Feed:")
        print(f"  Assets: {', '.join(a.value for a in settings.feed.assets)}")
        print(f"  Refresh Interval: {settings.feed.refresh_interval_seconds}s")
        print(f"  Request Timeout: {settings.feed.request_timeout_seconds}s")
        print(f"  Max Price Age: {settings.feed.max_price_age_seconds}s\n")

        print("Betting:")
        print(f"  Durations: {', '.join(f'{d}s' for d in settings.betting.permitted_durations)}")
        print(f"  Payout Multiplier: {settings.betting.payout_multiplier}x")
        print(f"  History Shown: {settings.betting.history_display_limit}")
        print(f"  Settled History Kept: {settings.betting.settled_history_limit}\n")

        print("Ledger:")
        print(f"  Mode: {settings.ledger.mode}")
        if not settings.ledger.paper_mode:
            print(f"  Base URL: {settings.ledger.base_url}")
        print(f"  Timeout: {settings.ledger.timeout_seconds}s\n")

        print("API Keys:")
        print(f"  CoinGecko: {'✓ Set' if settings.coingecko.api_key else '✗ Not set'}")
        print(f"  Ledger: {'✓ Set' if settings.ledger.api_token else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1

    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


async def _fetch_prices(settings: Settings) -> PriceFeed:
    async with CoinGeckoClient(settings.coingecko) as client:
        feed = PriceFeed(
            client,
            assets=settings.feed.assets,
            request_timeout=settings.feed.request_timeout_seconds,
        )
        await feed.refresh()
        return feed


def cmd_prices(args: argparse.Namespace) -> int:
    """Fetch current prices once."""
    _init_logfire()

    try:
        feed = asyncio.run(_fetch_prices(get_settings()))

        print("\n=== Live Prices ===\n")
        for asset, snapshot in feed.snapshots().items():
            print(f"  {asset.value}: ${snapshot.price:,.2f}")
        print()
        return 0

    except BettingError as e:
        print(f"\n❌ Price feed unavailable: {e}\n")
        return 1


async def _run_service(settings: Settings) -> None:
    async with LiveBettingService(settings) as service:
        service.events.on_bet_settled(lambda bet: print(_format_bet(bet)))
        await asyncio.Event().wait()


def cmd_run(args: argparse.Namespace) -> int:
    """Start the live betting service until interrupted."""
    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()

        print("\n=== BlackBook Live Price Action ===\n")
        print(f"Version: {__version__}")
        print(f"Ledger: {'PAPER' if settings.ledger.paper_mode else settings.ledger.base_url}")
        print(f"Assets: {', '.join(a.value for a in settings.feed.assets)}\n")

        asyncio.run(_run_service(settings))
        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0

    except Exception as e:
        logger.error(f"Failed to start service: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


async def _place_and_wait(settings: Settings, args: argparse.Namespace) -> Bet:
    async with LiveBettingService(settings) as service:
        loop = asyncio.get_running_loop()
        done: asyncio.Future[Bet] = loop.create_future()
        placed_id: str | None = None

        def _on_settled(bet: Bet) -> None:
            if bet.id == placed_id and not done.done():
                done.set_result(bet)

        service.events.on_bet_settled(_on_settled)
        assert service.engine is not None
        bet = await service.engine.place(
            args.account, args.asset, args.direction, args.amount, args.duration
        )
        placed_id = bet.id
        print(f"Placed: {_format_bet(bet)}")
        print(f"Waiting {bet.duration}s for settlement...\n")

        timeout = bet.duration + settings.feed.refresh_interval_seconds * 6
        return await asyncio.wait_for(done, timeout=timeout)


def cmd_bet(args: argparse.Namespace) -> int:
    """Place one bet and wait for it to settle."""
    _init_logfire()

    try:
        settled = asyncio.run(_place_and_wait(get_settings(), args))
        print(f"Settled: {_format_bet(settled)}\n")
        return 0

    except BettingError as e:
        print(f"\n❌ Bet rejected: {e}\n")
        return 1

    except asyncio.TimeoutError:
        print("\n❌ Bet did not settle in time (price feed degraded?)\n")
        return 1

    except KeyboardInterrupt:
        print("\n\nInterrupted; the bet is lost with this process.\n")
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="BlackBook: live price-direction betting on BTC and SOL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"BlackBook {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.add_argument(
        "--data-dir",
        default="data",
        help="Directory to create (default: ./data)",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_prices = subparsers.add_parser(
        "prices",
        help="Fetch current prices once",
    )
    parser_prices.set_defaults(func=cmd_prices)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the live betting service",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.set_defaults(func=cmd_run)

    parser_bet = subparsers.add_parser(
        "bet",
        help="Place a bet and wait for its settlement",
    )
    parser_bet.add_argument("--account", required=True, help="Ledger account name")
    parser_bet.add_argument(
        "--asset", choices=[a.value for a in Asset], default=Asset.BTC.value
    )
    parser_bet.add_argument(
        "--direction", choices=[d.value for d in Direction], required=True
    )
    parser_bet.add_argument("--amount", type=float, required=True, help="Stake")
    parser_bet.add_argument(
        "--duration", type=int, default=60, help="Window in seconds (default: 60)"
    )
    parser_bet.set_defaults(func=cmd_bet)

    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
