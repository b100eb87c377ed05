"""
Trading Bot - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line runner for the bot.

- Loads `.env` and environment configuration
- Overrides it from argparse options
- Runs a logging strategy until SIGINT/SIGTERM or max runs

============================================================
USAGE
============================================================
python -m trading_bot.cli --product BTC-USD --interval 5
python -m trading_bot.cli --min-interval 2 --max-interval 8 --max-runs 20
python -m trading_bot.cli --mock --interval 1 --max-runs 3 --log-format text

============================================================
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import List, Optional

from dotenv import load_dotenv

from core.constants import COINBASE_SANDBOX_WEBSOCKET_URL, COINBASE_WEBSOCKET_URL
from core.exceptions import CancellationError, ConfigurationError
from exchange_client.base import ExchangeClient
from exchange_client.config import CoinbaseCredentials
from exchange_client.mock import MockExchangeClient
from .bot import TradingBot
from .config import BotConfig
from .strategy import LoggingStrategy


logger = logging.getLogger(__name__)


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "text") -> logging.Logger:
    """
    Set up logging on stdout.

    Args:
        level: Log level
        log_format: Output format (json or text)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("trading_bot")


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="trading-bot",
        description="Run a trading bot against Coinbase Exchange",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Unset options fall back to the environment (.env is loaded):
  PRODUCT, TICK_INTERVAL_SECONDS, TICK_MIN_INTERVAL_SECONDS,
  TICK_MAX_INTERVAL_SECONDS, MAX_RUNS, CANCEL_ON_STOP,
  COINBASE_WEBSOCKET_URL, USE_LIVE_FEED, COINBASE_SANDBOX,
  COINBASE_API_KEY, COINBASE_API_SECRET, COINBASE_API_PASSPHRASE,
  LOG_LEVEL, LOG_FORMAT

Examples:
  %(prog)s --interval 5                        # Fixed 5s ticks
  %(prog)s --min-interval 2 --max-interval 8   # Random 2-8s ticks
  %(prog)s --mock --max-runs 3                 # In-memory exchange
        """
    )

    # --------------------------------------------------------
    # Market Options
    # --------------------------------------------------------
    market_group = parser.add_argument_group("Market Options")

    market_group.add_argument(
        "--product", "-p",
        type=str,
        help="Product to trade (default: BTC-USD)",
    )

    market_group.add_argument(
        "--websocket-url",
        type=str,
        metavar="URL",
        help="Live feed endpoint (no live feed when unset)",
    )

    market_group.add_argument(
        "--live-feed",
        action="store_true",
        help="Use the default Coinbase websocket feed",
    )

    market_group.add_argument(
        "--sandbox",
        action="store_true",
        help="Use the Coinbase sandbox endpoints",
    )

    market_group.add_argument(
        "--mock",
        action="store_true",
        help="Use the in-memory mock exchange instead of Coinbase",
    )

    # --------------------------------------------------------
    # Schedule Options
    # --------------------------------------------------------
    schedule_group = parser.add_argument_group("Schedule Options")

    schedule_group.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="Fixed tick interval (default: 1.0)",
    )

    schedule_group.add_argument(
        "--min-interval",
        type=float,
        metavar="SECONDS",
        help="Lower bound of a random tick interval",
    )

    schedule_group.add_argument(
        "--max-interval",
        type=float,
        metavar="SECONDS",
        help="Upper bound of a random tick interval",
    )

    schedule_group.add_argument(
        "--max-runs",
        type=int,
        metavar="N",
        help="Stop after N strategy runs",
    )

    schedule_group.add_argument(
        "--cancel-on-stop",
        action="store_true",
        help="Cancel all open orders when stopping",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Logging format (default: text)",
    )

    return parser


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> BotConfig:
    """Environment configuration overridden by explicit CLI options."""
    config = BotConfig.from_env()

    if args.product:
        config.product = args.product
    if args.sandbox:
        config.sandbox = True
    if args.websocket_url:
        config.websocket_url = args.websocket_url
    elif args.live_feed and config.websocket_url is None:
        config.websocket_url = COINBASE_SANDBOX_WEBSOCKET_URL if config.sandbox else COINBASE_WEBSOCKET_URL
    if args.cancel_on_stop:
        config.cancel_on_stop = True
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    schedule = config.schedule
    if args.interval is not None:
        schedule.interval_seconds = args.interval
    if args.min_interval is not None:
        schedule.min_interval_seconds = args.min_interval
    if args.max_interval is not None:
        schedule.max_interval_seconds = args.max_interval
    if args.max_runs is not None:
        schedule.max_runs = args.max_runs

    return config


# ============================================================
# RUNNER
# ============================================================

def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    if sys.platform == "win32":
        return
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)


async def run_bot(
    config: BotConfig,
    client: Optional[ExchangeClient] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> int:
    """
    Run the bot until `stop_event` is set or the schedule ends.

    Returns:
        Exit code
    """
    credentials = None
    if client is None:
        credentials = CoinbaseCredentials.from_env(sandbox=config.sandbox)

    try:
        bot = TradingBot(
            strategy=LoggingStrategy(),
            client=client,
            credentials=credentials,
            product=config.product,
            websocket_url=config.websocket_url,
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    stop_event = stop_event or asyncio.Event()

    async with bot:
        await bot.start_trading(config.schedule)

        while bot.is_trading and not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=0.5)
            except asyncio.TimeoutError:
                pass

        try:
            await bot.stop_trading(cancel=config.cancel_on_stop)
        except CancellationError as e:
            logger.error(f"Stopped, but cancelling orders failed: {e}")
            return 1

        await bot.scheduler.wait_idle()
        stats = bot.scheduler.stats
        logger.info(f"Finished: {stats.runs} runs, {stats.skipped} skipped, {stats.failures} failed")

    return 0


async def async_main(args: argparse.Namespace, config: BotConfig) -> int:
    client = MockExchangeClient() if args.mock else None
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    try:
        return await run_bot(config, client=client, stop_event=stop_event)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    config = build_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    setup_logging(config.log_level, config.log_format)
    return asyncio.run(async_main(args, config))


if __name__ == "__main__":
    sys.exit(main())
