# holder_tracker/apps/tracker_cli.py
import argparse
import asyncio
import sys
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from holder_tracker.core.config import ConfigError, Settings, load_settings
from holder_tracker.tracker import HolderTracker


def setup_logging(log_level: str, log_file: Optional[str] = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        colorize=True,
    )
    if log_file:
        logger.add(
            log_file,
            level=log_level.upper(),
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} - {level} - {message}",
            rotation="10 MB",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="holder-tracker", description="Snapshot and filter SPL token holders")
    parser.add_argument("--config", type=str, default=None, help="Path to a YAML settings file")
    parser.add_argument("--mint", type=str, default=None, help="Token mint address")
    parser.add_argument("--rpc", type=str, default=None, help="Solana RPC endpoint")
    parser.add_argument("--no-services", action="store_true", help="Keep service wallets")
    parser.add_argument("--no-whales", action="store_true", help="Keep whales")
    parser.add_argument("--whale-threshold", type=float, default=None, help="Whale threshold in percent of supply")
    parser.add_argument("--min-balance", type=int, default=None, help="Dust floor in raw token units (0 disables)")
    parser.add_argument("--max-holders", type=int, default=None, help="Save only the top N holders")
    parser.add_argument("--data-dir", type=str, default=None)
    parser.add_argument("--log-level", type=str, default=None)
    parser.add_argument("--echo", action="store_true", help="Print resolved settings and exit")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply CLI flags on top of file/env settings and re-validate."""
    resolved = settings.model_dump()
    if args.mint:
        resolved['token']['mint'] = args.mint
    if args.rpc:
        resolved['rpc']['endpoint'] = args.rpc
    if args.no_services:
        resolved['filters']['exclude_services'] = False
    if args.no_whales:
        resolved['filters']['exclude_whales'] = False
    if args.whale_threshold is not None:
        resolved['filters']['whale_threshold_percent'] = args.whale_threshold
    if args.min_balance is not None:
        resolved['filters']['min_balance_to_include'] = args.min_balance
    if args.max_holders is not None:
        resolved['reports']['max_holders_to_save'] = args.max_holders
    if args.data_dir:
        resolved['reports']['data_dir'] = args.data_dir
    if args.log_level:
        resolved['logging']['level'] = args.log_level
    return Settings.model_validate(resolved)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()
    try:
        settings = apply_overrides(load_settings(args.config), args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except ValueError as e:
        logger.error(f"Invalid command line override: {e}")
        return 2

    if args.echo:
        print(settings.model_dump_json(indent=2))
        return 0

    setup_logging(settings.logging.level, settings.logging.file)
    asyncio.run(HolderTracker(settings).run())
    return 0


def run():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C).")
        sys.exit(130)


if __name__ == "__main__":
    run()
