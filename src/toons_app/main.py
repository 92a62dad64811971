# src/toons_app/main.py
"""
eve-toons: authenticate EVE Online characters and report how many skill
extractions their crop skills can currently yield.

    eve-toons list            stored characters
    eve-toons show NAME       one stored character (exact name or prefix)
    eve-toons auth            browser login, repeated until Ctrl+C
    eve-toons refresh NAME    force a token refresh and print the result
    eve-toons stats [NAME]    ranked extraction report
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console

from toons_library.auth_flow import AuthExchangeFlow
from toons_library.config import EsiConfig, data_root, get_toons_file, logs_dir
from toons_library.credential_store import CredentialRecord, CredentialStore
from toons_library.error_handler import NotFoundError, ToonsError
from toons_library.esi_client import EsiClient
from toons_library.stats_orchestrator import StatsOrchestrator

from .logging_setup import setup_logging
from .report import render_list, render_record, render_refresh, render_report

logger = logging.getLogger("toons_app")

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eve-toons",
        description="Track skill extraction readiness across EVE Online characters.",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More log output (-vv for debug)."
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only log errors."
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("list", help="List stored characters.")

    show = subparsers.add_parser("show", help="Show one stored character.")
    show.add_argument("name")

    subparsers.add_parser("auth", help="Authenticate characters in the browser.")

    refresh = subparsers.add_parser("refresh", help="Force a token refresh.")
    refresh.add_argument("name")

    stats = subparsers.add_parser("stats", help="Print the extraction report.")
    stats.add_argument("name", nargs="?")
    return parser


def _load_store() -> CredentialStore:
    return CredentialStore.load(get_toons_file(os.environ, data_root()))


def _load_config() -> EsiConfig:
    return EsiConfig.from_env(os.environ, data_root())


def _not_found(name: str) -> int:
    console.print(f"No Character '{name}' found", markup=False, highlight=False)
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    render_list(console, _load_store().records())
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    record = _load_store().require(args.name)
    render_record(console, record)
    return 0


async def _run_auth(config: EsiConfig, store: CredentialStore) -> None:
    async with EsiClient(config) as client:
        flow = AuthExchangeFlow(config, client, store, console=console)
        await flow.run_auth_loop()


def cmd_auth(args: argparse.Namespace) -> int:
    config = _load_config()
    store = CredentialStore.load(config.toons_file)
    try:
        asyncio.run(_run_auth(config, store))
    except KeyboardInterrupt:
        console.print(f"Stopped. {len(store)} character(s) stored in {config.toons_file}")
    return 0


async def _run_refresh(config: EsiConfig, record: CredentialRecord) -> None:
    async with EsiClient(config) as client:
        tokens = await client.refresh(record.refresh_token)
        verify = await client.verify(tokens)
    render_refresh(console, record, tokens, verify)


def cmd_refresh(args: argparse.Namespace) -> int:
    config = _load_config()
    record = CredentialStore.load(config.toons_file).require(args.name)
    render_record(console, record)
    asyncio.run(_run_refresh(config, record))
    return 0


async def _run_stats(config: EsiConfig, store: CredentialStore, name: Optional[str]):
    async with EsiClient(config) as client:
        return await StatsOrchestrator(client).report_for(store, name)


def cmd_stats(args: argparse.Namespace) -> int:
    config = _load_config()
    store = CredentialStore.load(config.toons_file)
    report = asyncio.run(_run_stats(config, store, args.name))
    render_report(console, report)
    return 0


COMMANDS = {
    "list": cmd_list,
    "show": cmd_show,
    "auth": cmd_auth,
    "refresh": cmd_refresh,
    "stats": cmd_stats,
}


def main(argv: Optional[List[str]] = None) -> int:
    root = data_root()
    load_dotenv(root / ".env")

    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(-1 if args.quiet else args.verbose, logs_dir(root))

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return COMMANDS[args.command](args)
    except NotFoundError as e:
        logger.error(f"Could not find Character: {e.name}")
        return _not_found(e.name)
    except (ToonsError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
