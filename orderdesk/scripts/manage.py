#!/usr/bin/env python3
"""
OrderDesk maintenance CLI.

Usage:
  python -m orderdesk.scripts.manage init-db [--drop-all]
  python -m orderdesk.scripts.manage refresh-stats
  python -m orderdesk.scripts.manage pricing

Required env: DATABASE_URL
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Awaitable, Callable, Dict, List, Optional

from orderdesk.config import load_database_config, load_orderdesk_config
from orderdesk.core.exceptions import ProjectError
from orderdesk.core.logger import LoggerConfig, configure, get_logger
from orderdesk.infra.database.engine import close_engine, ensure_database_exists, init_db, session_scope
from orderdesk.services import CustomerService, PricingService

# swappable for tests
_print_fn: Callable[[str], None] = print


def _out(msg: str = "") -> None:
    _print_fn(msg)


def _setup_logging(level: Optional[str] = None) -> None:
    config = LoggerConfig.from_env()
    if level:
        config = config.with_overrides(level=level)
    configure(config)
    get_logger(__name__).debug("CLI logging configured (level=%s)", config.level)


async def cmd_init_db(args: argparse.Namespace) -> int:
    db = load_database_config()
    await ensure_database_exists(db)
    await init_db(db, drop_all=args.drop_all)
    _out("Database ready.")
    return 0


async def cmd_refresh_stats(args: argparse.Namespace) -> int:
    async with session_scope(load_database_config()) as session:
        count = await CustomerService(session).refresh_all_stats()
    _out(f"Customer statistics recomputed for {count} phone numbers.")
    return 0


async def cmd_pricing(args: argparse.Namespace) -> int:
    async with session_scope(load_database_config()) as session:
        table = await PricingService(session, load_orderdesk_config()).get_table()
    for line in table.lines.values():
        counted = "" if line.counts_toward_shipping else "  (not counted for shipping)"
        _out(f"{line.key:<16} {line.name:<10} price={line.unit_price:>7} cost={line.unit_cost:>7}{counted}")
    _out(f"shipping: {table.shipping.flat_fee} below {table.shipping.free_threshold} units, free at or above")
    return 0


COMMANDS: Dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
    "init-db": cmd_init_db,
    "refresh-stats": cmd_refresh_stats,
    "pricing": cmd_pricing,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orderdesk", description="OrderDesk maintenance")
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)
    init = sub.add_parser("init-db", help="create the database and tables")
    init.add_argument("--drop-all", action="store_true", help="drop all tables first")
    sub.add_parser("refresh-stats", help="recompute every customer's order statistics")
    sub.add_parser("pricing", help="show the current pricing table")
    return parser


async def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.log_level)
    try:
        return await COMMANDS[args.command](args)
    except ProjectError as exc:
        get_logger(__name__).error("%s failed: %s", args.command, exc, exc_info=exc)
        _out(f"Error [{exc.code}]: {exc.message}")
        return 1
    finally:
        await close_engine()


def main() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
