#!/usr/bin/env python3
"""Operator entry point for the write-back reconciler.

Usage:
    cache-patterns reconcile [--interval SECONDS] [--db FILE] [--redis-url URL]
    cache-patterns drain [--db FILE] [--redis-url URL]

Commands:
    reconcile   Run the reconciler on its interval until interrupted.
    drain       Run a single drain and print the result as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from cache_patterns.service import CacheLayer, CacheLayerConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cache-patterns",
        description="Reconcile write-back cache mutations into the record store",
    )
    parser.add_argument("command", choices=["reconcile", "drain"])
    parser.add_argument("--db", type=Path, help="SQLite database file")
    parser.add_argument("--redis-url", help="Redis connection URL")
    parser.add_argument("--prefix", help="Cache key prefix of the entity collection")
    parser.add_argument("--interval", type=float, help="Seconds between reconciler ticks")
    parser.add_argument("--write-timeout", type=float, help="Max seconds per store write")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser


def config_from_args(args: argparse.Namespace) -> CacheLayerConfig:
    """Overlay command-line options on the environment configuration."""
    config = CacheLayerConfig.from_env()
    overrides = {
        "db_path": args.db,
        "redis_url": args.redis_url,
        "key_prefix": args.prefix,
        "reconcile_interval_seconds": args.interval,
        "write_timeout_seconds": args.write_timeout,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


async def run_reconciler(config: CacheLayerConfig) -> None:
    async with CacheLayer.from_config(config):
        # Runs until cancelled; the layer stops the reconciler on exit.
        await asyncio.Event().wait()


async def run_drain(config: CacheLayerConfig) -> int:
    layer = CacheLayer.from_config(config)
    await layer.open(start_reconciler=False)
    try:
        result = await layer.reconciler.tick()
    finally:
        await layer.close()
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.error else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    config = config_from_args(args)

    if args.command == "drain":
        return asyncio.run(run_drain(config))

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_reconciler(config))
    return 0


if __name__ == "__main__":
    sys.exit(main())
