#!/usr/bin/env python
"""Populate the analog score cache.

Usage:
    python run_cache_population.py [--version N] [--analog ID] [--force]
"""
import argparse
import asyncio
import json

from scenario_scoring.core.logging import setup_logging
from scenario_scoring.database.connection import close_database
from scenario_scoring.jobs.definitions import analog_score_cache_populate_job


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--version", type=int, default=None, help="cache version to write")
    parser.add_argument("--analog", default=None, help="only score this analog id")
    parser.add_argument(
        "--force", action="store_true", help="re-score even if the cache is populated"
    )
    return parser.parse_args()


async def main(args: argparse.Namespace) -> dict:
    try:
        return await analog_score_cache_populate_job(
            version=args.version, analog_id=args.analog, force=args.force
        )
    finally:
        await close_database()


if __name__ == "__main__":
    setup_logging()
    result = asyncio.run(main(parse_args()))
    print(json.dumps(result, indent=2))
