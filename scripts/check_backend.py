#!/usr/bin/env python
"""
Check that the Ollama backend is reachable and optionally try one meal suggestion.

Run manually:
    python scripts/check_backend.py
    python scripts/check_backend.py --suggest dinner --avoid "Beef Stew" --prefer vegetarian
"""
import argparse
import asyncio
import logging
import sys

from meal_planner.app.services import llm_client
from meal_planner.app.services.meal_generation import GenerationFailed

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("check_backend")


async def run(args: argparse.Namespace) -> int:
    status = await llm_client.check_backend_status()
    print(status.model_dump_json(by_alias=True, indent=2))
    if not status.reachable:
        return 1
    if not args.suggest:
        return 0 if status.model_available else 2

    try:
        meal = await llm_client.generate_meal_suggestion(args.suggest, args.avoid, args.prefer)
    except GenerationFailed as exc:
        logger.error("Suggestion failed after %d attempts: %s", exc.attempts, exc.reason)
        return 3
    print(meal.model_dump_json(by_alias=True, indent=2))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--suggest", choices=["breakfast", "lunch", "dinner"], help="generate one suggestion")
    parser.add_argument("--avoid", action="append", default=[], help="meal title to avoid (repeatable)")
    parser.add_argument("--prefer", action="append", default=[], help="dietary preference (repeatable)")
    return asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    sys.exit(main())
