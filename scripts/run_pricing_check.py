"""
Run pricing checks from CLI.

Without --competitor every active competitor gets a page check. With
--region the structured pricing check runs for that region instead.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict
from typing import Any

from db.session import SessionLocal, init_db
from pricewatch.logging_utils import configure_logging
from pricewatch.services import PricingCheckService
from pricewatch.storage import SQLAlchemyPricingStore


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run competitor pricing checks.")
    parser.add_argument(
        "--competitor",
        dest="competitor",
        default=None,
        help="Competitor id; all active competitors when omitted.",
    )
    parser.add_argument(
        "--region",
        dest="region",
        default=None,
        help="Region key (us, in, eu, global) for a structured pricing check.",
    )
    parser.add_argument(
        "--compare-regions",
        dest="compare_regions",
        action="store_true",
        help="Compare the latest regional captures of --competitor.",
    )
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> Any:
    service = PricingCheckService()
    try:
        with SessionLocal() as db:
            store = SQLAlchemyPricingStore(session=db)
            if args.competitor is None:
                outcomes = await service.run_batch(store=store)
                return [asdict(outcome) for outcome in outcomes]
            if args.compare_regions:
                outcome = await service.compare_regions(store=store, competitor_id=args.competitor)
                return asdict(outcome)
            if args.region:
                outcome = await service.check_pricing_context(
                    store=store,
                    competitor_id=args.competitor,
                    region=args.region,
                )
                return asdict(outcome)
            outcome = await service.check_competitor_page(store=store, competitor_id=args.competitor)
            return asdict(outcome)
    finally:
        await service.aclose()


def main() -> int:
    args = _parse_args()
    configure_logging()
    init_db()

    try:
        payload = asyncio.run(_run(args))
    except ValueError as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 1

    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
