"""Backfill missing leg polylines on existing routes.

Why:
- Routes built by the insertion optimizer only carry stop order and locations;
  the map view needs per-leg travel and geometry on each stop.

Usage examples:
- Dry-run (list the routes that would be processed):
  ./.venv/bin/python scripts/backfill_polylines.py --dry-run

- Backfill the 50 least recently updated routes of one company:
  ./.venv/bin/python scripts/backfill_polylines.py --company-id acme --limit 50

- Recompute specific routes even when legs are already filled:
  ./.venv/bin/python scripts/backfill_polylines.py --route-id m1_2025-12-15 --route-id m2_2025-12-15 --force

Notes:
- Without --force, legs whose stop already has a polyline and both endpoints are skipped.
- When the directions call fails (or GOOGLE_MAPS_API_KEY is empty) a straight-line
  estimate is written instead, with no polyline.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from datetime import datetime
from typing import Optional

# Add project root to path (same pattern as other scripts)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlmodel import Session

from courier_dispatch.core.db import engine
from courier_dispatch.models.optimization_models import EnrichAllRequest
from courier_dispatch.services.directions_service import DirectionsService
from courier_dispatch.services.route_enrichment import RouteEnricher


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
	if not value:
		return None
	try:
		return datetime.fromisoformat(value)
	except ValueError:
		raise SystemExit(f"Invalid --updated-before value: {value!r} (expected ISO-8601)")


async def _backfill(request: EnrichAllRequest, dry_run: bool) -> int:
	with Session(engine) as session:
		directions = DirectionsService()
		enricher = RouteEnricher(session, directions)

		try:
			if dry_run:
				route_ids = enricher.select_routes(request)
				print(f"Found {len(route_ids)} candidate routes.")
				for route_id in route_ids[:10]:
					print(f"- {route_id}")
				return 0

			result = await enricher.enrich_all(request)
		finally:
			await directions.close()

		print(
			f"Enriched {result.routes_processed}/{result.routes_total} routes: "
			f"{result.updated_stops} stops updated, "
			f"hits={result.cache_hits}, misses={result.cache_misses}"
		)
		return result.routes_processed


def main() -> None:
	parser = argparse.ArgumentParser(description="Backfill missing leg polylines for routes")
	parser.add_argument("--route-id", action="append", dest="route_ids", help="Route id (repeatable)")
	parser.add_argument("--company-id", help="Only routes of this company")
	parser.add_argument("--updated-before", help="Only routes last updated before this ISO-8601 time")
	parser.add_argument("--limit", type=int, default=20, help="Max routes to process")
	parser.add_argument("--force", action="store_true", help="Recompute legs that are already filled")
	parser.add_argument("--route-concurrency", type=int, default=3, help="Routes enriched at once")
	parser.add_argument("--leg-concurrency", type=int, default=5, help="Legs resolved at once per route")
	parser.add_argument("--short-hop-meters", type=float, default=20, help="Legs this short skip the API")
	parser.add_argument("--dry-run", action="store_true", help="Only list the routes that would be processed")

	args = parser.parse_args()

	request = EnrichAllRequest(
		route_ids=args.route_ids,
		company_id=args.company_id,
		updated_before=_parse_datetime(args.updated_before),
		limit=args.limit,
		force=bool(args.force),
		route_concurrency=args.route_concurrency,
		leg_concurrency=args.leg_concurrency,
		short_hop_meters=args.short_hop_meters,
	)

	asyncio.run(_backfill(request, dry_run=bool(args.dry_run)))


if __name__ == "__main__":
	main()
