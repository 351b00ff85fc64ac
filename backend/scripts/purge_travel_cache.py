"""Delete travel cache entries older than the cache TTL.

Lookups already treat stale entries as absent; this only reclaims the rows.

Usage examples:
- Count what would be removed:
  ./.venv/bin/python scripts/purge_travel_cache.py --dry-run

- Purge entries older than 48 hours instead of the configured TTL:
  ./.venv/bin/python scripts/purge_travel_cache.py --ttl-hours 48
"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import datetime, timedelta
from typing import Optional

# Add project root to path (same pattern as other scripts)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlmodel import Session

from courier_dispatch.core.config import settings
from courier_dispatch.core.db import engine
from courier_dispatch.services.travel_cache import TravelCache


def _purge(session: Session, ttl_hours: float, dry_run: bool, now: Optional[datetime] = None) -> int:
	cache = TravelCache(session, ttl=timedelta(hours=ttl_hours))
	if dry_run:
		expired = cache.count_expired(now)
		print(f"Found {expired} expired travel cache entries.")
		return expired

	removed = cache.purge_expired(now)
	print(f"Removed {removed} expired travel cache entries.")
	return removed


def main() -> None:
	parser = argparse.ArgumentParser(description="Delete expired travel cache entries")
	parser.add_argument(
		"--ttl-hours",
		type=float,
		default=settings.TRAVEL_CACHE_TTL_HOURS,
		help="Entries last written longer ago than this are removed",
	)
	parser.add_argument("--dry-run", action="store_true", help="Only count the expired entries")

	args = parser.parse_args()
	if args.ttl_hours <= 0:
		raise SystemExit("--ttl-hours must be positive")

	with Session(engine) as session:
		_purge(session, args.ttl_hours, dry_run=bool(args.dry_run))


if __name__ == "__main__":
	main()
