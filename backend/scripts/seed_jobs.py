"""
scripts/seed_jobs.py
Seed a local database with demo agents and pending mock jobs.

Usage:
  ./.venv/bin/python scripts/seed_jobs.py --agents 4 --jobs 40
  ./.venv/bin/python scripts/seed_jobs.py --clear --lat 13.7563 --lng 100.5018 --radius 3000
"""

import os
import random
import sys
from datetime import timedelta
from typing import List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete
from sqlmodel import Session

from courier_dispatch.core.db import engine, init_db
from courier_dispatch.models.fleet_models import Agent, Job, VehicleType
from courier_dispatch.models.optimization_models import Location, SeedJobsRequest
from courier_dispatch.models.route_models import Assignment, Route, Stop
from courier_dispatch.services.geo import LatLng, utcnow
from courier_dispatch.services.seeding import random_point_within, seed_mock_jobs


class DemoSeeder:
	def __init__(self, center: LatLng, radius_meters: float, seed: int | None = None):
		self.engine = engine
		self.center = center
		self.radius_meters = radius_meters
		self.rng = random.Random(seed)
		self.agents: List[Agent] = []
		self.job_ids: List[str] = []

	def clear_existing_data(self, session: Session):
		"""Remove agents, jobs and everything planned from them."""
		print("Clearing existing data...")
		for model in (Assignment, Stop, Route, Job, Agent):
			session.exec(delete(model))  # type: ignore[call-overload]
		session.commit()

	def create_agents(self, session: Session, count: int):
		now = utcnow()
		shift_start = now.replace(minute=0, second=0, microsecond=0)
		vehicle_types = list(VehicleType)
		for i in range(count):
			depot = random_point_within(self.center, self.radius_meters / 2, self.rng)
			agent = Agent(
				id=f"m{i + 1}",
				display_name=f"Messenger {i + 1}",
				vehicle_type=vehicle_types[i % len(vehicle_types)],
				start_lat=depot.lat,
				start_lng=depot.lng,
				return_to_base=i % 2 == 0,
				shift_start=shift_start,
				shift_end=shift_start + timedelta(hours=9),
			)
			session.merge(agent)
			self.agents.append(agent)
		session.commit()
		print(f"Created {count} agents")

	def create_jobs(self, session: Session, count: int, agent_hint: str | None):
		remaining = count
		while remaining > 0:
			batch = min(remaining, 200)
			result = seed_mock_jobs(
				session=session,
				request=SeedJobsRequest(
					center=Location(lat=self.center.lat, lng=self.center.lng),
					count=batch,
					radius_meters=self.radius_meters,
					agent_id=agent_hint,
				),
				rng=self.rng,
			)
			self.job_ids.extend(result.job_ids)
			remaining -= batch
		print(f"Created {len(self.job_ids)} pending jobs")

	def run(self, agents: int, jobs: int, agent_hint: str | None, clear_existing: bool = False):
		with Session(self.engine, expire_on_commit=False) as session:
			init_db(session)
			if clear_existing:
				self.clear_existing_data(session)
			self.create_agents(session, agents)
			self.create_jobs(session, jobs, agent_hint)

		print(f"Agent ids: {', '.join(a.id for a in self.agents)}")


def main():
	"""Command-line entry point"""
	import argparse

	parser = argparse.ArgumentParser(description="Seed demo agents and pending mock jobs")
	parser.add_argument("--agents", type=int, default=3, help="Number of agents to create")
	parser.add_argument("--jobs", type=int, default=12, help="Number of jobs to create")
	parser.add_argument("--lat", type=float, default=13.7563, help="Center latitude")
	parser.add_argument("--lng", type=float, default=100.5018, help="Center longitude")
	parser.add_argument("--radius", type=float, default=2500, help="Radius in meters")
	parser.add_argument("--agent-hint", help="Agent id written as the jobs' hint")
	parser.add_argument("--seed", type=int, help="Random seed for reproducible data")
	parser.add_argument("--clear", action="store_true", help="Clear existing data before seeding")

	args = parser.parse_args()

	seeder = DemoSeeder(LatLng(args.lat, args.lng), args.radius, seed=args.seed)
	seeder.run(args.agents, args.jobs, args.agent_hint, clear_existing=args.clear)


if __name__ == "__main__":
	main()
