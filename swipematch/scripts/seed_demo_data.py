"""
Seed demo actors and listings for local development.

Runs against the configured storage backend; with ``STORAGE_BACKEND=postgres``
the tables must exist (see ``swipematch.scripts.init_db``).
"""
import asyncio

from swipematch.log.logging import logger
from swipematch.models.domain import Actor, ActorRole, Listing, ListingKind
from swipematch.schemas.cards import validate_attributes
from swipematch.services.engine import SwipeEngine, build_engine
from swipematch.utils.db_utils import close_all_connection_pools

COMPANIES = [
    ("company-techvision", "TechVision GmbH", "Berlin"),
    ("company-greenlogistics", "Green Logistics AG", "Hamburg"),
    ("company-medicare", "MediCare Plus", "München"),
]

JOBS = [
    {
        "id": "job-frontend-dev",
        "owner": "company-techvision",
        "title": "Frontend Developer (React Native)",
        "attributes": {
            "companyName": "TechVision GmbH",
            "location": "Berlin",
            "salary": "55.000 - 70.000 EUR",
            "employmentType": "full_time",
            "requiredSkills": ["React Native", "TypeScript", "REST"],
            "description": "Build our mobile apps from design to release.",
            "benefits": ["Remote days", "Learning budget"],
        },
    },
    {
        "id": "job-warehouse-lead",
        "owner": "company-greenlogistics",
        "title": "Warehouse Team Lead",
        "attributes": {
            "companyName": "Green Logistics AG",
            "location": "Hamburg",
            "salary": "42.000 EUR",
            "employmentType": "full_time",
            "requiredSkills": ["Leadership", "Forklift licence"],
            "description": "Lead a team of twelve in our electric fleet hub.",
        },
    },
    {
        "id": "job-nurse-parttime",
        "owner": "company-medicare",
        "title": "Nurse (part time)",
        "attributes": {
            "companyName": "MediCare Plus",
            "location": "München",
            "employmentType": "part_time",
            "requiredSkills": ["Elderly care"],
            "benefits": ["Flexible shifts"],
        },
    },
]

CANDIDATES = [
    {
        "id": "candidate-anna",
        "title": "Anna Schmidt",
        "attributes": {
            "name": "Anna Schmidt",
            "headline": "Mobile developer",
            "location": "Berlin",
            "skills": ["React Native", "TypeScript"],
            "experience": "4 years",
            "availability": "one_month",
        },
    },
    {
        "id": "candidate-jonas",
        "title": "Jonas Weber",
        "attributes": {
            "name": "Jonas Weber",
            "headline": "Logistics coordinator",
            "location": "Hamburg",
            "skills": ["Leadership", "SAP"],
            "experience": "7 years",
            "availability": "immediate",
        },
    },
    {
        "id": "candidate-lea",
        "title": "Lea Fischer",
        "attributes": {
            "name": "Lea Fischer",
            "location": "München",
            "skills": ["Elderly care", "First aid"],
            "experience": "2 years",
        },
    },
]


async def seed(engine: SwipeEngine) -> int:
    """Insert the demo data; returns the number of listings written."""
    for company_id, _, _ in COMPANIES:
        await engine.directory.add_actor(Actor(id=company_id, role=ActorRole.COMPANY))
    await engine.directory.add_actor(
        Actor(id="recruiter-techvision", role=ActorRole.COMPANY, acts_for="company-techvision")
    )

    count = 0
    for job in JOBS:
        await engine.directory.add_listing(
            Listing(
                id=job["id"],
                owner_id=job["owner"],
                kind=ListingKind.JOB,
                title=job["title"],
                attributes=validate_attributes(ListingKind.JOB, job["attributes"]),
            )
        )
        count += 1

    for candidate in CANDIDATES:
        await engine.directory.add_actor(Actor(id=candidate["id"], role=ActorRole.CANDIDATE))
        await engine.directory.add_listing(
            Listing(
                id=f"profile-{candidate['id']}",
                owner_id=candidate["id"],
                kind=ListingKind.CANDIDATE_PROFILE,
                title=candidate["title"],
                attributes=validate_attributes(
                    ListingKind.CANDIDATE_PROFILE, candidate["attributes"]
                ),
            )
        )
        count += 1

    return count


async def main():
    engine = build_engine()
    try:
        count = await seed(engine)
        logger.info("Seeded demo data", listings=count)
    finally:
        await close_all_connection_pools()


if __name__ == "__main__":
    asyncio.run(main())
