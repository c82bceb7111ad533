"""
PostgreSQL store implementations.

Every query goes through the pooled psycopg cursors from
``swipematch.utils.db_utils``. Uniqueness is enforced by the schema in
``swipematch.models.tables``:

- ``swipes`` primary key (viewer_id, target_id) makes swipe writes upserts
- ``matches`` unique (candidate_id, company_id) makes match creation
  idempotent; a losing concurrent insert sees the winner's row
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import psycopg
from psycopg.types.json import Jsonb

from swipematch.core.exceptions import ConcurrentMatchConflict, PersistenceFailure
from swipematch.core.interfaces import (
    ActorDirectory,
    MatchRepository,
    ReportRepository,
    SwipeRepository,
)
from swipematch.log.logging import logger
from swipematch.metrics.core import async_sql_query_timer
from swipematch.models.domain import (
    Actor,
    ActorRole,
    Listing,
    ListingKind,
    Match,
    Report,
    SwipeDirection,
    SwipeRecord,
)
from swipematch.utils.db_utils import get_db_cursor


SQL_SELECT_ACTOR = """
    SELECT id, role, acts_for FROM actors WHERE id = %s
"""

SQL_INSERT_ACTOR = """
    INSERT INTO actors (id, role, acts_for)
    VALUES (%s, %s, %s)
    ON CONFLICT (id) DO UPDATE SET role = EXCLUDED.role, acts_for = EXCLUDED.acts_for
"""

SQL_SELECT_LISTING = """
    SELECT id, owner_id, kind, title, attributes, created_at FROM listings WHERE id = %s
"""

SQL_INSERT_LISTING = """
    INSERT INTO listings (id, owner_id, kind, title, attributes, created_at)
    VALUES (%s, %s, %s, %s, %s, %s)
    ON CONFLICT (id) DO NOTHING
"""

SQL_QUEUE_CANDIDATES = """
    SELECT q.sort_key, q.id, q.owner_id, q.kind, q.title, q.attributes, q.created_at
    FROM (
        SELECT md5(%(seed)s || ':' || l.id) COLLATE "C" AS sort_key, l.*
        FROM listings l
        WHERE l.kind = %(kind)s
          AND l.owner_id <> %(owner_id)s
          AND l.id <> ALL(%(exclude_ids)s)
    ) AS q
    WHERE %(after_key)s::text IS NULL OR q.sort_key > %(after_key)s
    ORDER BY q.sort_key
    LIMIT %(limit)s
"""

SQL_UPSERT_SWIPE = """
    INSERT INTO swipes (id, viewer_id, principal_id, target_id, target_kind,
                        target_owner_id, direction, swiped_at)
    VALUES (%(id)s, %(viewer_id)s, %(principal_id)s, %(target_id)s, %(target_kind)s,
            %(target_owner_id)s, %(direction)s, %(swiped_at)s)
    ON CONFLICT (viewer_id, target_id) DO UPDATE
        SET principal_id = EXCLUDED.principal_id,
            direction = EXCLUDED.direction,
            swiped_at = EXCLUDED.swiped_at
        WHERE swipes.swiped_at <= EXCLUDED.swiped_at
    RETURNING *
"""

SQL_SELECT_SWIPE = """
    SELECT * FROM swipes WHERE viewer_id = %s AND target_id = %s
"""

SQL_SELECT_SWIPE_BY_ID = """
    SELECT * FROM swipes WHERE id = %s
"""

SQL_RECIPROCAL_LIKE = """
    SELECT 1 FROM swipes
    WHERE principal_id = %s AND target_owner_id = %s AND target_kind = %s
      AND direction IN ('like', 'superlike')
    LIMIT 1
"""

SQL_SWIPED_TARGETS = """
    SELECT target_id FROM swipes WHERE principal_id = %s
"""

SQL_LATEST_FOR_VIEWER = """
    SELECT * FROM swipes WHERE viewer_id = %s ORDER BY swiped_at DESC LIMIT 1
"""

SQL_DELETE_SWIPE = """
    DELETE FROM swipes WHERE viewer_id = %s AND target_id = %s
"""

SQL_DELETE_SWIPES_FOR_VIEWER = """
    DELETE FROM swipes WHERE viewer_id = %s
"""

SQL_SELECT_ALL_SWIPES = """
    SELECT * FROM swipes ORDER BY swiped_at
"""

SQL_INSERT_MATCH = """
    INSERT INTO matches (id, candidate_id, company_id, swipe_id, created_at)
    VALUES (%s, %s, %s, %s, %s)
    ON CONFLICT (candidate_id, company_id) DO NOTHING
    RETURNING *
"""

SQL_SELECT_MATCH_PAIR = """
    SELECT * FROM matches WHERE candidate_id = %s AND company_id = %s
"""

SQL_MATCHES_BY_CANDIDATE = """
    SELECT * FROM matches WHERE candidate_id = %s ORDER BY created_at DESC
"""

SQL_MATCHES_BY_COMPANY = """
    SELECT * FROM matches WHERE company_id = %s ORDER BY created_at DESC
"""

SQL_INSERT_REPORT = """
    INSERT INTO listing_reports (reporter_id, listing_id, reason, details, created_at)
    VALUES (%s, %s, %s, %s, %s)
    ON CONFLICT (reporter_id, listing_id) DO NOTHING
"""

SQL_REPORTED_LISTINGS = """
    SELECT listing_id FROM listing_reports WHERE reporter_id = %s
"""

SQL_DELETE_REPORTS = """
    DELETE FROM listing_reports WHERE reporter_id = %s
"""


@asynccontextmanager
async def _persistence(operation: str, **context: Any):
    """Translate driver errors into ``PersistenceFailure``."""
    try:
        yield
    except psycopg.Error as e:
        logger.error(
            "Database operation {operation} failed",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
            **context,
        )
        raise PersistenceFailure(f"{operation} failed: {str(e)}") from e


def _row_to_listing(row: Dict[str, Any]) -> Listing:
    return Listing(
        id=row["id"],
        owner_id=row["owner_id"],
        kind=ListingKind(row["kind"]),
        title=row["title"],
        attributes=row["attributes"] or {},
        created_at=row["created_at"],
    )


def _row_to_swipe(row: Dict[str, Any]) -> SwipeRecord:
    return SwipeRecord(
        id=row["id"],
        viewer_id=row["viewer_id"],
        principal_id=row["principal_id"],
        target_id=row["target_id"],
        target_kind=ListingKind(row["target_kind"]),
        target_owner_id=row["target_owner_id"],
        direction=SwipeDirection(row["direction"]),
        swiped_at=row["swiped_at"],
    )


def _row_to_match(row: Dict[str, Any]) -> Match:
    return Match(
        id=row["id"],
        candidate_id=row["candidate_id"],
        company_id=row["company_id"],
        created_at=row["created_at"],
        swipe_id=row.get("swipe_id"),
    )


class PostgresActorDirectory(ActorDirectory):

    async def get_actor(self, actor_id: str) -> Optional[Actor]:
        async with _persistence("get_actor", actor_id=actor_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_SELECT_ACTOR, (actor_id,))
                row = await cur.fetchone()
        if row is None:
            return None
        return Actor(id=row["id"], role=ActorRole(row["role"]), acts_for=row["acts_for"])

    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        async with _persistence("get_listing", listing_id=listing_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_SELECT_LISTING, (listing_id,))
                row = await cur.fetchone()
        return _row_to_listing(row) if row else None

    async def add_actor(self, actor: Actor) -> Actor:
        async with _persistence("add_actor", actor_id=actor.id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_INSERT_ACTOR, (actor.id, actor.role.value, actor.acts_for))
        return actor

    async def add_listing(self, listing: Listing) -> Listing:
        async with _persistence("add_listing", listing_id=listing.id):
            async with get_db_cursor() as cur:
                await cur.execute(
                    SQL_INSERT_LISTING,
                    (
                        listing.id,
                        listing.owner_id,
                        listing.kind.value,
                        listing.title,
                        Jsonb(listing.attributes),
                        listing.created_at,
                    ),
                )
        return listing

    @async_sql_query_timer("queue_candidates")
    async def queue_candidates(
        self,
        kind: ListingKind,
        exclude_owner_id: str,
        exclude_ids: Iterable[str],
        seed: str,
        after_key: Optional[str],
        limit: int,
    ) -> List[Tuple[str, Listing]]:
        params = {
            "seed": seed,
            "kind": kind.value,
            "owner_id": exclude_owner_id,
            "exclude_ids": list(exclude_ids),
            "after_key": after_key,
            "limit": limit,
        }
        async with _persistence("queue_candidates", owner_id=exclude_owner_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_QUEUE_CANDIDATES, params)
                rows = await cur.fetchall()
        return [(row["sort_key"], _row_to_listing(row)) for row in rows]


class PostgresSwipeRepository(SwipeRepository):

    @async_sql_query_timer("upsert_swipe")
    async def upsert(self, record: SwipeRecord) -> SwipeRecord:
        params = {
            "id": record.id,
            "viewer_id": record.viewer_id,
            "principal_id": record.principal_id,
            "target_id": record.target_id,
            "target_kind": record.target_kind.value,
            "target_owner_id": record.target_owner_id,
            "direction": record.direction.value,
            "swiped_at": record.swiped_at,
        }
        async with _persistence("upsert_swipe", viewer_id=record.viewer_id, target_id=record.target_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_UPSERT_SWIPE, params)
                row = await cur.fetchone()
                if row is None:
                    # The stored swipe is newer; the conditional update was skipped
                    logger.info(
                        "Ignoring stale swipe for {viewer_id} on {target_id}",
                        viewer_id=record.viewer_id,
                        target_id=record.target_id,
                    )
                    await cur.execute(SQL_SELECT_SWIPE, (record.viewer_id, record.target_id))
                    row = await cur.fetchone()
        return _row_to_swipe(row)

    async def get(self, viewer_id: str, target_id: str) -> Optional[SwipeRecord]:
        async with _persistence("get_swipe", viewer_id=viewer_id, target_id=target_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_SELECT_SWIPE, (viewer_id, target_id))
                row = await cur.fetchone()
        return _row_to_swipe(row) if row else None

    async def get_by_id(self, swipe_id: str) -> Optional[SwipeRecord]:
        async with _persistence("get_swipe_by_id", swipe_id=swipe_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_SELECT_SWIPE_BY_ID, (swipe_id,))
                row = await cur.fetchone()
        return _row_to_swipe(row) if row else None

    @async_sql_query_timer("reciprocal_like")
    async def has_positive_swipe(
        self, principal_id: str, target_owner_id: str, target_kind: ListingKind
    ) -> bool:
        async with _persistence("reciprocal_like", principal_id=principal_id):
            async with get_db_cursor() as cur:
                await cur.execute(
                    SQL_RECIPROCAL_LIKE, (principal_id, target_owner_id, target_kind.value)
                )
                row = await cur.fetchone()
        return row is not None

    async def swiped_target_ids(self, principal_id: str) -> Set[str]:
        async with _persistence("swiped_targets", principal_id=principal_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_SWIPED_TARGETS, (principal_id,))
                rows = await cur.fetchall()
        return {row["target_id"] for row in rows}

    async def latest_for_viewer(self, viewer_id: str) -> Optional[SwipeRecord]:
        async with _persistence("latest_swipe", viewer_id=viewer_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_LATEST_FOR_VIEWER, (viewer_id,))
                row = await cur.fetchone()
        return _row_to_swipe(row) if row else None

    async def delete(self, viewer_id: str, target_id: str) -> bool:
        async with _persistence("delete_swipe", viewer_id=viewer_id, target_id=target_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_DELETE_SWIPE, (viewer_id, target_id))
                return cur.rowcount > 0

    async def delete_for_viewer(self, viewer_id: str) -> int:
        async with _persistence("delete_swipes_for_viewer", viewer_id=viewer_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_DELETE_SWIPES_FOR_VIEWER, (viewer_id,))
                return cur.rowcount

    async def list_all(self) -> List[SwipeRecord]:
        async with _persistence("list_swipes"):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_SELECT_ALL_SWIPES)
                rows = await cur.fetchall()
        return [_row_to_swipe(row) for row in rows]


class PostgresMatchRepository(MatchRepository):

    @async_sql_query_timer("create_match")
    async def create_if_absent(self, match: Match) -> Tuple[Match, bool]:
        async with _persistence(
            "create_match", candidate_id=match.candidate_id, company_id=match.company_id
        ):
            async with get_db_cursor() as cur:
                await cur.execute(
                    SQL_INSERT_MATCH,
                    (match.id, match.candidate_id, match.company_id, match.swipe_id, match.created_at),
                )
                row = await cur.fetchone()
                if row is not None:
                    return _row_to_match(row), True

                await cur.execute(SQL_SELECT_MATCH_PAIR, (match.candidate_id, match.company_id))
                row = await cur.fetchone()

        if row is None:
            raise ConcurrentMatchConflict(
                f"Match insert for ({match.candidate_id}, {match.company_id}) conflicted "
                "but no row is visible"
            )
        return _row_to_match(row), False

    async def get_for_pair(self, candidate_id: str, company_id: str) -> Optional[Match]:
        async with _persistence("get_match", candidate_id=candidate_id, company_id=company_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_SELECT_MATCH_PAIR, (candidate_id, company_id))
                row = await cur.fetchone()
        return _row_to_match(row) if row else None

    async def list_by_candidate(self, candidate_id: str) -> List[Match]:
        async with _persistence("list_matches_by_candidate", candidate_id=candidate_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_MATCHES_BY_CANDIDATE, (candidate_id,))
                rows = await cur.fetchall()
        return [_row_to_match(row) for row in rows]

    async def list_by_company(self, company_id: str) -> List[Match]:
        async with _persistence("list_matches_by_company", company_id=company_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_MATCHES_BY_COMPANY, (company_id,))
                rows = await cur.fetchall()
        return [_row_to_match(row) for row in rows]


class PostgresReportRepository(ReportRepository):

    async def add(self, report: Report) -> Report:
        async with _persistence("add_report", reporter_id=report.reporter_id):
            async with get_db_cursor() as cur:
                await cur.execute(
                    SQL_INSERT_REPORT,
                    (
                        report.reporter_id,
                        report.listing_id,
                        report.reason.value,
                        report.details,
                        report.created_at,
                    ),
                )
        return report

    async def reported_listing_ids(self, reporter_id: str) -> Set[str]:
        async with _persistence("reported_listings", reporter_id=reporter_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_REPORTED_LISTINGS, (reporter_id,))
                rows = await cur.fetchall()
        return {row["listing_id"] for row in rows}

    async def delete_for_reporter(self, reporter_id: str) -> int:
        async with _persistence("delete_reports", reporter_id=reporter_id):
            async with get_db_cursor() as cur:
                await cur.execute(SQL_DELETE_REPORTS, (reporter_id,))
                return cur.rowcount


__all__ = [
    "PostgresActorDirectory",
    "PostgresSwipeRepository",
    "PostgresMatchRepository",
    "PostgresReportRepository",
]
