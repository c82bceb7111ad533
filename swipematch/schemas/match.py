from datetime import datetime
from typing import List

from swipematch.models.domain import Match
from swipematch.schemas.base import CamelModel


class MatchOut(CamelModel):
    id: str
    candidate_id: str
    company_id: str
    created_at: datetime

    @classmethod
    def from_match(cls, match: Match) -> "MatchOut":
        return cls(
            id=match.id,
            candidate_id=match.candidate_id,
            company_id=match.company_id,
            created_at=match.created_at,
        )


class MatchListOut(CamelModel):
    items: List[MatchOut]
    count: int


class RecomputeOut(CamelModel):
    created: int
    match_ids: List[str]
