"""
Request/response schemas for swipe submission, undo and reports.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from swipematch.models.domain import ListingKind, ReportReason, SwipeDirection, SwipeRecord
from swipematch.schemas.base import CamelModel


class SwipeIn(CamelModel):
    viewer_id: str = Field(..., min_length=1, description="Actor submitting the swipe")
    target_id: str = Field(..., min_length=1, description="Listing being swiped")
    direction: SwipeDirection = Field(..., description="like, dislike or superlike")
    timestamp: Optional[datetime] = Field(
        None, description="Client submission time, used for last-write-wins"
    )


class SwipeOut(CamelModel):
    swipe_id: str
    match_created: bool
    match_id: Optional[str] = None


class SwipeRecordOut(CamelModel):
    swipe_id: str
    viewer_id: str
    target_id: str
    target_kind: ListingKind
    direction: SwipeDirection
    swiped_at: datetime

    @classmethod
    def from_record(cls, record: SwipeRecord) -> "SwipeRecordOut":
        return cls(
            swipe_id=record.id,
            viewer_id=record.viewer_id,
            target_id=record.target_id,
            target_kind=record.target_kind,
            direction=record.direction,
            swiped_at=record.swiped_at,
        )


class UndoOut(CamelModel):
    undone: bool
    swipe: Optional[SwipeRecordOut] = None


class ReportIn(CamelModel):
    reporter_id: str = Field(..., min_length=1)
    listing_id: str = Field(..., min_length=1)
    reason: ReportReason
    details: Optional[str] = Field(None, max_length=2000)


class ReportOut(CamelModel):
    reporter_id: str
    listing_id: str
    reason: ReportReason
    created_at: datetime
