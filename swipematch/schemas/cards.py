"""
Card and listing schemas.

``JobAttributes`` and ``CandidateAttributes`` describe the display fields the
mobile client renders on job cards and candidate cards.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from swipematch.models.domain import Listing, ListingKind
from swipematch.schemas.base import CamelModel


class EmploymentType(str, Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    FREELANCE = "freelance"
    INTERNSHIP = "internship"


class Availability(str, Enum):
    IMMEDIATE = "immediate"
    ONE_MONTH = "one_month"
    THREE_MONTHS = "three_months"
    NEGOTIABLE = "negotiable"


class JobAttributes(CamelModel):
    company_name: str
    company_logo: Optional[str] = None
    location: str
    salary: Optional[str] = None
    employment_type: EmploymentType
    required_skills: List[str] = Field(default_factory=list)
    description: str = ""
    benefits: List[str] = Field(default_factory=list)


class CandidateAttributes(CamelModel):
    name: str
    profile_image: Optional[str] = None
    headline: Optional[str] = None
    location: str
    skills: List[str] = Field(default_factory=list)
    experience: str = ""
    availability: Availability = Availability.NEGOTIABLE
    bio: Optional[str] = None
    desired_salary: Optional[str] = None


ATTRIBUTE_MODELS: Dict[ListingKind, type] = {
    ListingKind.JOB: JobAttributes,
    ListingKind.CANDIDATE_PROFILE: CandidateAttributes,
}


def validate_attributes(kind: ListingKind, attributes: Dict[str, Any]) -> Dict[str, Any]:
    """Validate listing attributes for their kind and return them keyed as the client reads them."""
    model: BaseModel = ATTRIBUTE_MODELS[kind].model_validate(attributes)
    return model.model_dump(mode="json", by_alias=True)


class ListingOut(CamelModel):
    id: str
    owner_id: str
    kind: ListingKind
    title: str
    attributes: Dict[str, Any]
    created_at: datetime

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingOut":
        return cls(**listing.to_dict())


class CardsOut(CamelModel):
    cards: List[ListingOut]
    session: str = Field(..., description="Pass back to continue this queue session")
    next_cursor: Optional[str] = Field(None, description="Cursor for the next page; null when exhausted")
