"""
SQLAlchemy table definitions for the PostgreSQL store.

The service queries these tables with raw SQL through psycopg; the models are
the schema source of truth for ``swipematch.scripts.init_db``.
"""
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    PrimaryKeyConstraint,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ActorRow(Base):
    __tablename__ = "actors"

    id = Column(String, primary_key=True)
    role = Column(String, nullable=False)
    acts_for = Column(String, ForeignKey("actors.id", ondelete="CASCADE"), nullable=True)


class ListingRow(Base):
    __tablename__ = "listings"

    id = Column(String, primary_key=True)
    owner_id = Column(String, ForeignKey("actors.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String, nullable=False)
    title = Column(String, nullable=False)
    attributes = Column(JSONB, nullable=False, server_default="{}")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_listings_kind_owner", "kind", "owner_id"),
    )


class SwipeRow(Base):
    __tablename__ = "swipes"

    id = Column(String, nullable=False, unique=True)
    viewer_id = Column(String, nullable=False)
    principal_id = Column(String, nullable=False)
    target_id = Column(String, nullable=False)
    target_kind = Column(String, nullable=False)
    target_owner_id = Column(String, nullable=False)
    direction = Column(String, nullable=False)
    swiped_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        PrimaryKeyConstraint("viewer_id", "target_id", name="pk_swipes"),
        # Reciprocity lookup: did principal X like anything owned by Y?
        Index("ix_swipes_principal_owner", "principal_id", "target_owner_id", "direction"),
        Index("ix_swipes_viewer_time", "viewer_id", "swiped_at"),
    )


class MatchRow(Base):
    __tablename__ = "matches"

    id = Column(String, primary_key=True)
    candidate_id = Column(String, nullable=False)
    company_id = Column(String, nullable=False)
    swipe_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("candidate_id", "company_id", name="uq_matches_pair"),
        Index("ix_matches_company", "company_id"),
    )


class ReportRow(Base):
    __tablename__ = "listing_reports"

    reporter_id = Column(String, nullable=False)
    listing_id = Column(String, nullable=False)
    reason = Column(String, nullable=False)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        PrimaryKeyConstraint("reporter_id", "listing_id", name="pk_listing_reports"),
    )
