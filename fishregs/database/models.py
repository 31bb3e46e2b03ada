"""SQLAlchemy models for the regulation store."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fishregs.core.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

WATER_TYPES = ("lake", "river", "stream", "pond", "reservoir")
DOCUMENT_TYPES = ("fishing_regulations", "special_regulations", "emergency_closure")
PROCESSING_STATUSES = ("pending", "processing", "completed", "failed")
REVIEW_STATUSES = ("pending", "approved", "rejected", "needs_revision")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _in_check(column: str, values: tuple) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class State(Base):
    """Administrative area (state or province) that issues regulations."""

    __tablename__ = "states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(2), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="US")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )

    counties: Mapped[list["County"]] = relationship("County", back_populates="state")


class County(Base):
    """Sub-area of a state; optional on water bodies."""

    __tablename__ = "counties"
    __table_args__ = (UniqueConstraint("state_id", "name", name="uq_counties_state_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    state_id: Mapped[int] = mapped_column(Integer, ForeignKey("states.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    fips_code: Mapped[str | None] = mapped_column(String(5), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )

    state: Mapped["State"] = relationship("State", back_populates="counties")


class FishSpecies(Base):
    """Species reference keyed by canonical common name."""

    __tablename__ = "fish_species"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    common_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    scientific_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    species_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class WaterBody(Base):
    """Named lake, river or stream inside a state."""

    __tablename__ = "water_bodies"
    __table_args__ = (
        UniqueConstraint("state_id", "normalized_name", name="uq_water_bodies_state_name"),
        CheckConstraint(_in_check("water_type", WATER_TYPES), name="ck_water_bodies_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(200), nullable=False)
    water_type: Mapped[str] = mapped_column(String(20), nullable=False, default="lake")
    state_id: Mapped[int] = mapped_column(Integer, ForeignKey("states.id"), nullable=False)
    county_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("counties.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    regulations: Mapped[list["FishingRegulation"]] = relationship(
        "FishingRegulation", back_populates="water_body"
    )


class RegulationDocument(Base):
    """Uploaded source document and its processing lifecycle."""

    __tablename__ = "regulation_documents"
    __table_args__ = (
        CheckConstraint(_in_check("document_type", DOCUMENT_TYPES), name="ck_regulation_documents_type"),
        CheckConstraint(
            _in_check("processing_status", PROCESSING_STATUSES), name="ck_regulation_documents_status"
        ),
        Index("ix_regulation_documents_status", "processing_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    document_type: Mapped[str] = mapped_column(String(50), nullable=False, default="special_regulations")
    upload_source: Mapped[str] = mapped_column(String(50), nullable=False, default="api")
    blob_storage_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    state_id: Mapped[int] = mapped_column(Integer, ForeignKey("states.id"), nullable=False)
    regulation_year: Mapped[int] = mapped_column(Integer, nullable=False)
    processing_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    processing_started_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    processing_completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    processing_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    extracted_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    source_content: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True, deferred=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class FishingRegulation(Base):
    """One species' rules on one water body for one regulation year."""

    __tablename__ = "fishing_regulations"
    __table_args__ = (
        Index(
            "uq_fishing_regulations_active",
            "water_body_id",
            "species_id",
            "regulation_year",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_fishing_regulations_water_body", "water_body_id"),
        CheckConstraint(
            "(protected_slot_min IS NULL AND protected_slot_max IS NULL) OR "
            "(protected_slot_min IS NOT NULL AND protected_slot_max IS NOT NULL "
            "AND protected_slot_min < protected_slot_max)",
            name="ck_fishing_regulations_slot",
        ),
        CheckConstraint(
            "daily_limit IS NULL OR daily_limit >= 0", name="ck_fishing_regulations_daily_limit"
        ),
        CheckConstraint(
            "possession_limit IS NULL OR possession_limit >= 0",
            name="ck_fishing_regulations_possession_limit",
        ),
        CheckConstraint(_in_check("review_status", REVIEW_STATUSES), name="ck_fishing_regulations_review"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    water_body_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("water_bodies.id", ondelete="CASCADE"), nullable=False
    )
    species_id: Mapped[int] = mapped_column(Integer, ForeignKey("fish_species.id"), nullable=False)
    source_document_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("regulation_documents.id"), nullable=True
    )
    regulation_year: Mapped[int] = mapped_column(Integer, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    regulation_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    daily_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    possession_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    minimum_size: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    maximum_size: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    size_limit_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    protected_slot_min: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    protected_slot_max: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    protected_slot_exceptions: Mapped[int | None] = mapped_column(Integer, nullable=True)

    season_open_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    season_close_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_year_round: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    season_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    catch_and_release_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    special_regulations: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    review_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    confidence_score: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    water_body: Mapped["WaterBody"] = relationship("WaterBody", back_populates="regulations")
    species: Mapped["FishSpecies"] = relationship("FishSpecies")
