"""OKR, key result and review tables."""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from okrkeeper.models.database import Base
from okrkeeper.models.team import TeamRow, enum_column
from okrkeeper.schemas.okr import OkrType, ReviewType


class OkrRow(Base):
    """Objective scoped to a team, optionally owned by one member."""
    __tablename__ = "okrs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[OkrType] = mapped_column(enum_column(OkrType, "okrtype"), nullable=False)
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    quarter_year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter_quarter: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Relationships
    team: Mapped["TeamRow"] = relationship("TeamRow", back_populates="okrs")
    key_results: Mapped[List["KeyResultRow"]] = relationship(
        "KeyResultRow",
        back_populates="okr",
        cascade="all, delete-orphan",
        order_by="KeyResultRow.created_at",
    )
    reviews: Mapped[List["ReviewRow"]] = relationship(
        "ReviewRow",
        back_populates="okr",
        cascade="all, delete-orphan",
    )


class KeyResultRow(Base):
    """Measurable result owned by exactly one OKR."""
    __tablename__ = "key_results"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    okr_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("okrs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    target_value: Mapped[float] = mapped_column(Float, nullable=False)
    # No upper bound: progress may overshoot the target
    current_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    okr: Mapped["OkrRow"] = relationship("OkrRow", back_populates="key_results")


class ReviewRow(Base):
    """Progress or final review written against an OKR."""
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    okr_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("okrs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[ReviewType] = mapped_column(enum_column(ReviewType, "reviewtype"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    okr: Mapped["OkrRow"] = relationship("OkrRow", back_populates="reviews")
