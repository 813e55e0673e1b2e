"""Team, membership and invitation tables."""
import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    DateTime, ForeignKey, Index, String, Text, Uuid, Enum as SQLEnum, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from okrkeeper.models.database import Base
from okrkeeper.schemas.team import InvitationStatus, ReviewFrequency, TeamRole

if TYPE_CHECKING:
    from okrkeeper.models.okr import OkrRow
    from okrkeeper.models.user import UserRow


def enum_column(enum_cls, name: str) -> SQLEnum:
    """Store enum values (not member names) as constrained strings."""
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class TeamRow(Base):
    """Team workspace."""
    __tablename__ = "teams"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    review_frequency: Mapped[ReviewFrequency] = mapped_column(
        enum_column(ReviewFrequency, "reviewfrequency"),
        default=ReviewFrequency.MONTHLY,
        nullable=False,
    )

    # Lifecycle
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Relationships
    members: Mapped[List["TeamMemberRow"]] = relationship(
        "TeamMemberRow",
        back_populates="team",
        cascade="all, delete-orphan",
    )
    invitations: Mapped[List["InvitationRow"]] = relationship(
        "InvitationRow",
        back_populates="team",
        cascade="all, delete-orphan",
    )
    okrs: Mapped[List["OkrRow"]] = relationship(
        "OkrRow",
        back_populates="team",
        cascade="all, delete-orphan",
    )


class TeamMemberRow(Base):
    """Team membership junction table.

    The composite primary key is the uniqueness guarantee that turns two
    racing acceptances of one invitation into a single membership.
    """
    __tablename__ = "team_members"

    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[TeamRole] = mapped_column(
        enum_column(TeamRole, "teamrole"),
        default=TeamRole.MEMBER,
        nullable=False,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Relationships
    team: Mapped["TeamRow"] = relationship("TeamRow", back_populates="members")
    user: Mapped["UserRow"] = relationship("UserRow", back_populates="team_memberships")


class InvitationRow(Base):
    """Team invitations."""
    __tablename__ = "invitations"
    __table_args__ = (
        # At most one pending invitation per (team, email)
        Index(
            "uq_pending_invitation",
            "team_id",
            "invited_email",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Invite details
    invited_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    invited_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[TeamRole] = mapped_column(
        enum_column(TeamRole, "teamrole"),
        default=TeamRole.MEMBER,
        nullable=False,
    )
    status: Mapped[InvitationStatus] = mapped_column(
        enum_column(InvitationStatus, "invitationstatus"),
        default=InvitationStatus.PENDING,
        nullable=False,
    )

    # Lifecycle
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Relationships
    team: Mapped["TeamRow"] = relationship("TeamRow", back_populates="invitations")
