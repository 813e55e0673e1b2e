"""Tests for SQLAlchemy models."""

from okrkeeper.models import (
    Base,
    InvitationRow,
    KeyResultRow,
    OkrRow,
    ReviewRow,
    TeamMemberRow,
    TeamRow,
    UserRow,
)
from okrkeeper.schemas.okr import OkrType, ReviewType
from okrkeeper.schemas.team import InvitationStatus, ReviewFrequency, TeamRole


class TestModelImports:
    """Test that all models import correctly."""

    def test_base_metadata_tables(self) -> None:
        """Test that all tables are registered in Base.metadata."""
        assert set(Base.metadata.tables) == {
            "users",
            "teams",
            "team_members",
            "invitations",
            "okrs",
            "key_results",
            "reviews",
        }

    def test_team_member_composite_key(self) -> None:
        """One membership row per (team, user)."""
        key = [column.name for column in TeamMemberRow.__table__.primary_key.columns]
        assert key == ["team_id", "user_id"]

    def test_pending_invitation_index(self) -> None:
        indexes = {index.name: index for index in InvitationRow.__table__.indexes}
        index = indexes["uq_pending_invitation"]
        assert index.unique
        assert [column.name for column in index.columns] == ["team_id", "invited_email"]

    def test_okr_owner_is_optional(self) -> None:
        """Team OKRs may have no owner."""
        assert OkrRow.__table__.c.owner_id.nullable
        assert not OkrRow.__table__.c.team_id.nullable

    def test_child_rows_cascade_on_delete(self) -> None:
        for table, column in (
            (TeamMemberRow, "team_id"),
            (InvitationRow, "team_id"),
            (OkrRow, "team_id"),
            (KeyResultRow, "okr_id"),
            (ReviewRow, "okr_id"),
        ):
            (foreign_key,) = table.__table__.c[column].foreign_keys
            assert foreign_key.ondelete == "CASCADE", table.__tablename__


class TestEnums:
    """Enums are stored by value, so the values are part of the schema."""

    def test_team_role_values(self) -> None:
        assert [role.value for role in TeamRole] == ["admin", "member", "viewer"]

    def test_invitation_status_values(self) -> None:
        assert [s.value for s in InvitationStatus] == ["pending", "accepted", "rejected"]

    def test_only_pending_is_open(self) -> None:
        assert [s for s in InvitationStatus if not s.is_terminal] == [InvitationStatus.PENDING]

    def test_okr_and_review_types(self) -> None:
        assert [t.value for t in OkrType] == ["team", "personal"]
        assert [t.value for t in ReviewType] == ["progress", "final"]
        assert ReviewFrequency.MONTHLY.value == "monthly"

    def test_role_column_stores_values(self) -> None:
        """Test the column type lists values, not member names."""
        assert TeamMemberRow.__table__.c.role.type.enums == ["admin", "member", "viewer"]


class TestRelationships:
    """Test model relationships are correctly defined."""

    def test_team_members_relationship(self) -> None:
        rel = TeamRow.members.property
        assert rel.mapper.class_ == TeamMemberRow
        assert rel.back_populates == "team"

    def test_user_memberships_relationship(self) -> None:
        rel = UserRow.team_memberships.property
        assert rel.mapper.class_ == TeamMemberRow
        assert rel.back_populates == "user"

    def test_team_okrs_relationship(self) -> None:
        rel = TeamRow.okrs.property
        assert rel.mapper.class_ == OkrRow
        assert rel.back_populates == "team"

    def test_okr_children_relationships(self) -> None:
        assert OkrRow.key_results.property.mapper.class_ == KeyResultRow
        assert OkrRow.reviews.property.mapper.class_ == ReviewRow
        assert KeyResultRow.okr.property.back_populates == "key_results"
        assert ReviewRow.okr.property.back_populates == "reviews"
