"""Database models for OKR Keeper.

SQLAlchemy models for:
- Users
- Teams, memberships and invitations
- OKRs, key results and reviews

Rows are only touched by the SQL repositories; services work with the
pydantic entities in ``okrkeeper.schemas``.
"""

from .database import Base, close_db, create_all, get_engine, get_session_factory, init_db
from .okr import KeyResultRow, OkrRow, ReviewRow
from .team import InvitationRow, TeamMemberRow, TeamRow
from .user import UserRow

__all__ = [
    # Database
    "Base",
    "init_db",
    "create_all",
    "get_session_factory",
    "get_engine",
    "close_db",
    # User models
    "UserRow",
    # Team models
    "TeamRow",
    "TeamMemberRow",
    "InvitationRow",
    # OKR models
    "OkrRow",
    "KeyResultRow",
    "ReviewRow",
]
