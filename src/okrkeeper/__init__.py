"""OKR Keeper - Team objectives and key results with role-based access.

Teams own OKRs for a quarter; each OKR carries up to five key results and
collects progress and final reviews. Every operation is authorized against
the caller's team role (admin, member, viewer) and returns an ``Ok`` or
``Err`` result instead of raising.

Quick Start:
    from okrkeeper import TeamService, build_memory_context

    ctx = build_memory_context()
    result = await TeamService(ctx).create_team(
        {"name": "Platform", "user_id": user_id}
    )
    if result.is_ok():
        team = result.value
"""

__version__ = "0.1.0"

from okrkeeper.core.result import Err, Ok, Result
from okrkeeper.services import (
    InvitationService,
    OkrService,
    ReviewService,
    ServiceContext,
    TeamService,
    UserService,
    build_memory_context,
    build_sql_context,
)

__all__ = [
    # Version
    "__version__",
    # Results
    "Ok",
    "Err",
    "Result",
    # Wiring
    "ServiceContext",
    "build_memory_context",
    "build_sql_context",
    # Services
    "TeamService",
    "InvitationService",
    "OkrService",
    "ReviewService",
    "UserService",
]
