"""API routers for different endpoint groups.

Routers:
- auth: Registration, login and password management
- health: Health check endpoints
- invitations: Accepting and rejecting invitations
- okrs: Single OKRs and their key results
- reviews: OKR reviews
- teams: Teams, members, invitations and team OKR listings
"""

from .auth import router as auth_router
from .health import router as health_router
from .invitations import router as invitations_router
from .okrs import router as okrs_router
from .reviews import router as reviews_router
from .teams import router as teams_router

__all__ = [
    "auth_router",
    "health_router",
    "invitations_router",
    "okrs_router",
    "reviews_router",
    "teams_router",
]
