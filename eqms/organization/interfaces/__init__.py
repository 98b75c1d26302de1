"""Organization interfaces layer - API controllers."""

from eqms.organization.interfaces.controllers import sbu_router, tier_router, user_router

__all__ = ["sbu_router", "tier_router", "user_router"]
