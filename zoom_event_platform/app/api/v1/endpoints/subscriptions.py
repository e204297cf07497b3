"""
Subscription endpoints for API v1.

Expose the tier limit table and the caller's usage against it, and
let the caller switch tiers.  Billing is handled elsewhere; changing
the tier here only changes which limits apply.
"""

from fastapi import APIRouter, Depends

from zoom_event_platform.app.core.errors import PlatformError, to_http_exception
from zoom_event_platform.app.core.security import get_current_user
from zoom_event_platform.app.schemas.subscription import PlanList, SubscriptionUpdate, UsageRead
from zoom_event_platform.app.schemas.user import UserRead
from zoom_event_platform.app.services.subscription_limits import SubscriptionTier
from zoom_event_platform.app.services.user_service import UserService, plan_for


router = APIRouter()


@router.get("/plans", response_model=PlanList)
async def list_plans() -> PlanList:
    return PlanList(plans=[plan_for(tier) for tier in SubscriptionTier])


@router.get("/usage", response_model=UsageRead)
async def get_usage(current_user: dict = Depends(get_current_user)) -> UsageRead:
    try:
        return await UserService.get_usage(current_user)
    except PlatformError as e:
        raise to_http_exception(e) from e


@router.put("/", response_model=UserRead)
async def update_subscription(
    update: SubscriptionUpdate,
    current_user: dict = Depends(get_current_user),
) -> UserRead:
    try:
        return await UserService.update_subscription(
            current_user["user_id"],
            tier=update.subscription_tier,
            status=update.subscription_status,
        )
    except PlatformError as e:
        raise to_http_exception(e) from e
