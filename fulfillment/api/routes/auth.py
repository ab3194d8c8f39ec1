"""Auth Routes — per-customer facts derived from the authenticated account.

Invariants:
    - COD eligibility is computed on every request from the stored count
"""

from fastapi import APIRouter, Depends

from fulfillment.api.deps import get_current_user
from fulfillment.config import Settings, get_settings
from fulfillment.core.cod_gate import CodEligibility, eligibility_to_dict
from fulfillment.models.user import User as UserModel

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.get("/cod-eligibility")
async def cod_eligibility(
    user: UserModel = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    eligibility = CodEligibility(
        user.successful_gcash_orders, settings.cod_required_gcash_orders,
    )
    return {**eligibility_to_dict(eligibility), "message": eligibility.message}
