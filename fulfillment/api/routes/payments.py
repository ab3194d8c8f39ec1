"""Payment Routes — payment-provider callback that confirms prepaid orders.

Invariants:
    - Authenticated by a shared secret header, not a user token
    - Drives pending → confirmed as the SYSTEM actor; any other current status
      is rejected by the state machine like every other transition
"""

import hmac

from fastapi import APIRouter, Depends, Header

from fulfillment.api.deps import get_workflow
from fulfillment.config import Settings, get_settings
from fulfillment.core.errors import AuthenticationError
from fulfillment.core.order_snapshot import order_to_snapshot
from fulfillment.schemas.order import PaymentConfirmation
from fulfillment.services.order_workflow import OrderWorkflow

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


async def verify_webhook_secret(
    x_webhook_secret: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not x_webhook_secret or not hmac.compare_digest(
        x_webhook_secret, settings.payment_webhook_secret,
    ):
        raise AuthenticationError()


@router.post("/gcash/confirm", dependencies=[Depends(verify_webhook_secret)])
async def confirm_gcash_payment(
    body: PaymentConfirmation,
    workflow: OrderWorkflow = Depends(get_workflow),
):
    order = await workflow.confirm_payment(body.order_id)
    return order_to_snapshot(order)
