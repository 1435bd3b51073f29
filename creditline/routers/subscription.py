"""Subscription and credit endpoints."""

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends

from creditline.auth import AuthenticatedUser
from creditline.billing.base import BaseBiller
from creditline.dependencies import get_biller, get_catalog, get_store
from creditline.plans import PlanCatalog
from creditline.schemas.subscription import CamelModel, SubscriptionRecord
from creditline.security import get_current_user
from creditline.services import lifecycle
from creditline.services.consistency import get_subscription
from creditline.services.credits import deduct_credits
from creditline.store.base import SubscriptionStore
from creditline.utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["subscription"])


class CreateSubscriptionRequest(CamelModel):
    plan_id: str


class CreateSubscriptionResponse(CamelModel):
    billing_subscription_id: str


class ActivateRequest(CamelModel):
    plan_id: str
    payment_id: str
    billing_subscription_id: Optional[str] = None


class BillingSubscriptionRequest(CamelModel):
    billing_subscription_id: Optional[str] = None


class DeductCreditsRequest(CamelModel):
    amount: int


class DeductCreditsResponse(CamelModel):
    remaining_credits: Union[int, str]
    plan_name: str


class MessageResponse(CamelModel):
    message: str


class PlanResponse(CamelModel):
    plan_id: str
    name: str
    credits: Union[int, str]
    price: int


def _owned_subscription_id(record: SubscriptionRecord, requested: Optional[str]) -> str:
    """The billing subscription the caller may act on."""
    subscription_id = requested or record.billing_subscription_id
    if not subscription_id:
        raise ValidationError("billingSubscriptionId is required")
    if record.billing_subscription_id and subscription_id != record.billing_subscription_id:
        raise ValidationError(
            "Billing subscription does not belong to this account",
            details={"billingSubscriptionId": subscription_id},
        )
    return subscription_id


@router.get("/plans", response_model=List[PlanResponse])
async def list_plans(plans: PlanCatalog = Depends(get_catalog)) -> List[PlanResponse]:
    """List the purchasable plans."""
    return [
        PlanResponse(plan_id=plan.plan_id, name=plan.name, credits=plan.credits, price=plan.price)
        for plan in plans.list_plans()
    ]


@router.post("/create", response_model=CreateSubscriptionResponse)
async def create_subscription(
    body: CreateSubscriptionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    biller: BaseBiller = Depends(get_biller),
    plans: PlanCatalog = Depends(get_catalog),
) -> CreateSubscriptionResponse:
    """Create a billing subscription. The ledger changes only once payment is confirmed."""
    plan = plans.resolve(body.plan_id)
    if plan.is_trial:
        raise ValidationError(f"Plan '{plan.name}' cannot be purchased")
    subscription_id = await biller.create_subscription(plan, user.user_id, user.email)
    return CreateSubscriptionResponse(billing_subscription_id=subscription_id)


@router.post("/activate")
async def activate_subscription(
    body: ActivateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
    plans: PlanCatalog = Depends(get_catalog),
) -> Dict[str, Any]:
    """Apply a confirmed payment to the caller's ledger."""
    record = await lifecycle.activate(
        store,
        user.user_id,
        body.plan_id,
        body.payment_id,
        billing_subscription_id=body.billing_subscription_id,
        plans=plans,
    )
    return record.to_response()


@router.get("/status")
async def subscription_status(
    user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
    plans: PlanCatalog = Depends(get_catalog),
) -> Dict[str, Any]:
    """Get the caller's normalized subscription record."""
    record = await get_subscription(store, user.user_id, plans)
    return record.to_response()


@router.post("/pause", response_model=MessageResponse)
async def pause_subscription(
    body: BillingSubscriptionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
    biller: BaseBiller = Depends(get_biller),
    plans: PlanCatalog = Depends(get_catalog),
) -> MessageResponse:
    record = await get_subscription(store, user.user_id, plans)
    lifecycle.require_transition(record, "pause")
    subscription_id = _owned_subscription_id(record, body.billing_subscription_id)

    await biller.pause_subscription(subscription_id)
    await lifecycle.pause(store, user.user_id)
    return MessageResponse(message="Subscription paused successfully")


@router.post("/resume", response_model=MessageResponse)
async def resume_subscription(
    body: BillingSubscriptionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
    biller: BaseBiller = Depends(get_biller),
    plans: PlanCatalog = Depends(get_catalog),
) -> MessageResponse:
    record = await get_subscription(store, user.user_id, plans)
    lifecycle.require_transition(record, "resume")
    subscription_id = _owned_subscription_id(record, body.billing_subscription_id)

    await biller.resume_subscription(subscription_id)
    await lifecycle.resume(store, user.user_id)
    return MessageResponse(message="Subscription resumed successfully")


@router.post("/cancel", response_model=MessageResponse)
async def cancel_subscription(
    body: BillingSubscriptionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
    biller: BaseBiller = Depends(get_biller),
    plans: PlanCatalog = Depends(get_catalog),
) -> MessageResponse:
    record = await get_subscription(store, user.user_id, plans)
    lifecycle.require_transition(record, "cancel")
    subscription_id = _owned_subscription_id(record, body.billing_subscription_id)

    await biller.cancel_subscription(subscription_id)
    await lifecycle.cancel(store, user.user_id, plans=plans)
    return MessageResponse(message="Subscription cancelled; your account is back on the Free Trial plan")


@router.post("/deduct-credits", response_model=DeductCreditsResponse)
async def deduct(
    body: DeductCreditsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
    plans: PlanCatalog = Depends(get_catalog),
) -> DeductCreditsResponse:
    """Consume credits for a paid action; 402 when the balance is short."""
    record = await deduct_credits(store, user.user_id, body.amount, plans)
    return DeductCreditsResponse(remaining_credits=record.remaining_credits, plan_name=record.plan_name)
