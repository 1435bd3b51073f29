"""Subscription lifecycle transitions.

Transitions write absolute values so replaying one is harmless. Callers
that mirror an external billing change (pause, resume, cancel) must make
the external call first and only apply the transition once it succeeded.
"""

import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from creditline.plans import PlanCatalog, catalog as default_catalog
from creditline.schemas.subscription import SubscriptionRecord, SubscriptionStatus, document_fields
from creditline.services.consistency import MAX_ATTEMPTS
from creditline.store.base import SubscriptionStore
from creditline.utils.errors import RecordNotFoundError, StateConflictError, ValidationError
from creditline.utils.utils import days_from_today, utcnow

logger = logging.getLogger(__name__)

ACTIVE = SubscriptionStatus.ACTIVE
PAUSED = SubscriptionStatus.PAUSED
CANCELLED = SubscriptionStatus.CANCELLED

# Statuses each user-driven transition may start from
ALLOWED_FROM: Dict[str, FrozenSet[SubscriptionStatus]] = {
    "pause": frozenset({ACTIVE}),
    "resume": frozenset({PAUSED}),
    "cancel": frozenset({ACTIVE, PAUSED}),
    "renew": frozenset({ACTIVE, PAUSED}),
}


def require_transition(record: SubscriptionRecord, action: str) -> None:
    """Raise StateConflictError if ``action`` is not allowed for ``record``."""
    if record.is_trial:
        raise StateConflictError(
            f"Cannot {action}: no paid subscription",
            details={"user_id": record.user_id, "planName": record.plan_name},
        )
    if record.status not in ALLOWED_FROM[action]:
        raise StateConflictError(
            f"Cannot {action} a subscription that is {record.status.value}",
            details={"user_id": record.user_id, "status": record.status.value},
        )


async def _load(store: SubscriptionStore, user_id: str) -> SubscriptionRecord:
    record = await store.read(user_id)
    if record is None:
        raise RecordNotFoundError(user_id)
    return record


def _already_active(
    record: SubscriptionRecord, plan_id: str, payment_id: str, billing_subscription_id: Optional[str]
) -> bool:
    if record.status != ACTIVE or record.plan_id != plan_id or not record.payment_id:
        return False
    if record.payment_id == payment_id:
        return True
    # Same gateway subscription confirmed through the other channel
    return billing_subscription_id is not None and record.billing_subscription_id in (None, billing_subscription_id)


async def activate(
    store: SubscriptionStore,
    user_id: str,
    plan_id: str,
    payment_id: str,
    billing_subscription_id: Optional[str] = None,
    plans: PlanCatalog = default_catalog,
) -> SubscriptionRecord:
    """Move the user onto a paid plan after payment has been confirmed."""
    if not payment_id or not payment_id.strip():
        raise ValidationError("paymentId is required to activate a plan")
    plan = plans.resolve(plan_id)
    if plan.is_trial:
        raise ValidationError(f"Plan '{plan.name}' cannot be activated", details={"plan_id": plan_id})

    payment_id = payment_id.strip()

    for attempt in range(MAX_ATTEMPTS):
        current = await store.read(user_id)
        if current is not None and _already_active(current, plan.plan_id, payment_id, billing_subscription_id):
            if not billing_subscription_id or current.billing_subscription_id is not None:
                logger.info(f"Plan '{plan.name}' already active for user {user_id}; activation is a no-op")
                return current
            linked = await store.compare_and_update(
                user_id,
                {"etag": current.etag},
                document_fields(billing_subscription_id=billing_subscription_id),
            )
            if linked is not None:
                logger.info(f"Linked billing subscription {billing_subscription_id} to user {user_id}")
                return linked
            continue

        now = utcnow()
        record = SubscriptionRecord(
            user_id=user_id,
            plan_id=plan.plan_id,
            plan_name=plan.name,
            status=ACTIVE,
            total_credits=plan.credits,
            remaining_credits=plan.credits,
            expiry_date=days_from_today(plans.period_days),
            payment_id=payment_id,
            billing_subscription_id=billing_subscription_id,
            created_at=current.created_at if current else now,
            updated_at=now,
        )
        # Only replace the exact record the decision was made on
        if current is None:
            stored = await store.create(user_id, record)
        else:
            stored = await store.compare_and_replace(user_id, {"etag": current.etag}, record)
        if stored is not None:
            logger.info(f"Activated plan '{plan.name}' for user {user_id} (payment {payment_id})")
            return stored
        logger.debug(f"Record for user {user_id} changed during activation (attempt {attempt + 1})")

    raise StateConflictError("Subscription changed while trying to activate", details={"user_id": user_id})


async def _switch_status(
    store: SubscriptionStore, user_id: str, action: str, target: SubscriptionStatus
) -> SubscriptionRecord:
    current = await _load(store, user_id)
    require_transition(current, action)
    updated = await store.compare_and_update(
        user_id,
        document_fields(status=current.status, plan_id=current.plan_id),
        document_fields(status=target),
    )
    if updated is None:
        raise StateConflictError(f"Subscription changed while trying to {action}", details={"user_id": user_id})
    logger.info(f"Subscription for user {user_id}: {current.status.value} -> {target.value}")
    return updated


async def pause(store: SubscriptionStore, user_id: str) -> SubscriptionRecord:
    return await _switch_status(store, user_id, "pause", PAUSED)


async def resume(store: SubscriptionStore, user_id: str) -> SubscriptionRecord:
    return await _switch_status(store, user_id, "resume", ACTIVE)


async def cancel(
    store: SubscriptionStore, user_id: str, plans: PlanCatalog = default_catalog
) -> SubscriptionRecord:
    """Downgrade to the trial plan; the record reads as CANCELLED once."""
    current = await _load(store, user_id)
    if current.is_trial and current.status == CANCELLED:
        logger.info(f"Subscription for user {user_id} already cancelled")
        return current
    require_transition(current, "cancel")

    fresh = plans.new_trial_record(user_id, status=CANCELLED, created_at=current.created_at)
    stored = await store.compare_and_replace(user_id, {"etag": current.etag}, fresh)
    if stored is None:
        raise StateConflictError("Subscription changed while trying to cancel", details={"user_id": user_id})
    logger.info(f"Cancelled plan '{current.plan_name}' for user {user_id}; downgraded to trial")
    return stored


async def renew(
    store: SubscriptionStore,
    user_id: str,
    charged_at: Optional[datetime] = None,
    plans: PlanCatalog = default_catalog,
) -> SubscriptionRecord:
    """Refill credits to the plan total for a new billing period."""
    current = await _load(store, user_id)
    require_transition(current, "renew")

    updated = await store.refill_credits(
        user_id,
        document_fields(plan_id=current.plan_id, status=list(ALLOWED_FROM["renew"])),
        document_fields(
            last_charged_at=charged_at or utcnow(),
            expiry_date=days_from_today(plans.period_days),
        ),
    )
    if updated is None:
        raise StateConflictError("Subscription changed while trying to renew", details={"user_id": user_id})
    logger.info(f"Renewed plan '{updated.plan_name}' for user {user_id}: credits reset to {updated.total_credits}")
    return updated
