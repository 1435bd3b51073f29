"""Razorpay webhook verification and processing."""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from creditline.plans import PlanCatalog, catalog as default_catalog
from creditline.services import lifecycle
from creditline.store.base import SubscriptionStore
from creditline.utils.errors import LedgerError, WebhookNotConfiguredError, WebhookSignatureError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"
EVENT_ID_HEADER = "X-Razorpay-Event-Id"

SUBSCRIPTION_ACTIVATED = "subscription.activated"
SUBSCRIPTION_CHARGED = "subscription.charged"
SUBSCRIPTION_CANCELLED = "subscription.cancelled"

# Outcomes, reported in logs
APPLIED = "applied"
IGNORED = "ignored"
DUPLICATE = "duplicate"
FAILED = "failed"


class WebhookEvent(BaseModel):
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[int] = None

    def entity(self, kind: str) -> Dict[str, Any]:
        wrapper = self.payload.get(kind)
        if not isinstance(wrapper, dict):
            return {}
        entity = wrapper.get("entity")
        return entity if isinstance(entity, dict) else {}

    @property
    def subscription(self) -> Dict[str, Any]:
        return self.entity("subscription")

    @property
    def payment(self) -> Dict[str, Any]:
        return self.entity("payment")

    def user_id(self) -> Optional[str]:
        """User id from the notes we attached when creating the subscription."""
        for entity in (self.subscription, self.payment):
            # Razorpay sends an empty list when there are no notes
            notes = entity.get("notes")
            if isinstance(notes, dict) and notes.get("userId"):
                return str(notes["userId"])
        return None


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> None:
    """Check the HMAC-SHA256 signature of the raw request body.

    Raises:
        WebhookNotConfiguredError: If no secret is configured
        WebhookSignatureError: If the signature is missing or does not match
    """
    if not secret:
        logger.error("Rejecting webhook: RAZORPAY_WEBHOOK_SECRET is not set")
        raise WebhookNotConfiguredError()
    if not signature:
        raise WebhookSignatureError("Missing webhook signature")
    expected = compute_signature(body, secret)
    if not hmac.compare_digest(expected, signature.strip()):
        raise WebhookSignatureError()


async def _on_activated(store: SubscriptionStore, event: WebhookEvent, user_id: str, plans: PlanCatalog) -> str:
    subscription_id = event.subscription.get("id")
    plan_id = event.subscription.get("plan_id")
    if not subscription_id or not plan_id:
        logger.warning(f"Activation event for user {user_id} lacks subscription or plan id")
        return IGNORED
    # The subscription id stands in as the payment reference when no payment rides along
    payment_id = event.payment.get("id") or subscription_id
    await lifecycle.activate(store, user_id, plan_id, payment_id, billing_subscription_id=subscription_id, plans=plans)
    return APPLIED


async def _on_charged(store: SubscriptionStore, event: WebhookEvent, user_id: str, plans: PlanCatalog) -> str:
    subscription_id = event.subscription.get("id") or event.payment.get("subscription_id")
    payment_id = event.payment.get("id")
    if not subscription_id or not payment_id:
        logger.warning(f"Charge event for user {user_id} lacks subscription or payment id")
        return IGNORED

    record = await store.read(user_id)
    if record is None:
        logger.warning(f"Charge {payment_id} for unknown user {user_id}")
        return IGNORED
    if record.billing_subscription_id and record.billing_subscription_id != subscription_id:
        logger.warning(f"Charge {payment_id} targets subscription {subscription_id}, user {user_id} is on another")
        return IGNORED

    charged_at = None
    if isinstance(event.payment.get("created_at"), int):
        charged_at = datetime.fromtimestamp(event.payment["created_at"], tz=timezone.utc)
    await lifecycle.renew(store, user_id, charged_at=charged_at, plans=plans)
    return APPLIED


async def _on_cancelled(store: SubscriptionStore, event: WebhookEvent, user_id: str, plans: PlanCatalog) -> str:
    subscription_id = event.subscription.get("id")
    if not subscription_id:
        logger.warning(f"Cancellation event for user {user_id} lacks subscription id")
        return IGNORED

    record = await store.read(user_id)
    if record is None:
        logger.warning(f"Cancellation of {subscription_id} for unknown user {user_id}")
        return IGNORED
    if record.is_trial:
        logger.info(f"Cancellation of {subscription_id}: user {user_id} already on the trial plan")
        return IGNORED
    if record.billing_subscription_id and record.billing_subscription_id != subscription_id:
        logger.warning(f"Cancellation of stale subscription {subscription_id} for user {user_id} ignored")
        return IGNORED

    await lifecycle.cancel(store, user_id, plans=plans)
    return APPLIED


HANDLERS = {
    SUBSCRIPTION_ACTIVATED: _on_activated,
    SUBSCRIPTION_CHARGED: _on_charged,
    SUBSCRIPTION_CANCELLED: _on_cancelled,
}


async def _dispatch(store: SubscriptionStore, body: bytes, plans: PlanCatalog) -> str:
    try:
        event = WebhookEvent.model_validate(json.loads(body))
    except (ValueError, PydanticValidationError) as e:
        logger.error(f"Unreadable webhook body: {e}")
        return IGNORED

    handler = HANDLERS.get(event.event)
    if handler is None:
        logger.info(f"Ignoring webhook event {event.event}")
        return IGNORED

    user_id = event.user_id()
    if user_id is None:
        logger.warning(f"Webhook event {event.event} carries no userId note; cannot map it to a user")
        return IGNORED

    logger.info(f"Processing webhook event {event.event} for user {user_id}")
    return await handler(store, event, user_id, plans)


async def process_event(
    store: SubscriptionStore,
    body: bytes,
    event_id: Optional[str] = None,
    plans: PlanCatalog = default_catalog,
) -> str:
    """Apply an authenticated webhook body to the ledger.

    Processing errors are logged and reported as an outcome, never raised:
    the sender only retries on authentication failures.

    Args:
        store: Subscription store
        body: Raw request body, already verified
        event_id: Delivery id used to drop duplicate deliveries

    Returns:
        One of "applied", "ignored", "duplicate" or "failed"
    """
    claimed = False
    try:
        if event_id:
            claimed = await store.claim_event(event_id)
            if not claimed:
                logger.info(f"Webhook event {event_id} already processed")
                return DUPLICATE
        return await _dispatch(store, body, plans)
    except LedgerError as e:
        logger.error(f"Webhook event {event_id or '-'} not applied: {e.message}", extra={"details": e.details})
    except Exception:
        logger.exception(f"Webhook event {event_id or '-'} failed")

    if claimed:
        try:
            await store.release_event(event_id)
        except LedgerError as e:
            logger.error(f"Could not release webhook event {event_id}: {e.message}")
    return FAILED
