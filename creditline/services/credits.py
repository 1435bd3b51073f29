"""Credit ledger: atomic check-and-decrement of remaining credits."""

import logging

from creditline.plans import PlanCatalog, catalog as default_catalog
from creditline.schemas.subscription import SubscriptionRecord
from creditline.services.consistency import get_subscription
from creditline.store.base import SubscriptionStore
from creditline.utils.errors import InsufficientCreditError, RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)


async def deduct_credits(
    store: SubscriptionStore, user_id: str, amount: int, plans: PlanCatalog = default_catalog
) -> SubscriptionRecord:
    """Deduct ``amount`` credits from the user's balance.

    The decrement is a single conditional store operation, so concurrent
    deductions can never overdraw the balance. Unlimited plans succeed
    without touching the balance.

    Args:
        store: Subscription store
        user_id: The user to charge
        amount: Positive number of credits

    Returns:
        The record after the deduction

    Raises:
        ValidationError: If amount is not a positive integer
        InsufficientCreditError: If the balance is below amount
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError("Deduction amount must be a positive integer", details={"amount": amount})

    record = await get_subscription(store, user_id, plans)
    if record.is_unlimited:
        return record

    updated = await store.decrement_credits(user_id, amount)
    if updated is not None:
        logger.debug(f"Deducted {amount} credits from user {user_id}; {updated.remaining_credits} left")
        return updated

    # The guard failed: find out why from the current state
    latest = await store.read(user_id)
    if latest is None:
        raise RecordNotFoundError(user_id)
    if latest.is_unlimited:
        return latest
    logger.info(f"User {user_id} has {latest.remaining_credits} credits, cannot deduct {amount}")
    raise InsufficientCreditError(remaining_credits=latest.remaining_credits, requested=amount)
