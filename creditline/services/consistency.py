"""Read-time normalization of subscription records.

Every status read goes through ``get_subscription``. Stale or untrustworthy
records are corrected and persisted before anything is returned, using the
record's etag so a correction never overwrites a concurrent write.
"""

import logging
from typing import Optional

from creditline.plans import PlanCatalog, catalog as default_catalog
from creditline.schemas.subscription import SubscriptionRecord, SubscriptionStatus, document_fields
from creditline.store.base import SubscriptionStore
from creditline.utils.errors import StateConflictError
from creditline.utils.utils import days_from_today, today

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

ONE_TIME_STATUSES = (SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED)


def requires_payment(record: SubscriptionRecord) -> bool:
    return not record.is_trial


def is_expired(record: SubscriptionRecord) -> bool:
    return record.expiry_date is not None and record.expiry_date < today() and not record.is_trial


async def _correct(
    store: SubscriptionStore, record: SubscriptionRecord, plans: PlanCatalog
) -> Optional[SubscriptionRecord]:
    """Apply at most one correction.

    Returns:
        The record to report, or None if the compare-and-swap lost a race
    """
    user_id = record.user_id
    expected = {"etag": record.etag}

    if requires_payment(record) and not record.payment_id:
        logger.warning(f"User {user_id} holds plan '{record.plan_name}' without a payment reference; resetting")
        fresh = plans.new_trial_record(user_id, created_at=record.created_at)
        return await store.compare_and_replace(user_id, expected, fresh)

    if is_expired(record) or (requires_payment(record) and record.status in ONE_TIME_STATUSES):
        reported = SubscriptionStatus.EXPIRED if is_expired(record) else record.status
        logger.info(f"Plan '{record.plan_name}' for user {user_id} ended ({reported.value}); downgrading to trial")
        fresh = plans.new_trial_record(user_id, created_at=record.created_at)
        stored = await store.compare_and_replace(user_id, expected, fresh)
        if stored is None:
            return None
        return stored.model_copy(update={"status": reported})

    if record.expiry_date is None:
        logger.info(f"Backfilling expiry date for user {user_id}")
        fields = document_fields(expiry_date=days_from_today(plans.period_days))
        return await store.compare_and_update(user_id, expected, fields)

    if record.status in ONE_TIME_STATUSES:
        # Report the ending once, then the trial reads as active
        fields = document_fields(status=SubscriptionStatus.ACTIVE)
        stored = await store.compare_and_update(user_id, expected, fields)
        if stored is None:
            return None
        return stored.model_copy(update={"status": record.status})

    return record


async def get_subscription(
    store: SubscriptionStore, user_id: str, plans: PlanCatalog = default_catalog
) -> SubscriptionRecord:
    """Load the user's record, creating or correcting it as needed."""
    for attempt in range(MAX_ATTEMPTS):
        record = await store.read(user_id)
        if record is None:
            created = await store.create(user_id, plans.new_trial_record(user_id))
            if created is not None:
                logger.info(f"Created trial subscription for new user {user_id}")
                return created
            continue

        reported = await _correct(store, record, plans)
        if reported is not None:
            return reported
        logger.debug(f"Record for user {user_id} changed during correction (attempt {attempt + 1})")

    raise StateConflictError("Subscription changed concurrently, please retry", details={"user_id": user_id})
