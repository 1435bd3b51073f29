"""
Tests for read-time normalization of subscription records
"""
from datetime import timedelta

import pytest

from creditline.schemas.subscription import TRIAL_PLAN_NAME, SubscriptionStatus, document_fields
from creditline.services import consistency
from creditline.services.consistency import get_subscription
from creditline.utils.errors import StateConflictError
from creditline.utils.utils import today

from conftest import paid_record


@pytest.mark.asyncio
async def test_new_user_gets_trial(store):
    record = await get_subscription(store, "new-user")

    assert record.plan_name == TRIAL_PLAN_NAME
    assert record.status == SubscriptionStatus.ACTIVE
    assert record.total_credits == 50
    assert record.remaining_credits == 50
    assert record.expiry_date == today() + timedelta(days=30)
    assert (await store.read("new-user")) == record


@pytest.mark.asyncio
async def test_healthy_record_is_returned_untouched(store):
    stored = await store.write("u1", paid_record("u1", remaining=700))

    record = await get_subscription(store, "u1")

    assert record == stored


@pytest.mark.asyncio
async def test_paid_plan_without_payment_is_reset(store):
    await store.write("u1", paid_record("u1", payment_id=None, remaining=900))

    first = await get_subscription(store, "u1")
    second = await get_subscription(store, "u1")

    assert first.plan_name == TRIAL_PLAN_NAME
    assert first.remaining_credits == 50
    assert first.status == SubscriptionStatus.ACTIVE
    # Corrected exactly once
    assert second == first


@pytest.mark.asyncio
async def test_expired_plan_reports_expired_then_active_trial(store):
    created = await store.write("u1", paid_record("u1", expiry_in_days=-1))

    first = await get_subscription(store, "u1")
    second = await get_subscription(store, "u1")

    assert first.status == SubscriptionStatus.EXPIRED
    assert first.plan_name == TRIAL_PLAN_NAME
    assert first.remaining_credits == 50
    assert first.expiry_date == today() + timedelta(days=30)
    assert first.created_at == created.created_at
    assert second.status == SubscriptionStatus.ACTIVE
    assert second.plan_name == TRIAL_PLAN_NAME


@pytest.mark.asyncio
async def test_plan_ending_today_is_still_valid(store):
    await store.write("u1", paid_record("u1", expiry_in_days=0))

    record = await get_subscription(store, "u1")

    assert record.plan_name == "Pro"


@pytest.mark.asyncio
async def test_trial_past_expiry_is_left_alone(store):
    await get_subscription(store, "u1")
    yesterday = today() - timedelta(days=1)
    await store.update("u1", document_fields(expiry_date=yesterday))

    record = await get_subscription(store, "u1")

    assert record.plan_name == TRIAL_PLAN_NAME
    assert record.expiry_date == yesterday


@pytest.mark.asyncio
async def test_missing_expiry_is_backfilled_only(store):
    await store.write("u1", paid_record("u1", remaining=321, expiry_in_days=None))

    record = await get_subscription(store, "u1")

    assert record.expiry_date == today() + timedelta(days=30)
    assert record.plan_name == "Pro"
    assert record.remaining_credits == 321
    assert record.payment_id == "pay_123"


@pytest.mark.asyncio
async def test_cancelled_trial_reported_once(store):
    trial = await get_subscription(store, "u1")
    await store.update("u1", document_fields(status=SubscriptionStatus.CANCELLED))

    first = await get_subscription(store, "u1")
    second = await get_subscription(store, "u1")

    assert first.status == SubscriptionStatus.CANCELLED
    assert second.status == SubscriptionStatus.ACTIVE
    assert second.remaining_credits == trial.remaining_credits


@pytest.mark.asyncio
async def test_correction_never_overwrites_a_concurrent_write(store):
    stale = await store.write("u1", paid_record("u1", payment_id=None))
    # A payment lands between the read and the correction
    await store.update("u1", document_fields(payment_id="pay_live"))

    assert await consistency._correct(store, stale, consistency.default_catalog) is None

    record = await get_subscription(store, "u1")
    assert record.plan_name == "Pro"
    assert record.payment_id == "pay_live"


@pytest.mark.asyncio
async def test_gives_up_after_repeated_races(store, monkeypatch):
    await store.write("u1", paid_record("u1", payment_id=None))

    async def always_lose(*args, **kwargs):
        return None

    monkeypatch.setattr(consistency, "_correct", always_lose)

    with pytest.raises(StateConflictError):
        await get_subscription(store, "u1")
