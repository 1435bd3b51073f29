"""
Tests for the conditional primitives of the in-memory store
"""
import pytest

from creditline.plans import catalog
from creditline.schemas.subscription import UNLIMITED, SubscriptionStatus, document_fields
from creditline.utils.errors import RecordNotFoundError

from conftest import paid_record


@pytest.mark.asyncio
async def test_create_only_inserts_once(store):
    first = await store.create("u1", catalog.new_trial_record("u1"))
    second = await store.create("u1", catalog.new_trial_record("u1"))

    assert first is not None
    assert first.etag
    assert second is None


@pytest.mark.asyncio
async def test_every_mutation_changes_etag(store):
    created = await store.write("u1", paid_record("u1"))
    updated = await store.update("u1", document_fields(payment_id="pay_999"))

    assert updated.payment_id == "pay_999"
    assert updated.etag != created.etag


@pytest.mark.asyncio
async def test_update_missing_record_raises(store):
    with pytest.raises(RecordNotFoundError):
        await store.update("ghost", document_fields(status=SubscriptionStatus.PAUSED))


@pytest.mark.asyncio
async def test_compare_and_update_requires_match(store):
    await store.write("u1", paid_record("u1"))

    missed = await store.compare_and_update(
        "u1", document_fields(status=SubscriptionStatus.PAUSED), document_fields(status=SubscriptionStatus.ACTIVE)
    )
    hit = await store.compare_and_update(
        "u1", document_fields(status=SubscriptionStatus.ACTIVE), document_fields(status=SubscriptionStatus.PAUSED)
    )

    assert missed is None
    assert hit.status == SubscriptionStatus.PAUSED


@pytest.mark.asyncio
async def test_compare_and_update_accepts_any_of(store):
    await store.write("u1", paid_record("u1", status=SubscriptionStatus.PAUSED))

    updated = await store.compare_and_update(
        "u1",
        {"status": ["ACTIVE", "PAUSED"]},
        document_fields(payment_id="pay_2"),
    )

    assert updated.payment_id == "pay_2"


@pytest.mark.asyncio
async def test_compare_and_replace_with_stale_etag_does_nothing(store):
    stored = await store.write("u1", paid_record("u1"))
    await store.update("u1", document_fields(payment_id="pay_new"))

    replaced = await store.compare_and_replace("u1", {"etag": stored.etag}, catalog.new_trial_record("u1"))

    assert replaced is None
    assert (await store.read("u1")).plan_name == "Pro"


@pytest.mark.asyncio
async def test_decrement_guards(store):
    await store.write("u1", paid_record("u1", remaining=10))

    assert (await store.decrement_credits("u1", 4)).remaining_credits == 6
    assert await store.decrement_credits("u1", 7) is None
    assert (await store.read("u1")).remaining_credits == 6
    assert await store.decrement_credits("ghost", 1) is None


@pytest.mark.asyncio
async def test_decrement_ignores_status_but_skips_unlimited(store):
    await store.write("paused", paid_record("paused", status=SubscriptionStatus.PAUSED))
    await store.write("premium", paid_record("premium", plan_id="premium"))

    assert (await store.decrement_credits("paused", 1)).remaining_credits == 1199
    assert await store.decrement_credits("premium", 1) is None
    assert (await store.read("premium")).remaining_credits == UNLIMITED


@pytest.mark.asyncio
async def test_refill_resets_to_total(store):
    await store.write("u1", paid_record("u1", remaining=3))

    refilled = await store.refill_credits("u1", document_fields(plan_id="pro"), document_fields(payment_id="pay_9"))
    missed = await store.refill_credits("u1", document_fields(plan_id="basic"), {})

    assert refilled.remaining_credits == 1200
    assert refilled.payment_id == "pay_9"
    assert missed is None


@pytest.mark.asyncio
async def test_delete(store):
    await store.write("u1", paid_record("u1"))

    assert await store.delete("u1") is True
    assert await store.delete("u1") is False
    assert await store.read("u1") is None


@pytest.mark.asyncio
async def test_claim_and_release_event(store):
    assert await store.claim_event("evt_1") is True
    assert await store.claim_event("evt_1") is False

    await store.release_event("evt_1")
    assert await store.claim_event("evt_1") is True


@pytest.mark.asyncio
async def test_invalid_merge_is_not_committed(store):
    await store.write("u1", paid_record("u1", plan_id="basic"))

    with pytest.raises(ValueError):
        await store.update("u1", {"remainingCredits": 10_000})

    assert (await store.read("u1")).remaining_credits == 500
