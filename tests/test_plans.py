"""
Unit tests for the plan catalog
"""
from datetime import timedelta

import pytest

from creditline.plans import PlanCatalog, PlanDefinition, catalog
from creditline.schemas.subscription import TRIAL_PLAN_ID, TRIAL_PLAN_NAME, UNLIMITED, SubscriptionStatus
from creditline.utils.errors import PlanNotFoundError
from creditline.utils.utils import today

from conftest import PRO_GATEWAY_ID


def test_resolve_by_catalog_id():
    plan = catalog.resolve("pro")
    assert plan.name == "Pro"
    assert plan.credits == 1200
    assert not plan.is_unlimited


def test_resolve_by_gateway_plan_id():
    assert catalog.resolve(PRO_GATEWAY_ID).plan_id == "pro"


def test_premium_is_unlimited():
    plan = catalog.resolve("premium")
    assert plan.credits == UNLIMITED
    assert plan.is_unlimited


def test_unknown_plan_raises():
    with pytest.raises(PlanNotFoundError) as exc_info:
        catalog.resolve("plan_does_not_exist")
    assert exc_info.value.status_code == 400

    with pytest.raises(PlanNotFoundError):
        catalog.resolve(None)


def test_list_plans_excludes_trial_by_default():
    names = [plan.name for plan in catalog.list_plans()]
    assert names == ["Basic", "Pro", "Premium"]
    assert TRIAL_PLAN_NAME in [plan.name for plan in catalog.list_plans(include_trial=True)]


def test_new_trial_record_defaults():
    record = catalog.new_trial_record("user-1")

    assert record.plan_id == TRIAL_PLAN_ID
    assert record.plan_name == TRIAL_PLAN_NAME
    assert record.status == SubscriptionStatus.ACTIVE
    assert record.total_credits == 50
    assert record.remaining_credits == 50
    assert record.expiry_date == today() + timedelta(days=30)
    assert record.payment_id is None


def test_catalog_requires_trial_plan():
    with pytest.raises(ValueError):
        PlanCatalog([PlanDefinition(plan_id="pro", name="Pro", credits=1200)], period_days=30)
