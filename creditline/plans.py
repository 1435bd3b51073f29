"""Plan catalog: the single source of plan names and credit allotments."""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from creditline.config import settings
from creditline.schemas.subscription import (
    TRIAL_PLAN_ID,
    TRIAL_PLAN_NAME,
    UNLIMITED,
    Credits,
    SubscriptionRecord,
    SubscriptionStatus,
)
from creditline.utils.errors import PlanNotFoundError
from creditline.utils.utils import days_from_today, utcnow


class PlanDefinition(BaseModel):
    """Static plan economics."""

    plan_id: str
    name: str
    credits: Credits
    price: int = 0
    gateway_plan_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_unlimited(self) -> bool:
        return self.credits == UNLIMITED

    @property
    def is_trial(self) -> bool:
        return self.plan_id == TRIAL_PLAN_ID


class PlanCatalog:
    """Immutable lookup of plans by catalog id or gateway plan id."""

    def __init__(self, plans: Iterable[PlanDefinition], period_days: int):
        self._plans: Dict[str, PlanDefinition] = {}
        self._by_gateway_id: Dict[str, PlanDefinition] = {}
        for plan in plans:
            self._plans[plan.plan_id] = plan
            if plan.gateway_plan_id:
                self._by_gateway_id[plan.gateway_plan_id] = plan
        if TRIAL_PLAN_ID not in self._plans:
            raise ValueError("Catalog must define the trial plan")
        self.period_days = period_days

    def get(self, plan_id: Optional[str]) -> Optional[PlanDefinition]:
        if not plan_id:
            return None
        return self._plans.get(plan_id) or self._by_gateway_id.get(plan_id)

    def resolve(self, plan_id: Optional[str]) -> PlanDefinition:
        plan = self.get(plan_id)
        if plan is None:
            raise PlanNotFoundError(str(plan_id))
        return plan

    @property
    def trial(self) -> PlanDefinition:
        return self._plans[TRIAL_PLAN_ID]

    def list_plans(self, include_trial: bool = False) -> List[PlanDefinition]:
        return [plan for plan in self._plans.values() if include_trial or not plan.is_trial]

    def new_trial_record(
        self,
        user_id: str,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        created_at: Optional[datetime] = None,
    ) -> SubscriptionRecord:
        """Fresh default plan: trial allotment, one period of validity, no payment."""
        now = utcnow()
        return SubscriptionRecord(
            user_id=user_id,
            plan_id=TRIAL_PLAN_ID,
            plan_name=TRIAL_PLAN_NAME,
            status=status,
            total_credits=self.trial.credits,
            remaining_credits=self.trial.credits,
            expiry_date=days_from_today(self.period_days),
            created_at=created_at or now,
            updated_at=now,
        )


def build_catalog() -> PlanCatalog:
    """Build the catalog from settings."""
    return PlanCatalog(
        [
            PlanDefinition(plan_id=TRIAL_PLAN_ID, name=TRIAL_PLAN_NAME, credits=settings.ledger.trial_credits),
            PlanDefinition(
                plan_id="basic", name="Basic", credits=500, price=499, gateway_plan_id=settings.billing.basic_plan_id
            ),
            PlanDefinition(
                plan_id="pro", name="Pro", credits=1200, price=999, gateway_plan_id=settings.billing.pro_plan_id
            ),
            PlanDefinition(
                plan_id="premium",
                name="Premium",
                credits=UNLIMITED,
                price=1999,
                gateway_plan_id=settings.billing.premium_plan_id,
            ),
        ],
        period_days=settings.ledger.plan_period_days,
    )


catalog = build_catalog()
