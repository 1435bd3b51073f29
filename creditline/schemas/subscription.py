"""Schema for the per-user subscription ledger."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from creditline.utils.utils import utcnow

UNLIMITED = "Unlimited"

TRIAL_PLAN_ID = "free_trial"
TRIAL_PLAN_NAME = "Free Trial"

Credits = Union[NonNegativeInt, Literal["Unlimited"]]


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubscriptionRecord(CamelModel):
    """One ledger entry per user, persisted as a flat JSON-compatible document."""

    user_id: str
    plan_id: str = TRIAL_PLAN_ID
    plan_name: str = TRIAL_PLAN_NAME
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    total_credits: Credits
    remaining_credits: Credits
    expiry_date: Optional[date] = None
    payment_id: Optional[str] = None
    billing_subscription_id: Optional[str] = None
    last_charged_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    etag: Optional[str] = None

    @model_validator(mode="after")
    def _check_balance(self) -> "SubscriptionRecord":
        if isinstance(self.total_credits, int) and isinstance(self.remaining_credits, int):
            if self.remaining_credits > self.total_credits:
                raise ValueError("remainingCredits cannot exceed totalCredits")
        return self

    @property
    def is_unlimited(self) -> bool:
        return self.total_credits == UNLIMITED or self.remaining_credits == UNLIMITED

    @property
    def is_trial(self) -> bool:
        return self.plan_name == TRIAL_PLAN_NAME

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude={"etag"})

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "SubscriptionRecord":
        return cls.model_validate({k: v for k, v in document.items() if k != "_id"})


def document_fields(**values: Any) -> Dict[str, Any]:
    """Translate record field names and values to their stored form.

    Tuple or list values are kept as lists; stores read them as "one of".
    """
    fields = {}
    for name, value in values.items():
        info = SubscriptionRecord.model_fields[name]
        fields[info.alias or name] = to_jsonable_python(value)
    return fields
