"""
Pytest configuration and fixtures for testing
"""
import asyncio
import json
import time
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

import jwt
import pytest
from fastapi.testclient import TestClient

from creditline.ai.analyzer import BaseAnalyzer
from creditline.auth import BearerAuthenticator
from creditline.billing.base import BaseBiller
from creditline.dependencies import get_webhook_secret
from creditline.plans import catalog
from creditline.schemas.analysis import normalize_analysis
from creditline.schemas.subscription import SubscriptionRecord, SubscriptionStatus
from creditline.services.webhooks import EVENT_ID_HEADER, SIGNATURE_HEADER, compute_signature
from creditline.start import create_app
from creditline.store.memory import InMemorySubscriptionStore
from creditline.utils.utils import today

AUTH_SECRET = "test-auth-secret"
WEBHOOK_SECRET = "test-webhook-secret"

PRO_GATEWAY_ID = catalog.resolve("pro").gateway_plan_id
PREMIUM_GATEWAY_ID = catalog.resolve("premium").gateway_plan_id


class FakeBiller(BaseBiller):
    """Records calls; raises ``fail_with`` instead when it is set."""

    def __init__(self):
        super().__init__()
        self.provider = "fake"
        self.calls = []
        self.fail_with: Optional[Exception] = None

    def _call(self, operation: str, argument: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((operation, argument))

    async def create_subscription(self, plan, user_id, email=None):
        self._call("create", plan.plan_id)
        return f"sub_{plan.plan_id}_{user_id}"

    async def pause_subscription(self, subscription_id):
        self._call("pause", subscription_id)

    async def resume_subscription(self, subscription_id):
        self._call("resume", subscription_id)

    async def cancel_subscription(self, subscription_id):
        self._call("cancel", subscription_id)


class FakeAnalyzer(BaseAnalyzer):
    """Returns a canned raw payload, normalized like a real analyzer."""

    def __init__(self, raw: Any = None):
        super().__init__()
        self.raw = raw if raw is not None else {"rows": [{"what": "demo", "who": "team"}], "detectedLanguage": "en"}
        self.calls = []

    async def analyze(self, text, framework):
        self.calls.append((text, framework))
        return normalize_analysis(self.raw, framework)


def make_token(user_id: str, email: Optional[str] = None, secret: str = AUTH_SECRET, expires_in: int = 3600) -> str:
    claims = {"sub": user_id, "exp": int(time.time()) + expires_in}
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(user_id: str, email: Optional[str] = None) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


def paid_record(
    user_id: str,
    plan_id: str = "pro",
    payment_id: Optional[str] = "pay_123",
    billing_subscription_id: Optional[str] = "sub_123",
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    remaining: Any = None,
    expiry_in_days: Optional[int] = 30,
) -> SubscriptionRecord:
    plan = catalog.resolve(plan_id)
    return SubscriptionRecord(
        user_id=user_id,
        plan_id=plan.plan_id,
        plan_name=plan.name,
        status=status,
        total_credits=plan.credits,
        remaining_credits=plan.credits if remaining is None else remaining,
        expiry_date=today() + timedelta(days=expiry_in_days) if expiry_in_days is not None else None,
        payment_id=payment_id,
        billing_subscription_id=billing_subscription_id,
    )


def put_record(store: InMemorySubscriptionStore, record: SubscriptionRecord) -> SubscriptionRecord:
    """Seed a record from synchronous tests."""
    return asyncio.run(store.write(record.user_id, record))


def webhook_event(
    event: str,
    user_id: Optional[str],
    subscription_id: str = "sub_123",
    plan_id: str = PRO_GATEWAY_ID,
    payment_id: Optional[str] = None,
) -> Dict[str, Any]:
    notes: Any = {"userId": user_id} if user_id else []
    payload: Dict[str, Any] = {
        "subscription": {
            "entity": {"id": subscription_id, "plan_id": plan_id, "status": "active", "notes": notes}
        }
    }
    if payment_id:
        payload["payment"] = {
            "entity": {
                "id": payment_id,
                "subscription_id": subscription_id,
                "created_at": 1760000000,
                "notes": notes,
            }
        }
    return {"entity": "event", "event": event, "payload": payload, "created_at": 1760000000}


def signed(event: Dict[str, Any], event_id: Optional[str] = None, secret: str = WEBHOOK_SECRET) -> Tuple[bytes, Dict[str, str]]:
    body = json.dumps(event, separators=(", ", ": ")).encode("utf-8")
    headers = {SIGNATURE_HEADER: compute_signature(body, secret), "Content-Type": "application/json"}
    if event_id:
        headers[EVENT_ID_HEADER] = event_id
    return body, headers


@pytest.fixture
def store():
    return InMemorySubscriptionStore()


@pytest.fixture
def biller():
    return FakeBiller()


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def app(store, biller, analyzer):
    application = create_app(
        store=store,
        biller=biller,
        analyzer=analyzer,
        authenticator=BearerAuthenticator(AUTH_SECRET),
    )
    application.dependency_overrides[get_webhook_secret] = lambda: WEBHOOK_SECRET
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
