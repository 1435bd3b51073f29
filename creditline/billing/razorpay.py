"""Razorpay subscriptions API client."""

from typing import Any, Dict, Optional

import httpx

from creditline.billing.base import BaseBiller
from creditline.config import settings
from creditline.plans import PlanDefinition
from creditline.utils.errors import BillerError, BillerTimeoutError, ValidationError


class RazorpayBiller(BaseBiller):
    """Talks to the Razorpay REST API with basic auth and a bounded timeout."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_base: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        total_count: int = 12,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__()
        self.provider = "razorpay"
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout
        self.total_count = total_count
        self._client = client or httpx.AsyncClient(base_url=api_base.rstrip("/"), timeout=timeout)

    @classmethod
    def from_settings(cls) -> "RazorpayBiller":
        return cls(
            key_id=settings.billing.key_id,
            key_secret=settings.billing.key_secret.get_secret_value(),
            api_base=settings.billing.api_base,
            timeout=settings.billing.timeout_seconds,
            total_count=settings.billing.total_count,
        )

    async def _request(self, operation: str, method: str, path: str, payload: Optional[Dict[str, Any]] = None):
        if not self.key_id or not self.key_secret:
            self.logger.error(f"Razorpay credentials missing, cannot {operation}")
            raise BillerError("Billing provider is not configured", status_code=503)

        try:
            response = await self._client.request(
                method,
                path,
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            self.logger.error(f"Razorpay {operation} timed out after {self.timeout}s: {e}")
            raise BillerTimeoutError(operation, self.timeout) from e
        except httpx.HTTPError as e:
            self.logger.error(f"Razorpay {operation} failed: {e}")
            raise BillerError(f"Billing provider unreachable during {operation}") from e

        if response.is_error:
            description = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                description = body["error"].get("description")
            self.logger.error(f"Razorpay {operation} returned {response.status_code}: {description}")
            raise BillerError(
                f"Billing provider rejected {operation}",
                details={"status": response.status_code, "description": description},
            )

        try:
            return response.json()
        except ValueError as e:
            raise BillerError(f"Billing provider sent an unreadable {operation} response") from e

    async def create_subscription(self, plan: PlanDefinition, user_id: str, email: Optional[str] = None) -> str:
        if not plan.gateway_plan_id:
            raise ValidationError(f"Plan '{plan.name}' is not sold through the billing provider")

        notes = {"userId": user_id}
        if email:
            notes["email"] = email
        data = await self._request(
            "create subscription",
            "POST",
            "/subscriptions",
            {
                "plan_id": plan.gateway_plan_id,
                "customer_notify": 1,
                "total_count": self.total_count,
                "notes": notes,
            },
        )
        subscription_id = data.get("id") if isinstance(data, dict) else None
        if not subscription_id:
            raise BillerError("Billing provider did not return a subscription id")
        self.logger.info(f"Created Razorpay subscription {subscription_id} ({plan.name}) for user {user_id}")
        return subscription_id

    async def pause_subscription(self, subscription_id: str) -> None:
        await self._request("pause", "POST", f"/subscriptions/{subscription_id}/pause", {"pause_at": "now"})
        self.logger.info(f"Paused Razorpay subscription {subscription_id}")

    async def resume_subscription(self, subscription_id: str) -> None:
        await self._request("resume", "POST", f"/subscriptions/{subscription_id}/resume", {"resume_at": "now"})
        self.logger.info(f"Resumed Razorpay subscription {subscription_id}")

    async def cancel_subscription(self, subscription_id: str) -> None:
        await self._request(
            "cancel", "POST", f"/subscriptions/{subscription_id}/cancel", {"cancel_at_cycle_end": 1}
        )
        self.logger.info(f"Cancelled Razorpay subscription {subscription_id}")

    async def aclose(self) -> None:
        await self._client.aclose()
