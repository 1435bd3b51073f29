"""Base class for billing providers."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from creditline.plans import PlanDefinition


class BaseBiller(ABC):
    """External owner of the billing subscription lifecycle.

    Every call either succeeds or raises ``BillerError``; a timeout raises
    ``BillerTimeoutError``. Callers apply ledger transitions only after a
    call returned.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.provider = "base"

    @abstractmethod
    async def create_subscription(self, plan: PlanDefinition, user_id: str, email: Optional[str] = None) -> str:
        """Create a billing subscription for the plan.

        Args:
            plan: Catalog plan, must carry a gateway plan id
            user_id: Stored in the subscription notes so webhooks can find the user
            email: Optional contact email for the notes

        Returns:
            The billing subscription id
        """
        pass

    @abstractmethod
    async def pause_subscription(self, subscription_id: str) -> None:
        pass

    @abstractmethod
    async def resume_subscription(self, subscription_id: str) -> None:
        pass

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> None:
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        pass
