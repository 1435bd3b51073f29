"""Base class for subscription stores."""

import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from creditline.schemas.subscription import SubscriptionRecord
from creditline.utils.utils import utcnow
from pydantic_core import to_jsonable_python


def new_etag() -> str:
    return uuid.uuid4().hex


def mutation_stamp() -> Dict[str, Any]:
    """Fields every mutation rewrites."""
    return {"updatedAt": to_jsonable_python(utcnow()), "etag": new_etag()}


class SubscriptionStore(ABC):
    """Durable per-user subscription documents.

    Every operation is atomic for a single user's document. Conditional
    operations take ``expected``: stored field names mapped to the value the
    document must currently hold, where a list value means "any of".
    Implementations raise ``StoreUnavailableError`` when the backend cannot
    be reached and never fall back to another copy of the data.
    """

    @abstractmethod
    async def read(self, user_id: str) -> Optional[SubscriptionRecord]:
        """Return the stored record, or None."""

    @abstractmethod
    async def create(self, user_id: str, record: SubscriptionRecord) -> Optional[SubscriptionRecord]:
        """Insert the record only if the user has none.

        Returns:
            The stored record, or None when a record already exists
        """

    @abstractmethod
    async def write(self, user_id: str, record: SubscriptionRecord) -> SubscriptionRecord:
        """Replace (or insert) the whole record."""

    @abstractmethod
    async def update(self, user_id: str, fields: Dict[str, Any]) -> SubscriptionRecord:
        """Merge fields into an existing record.

        Raises:
            RecordNotFoundError: If the user has no record
        """

    @abstractmethod
    async def compare_and_update(
        self, user_id: str, expected: Dict[str, Any], fields: Dict[str, Any]
    ) -> Optional[SubscriptionRecord]:
        """Merge fields only if the record still matches ``expected``.

        Returns:
            The updated record, or None if no record matched
        """

    @abstractmethod
    async def compare_and_replace(
        self, user_id: str, expected: Dict[str, Any], record: SubscriptionRecord
    ) -> Optional[SubscriptionRecord]:
        """Replace the record only if it still matches ``expected``."""

    @abstractmethod
    async def decrement_credits(self, user_id: str, amount: int) -> Optional[SubscriptionRecord]:
        """Subtract ``amount`` from a finite balance of at least ``amount``.

        Returns:
            The updated record, or None if the guard did not hold
        """

    @abstractmethod
    async def refill_credits(
        self, user_id: str, expected: Dict[str, Any], fields: Dict[str, Any]
    ) -> Optional[SubscriptionRecord]:
        """Set remainingCredits to the stored totalCredits, merging ``fields`` too."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Remove the record. Returns True if one existed."""

    @abstractmethod
    async def claim_event(self, event_id: str) -> bool:
        """Mark a webhook delivery as seen. Returns False if it already was."""

    @abstractmethod
    async def release_event(self, event_id: str) -> None:
        """Forget a claimed webhook delivery."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the backend answers."""
