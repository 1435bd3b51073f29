"""In-process subscription store for tests and local runs."""

import asyncio
import copy
from typing import Any, Dict, Optional, Set

from creditline.schemas.subscription import UNLIMITED, SubscriptionRecord
from creditline.store.base import SubscriptionStore, mutation_stamp
from creditline.utils.errors import RecordNotFoundError


def _matches(document: Dict[str, Any], expected: Dict[str, Any]) -> bool:
    for key, value in expected.items():
        if isinstance(value, list):
            if document.get(key) not in value:
                return False
        elif document.get(key) != value:
            return False
    return True


class InMemorySubscriptionStore(SubscriptionStore):
    """Dict-backed store exposing the same conditional primitives as MongoDB.

    One lock serializes all mutations, so check-and-set operations are atomic
    for concurrent tasks in the same event loop.
    """

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._events: Set[str] = set()
        self._lock = asyncio.Lock()

    def _load(self, user_id: str) -> Optional[SubscriptionRecord]:
        document = self._documents.get(user_id)
        if document is None:
            return None
        return SubscriptionRecord.from_document(copy.deepcopy(document))

    def _store(self, user_id: str, document: Dict[str, Any]) -> SubscriptionRecord:
        # Validate before committing so a bad merge never lands
        record = SubscriptionRecord.from_document(document)
        self._documents[user_id] = copy.deepcopy(document)
        return record

    def raw_document(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Stored document as-is, for inspection."""
        document = self._documents.get(user_id)
        return copy.deepcopy(document) if document is not None else None

    async def read(self, user_id: str) -> Optional[SubscriptionRecord]:
        async with self._lock:
            return self._load(user_id)

    async def create(self, user_id: str, record: SubscriptionRecord) -> Optional[SubscriptionRecord]:
        async with self._lock:
            if user_id in self._documents:
                return None
            return self._store(user_id, {**record.to_document(), **mutation_stamp()})

    async def write(self, user_id: str, record: SubscriptionRecord) -> SubscriptionRecord:
        async with self._lock:
            return self._store(user_id, {**record.to_document(), **mutation_stamp()})

    async def update(self, user_id: str, fields: Dict[str, Any]) -> SubscriptionRecord:
        async with self._lock:
            document = self._documents.get(user_id)
            if document is None:
                raise RecordNotFoundError(user_id)
            return self._store(user_id, {**document, **fields, **mutation_stamp()})

    async def compare_and_update(
        self, user_id: str, expected: Dict[str, Any], fields: Dict[str, Any]
    ) -> Optional[SubscriptionRecord]:
        async with self._lock:
            document = self._documents.get(user_id)
            if document is None or not _matches(document, expected):
                return None
            return self._store(user_id, {**document, **fields, **mutation_stamp()})

    async def compare_and_replace(
        self, user_id: str, expected: Dict[str, Any], record: SubscriptionRecord
    ) -> Optional[SubscriptionRecord]:
        async with self._lock:
            document = self._documents.get(user_id)
            if document is None or not _matches(document, expected):
                return None
            return self._store(user_id, {**record.to_document(), **mutation_stamp()})

    async def decrement_credits(self, user_id: str, amount: int) -> Optional[SubscriptionRecord]:
        async with self._lock:
            document = self._documents.get(user_id)
            if document is None:
                return None
            remaining = document.get("remainingCredits")
            if remaining == UNLIMITED or not isinstance(remaining, int) or remaining < amount:
                return None
            return self._store(user_id, {**document, "remainingCredits": remaining - amount, **mutation_stamp()})

    async def refill_credits(
        self, user_id: str, expected: Dict[str, Any], fields: Dict[str, Any]
    ) -> Optional[SubscriptionRecord]:
        async with self._lock:
            document = self._documents.get(user_id)
            if document is None or not _matches(document, expected):
                return None
            return self._store(
                user_id,
                {**document, **fields, "remainingCredits": document.get("totalCredits"), **mutation_stamp()},
            )

    async def delete(self, user_id: str) -> bool:
        async with self._lock:
            return self._documents.pop(user_id, None) is not None

    async def claim_event(self, event_id: str) -> bool:
        async with self._lock:
            if event_id in self._events:
                return False
            self._events.add(event_id)
            return True

    async def release_event(self, event_id: str) -> None:
        async with self._lock:
            self._events.discard(event_id)

    async def ping(self) -> bool:
        return True
