"""MongoDB-backed subscription store."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from creditline.schemas.subscription import SubscriptionRecord
from creditline.store.base import SubscriptionStore, mutation_stamp
from creditline.utils.errors import RecordNotFoundError, StoreUnavailableError
from creditline.utils.utils import utcnow

logger = logging.getLogger(__name__)


def _match(expected: Dict[str, Any]) -> Dict[str, Any]:
    return {key: {"$in": value} if isinstance(value, list) else value for key, value in expected.items()}


@contextmanager
def _store_errors(operation: str, key: str):
    try:
        yield
    except PyMongoError as e:
        logger.error(f"Subscription store {operation} failed for {key}: {e}")
        raise StoreUnavailableError(details={"operation": operation}) from e


class MongoSubscriptionStore(SubscriptionStore):
    """One document per user, ``_id`` is the user id.

    Conditional operations map onto ``find_one_and_update`` / ``replace_one``
    filters so MongoDB applies check and write as one atomic step.
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        collection: str = "subscriptions",
        events_collection: str = "webhook_events",
    ):
        self.database = database
        self.collection = database[collection]
        self.events = database[events_collection]

    @staticmethod
    def _record(document: Optional[Dict[str, Any]]) -> Optional[SubscriptionRecord]:
        if document is None:
            return None
        return SubscriptionRecord.from_document(document)

    @staticmethod
    def _document(user_id: str, record: SubscriptionRecord) -> Dict[str, Any]:
        return {**record.to_document(), **mutation_stamp(), "_id": user_id}

    async def read(self, user_id: str) -> Optional[SubscriptionRecord]:
        with _store_errors("read", user_id):
            document = await self.collection.find_one({"_id": user_id})
        return self._record(document)

    async def create(self, user_id: str, record: SubscriptionRecord) -> Optional[SubscriptionRecord]:
        document = self._document(user_id, record)
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError:
            return None
        except PyMongoError as e:
            logger.error(f"Subscription store create failed for {user_id}: {e}")
            raise StoreUnavailableError(details={"operation": "create"}) from e
        return self._record(document)

    async def write(self, user_id: str, record: SubscriptionRecord) -> SubscriptionRecord:
        document = self._document(user_id, record)
        with _store_errors("write", user_id):
            await self.collection.replace_one({"_id": user_id}, document, upsert=True)
        return SubscriptionRecord.from_document(document)

    async def update(self, user_id: str, fields: Dict[str, Any]) -> SubscriptionRecord:
        with _store_errors("update", user_id):
            document = await self.collection.find_one_and_update(
                {"_id": user_id},
                {"$set": {**fields, **mutation_stamp()}},
                return_document=ReturnDocument.AFTER,
            )
        if document is None:
            raise RecordNotFoundError(user_id)
        return SubscriptionRecord.from_document(document)

    async def compare_and_update(
        self, user_id: str, expected: Dict[str, Any], fields: Dict[str, Any]
    ) -> Optional[SubscriptionRecord]:
        with _store_errors("compare_and_update", user_id):
            document = await self.collection.find_one_and_update(
                {"_id": user_id, **_match(expected)},
                {"$set": {**fields, **mutation_stamp()}},
                return_document=ReturnDocument.AFTER,
            )
        return self._record(document)

    async def compare_and_replace(
        self, user_id: str, expected: Dict[str, Any], record: SubscriptionRecord
    ) -> Optional[SubscriptionRecord]:
        document = self._document(user_id, record)
        with _store_errors("compare_and_replace", user_id):
            result = await self.collection.replace_one({"_id": user_id, **_match(expected)}, document)
        if result.matched_count == 0:
            return None
        return SubscriptionRecord.from_document(document)

    async def decrement_credits(self, user_id: str, amount: int) -> Optional[SubscriptionRecord]:
        # $gte only matches numbers, so the "Unlimited" sentinel never qualifies
        with _store_errors("decrement_credits", user_id):
            document = await self.collection.find_one_and_update(
                {"_id": user_id, "remainingCredits": {"$gte": amount}},
                {"$inc": {"remainingCredits": -amount}, "$set": mutation_stamp()},
                return_document=ReturnDocument.AFTER,
            )
        return self._record(document)

    async def refill_credits(
        self, user_id: str, expected: Dict[str, Any], fields: Dict[str, Any]
    ) -> Optional[SubscriptionRecord]:
        literal_fields = {key: {"$literal": value} for key, value in {**fields, **mutation_stamp()}.items()}
        with _store_errors("refill_credits", user_id):
            document = await self.collection.find_one_and_update(
                {"_id": user_id, **_match(expected)},
                [{"$set": {"remainingCredits": "$totalCredits", **literal_fields}}],
                return_document=ReturnDocument.AFTER,
            )
        return self._record(document)

    async def delete(self, user_id: str) -> bool:
        with _store_errors("delete", user_id):
            result = await self.collection.delete_one({"_id": user_id})
        return result.deleted_count > 0

    async def claim_event(self, event_id: str) -> bool:
        try:
            await self.events.insert_one({"_id": event_id, "receivedAt": utcnow()})
        except DuplicateKeyError:
            return False
        except PyMongoError as e:
            logger.error(f"Could not record webhook event {event_id}: {e}")
            raise StoreUnavailableError(details={"operation": "claim_event"}) from e
        return True

    async def release_event(self, event_id: str) -> None:
        with _store_errors("release_event", event_id):
            await self.events.delete_one({"_id": event_id})

    async def ping(self) -> bool:
        with _store_errors("ping", "admin"):
            await self.database.command("ping")
        return True
