"""Database connection and initialization."""

import logging

from motor.motor_asyncio import AsyncIOMotorClient

from creditline.config import settings
from creditline.store.base import SubscriptionStore
from creditline.store.mongo import MongoSubscriptionStore
from creditline.utils.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


def get_client() -> AsyncIOMotorClient:
    """Get a MongoDB client.

    Returns:
        AsyncIOMotorClient: The MongoDB client
    """
    return AsyncIOMotorClient(
        settings.database.uri,
        serverSelectionTimeoutMS=settings.database.server_selection_timeout_ms,
    )


async def init_db(client: AsyncIOMotorClient) -> MongoSubscriptionStore:
    """Create the subscription store and check the connection."""
    logger.info(f"Initializing subscription store in database: {settings.database.database_name}")

    store = MongoSubscriptionStore(
        client[settings.database.database_name],
        collection=settings.database.subscriptions_collection,
        events_collection=settings.database.events_collection,
    )
    try:
        await store.ping()
        logger.info("Database initialization successful")
    except StoreUnavailableError as e:
        # Requests fail with 503 until the database is reachable
        logger.error(f"Database not reachable at startup: {e.message}")
    return store


async def check_connection(store: SubscriptionStore) -> bool:
    """Check if the database connection is healthy.

    Returns:
        bool: True if connection is healthy, False otherwise
    """
    try:
        return await store.ping()
    except StoreUnavailableError as e:
        logger.error(f"Database connection check failed: {e.message}")
        return False
