"""Administrative endpoints, protected by the admin API key."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from creditline.dependencies import get_store
from creditline.security import verify_security_api_key
from creditline.store.base import SubscriptionStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(verify_security_api_key)],
)


@router.delete("/subscriptions/{user_id}")
async def wipe_subscription(user_id: str, store: SubscriptionStore = Depends(get_store)):
    """Physically delete a user's ledger; the next status read starts a new trial."""
    deleted = await store.delete(user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Subscription not found")
    logger.warning(f"Subscription record for user {user_id} wiped by admin")
    return {"deleted": True, "userId": user_id}
