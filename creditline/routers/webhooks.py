"""Inbound billing webhooks."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from creditline.dependencies import get_catalog, get_raw_body, get_store, get_webhook_secret
from creditline.plans import PlanCatalog
from creditline.services.webhooks import EVENT_ID_HEADER, SIGNATURE_HEADER, process_event, verify_signature
from creditline.store.base import SubscriptionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhooks"])

SUPPORTED_PROVIDERS = {"razorpay"}


@router.post("/{provider}")
async def receive_webhook(
    provider: str,
    request: Request,
    raw_body: bytes = Depends(get_raw_body),
    secret: str = Depends(get_webhook_secret),
    store: SubscriptionStore = Depends(get_store),
    plans: PlanCatalog = Depends(get_catalog),
):
    """Verify and apply a billing event.

    Only authentication failures produce an error; every authenticated
    delivery is acknowledged so the sender does not keep retrying.
    """
    if provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(status_code=404, detail=f"Unknown webhook provider: {provider}")

    verify_signature(raw_body, request.headers.get(SIGNATURE_HEADER), secret)

    outcome = await process_event(store, raw_body, event_id=request.headers.get(EVENT_ID_HEADER), plans=plans)
    logger.info(f"Webhook from {provider} acknowledged ({outcome})")
    return {"status": "ok"}
