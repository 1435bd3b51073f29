"""User data endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from creditline.auth import AuthenticatedUser
from creditline.dependencies import get_catalog, get_store
from creditline.plans import PlanCatalog
from creditline.security import get_current_user
from creditline.services.consistency import get_subscription
from creditline.store.base import SubscriptionStore
from creditline.utils.utils import utcnow

router = APIRouter(prefix="/user", tags=["users"])


@router.get("/export-data")
async def export_user_data(
    user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
    plans: PlanCatalog = Depends(get_catalog),
) -> JSONResponse:
    """Download everything stored about the caller as a JSON attachment."""
    record = await get_subscription(store, user.user_id, plans)
    export = {
        "profile": {"uid": user.user_id, "email": user.email, "displayName": user.name},
        "subscription": record.to_response(),
        "generatedAt": utcnow().isoformat(),
    }
    return JSONResponse(
        content=export,
        headers={"Content-Disposition": f'attachment; filename="user-data-{user.user_id}.json"'},
    )
