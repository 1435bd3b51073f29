"""Credit-metered text analysis."""

import logging

from fastapi import APIRouter, Depends

from creditline.ai.analyzer import BaseAnalyzer
from creditline.auth import AuthenticatedUser
from creditline.config import settings
from creditline.dependencies import get_analyzer, get_catalog, get_store
from creditline.plans import PlanCatalog
from creditline.schemas.analysis import AnalyzeTextRequest
from creditline.security import get_current_user
from creditline.services.consistency import get_subscription
from creditline.services.credits import deduct_credits
from creditline.store.base import SubscriptionStore
from creditline.utils.errors import InsufficientCreditError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analysis"])


@router.post("/text")
async def analyze_text(
    body: AnalyzeTextRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_store),
    analyzer: BaseAnalyzer = Depends(get_analyzer),
    plans: PlanCatalog = Depends(get_catalog),
):
    """Structure text, charging the analysis cost on success."""
    cost = settings.analyzer.credit_cost
    # Refuse before spending analyzer time on a balance that cannot pay
    current = await get_subscription(store, user.user_id, plans)
    if not current.is_unlimited and current.remaining_credits < cost:
        raise InsufficientCreditError(remaining_credits=current.remaining_credits, requested=cost)

    result = await analyzer.analyze(body.text, body.framework)
    record = await deduct_credits(store, user.user_id, cost, plans)
    logger.info(f"Analysis for user {user.user_id} produced {len(result.rows)} rows")
    return {
        **result.model_dump(mode="json", by_alias=True),
        "remainingCredits": record.remaining_credits,
    }
