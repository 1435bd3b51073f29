"""FastAPI dependencies resolving the collaborators attached to the app."""

from fastapi import Request

from creditline.ai.analyzer import BaseAnalyzer
from creditline.auth import BearerAuthenticator
from creditline.billing.base import BaseBiller
from creditline.config import settings
from creditline.plans import PlanCatalog, catalog
from creditline.store.base import SubscriptionStore
from creditline.utils.errors import AnalyzerError, AuthenticationError, BillerError, StoreUnavailableError


def get_store(request: Request) -> SubscriptionStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreUnavailableError("Subscription store is not initialized")
    return store


def get_biller(request: Request) -> BaseBiller:
    biller = getattr(request.app.state, "biller", None)
    if biller is None:
        raise BillerError("Billing provider is not configured", status_code=503)
    return biller


def get_analyzer(request: Request) -> BaseAnalyzer:
    analyzer = getattr(request.app.state, "analyzer", None)
    if analyzer is None:
        raise AnalyzerError("Analyzer is not configured", status_code=503)
    return analyzer


def get_authenticator(request: Request) -> BearerAuthenticator:
    authenticator = getattr(request.app.state, "authenticator", None)
    if authenticator is None:
        raise AuthenticationError("Authentication is not configured")
    return authenticator


def get_catalog() -> PlanCatalog:
    return catalog


def get_webhook_secret() -> str:
    return settings.billing.webhook_secret.get_secret_value()


async def get_raw_body(request: Request) -> bytes:
    """Exact bytes received, as captured before any parsing."""
    raw_body = getattr(request.state, "raw_body", None)
    if raw_body is None:
        raw_body = await request.body()
    return raw_body
