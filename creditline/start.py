"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from creditline.ai.analyzer import BaseAnalyzer, HttpAnalyzer
from creditline.auth import BearerAuthenticator
from creditline.billing.base import BaseBiller
from creditline.billing.razorpay import RazorpayBiller
from creditline.config import settings
from creditline.db import get_client, init_db
from creditline.routers import admin, analysis, health, subscription, users, webhooks
from creditline.store.base import SubscriptionStore
from creditline.utils.logging_config import RequestLoggingMiddleware
from creditline.utils.middleware import RawBodyMiddleware, register_exception_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application")

    client = None
    if app.state.store is None:
        client = get_client()
        app.state.store = await init_db(client)

    owned = []
    if app.state.biller is None:
        app.state.biller = RazorpayBiller.from_settings()
        owned.append(app.state.biller)
    if app.state.analyzer is None and settings.analyzer.url:
        app.state.analyzer = HttpAnalyzer.from_settings()
        owned.append(app.state.analyzer)

    yield

    logger.info("Shutting down application")
    for resource in owned:
        await resource.aclose()
    if client is not None:
        client.close()


def create_app(
    store: Optional[SubscriptionStore] = None,
    biller: Optional[BaseBiller] = None,
    analyzer: Optional[BaseAnalyzer] = None,
    authenticator: Optional[BearerAuthenticator] = None,
) -> FastAPI:
    """Build the application. Collaborators left as None are created at startup."""
    app = FastAPI(title="Creditline", version="0.1.0", lifespan=lifespan)

    app.state.store = store
    app.state.biller = biller
    app.state.analyzer = analyzer
    app.state.authenticator = authenticator or BearerAuthenticator.from_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.logging.enable_request_logging:
        app.add_middleware(RequestLoggingMiddleware)
    # Added last so it runs first and sees the untouched body
    app.add_middleware(RawBodyMiddleware)

    register_exception_handlers(app)

    app.include_router(subscription.router)
    app.include_router(webhooks.router)
    app.include_router(users.router)
    app.include_router(analysis.router)
    app.include_router(admin.router)
    app.include_router(health.router)

    return app
