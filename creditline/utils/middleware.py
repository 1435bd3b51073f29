"""Middleware for request handling and error processing."""

import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .errors import LedgerError

# Configure logger
logger = logging.getLogger(__name__)


class RawBodyMiddleware(BaseHTTPMiddleware):
    """Keeps the exact request bytes on ``request.state.raw_body``.

    Signature checks must run over what was sent, never over a
    re-serialized JSON object.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.raw_body = await request.body()
        return await call_next(request)


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Render application errors with their own status code."""
    exc.log()
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
