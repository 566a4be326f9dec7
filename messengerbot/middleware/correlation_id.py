"""Correlation ID middleware for tracing webhook deliveries."""

import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

import logfire

from messengerbot.constants import CORRELATION_ID_HEADER


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tag every webhook delivery with a correlation ID.

    The ID is taken from the incoming header when the caller supplies one,
    stored on ``request.state`` for the pipeline, wrapped around the delivery
    as a Logfire span and echoed back in the response headers.
    """

    def __init__(self, app: ASGIApp, header_name: str = CORRELATION_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        with logfire.span(
            "webhook delivery {method} {path}",
            method=request.method,
            path=request.url.path,
            correlation_id=correlation_id,
        ):
            response = await call_next(request)

        response.headers[self.header_name] = correlation_id
        return response
