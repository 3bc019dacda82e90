"""Shared API key gate in front of the identity headers."""

from __future__ import annotations

import hmac
import logging

from fastapi import Request, Response
from starlette.middleware.base import (
    BaseHTTPMiddleware,
    RequestResponseEndpoint,
)

from sourceverifier.api.errors import error_response
from sourceverifier.constants import (
    API_KEY_HEADER,
    API_KEY_QUERY_PARAM,
    API_KEY_QUERY_PATHS,
    AUTH_EXEMPT_PATHS,
    AUTH_EXEMPT_PREFIXES,
)

logger = logging.getLogger(__name__)


def _provided_key(request: Request) -> str:
    key = request.headers.get(API_KEY_HEADER, "")
    if not key and request.url.path in API_KEY_QUERY_PATHS:
        key = request.query_params.get(API_KEY_QUERY_PARAM, "")
    return key


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Require ``Settings.api_key`` when one is configured.

    Health and docs stay public. The live stream also accepts the key
    as ``?api_key=``. Passing this gate says nothing about who the
    caller is; that still comes from the ``X-User-*`` headers.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = request.url.path
        if path in AUTH_EXEMPT_PATHS or path.startswith(
            AUTH_EXEMPT_PREFIXES
        ):
            return await call_next(request)

        expected = request.app.state.typed.settings.api_key
        if not expected:
            return await call_next(request)

        if not hmac.compare_digest(_provided_key(request), expected):
            logger.warning(
                "event=api_key_rejected method=%s path=%s",
                request.method,
                path,
            )
            return error_response(401, "Invalid or missing API key")

        return await call_next(request)
