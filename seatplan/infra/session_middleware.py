from __future__ import annotations

import logging
import os

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """Request-time hook for session refresh.

    Requests always pass through unchanged. No token is validated here; the
    dashboard pages and the API dependencies resolve sessions themselves.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        public_url = os.getenv("SEATPLAN_PUBLIC_URL")
        anon_key = os.getenv("SEATPLAN_PUBLIC_ANON_KEY")
        if not public_url or not anon_key:
            logger.debug("backend credentials missing, passing %s through", request.url.path)
        return await call_next(request)
