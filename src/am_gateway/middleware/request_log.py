"""Request logging middleware.

One line per request on logger ``am.request``:

    INFO [POST] /api/v1/auctions/123/bids → 200 (12ms) req_a1b2c3d4e5f6

The request id is stored on ``request.state.request_id`` so handlers can
echo it in the response envelope. SSE responses are logged when headers are
sent, not when the stream closes.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.am_common.response import new_request_id

logger = logging.getLogger("am.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = new_request_id()

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        response.headers["X-Request-ID"] = request.state.request_id
        return response
