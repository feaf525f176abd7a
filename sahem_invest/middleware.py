"""
HTTP middleware: request id propagation and request timing.

``RequestIDMiddleware`` accepts a caller's ``X-Request-ID`` when it looks
like an id (at most 128 characters from ``[A-Za-z0-9._-]``), otherwise
generates a UUID4. The id is stored on ``request.state``, bound to the
logging context for the duration of the request and echoed back.

``RequestTimingMiddleware`` adds ``X-Process-Time`` and logs each request
with ``method``/``path``/``status_code``/``elapsed_ms`` extras, which the
JSON file log keeps as fields. Approvals write one ledger row and up to two
transactions per investor, so they get a larger slow-request budget.
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from sahem_invest.core.logging import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

SLOW_REQUEST_MS = 500
SLOW_APPROVAL_MS = 2000


def slow_threshold_ms(path: str) -> int:
    return SLOW_APPROVAL_MS if path.endswith("/approve") else SLOW_REQUEST_MS


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}ms"

        path = request.url.path
        slow = elapsed_ms > slow_threshold_ms(path)
        logger.log(
            logging.WARNING if slow else logging.DEBUG,
            "%s %s -> %d in %.2fms%s",
            request.method,
            path,
            response.status_code,
            elapsed_ms,
            " (SLOW)" if slow else "",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
            },
        )
        return response
