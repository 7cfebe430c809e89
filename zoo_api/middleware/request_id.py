"""
Zoo Registry API: Request ID Middleware
========================================

What:  Assigns a correlation ID to each request and echoes it in the response.
How:   Uses the client's `X-Request-ID` when it is sane, otherwise generates
       a short UUID. The ID is stored in a ContextVar (read by the access
       log and the exception handlers) and on `request.state`.
Who:   Applied to every request; outermost middleware.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client IDs end up in log lines; refuse anything that could forge one
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Take `X-Request-ID` from the client if it is 1-64 safe characters
        2. Otherwise generate an 8-character hex ID
        3. Store it in the ContextVar and on request.state
        4. Return it in the `X-Request-ID` response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get(REQUEST_ID_HEADER, "")
        rid = supplied if _SAFE_REQUEST_ID.match(supplied) else _new_request_id()

        # Not reset afterwards: the catch-all error handler runs outside
        # this middleware and still reads it
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
