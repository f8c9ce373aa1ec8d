# backend/app/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# client-supplied ids end up in every log line; keep them short and printable
_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


@contextmanager
def bound_request_id(rid: Optional[str]) -> Iterator[None]:
    """Bind an id outside HTTP handling (import worker tasks carry the uploader's id)."""
    token = request_id_ctx.set(rid)
    try:
        yield
    finally:
        request_id_ctx.reset(token)


def _incoming_id(request: Request) -> Optional[str]:
    rid = (request.headers.get("X-Request-ID") or "").strip()
    return rid if _VALID_ID.match(rid) else None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id, echoed back in X-Request-ID.

    A well-formed incoming X-Request-ID is reused (header lookup is
    case-insensitive); anything else is replaced with a fresh UUID4.
    """

    header_out = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_id(request) or str(uuid.uuid4())
        request.state.request_id = rid
        with bound_request_id(rid):
            resp = await call_next(request)
        resp.headers[self.header_out] = rid
        return resp
