from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
# {"user_id": ..., "role": ...} of the staff member behind the request, once authenticated.
staff_ctx_var: ContextVar[dict[str, Any] | None] = ContextVar("staff", default=None)
logger = logging.getLogger("store_manager.request")


def bind_staff(request: Request, user_id: int, role: str) -> None:
    staff = {"user_id": user_id, "role": role}
    staff_ctx_var.set(staff)
    request.state.staff = staff


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Correlate each API call with an id and log who did what, and how it ended."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        request_token = request_id_ctx_var.set(request_id)
        staff_token = staff_ctx_var.set(None)
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
            staff = getattr(request.state, "staff", None)
        finally:
            request_id_ctx_var.reset(request_token)
            staff_ctx_var.reset(staff_token)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[self.header_name] = request_id
        fields: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "route": _route_template(request),
            "status": response.status_code,
            "duration_ms": elapsed_ms,
        }
        if staff:
            fields.update(staff)
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(level, "request.completed", extra={"extra_data": fields})
        return response


def _route_template(request: Request) -> str:
    # The matched template such as "/api/v1/orders/{order_id}", else the raw path.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path
