from __future__ import annotations

from .request_id import RequestIdMiddleware, bind_staff, request_id_ctx_var, staff_ctx_var
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
    "bind_staff",
    "request_id_ctx_var",
    "staff_ctx_var",
]
