"""Application factory for the store manager API.

``create_app`` wires configuration, middleware, routers and error handling.
Schema creation, the additive migrations and the bootstrap admin account run
from the lifespan hook so importing the package never touches the database.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.errors import register_exception_handlers
from .crud.users import ensure_bootstrap_admin
from .db.migrate import run_migrations
from .db.session import Base, SessionLocal, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the models registers their tables with ``Base.metadata``.
from .models import order as _order  # noqa: F401
from .models import product as _product  # noqa: F401
from .models import sale as _sale  # noqa: F401
from .models import user as _user  # noqa: F401

logger = logging.getLogger(__name__)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)
    db = SessionLocal()
    try:
        admin = ensure_bootstrap_admin(db, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)
    finally:
        db.close()
    if admin is not None:
        logger.info("users.bootstrap_admin_created", extra={"extra_data": {"username": admin.username}})


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID"],
        )

    from .routers import api_auth, api_orders, api_performance, api_products, api_reports, api_sales, api_users

    app.include_router(api_auth.router)
    app.include_router(api_products.router)
    app.include_router(api_sales.router)
    app.include_router(api_orders.router)
    app.include_router(api_users.router)
    app.include_router(api_reports.router)
    app.include_router(api_performance.router)

    register_exception_handlers(app)
    return app


__all__ = ["create_app", "init_db"]
