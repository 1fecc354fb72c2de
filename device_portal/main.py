"""
FastAPI application factory.

Assembles the app, registers all routers & error handlers, and wires
up lifecycle events.  Database schema is managed by Alembic, NOT
create_all.

Every failure leaves the API as ``{"error": "<message>", ...}``:
- `ServiceError` subclasses carry their own status and message;
- request-body validation failures become a 400 with per-field detail;
- anything unexpected is logged in full and answered with a generic
  message.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from device_portal.controllers.admin_controller import router as admin_router
from device_portal.controllers.agent_controller import router as agent_router
from device_portal.controllers.auth_controller import router as auth_router
from device_portal.core.config import settings
from device_portal.core.cookies import clear_session_cookie
from device_portal.core.database import async_session_factory, engine
from device_portal.core.errors import BackendError, ServiceError, ValidationError
from device_portal.models import Base  # noqa: F401  registers all models
from device_portal.services.session_sweeper import SessionSweeper

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def _field_name(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields: dict[str, str] = {}
        for err in exc.errors():
            message = err["msg"].removeprefix("Value error, ")
            fields.setdefault(_field_name(err["loc"]), message)
        first = next(iter(fields.values()), ValidationError.default_message)
        error = ValidationError(first, fields=fields)
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = BackendError()
        return JSONResponse(status_code=error.status_code, content=error.to_body())


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Register routers ─────────────────────────────────────────────
    app.include_router(auth_router)
    app.include_router(agent_router)
    app.include_router(admin_router)

    register_exception_handlers(app)

    # ── Stale session cookies ────────────────────────────────────────
    @app.middleware("http")
    async def drop_stale_session_cookie(request: Request, call_next):
        response = await call_next(request)
        if getattr(request.state, "clear_session_cookie", False):
            clear_session_cookie(response)
        return response

    sweeper = SessionSweeper(
        async_session_factory,
        interval_seconds=settings.SESSION_SWEEP_INTERVAL_SECONDS,
    )
    app.state.session_sweeper = sweeper

    # ── Startup / Shutdown ───────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup() -> None:
        """Seed the bootstrap admin and start the session sweeper.

        NOTE: Database schema is managed by Alembic migrations.
        Run `alembic upgrade head` before starting the app.
        """
        if settings.SEED_ON_STARTUP:
            from device_portal.services.seed_service import seed_admin

            async with async_session_factory() as session:
                await seed_admin(session)
            logger.info("Admin seed check complete.")
        sweeper.start()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await sweeper.stop()
        await engine.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
