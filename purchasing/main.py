"""Purchase Order API — FastAPI application factory."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.config import settings
from purchasing.core.exceptions import register_exception_handlers
from purchasing.db.base import create_tables, get_db, ping
from purchasing.middleware.audit import AuditMiddleware
from purchasing.schemas.common import HealthResponse

from purchasing.routers.auth import router as auth_router
from purchasing.routers.po_template import router as po_template_router

# v1 routers
from purchasing.routers.v1.attachments import router as attachments_v1_router
from purchasing.routers.v1.dashboard import router as dashboard_v1_router
from purchasing.routers.v1.orders import router as orders_v1_router

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def _configure_logging() -> None:
    level = logging.DEBUG if settings.app_env == "development" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("fontTools").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        await create_tables()
        logger.info("Database tables ensured (%s)", settings.database_url.split("://", 1)[0])
    yield


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=APP_VERSION,
        docs_url="/docs" if settings.app_env == "development" else None,
        redoc_url="/redoc" if settings.app_env == "development" else None,
        lifespan=lifespan,
    )

    # --- Audit middleware (innermost, reads the decoded session) ---
    if settings.audit_enabled:
        app.add_middleware(AuditMiddleware)

    # --- Signed cookie sessions ---
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="po_session",
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.app_env == "production",
    )

    # --- CORS (outermost) ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- Routes ---
    app.include_router(auth_router)
    app.include_router(po_template_router)
    app.include_router(orders_v1_router, prefix="/api/v1")
    app.include_router(attachments_v1_router, prefix="/api/v1")
    app.include_router(dashboard_v1_router, prefix="/api/v1")

    # --- Health check ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health(session: AsyncSession = Depends(get_db)):
        try:
            await ping(session)
            database = "connected"
        except SQLAlchemyError as exc:
            logger.warning("Health check: database unreachable: %s", exc)
            database = "unavailable"
        return HealthResponse(app=settings.app_name, version=APP_VERSION, env=settings.app_env, database=database)

    return app


app = create_app()
