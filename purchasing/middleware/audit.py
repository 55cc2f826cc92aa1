"""Audit middleware: logs POST/PUT/PATCH/DELETE calls to the audit_trail table.

The row is written in a background task after the response is ready, so a
slow or failing audit write never delays or breaks the request itself.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from purchasing.core.config import settings
from purchasing.core.security import SESSION_USER_KEY
from purchasing.db.base import async_session_factory
from purchasing.domain.audit import AuditTrail

logger = logging.getLogger(__name__)

_AUDITED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Strong references to in-flight writes
_pending: set[asyncio.Task] = set()


def _entity_from_path(path: str) -> tuple[str, str | None]:
    """/api/v1/orders/<uuid>/status -> ("order", "<uuid>")."""
    parts = [p for p in path.strip("/").split("/") if p and p not in ("api", "v1")]
    for idx, part in enumerate(parts):
        if len(part) == 36 and part.count("-") == 4:
            entity = parts[idx - 1] if idx else "unknown"
            return entity.rstrip("s"), part
    return (parts[0] if parts else "unknown"), None


def _audit_row(request: Request, user_id: str | None, status_code: int, duration_ms: int) -> AuditTrail:
    entity_type, entity_id = _entity_from_path(request.url.path)
    return AuditTrail(
        client_id=settings.default_client_id,
        user_id=user_id,
        ip_address=request.client.host if request.client else None,
        user_agent=(request.headers.get("user-agent") or "")[:512] or None,
        method=request.method,
        path=request.url.path[:500],
        status_code=status_code,
        duration_ms=duration_ms,
        entity_type=entity_type,
        entity_id=entity_id,
        query=dict(request.query_params) or None,
    )


async def _write(row: AuditTrail) -> None:
    try:
        async with async_session_factory() as session:
            session.add(row)
            await session.commit()
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Audit write failed for %s %s: %s", row.method, row.path, exc)


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.monotonic()
        response = await call_next(request)
        if request.method not in _AUDITED_METHODS:
            return response

        user_id = request.session.get(SESSION_USER_KEY) if "session" in request.scope else None
        row = _audit_row(request, user_id, response.status_code, round((time.monotonic() - started) * 1000))
        task = asyncio.create_task(_write(row))
        _pending.add(task)
        task.add_done_callback(_pending.discard)
        return response
