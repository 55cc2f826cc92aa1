"""Password hashing and session-based authentication dependencies."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from purchasing.core.config import settings
from purchasing.core.exceptions import ForbiddenError, UnauthorizedError
from purchasing.db.base import get_db
from purchasing.domain.user import User
from purchasing.repositories.user import UserRepository

SESSION_USER_KEY = "user_id"


def hash_password(password: str, *, method: str | None = None) -> str:
    """werkzeug hash string, e.g. ``scrypt:32768:8:1$<salt>$<hash>``.

    *method* overrides werkzeug's default (``pbkdf2:sha256:1000`` keeps tests fast).
    """
    if method is None:
        return generate_password_hash(password)
    return generate_password_hash(password, method=method)


def verify_password(password: str, encoded: str | None) -> bool:
    if not encoded:
        return False
    try:
        return check_password_hash(encoded, password)
    except ValueError:
        # Stored value names a method werkzeug does not know, or is damaged
        return False


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the logged-in user from the session cookie or raise 401."""
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        raise UnauthorizedError()

    user = await UserRepository(session, settings.default_client_id).get_by_id(user_id)
    if user is None or not user.is_active:
        # Stale session (user removed or deactivated)
        request.session.pop(SESSION_USER_KEY, None)
        raise UnauthorizedError("Invalid session")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise ForbiddenError("Admin access required")
    return user
