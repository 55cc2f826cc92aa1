"""Session login routes (/api/auth/*)."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.config import settings
from purchasing.core.response import DataResponse
from purchasing.core.security import SESSION_USER_KEY, get_current_user
from purchasing.db.base import get_db
from purchasing.domain.user import User
from purchasing.schemas.auth import LoginRequest, UserOut
from purchasing.services.auth import AuthService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=DataResponse[UserOut])
async def login(
    body: LoginRequest,
    request: Request,
    session: AsyncSession = Depends(get_db),
):
    user = await AuthService(session, settings.default_client_id).authenticate(body.email, body.password)
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    return {"data": UserOut.model_validate(user)}


@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"data": {"loggedOut": True}}


@router.get("/user", response_model=DataResponse[UserOut])
async def current_user(user: User = Depends(get_current_user)):
    return {"data": UserOut.model_validate(user)}
