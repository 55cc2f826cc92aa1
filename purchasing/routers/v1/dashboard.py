"""Dashboard aggregates (/api/v1/dashboard)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.config import settings
from purchasing.core.response import DataResponse
from purchasing.core.security import get_current_user
from purchasing.db.base import get_db
from purchasing.domain.user import User
from purchasing.schemas.dashboard import DashboardOut, ProjectStats
from purchasing.services.dashboard import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DataResponse[DashboardOut])
async def dashboard(
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await DashboardService(session, settings.default_client_id).overview()}


@router.get("/projects/{project_id}/stats", response_model=DataResponse[ProjectStats])
async def project_stats(
    project_id: str,
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await DashboardService(session, settings.default_client_id).project_stats(project_id)}
