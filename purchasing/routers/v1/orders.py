"""Purchase order routes (/api/v1/orders)."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.config import settings
from purchasing.core.pagination import PaginationParams
from purchasing.core.response import DataResponse, ListResponse, paginated
from purchasing.core.security import get_current_user
from purchasing.db.base import get_db
from purchasing.domain.user import User
from purchasing.schemas.email import EmailResult
from purchasing.schemas.order import (
    AttachmentOut,
    DraftProcessingResult,
    OrderEmailRequest,
    OrderOut,
    OrderSummary,
    StatusUpdate,
)
from purchasing.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


def _svc(session: AsyncSession) -> OrderService:
    return OrderService(session, settings.default_client_id)


@router.get("", response_model=ListResponse[OrderSummary])
async def list_orders(
    filter_status: Optional[str] = Query(default=None, alias="status"),
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    vendor_id: Optional[str] = Query(default=None, alias="vendorId"),
    pagination: PaginationParams = Depends(),
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """List orders (paginated). Filter by ?status=&projectId=&vendorId=."""
    items, total = await _svc(session).list_orders(
        pagination, status=filter_status, project_id=project_id, vendor_id=vendor_id,
    )
    return paginated(
        [OrderSummary.model_validate(o) for o in items],
        total, pagination.page, pagination.limit,
    )


@router.post("/process-drafts", response_model=DataResponse[DraftProcessingResult])
async def process_drafts(
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Generate PDFs for drafts without one and move them to ``created``."""
    return {"data": await _svc(session).process_drafts(limit, user_id=user.id)}


@router.get("/{order_id}", response_model=DataResponse[OrderOut])
async def get_order(
    order_id: str,
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    order = await _svc(session).get_order(order_id)
    return {"data": OrderOut.model_validate(order)}


@router.post("/{order_id}/status", response_model=DataResponse[OrderOut])
async def change_status(
    order_id: str,
    body: StatusUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    order = await _svc(session).change_status(order_id, body.status, user_id=user.id, reason=body.reason)
    return {"data": OrderOut.model_validate(order)}


@router.post("/{order_id}/pdf", response_model=DataResponse[AttachmentOut], status_code=status.HTTP_201_CREATED)
async def generate_pdf(
    order_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    attachment = await _svc(session).generate_pdf(order_id, user_id=user.id)
    return {"data": AttachmentOut.model_validate(attachment)}


@router.post("/{order_id}/send-email", response_model=DataResponse[EmailResult])
async def send_order_email(
    order_id: str,
    body: OrderEmailRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Email the order PDF (vendor address unless ``to`` is given) and mark it sent."""
    return {"data": await _svc(session).send_email(order_id, body, user_id=user.id)}
