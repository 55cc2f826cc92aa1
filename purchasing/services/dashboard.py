"""Dashboard aggregates computed straight from the order tables."""

from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.exceptions import NotFoundError
from purchasing.domain.order import OrderStatus
from purchasing.repositories.order import PurchaseOrderRepository
from purchasing.repositories.project import ProjectRepository
from purchasing.repositories.vendor import VendorRepository
from purchasing.schemas.dashboard import DashboardOut, DashboardTotals, ProjectStats
from purchasing.schemas.order import OrderSummary

RECENT_ORDERS = 5


class DashboardService:
    def __init__(self, session: AsyncSession, client_id: str):
        self._orders = PurchaseOrderRepository(session, client_id)
        self._projects = ProjectRepository(session, client_id)
        self._vendors = VendorRepository(session, client_id)

    async def overview(self) -> DashboardOut:
        counts = await self._orders.count_by_status()
        totals = DashboardTotals(
            total_orders=sum(counts.values()),
            total_amount=float(await self._orders.total_amount()),
            pending_orders=counts[OrderStatus.DRAFT] + counts[OrderStatus.CREATED],
            active_projects=await self._projects.count({"status": "active", "is_active": True}),
            active_vendors=await self._vendors.count({"is_active": True}),
        )
        recent = await self._orders.recent(RECENT_ORDERS)
        return DashboardOut(
            totals=totals,
            status_counts=counts,
            recent_orders=[OrderSummary.model_validate(o) for o in recent],
        )

    async def project_stats(self, project_id: str) -> ProjectStats:
        project = await self._projects.get_by_id(project_id)
        if not project:
            raise NotFoundError("Project", project_id)

        counts = await self._orders.count_by_status(project_id)
        total = sum(counts.values())
        completed = counts[OrderStatus.DELIVERED]
        return ProjectStats(
            project_id=project.id,
            project_name=project.project_name,
            total_orders=total,
            completed_orders=completed,
            pending_orders=counts[OrderStatus.DRAFT] + counts[OrderStatus.CREATED],
            total_amount=float(await self._orders.total_amount({"project_id": project_id})),
            completion_rate=round(completed / total * 100, 1) if total else 0.0,
        )
