"""Dashboard aggregates."""

from pydantic import Field

from purchasing.schemas.common import CamelModel
from purchasing.schemas.order import OrderSummary


class DashboardTotals(CamelModel):
    total_orders: int = 0
    total_amount: float = 0
    pending_orders: int = 0
    active_projects: int = 0
    active_vendors: int = 0


class DashboardOut(CamelModel):
    totals: DashboardTotals
    status_counts: dict[str, int] = Field(default_factory=dict)
    recent_orders: list[OrderSummary] = Field(default_factory=list)


class ProjectStats(CamelModel):
    project_id: str
    project_name: str
    total_orders: int = 0
    completed_orders: int = 0
    pending_orders: int = 0
    total_amount: float = 0
    completion_rate: float = 0
