"""
Dashboard counters for the admin home page.
"""

from rest_api.routers.admin._base import (
    APIRouter, AuthorizationSession, Depends, Permissions, Session,
    get_db, require_permission,
)
from shared.utils.admin_schemas import DashboardStatsOutput
from rest_api.services.domain import DashboardService


router = APIRouter(tags=["admin-dashboard"])


@router.get("/dashboard", response_model=DashboardStatsOutput)
def dashboard_stats(
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_permission(Permissions.VIEW_DASHBOARD)),
) -> DashboardStatsOutput:
    """Totals, today's orders and revenue (cancelled orders excluded), pending count."""
    return DashboardService(db).stats()
