from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from parish.core.dependencies import require_view_adherents
from parish.db.base import get_db
from parish.models.user import User
from parish.schemas.report import DashboardResponse, NeighborhoodResponse, RecentAdherent
from parish.services.stats import MemberStats, member_stats

router = APIRouter(prefix="/api", tags=["dashboard"])


def _response(stats: MemberStats) -> DashboardResponse:
    return DashboardResponse(
        total_members=stats.total,
        new_this_month=stats.new_this_month,
        men=stats.men,
        women=stats.women,
        communicants=stats.communicants,
        groups=stats.groups,
        top_neighborhoods=[NeighborhoodResponse(**vars(n)) for n in stats.top_neighborhoods],
        recent_members=[RecentAdherent.model_validate(m) for m in stats.recent],
    )


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    return _response(member_stats(db))


@router.get("/statistics", response_model=DashboardResponse)
def statistics(
    current_user: User = Depends(require_view_adherents),
    db: Session = Depends(get_db)
):
    """Same figures as the dashboard with a longer list of recent registrations."""
    return _response(member_stats(db, recent_limit=20))
