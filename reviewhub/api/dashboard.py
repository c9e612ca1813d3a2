"""仪表盘API。"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reviewhub.api.auth import get_current_user
from reviewhub.api.reviews import build_given_response
from reviewhub.db import get_db
from reviewhub.models import User
from reviewhub.schemas.projects import DashboardResponse
from reviewhub.services.projects import project_service

router = APIRouter()


@router.get("", response_model=DashboardResponse)
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """我提交的项目、我评审过的项目、我写的评审以及统计。"""
    data = project_service.dashboard(db, current_user)
    return {
        "submitted_projects": data.submitted_projects,
        "reviewed_projects": data.reviewed_projects,
        "reviews_given": [build_given_response(review) for review in data.reviews_given],
        "stats": data.stats,
    }
