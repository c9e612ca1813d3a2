"""管理端API - 统计对账。"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from reviewhub.api.auth import require_administrator
from reviewhub.db import get_db
from reviewhub.models import User
from reviewhub.schemas.reviews import ReconcileResponse
from reviewhub.services.aggregation import aggregation_engine

router = APIRouter()


@router.post("/aggregates/reconcile", response_model=ReconcileResponse)
def reconcile_aggregates(
    project_ids: Optional[List[int]] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_administrator),
):
    """重算项目的评审数与平均分，修复漂移。"""
    report = aggregation_engine.reconcile(db, project_ids)
    return ReconcileResponse(
        checked=report.checked,
        repaired_project_ids=report.repaired_project_ids,
        failed_project_ids=report.failed_project_ids,
    )
