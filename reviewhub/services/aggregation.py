"""评审统计聚合。

``Project.review_count`` / ``Project.average_rating`` 是评审集合的物化缓存：
每次写入评审后同步重算，另提供一次全量对账用于修复漂移。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reviewhub.errors import ProjectNotFound
from reviewhub.logging_config import get_logger
from reviewhub.models import Project, Review

logger = get_logger(__name__)

# 浮点比较容差
RATING_TOLERANCE = 1e-9


@dataclass
class ReconcileReport:
    checked: int = 0
    repaired_project_ids: List[int] = field(default_factory=list)
    failed_project_ids: List[int] = field(default_factory=list)


class AggregationEngine:
    """封装评审数与平均分的重算逻辑。"""

    def __init__(self) -> None:
        self._pending: Set[int] = set()
        self._lock = threading.Lock()

    def recompute(self, db: Session, project_id: int) -> Project:
        """按当前评审集合重算并写回项目的派生字段。

        计数与均值在同一条 UPDATE 的子查询中求出，不依赖之前读到的值，
        因此重复执行结果一致，与并发写入竞争时最多滞后一个周期。
        """

        count_query = (
            select(func.count(Review.id))
            .where(Review.project_id == project_id)
            .scalar_subquery()
        )
        average_query = (
            select(func.coalesce(func.avg(Review.overall_rating), 0.0))
            .where(Review.project_id == project_id)
            .scalar_subquery()
        )
        result = db.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(review_count=count_query, average_rating=average_query)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            raise ProjectNotFound(project_id)
        db.commit()

        project = db.get(Project, project_id)
        logger.debug(
            "aggregates_recomputed",
            project_id=project_id,
            review_count=project.review_count,
            average_rating=project.average_rating,
        )
        return project

    # === 修复队列 ===

    def schedule_repair(self, project_id: int) -> None:
        with self._lock:
            self._pending.add(project_id)

    def pending_repairs(self) -> Set[int]:
        with self._lock:
            return set(self._pending)

    def _drain_pending(self) -> Set[int]:
        with self._lock:
            pending, self._pending = self._pending, set()
        return pending

    def reconcile(
        self, db: Session, project_ids: Optional[Iterable[int]] = None
    ) -> ReconcileReport:
        """对账：重算指定项目（默认全部）以及待修复队列中的项目。

        每个项目单独提交，不跨项目加锁，可与正常的评审提交并行执行。
        """

        pending = self._drain_pending()
        if project_ids is None:
            targets = list(db.scalars(select(Project.id).order_by(Project.id)))
        else:
            targets = sorted(set(project_ids) | pending)

        report = ReconcileReport()
        for project_id in targets:
            before = db.execute(
                select(Project.review_count, Project.average_rating).where(
                    Project.id == project_id
                )
            ).one_or_none()
            if before is None:
                logger.warning("reconcile_project_missing", project_id=project_id)
                continue

            try:
                project = self.recompute(db, project_id)
            except SQLAlchemyError as exc:
                db.rollback()
                self.schedule_repair(project_id)
                report.failed_project_ids.append(project_id)
                logger.warning(
                    "aggregate_recompute_failed", project_id=project_id, error=str(exc)
                )
                continue

            report.checked += 1
            drifted = before.review_count != project.review_count or (
                abs(before.average_rating - project.average_rating) > RATING_TOLERANCE
            )
            if drifted:
                report.repaired_project_ids.append(project_id)

        logger.info(
            "aggregates_reconciled",
            checked=report.checked,
            repaired=len(report.repaired_project_ids),
            failed=len(report.failed_project_ids),
        )
        return report


aggregation_engine = AggregationEngine()
