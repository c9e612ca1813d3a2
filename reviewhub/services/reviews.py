"""评审记录服务：校验、写入评审并触发统计重算。"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reviewhub.errors import (
    DuplicateReview,
    FieldValidationError,
    PermissionDenied,
    ProjectNotFound,
    ReviewHubError,
    ReviewNotFound,
    SelfReviewForbidden,
    StoreUnavailable,
)
from reviewhub.logging_config import get_logger
from reviewhub.models import IneligibilityReason, Project, Review, User, project_reviewers
from reviewhub.schemas.reviews import ReviewSubmission
from reviewhub.services.aggregation import AggregationEngine, aggregation_engine
from reviewhub.services.eligibility import check_eligibility

logger = get_logger(__name__)

Payload = Union[BaseModel, Mapping[str, Any], None]


def _as_dict(value: Payload) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if value is None:
        return {}
    return value


def validate_submission(
    scores: Payload, overall_rating: Any, feedback: Payload
) -> ReviewSubmission:
    """校验评分与反馈，失败时抛出带字段明细的 ``FieldValidationError``。"""

    try:
        return ReviewSubmission.model_validate(
            {
                "scores": _as_dict(scores),
                "overall_rating": overall_rating,
                "feedback": _as_dict(feedback),
            }
        )
    except ValidationError as exc:
        errors: List[Dict[str, str]] = [
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        raise FieldValidationError(errors) from exc


@contextmanager
def _store_errors(db: Session) -> Iterator[None]:
    """把底层存储异常统一转换为 ``StoreUnavailable``，并回滚未提交的改动。"""

    try:
        yield
    except (ReviewHubError, IntegrityError):
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("review_store_failed", error=str(exc))
        raise StoreUnavailable() from exc


class ReviewRecorder:
    """评审写入流程。

    评审记录与评审者集合的追加在同一个事务中提交；
    统计重算在提交之后进行，失败只记录日志并进入修复队列，不回滚评审。
    """

    def __init__(self, aggregation: Optional[AggregationEngine] = None) -> None:
        self.aggregation = aggregation or aggregation_engine

    def submit_review(
        self,
        db: Session,
        reviewer: User,
        project_id: int,
        scores: Payload,
        overall_rating: Any,
        feedback: Payload,
    ) -> Review:
        with _store_errors(db):
            project = db.get(Project, project_id)
            if project is None:
                raise ProjectNotFound(project_id)

            submission = validate_submission(scores, overall_rating, feedback)

            reason = check_eligibility(db, reviewer, project)
            if reason == IneligibilityReason.SELF_REVIEW:
                raise SelfReviewForbidden()
            if reason == IneligibilityReason.ALREADY_REVIEWED:
                raise DuplicateReview()

            review = Review(
                project_id=project.id,
                reviewer_id=reviewer.id,
                overall_rating=submission.overall_rating,
                is_anonymous=True,
                **submission.scores.model_dump(),
                **submission.feedback.model_dump(),
            )
            try:
                db.add(review)
                # 唯一约束在此处生效，预检查与写入之间的并发提交会在这里被拦下
                db.flush()
                self._append_reviewer(db, project.id, reviewer.id)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                logger.info(
                    "duplicate_review_rejected",
                    project_id=project_id,
                    reviewer_id=reviewer.id,
                )
                raise DuplicateReview() from exc

        review_id = review.id
        logger.info(
            "review_submitted",
            review_id=review_id,
            project_id=project_id,
            overall_rating=submission.overall_rating,
        )

        try:
            self.aggregation.recompute(db, project_id)
        except SQLAlchemyError as exc:
            db.rollback()
            self.aggregation.schedule_repair(project_id)
            logger.warning(
                "aggregate_recompute_failed", project_id=project_id, error=str(exc)
            )

        return review

    def _append_reviewer(self, db: Session, project_id: int, user_id: int) -> None:
        """并集语义追加评审者，已存在时不重复写入。"""

        existing = db.execute(
            select(project_reviewers.c.user_id).where(
                project_reviewers.c.project_id == project_id,
                project_reviewers.c.user_id == user_id,
            )
        ).first()
        if existing is None:
            db.execute(insert(project_reviewers).values(project_id=project_id, user_id=user_id))

    def mark_helpful(
        self, db: Session, user: User, review_id: int, is_helpful: bool
    ) -> Review:
        """项目提交者标记评审是否有帮助，评审内容本身不变。"""

        review = db.get(Review, review_id)
        if review is None:
            raise ReviewNotFound()
        if review.project.submitter_id != user.id:
            raise PermissionDenied("只有项目提交者可以标记评审")

        review.is_helpful = is_helpful
        db.commit()
        db.refresh(review)
        return review


review_recorder = ReviewRecorder()
