"""评审API - 评审队列、资格查询、提交评审。"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from reviewhub.api.auth import get_current_user
from reviewhub.db import get_db
from reviewhub.models import ProjectCategory, QueueOrdering, Review, User
from reviewhub.schemas.projects import QueueFilter, QueueResponse
from reviewhub.schemas.reviews import (
    AnonymousReviewResponse,
    EligibilityResponse,
    HelpfulUpdate,
    ReviewCreate,
    ReviewGivenResponse,
)
from reviewhub.services.eligibility import check_eligibility
from reviewhub.services.projects import project_service
from reviewhub.services.queue import count_queue, queue_for
from reviewhub.services.reviews import review_recorder

router = APIRouter()


def build_given_response(review: Review) -> ReviewGivenResponse:
    base = AnonymousReviewResponse.model_validate(review, from_attributes=True)
    return ReviewGivenResponse(**base.model_dump(), project_title=review.project.title)


@router.get("/queue", response_model=QueueResponse)
def get_review_queue(
    search: Optional[str] = None,
    category: Optional[ProjectCategory] = None,
    ordering: QueueOrdering = QueueOrdering.NEWEST,
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """当前用户可评审的项目列表。"""
    filters = QueueFilter(
        search=search, category=category, ordering=ordering, limit=limit, offset=offset
    )
    projects = queue_for(db, current_user, filters)
    return {"projects": projects, "total": count_queue(db, current_user, filters)}


@router.get("/eligibility/{project_id}", response_model=EligibilityResponse)
def get_eligibility(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """是否可以评审该项目，仅供界面展示。"""
    project = project_service.get_project(db, project_id)
    reason = check_eligibility(db, current_user, project)
    return EligibilityResponse(project_id=project.id, can_review=reason is None, reason=reason)


@router.post("/", response_model=AnonymousReviewResponse, status_code=status.HTTP_201_CREATED)
def submit_review(
    data: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """提交评审。"""
    return review_recorder.submit_review(
        db,
        current_user,
        data.project_id,
        scores=data.scores,
        overall_rating=data.overall_rating,
        feedback=data.feedback,
    )


@router.get("/mine", response_model=List[ReviewGivenResponse])
def list_my_reviews(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """查看自己写过的评审。"""
    reviews = (
        db.query(Review)
        .filter(Review.reviewer_id == current_user.id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )
    return [build_given_response(review) for review in reviews]


@router.patch("/{review_id}/helpful", response_model=AnonymousReviewResponse)
def mark_review_helpful(
    review_id: int,
    data: HelpfulUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """项目提交者标记评审是否有帮助。"""
    return review_recorder.mark_helpful(db, current_user, review_id, data.is_helpful)
