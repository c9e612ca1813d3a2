"""项目相关的 API 响应模型。"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from reviewhub.models import ProjectCategory, ProjectStatus, QueueOrdering
from reviewhub.schemas.reviews import AnonymousReviewResponse, ReviewGivenResponse


class QueueFilter(BaseModel):
    """评审队列的筛选与排序参数。"""

    search: Optional[str] = None
    category: Optional[ProjectCategory] = None
    ordering: QueueOrdering = QueueOrdering.NEWEST
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)


class SubmitterBrief(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class ProjectResponse(BaseModel):
    id: int
    title: str
    description: str
    category: ProjectCategory
    tags: List[str]
    file_name: Optional[str]
    file_type: Optional[str]
    status: ProjectStatus
    submitter: SubmitterBrief
    review_count: int
    average_rating: float
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectDetailResponse(ProjectResponse):
    reviews: List[AnonymousReviewResponse] = Field(default_factory=list)


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class QueueResponse(BaseModel):
    projects: List[ProjectResponse]
    total: int


class DashboardStats(BaseModel):
    projects_submitted: int
    reviews_given: int
    reviews_received: int
    average_rating_received: float


class DashboardResponse(BaseModel):
    submitted_projects: List[ProjectDetailResponse]
    reviewed_projects: List[ProjectResponse]
    reviews_given: List[ReviewGivenResponse]
    stats: DashboardStats
