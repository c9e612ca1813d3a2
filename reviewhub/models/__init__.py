"""核心 SQLAlchemy 模型定义。"""

from reviewhub.models.enums import (
    PROJECT_STATUS_TRANSITIONS,
    SCORE_CRITERIA,
    IneligibilityReason,
    ProjectCategory,
    ProjectStatus,
    QueueOrdering,
    UserRole,
)
from reviewhub.models.user import User
from reviewhub.models.project import Project, ProjectTag, project_reviewers
from reviewhub.models.review import Review

__all__ = [
    "PROJECT_STATUS_TRANSITIONS",
    "SCORE_CRITERIA",
    "IneligibilityReason",
    "Project",
    "ProjectCategory",
    "ProjectStatus",
    "ProjectTag",
    "QueueOrdering",
    "Review",
    "User",
    "UserRole",
    "project_reviewers",
]
