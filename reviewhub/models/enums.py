"""评审平台相关枚举定义 - 用户角色、项目分类与状态等。"""

import enum


class UserRole(str, enum.Enum):
    """用户角色枚举。

    由身份层维护的封闭集合，核心流程只读取、不据此鉴权。
    """
    LEARNER = "learner"              # 学习者
    INSTRUCTOR = "instructor"        # 教师
    ADMINISTRATOR = "administrator"  # 管理员


class ProjectCategory(str, enum.Enum):
    """项目分类。"""
    ESSAY = "essay"
    CODE = "code"
    ARTWORK = "artwork"
    VIDEO = "video"
    PRESENTATION = "presentation"
    RESEARCH = "research"
    OTHER = "other"


class ProjectStatus(str, enum.Enum):
    """项目状态。"""
    PENDING = "pending"              # 等待评审
    UNDER_REVIEW = "under_review"    # 评审中
    COMPLETED = "completed"          # 已完成
    ARCHIVED = "archived"            # 已归档


# 允许的状态迁移，归档为终态
PROJECT_STATUS_TRANSITIONS = {
    ProjectStatus.PENDING: {
        ProjectStatus.UNDER_REVIEW,
        ProjectStatus.COMPLETED,
        ProjectStatus.ARCHIVED,
    },
    ProjectStatus.UNDER_REVIEW: {
        ProjectStatus.PENDING,
        ProjectStatus.COMPLETED,
        ProjectStatus.ARCHIVED,
    },
    ProjectStatus.COMPLETED: {ProjectStatus.ARCHIVED},
    ProjectStatus.ARCHIVED: set(),
}


class QueueOrdering(str, enum.Enum):
    """评审队列排序方式，每次查询只使用一种。"""
    NEWEST = "newest"      # 按创建时间倒序（默认）
    OLDEST = "oldest"      # 按创建时间正序
    CATEGORY = "category"  # 按分类字典序


class IneligibilityReason(str, enum.Enum):
    """不能评审的原因。"""
    SELF_REVIEW = "self_review"
    ALREADY_REVIEWED = "already_reviewed"


# 评分维度，顺序即展示顺序
SCORE_CRITERIA = ("clarity", "quality", "originality", "technical", "presentation")
