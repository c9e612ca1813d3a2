"""评审队列：列出某个用户当前可以评审的项目。"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Query, Session, selectinload

from reviewhub.config import Settings, get_settings
from reviewhub.models import Project, ProjectStatus, ProjectTag, QueueOrdering, User
from reviewhub.schemas.projects import QueueFilter


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _resolve_limit(requested: Optional[int], settings: Settings) -> int:
    if requested is None:
        return settings.review_queue_limit
    return max(1, min(requested, settings.review_queue_max_limit))


def _eligible_query(db: Session, user: User, filters: QueueFilter) -> Query:
    """选择条件：状态为 pending、提交者不是本人、本人不在评审者集合中，再叠加分类与搜索。"""

    query = db.query(Project).filter(
        Project.status == ProjectStatus.PENDING,
        Project.submitter_id != user.id,
        ~Project.reviewers.any(User.id == user.id),
    )

    if filters.category is not None:
        query = query.filter(Project.category == filters.category)

    search = (filters.search or "").strip()
    if search:
        pattern = _like_pattern(search)
        query = query.filter(
            or_(
                Project.title.ilike(pattern, escape="\\"),
                Project.description.ilike(pattern, escape="\\"),
                Project.tag_rows.any(ProjectTag.name.ilike(pattern, escape="\\")),
            )
        )
    return query


def queue_for(
    db: Session,
    user: User,
    filters: Optional[QueueFilter] = None,
    settings: Optional[Settings] = None,
) -> List[Project]:
    """返回 ``user`` 可评审的项目（当前页）。"""

    filters = filters or QueueFilter()
    settings = settings or get_settings()

    query = _eligible_query(db, user, filters).options(
        selectinload(Project.tag_rows), selectinload(Project.submitter)
    )

    if filters.ordering == QueueOrdering.OLDEST:
        query = query.order_by(Project.created_at.asc(), Project.id.asc())
    elif filters.ordering == QueueOrdering.CATEGORY:
        # 转为文本再排序，避免原生枚举按声明顺序排列
        query = query.order_by(
            cast(Project.category, String).asc(),
            Project.created_at.desc(),
            Project.id.desc(),
        )
    else:
        query = query.order_by(Project.created_at.desc(), Project.id.desc())

    limit = _resolve_limit(filters.limit, settings)
    return query.offset(filters.offset).limit(limit).all()


def count_queue(db: Session, user: User, filters: Optional[QueueFilter] = None) -> int:
    """符合条件的项目总数，不受分页影响。"""

    return _eligible_query(db, user, filters or QueueFilter()).count()
