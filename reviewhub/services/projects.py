"""项目提交、查询与仪表盘相关的服务函数。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from reviewhub.config import Settings, get_settings
from reviewhub.errors import (
    FieldValidationError,
    InvalidStatusTransition,
    PermissionDenied,
    ProjectNotFound,
)
from reviewhub.logging_config import get_logger
from reviewhub.models import (
    PROJECT_STATUS_TRANSITIONS,
    Project,
    ProjectCategory,
    ProjectStatus,
    ProjectTag,
    Review,
    User,
    project_reviewers,
)

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
TAG_MAX_LENGTH = 50


@dataclass
class FileReference:
    """文件存储层返回的附件引用，核心流程不读取文件内容。"""

    path: str
    name: str
    content_type: Optional[str] = None


@dataclass
class DashboardData:
    submitted_projects: List[Project]
    reviewed_projects: List[Project]
    reviews_given: List[Review]
    stats: Dict[str, float]


def normalize_tags(raw: Iterable[str] | str | None) -> List[str]:
    """拆分、去空白、按小写去重，保持首次出现的顺序。"""

    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    seen = set()
    tags: List[str] = []
    for item in items:
        tag = item.strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        tags.append(tag)
    return tags


class ProjectService:
    """封装项目的创建、状态变更与查询逻辑。"""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    def _validate(self, title: str, description: str, tags: List[str]) -> None:
        errors: List[Dict[str, str]] = []
        if not title:
            errors.append({"field": "title", "message": "标题不能为空"})
        elif len(title) > TITLE_MAX_LENGTH:
            errors.append({"field": "title", "message": f"标题不能超过 {TITLE_MAX_LENGTH} 个字符"})
        if not description:
            errors.append({"field": "description", "message": "描述不能为空"})
        elif len(description) > DESCRIPTION_MAX_LENGTH:
            errors.append(
                {"field": "description", "message": f"描述不能超过 {DESCRIPTION_MAX_LENGTH} 个字符"}
            )
        if len(tags) > self.settings.max_project_tags:
            errors.append(
                {"field": "tags", "message": f"标签最多 {self.settings.max_project_tags} 个"}
            )
        if any(len(tag) > TAG_MAX_LENGTH for tag in tags):
            errors.append({"field": "tags", "message": f"单个标签不能超过 {TAG_MAX_LENGTH} 个字符"})
        if errors:
            raise FieldValidationError(errors)

    def create_project(
        self,
        db: Session,
        submitter: User,
        title: str,
        description: str,
        category: ProjectCategory = ProjectCategory.OTHER,
        tags: Iterable[str] | str | None = None,
        file_ref: Optional[FileReference] = None,
    ) -> Project:
        title = (title or "").strip()
        description = (description or "").strip()
        tag_list = normalize_tags(tags)
        self._validate(title, description, tag_list)

        project = Project(
            title=title,
            description=description,
            category=category,
            submitter_id=submitter.id,
            status=ProjectStatus.PENDING,
            file_path=file_ref.path if file_ref else None,
            file_name=file_ref.name if file_ref else None,
            file_type=file_ref.content_type if file_ref else None,
            tag_rows=[ProjectTag(position=i, name=tag) for i, tag in enumerate(tag_list)],
        )
        db.add(project)
        db.commit()
        db.refresh(project)
        logger.info("project_submitted", project_id=project.id, submitter_id=submitter.id)
        return project

    def get_project(self, db: Session, project_id: int) -> Project:
        project = db.get(Project, project_id)
        if project is None:
            raise ProjectNotFound(project_id)
        return project

    def list_submitted(self, db: Session, user: User) -> List[Project]:
        return (
            db.query(Project)
            .options(selectinload(Project.tag_rows), selectinload(Project.reviews))
            .filter(Project.submitter_id == user.id)
            .order_by(Project.created_at.desc(), Project.id.desc())
            .all()
        )

    def change_status(
        self, db: Session, user: User, project_id: int, status: ProjectStatus
    ) -> Project:
        project = self.get_project(db, project_id)
        if project.submitter_id != user.id:
            raise PermissionDenied("只能修改自己提交的项目")
        if status == project.status:
            return project
        if status not in PROJECT_STATUS_TRANSITIONS[project.status]:
            raise InvalidStatusTransition(
                f"不能从 {project.status.value} 变更为 {status.value}"
            )

        previous = project.status
        project.status = status
        db.commit()
        db.refresh(project)
        logger.info(
            "project_status_changed",
            project_id=project.id,
            previous=previous.value,
            current=status.value,
        )
        return project

    def dashboard(self, db: Session, user: User) -> DashboardData:
        submitted = self.list_submitted(db, user)

        reviewed = (
            db.query(Project)
            .join(project_reviewers, project_reviewers.c.project_id == Project.id)
            .filter(project_reviewers.c.user_id == user.id)
            .order_by(Project.created_at.desc(), Project.id.desc())
            .all()
        )

        reviews_given = (
            db.query(Review)
            .options(selectinload(Review.project))
            .filter(Review.reviewer_id == user.id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )

        received_count, received_average = db.execute(
            select(func.count(Review.id), func.coalesce(func.avg(Review.overall_rating), 0.0))
            .join(Project, Project.id == Review.project_id)
            .where(Project.submitter_id == user.id)
        ).one()

        stats = {
            "projects_submitted": len(submitted),
            "reviews_given": len(reviews_given),
            "reviews_received": received_count,
            "average_rating_received": float(received_average),
        }
        return DashboardData(
            submitted_projects=submitted,
            reviewed_projects=reviewed,
            reviews_given=reviews_given,
            stats=stats,
        )


project_service = ProjectService()
