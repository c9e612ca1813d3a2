"""项目模型定义 - 提交的作品及其派生评审统计。"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reviewhub.db import Base
from reviewhub.models.enums import ProjectCategory, ProjectStatus
from reviewhub.models.user import User


# 已完成评审的用户集合；联合主键保证同一用户只出现一次
project_reviewers = Table(
    "project_reviewers",
    Base.metadata,
    Column("project_id", ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "added_at",
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    ),
)


class Project(Base):
    """提交评审的项目。

    ``review_count`` 与 ``average_rating`` 是由聚合服务维护的派生字段，
    不要在其他地方直接写入。
    """

    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("review_count >= 0", name="ck_projects_review_count"),
        CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5", name="ck_projects_average_rating"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 基本信息
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ProjectCategory] = mapped_column(
        Enum(ProjectCategory), default=ProjectCategory.OTHER, nullable=False
    )

    # 附件引用，由文件存储层负责内容
    file_path: Mapped[Optional[str]] = mapped_column(String(512))
    file_name: Mapped[Optional[str]] = mapped_column(String(255))
    file_type: Mapped[Optional[str]] = mapped_column(String(100))

    # 提交者创建后不可变更
    submitter_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus), default=ProjectStatus.PENDING, nullable=False, index=True
    )

    # 派生统计
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    # 关系
    submitter: Mapped[User] = relationship(foreign_keys=[submitter_id])
    reviewers: Mapped[List[User]] = relationship(secondary=project_reviewers)
    tag_rows: Mapped[List["ProjectTag"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectTag.position",
    )
    reviews = relationship(
        "Review", back_populates="project", order_by="Review.created_at"
    )

    @property
    def tags(self) -> List[str]:
        return [row.name for row in self.tag_rows]

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, title={self.title!r}, status={self.status.value})>"


class ProjectTag(Base):
    """项目标签，保持提交时的顺序。"""

    __tablename__ = "project_tags"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_project_tags_project_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    project: Mapped[Project] = relationship(back_populates="tag_rows")
