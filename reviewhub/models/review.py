"""评审模型定义。"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reviewhub.db import Base
from reviewhub.models.enums import SCORE_CRITERIA


def _score_range(column: str) -> CheckConstraint:
    return CheckConstraint(f"{column} BETWEEN 1 AND 5", name=f"ck_reviews_{column}_range")


class Review(Base):
    """单个评审者对单个项目的结构化评审。

    (project_id, reviewer_id) 上的唯一约束是"每人每项目只评一次"的最终保证，
    应用层的预检查只用于给出友好的提示。
    """

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("project_id", "reviewer_id", name="uq_reviews_project_reviewer"),
        *(_score_range(name) for name in SCORE_CRITERIA),
        _score_range("overall_rating"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 关联，创建后不可变更
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reviewer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # 各维度得分 1-5
    clarity: Mapped[int] = mapped_column(Integer, nullable=False)
    quality: Mapped[int] = mapped_column(Integer, nullable=False)
    originality: Mapped[int] = mapped_column(Integer, nullable=False)
    technical: Mapped[int] = mapped_column(Integer, nullable=False)
    presentation: Mapped[int] = mapped_column(Integer, nullable=False)

    # 总评 1-5，由评审者独立给出，不由各维度推导
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)

    # 文字反馈
    strengths: Mapped[str] = mapped_column(Text, nullable=False)
    weaknesses: Mapped[str] = mapped_column(Text, nullable=False)
    suggestions: Mapped[Optional[str]] = mapped_column(Text)
    general: Mapped[Optional[str]] = mapped_column(Text)

    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # 由项目提交者标记
    is_helpful: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    # 关系
    project = relationship("Project", back_populates="reviews")
    reviewer = relationship("User", foreign_keys=[reviewer_id])

    @property
    def scores(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in SCORE_CRITERIA}

    @property
    def criteria_average(self) -> float:
        """五个维度的平均分，仅供展示。"""
        scores = self.scores.values()
        return sum(scores) / len(SCORE_CRITERIA)

    def __repr__(self) -> str:
        return (
            f"<Review(id={self.id}, project_id={self.project_id}, "
            f"overall_rating={self.overall_rating})>"
        )
