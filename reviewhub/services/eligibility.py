"""评审资格判断。

规则按顺序检查，第一条不满足即判定为不可评审：

1. 不能评审自己提交的项目；
2. 同一用户对同一项目只能评审一次。

结果仅供界面提示，提交时评审记录服务会在写入时再次校验。
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from reviewhub.models import IneligibilityReason, Project, Review, User


def has_reviewed(db: Session, project_id: int, user_id: int) -> bool:
    stmt = select(
        exists().where(Review.project_id == project_id, Review.reviewer_id == user_id)
    )
    return bool(db.execute(stmt).scalar())


def check_eligibility(
    db: Session, user: User, project: Project
) -> Optional[IneligibilityReason]:
    """返回第一条不满足的规则，全部满足时返回 ``None``。"""

    if project.submitter_id == user.id:
        return IneligibilityReason.SELF_REVIEW
    if has_reviewed(db, project.id, user.id):
        return IneligibilityReason.ALREADY_REVIEWED
    return None


def can_review(db: Session, user: User, project: Project) -> bool:
    return check_eligibility(db, user, project) is None
