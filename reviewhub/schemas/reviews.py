"""评审相关的 Pydantic 模型。

``ReviewSubmission`` 是服务端校验的唯一入口：无论客户端是否已经校验，
评审记录服务都会用它重新校验一遍。
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from reviewhub.models import IneligibilityReason

FEEDBACK_MAX_LENGTH = 1000

# 严格整数：拒绝 True、4.0、"4" 之类的值
Score = Annotated[int, Field(strict=True, ge=1, le=5)]


class ReviewScores(BaseModel):
    clarity: Score
    quality: Score
    originality: Score
    technical: Score
    presentation: Score

    model_config = {"extra": "forbid"}


class ReviewFeedback(BaseModel):
    strengths: str
    weaknesses: str
    suggestions: Optional[str] = None
    general: Optional[str] = None

    model_config = {"extra": "forbid", "str_strip_whitespace": True}

    @field_validator("strengths", "weaknesses")
    @classmethod
    def _required_text(cls, value: str) -> str:
        if not value:
            raise ValueError("不能为空")
        return value

    @field_validator("strengths", "weaknesses", "suggestions", "general")
    @classmethod
    def _max_length(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if len(value) > FEEDBACK_MAX_LENGTH:
            raise ValueError(f"不能超过 {FEEDBACK_MAX_LENGTH} 个字符")
        # 可选字段去空白后为空时按未填写处理
        return value or None


class ReviewSubmission(BaseModel):
    scores: ReviewScores
    overall_rating: Score
    feedback: ReviewFeedback


# === API Schemas ===

class ReviewCreate(BaseModel):
    """提交评审的请求体。

    字段类型保持宽松，具体校验由评审记录服务统一完成，
    以便返回字段级的 ``validation_error``。
    """

    project_id: int
    scores: Dict[str, Any] = Field(default_factory=dict)
    overall_rating: Any = None
    feedback: Dict[str, Any] = Field(default_factory=dict)


class AnonymousReviewResponse(BaseModel):
    """提交者看到的评审，不包含评审者身份。"""

    id: int
    project_id: int
    scores: Dict[str, int]
    overall_rating: int
    criteria_average: float
    strengths: str
    weaknesses: str
    suggestions: Optional[str]
    general: Optional[str]
    is_anonymous: bool
    is_helpful: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ReviewGivenResponse(AnonymousReviewResponse):
    """评审者查看自己写过的评审。"""

    project_title: str


class HelpfulUpdate(BaseModel):
    is_helpful: bool


class EligibilityResponse(BaseModel):
    project_id: int
    can_review: bool
    reason: Optional[IneligibilityReason] = None


class ReconcileResponse(BaseModel):
    checked: int
    repaired_project_ids: List[int]
    failed_project_ids: List[int] = Field(default_factory=list)
