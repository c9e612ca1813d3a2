"""评审流程的领域异常。

API 层通过 ``create_app`` 中注册的异常处理器把这些异常统一转换为
``{"detail": ..., "code": ..., "errors": [...]}`` 响应。
"""

from typing import Any, Dict, List, Optional


class ReviewHubError(Exception):
    """所有领域异常的基类。"""

    code = "error"
    status_code = 400
    default_message = "请求无法处理"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ProjectNotFound(ReviewHubError):
    code = "project_not_found"
    status_code = 404
    default_message = "项目不存在"

    def __init__(self, project_id: Any) -> None:
        self.project_id = project_id
        super().__init__(f"项目不存在: {project_id}")


class ReviewNotFound(ReviewHubError):
    code = "review_not_found"
    status_code = 404
    default_message = "评审不存在"


class FieldValidationError(ReviewHubError):
    """输入不合法，``errors`` 中给出字段级明细。"""

    code = "validation_error"
    status_code = 422
    default_message = "提交的内容不合法"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None) -> None:
        self.errors = errors
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = self.errors
        return payload


class SelfReviewForbidden(ReviewHubError):
    code = "self_review_forbidden"
    status_code = 403
    default_message = "不能评审自己提交的项目"


class DuplicateReview(ReviewHubError):
    code = "duplicate_review"
    status_code = 409
    default_message = "你已经评审过该项目"


class PermissionDenied(ReviewHubError):
    code = "permission_denied"
    status_code = 403
    default_message = "无权执行该操作"


class InvalidStatusTransition(ReviewHubError):
    code = "invalid_status_transition"
    status_code = 409
    default_message = "不允许的项目状态变更"


class StoreUnavailable(ReviewHubError):
    """底层存储故障，调用方可以整体重试。"""

    code = "store_unavailable"
    status_code = 503
    default_message = "服务暂时不可用，请稍后重试"
