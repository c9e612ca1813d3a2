"""API 路由包入口。"""

from fastapi import APIRouter

from reviewhub.api import admin, auth, dashboard, projects, reviews

router = APIRouter(prefix="/api")

# 注册子路由
router.include_router(auth.router, prefix="/auth", tags=["认证"])
router.include_router(projects.router, prefix="/projects", tags=["项目"])
router.include_router(reviews.router, prefix="/reviews", tags=["评审"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["仪表盘"])
router.include_router(admin.router, prefix="/admin", tags=["管理"])
