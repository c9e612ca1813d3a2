"""FastAPI 入口，负责日志、数据库初始化与异常映射。"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from reviewhub.api import router as api_router
from reviewhub.config import get_settings
from reviewhub.db import Base, engine
from reviewhub.errors import FieldValidationError, ReviewHubError, StoreUnavailable
from reviewhub.logging_config import configure_logging, get_logger
from reviewhub.migrations import run_migrations
from reviewhub.utils.storage import ensure_directory

logger = get_logger(__name__)


def init_models() -> None:
    """确保表存在，并对旧的 SQLite 库执行补丁迁移。"""

    db_path = engine.url.database
    if engine.url.get_backend_name() == "sqlite" and db_path and db_path != ":memory:":
        ensure_directory(Path(db_path).parent)
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)


def create_app() -> FastAPI:
    """应用工厂，便于测试与拓展路由。"""

    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(level=settings.log_level, json_format=settings.log_json)
        init_models()
        logger.info("application_started", database=engine.url.render_as_string())
        yield
        logger.info("application_stopped")

    app = FastAPI(title="Peer Review Hub API", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(ReviewHubError)
    async def handle_domain_error(request: Request, exc: ReviewHubError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # 请求体结构错误与服务端校验失败使用同一响应格式
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        error = FieldValidationError(errors)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def handle_store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("store_error", path=request.url.path, error=str(exc))
        error = StoreUnavailable()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(api_router)
    return app


app = create_app()
