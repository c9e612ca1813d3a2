"""应用配置管理。

使用 Pydantic Settings 统一读取环境变量，便于在本地/生产之间切换。
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """核心配置项。

    - ``database_url``：默认使用本地 SQLite，便于快速启动。
    - ``upload_dir``：项目附件的存储目录。
    - ``review_queue_limit``：待评审队列单次返回的默认条数。
    """

    database_url: str = Field(
        default="sqlite:///./storage/reviewhub.db", description="SQLAlchemy 数据库 URL"
    )
    upload_dir: Path = Field(
        default=Path("./storage/uploads"), description="项目附件存储目录"
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024, description="单个附件大小上限（字节）"
    )
    allowed_upload_extensions: List[str] = Field(
        default=[
            "jpeg", "jpg", "png", "gif", "pdf", "doc", "docx", "txt",
            "js", "jsx", "ts", "tsx", "py", "java", "cpp", "c", "html", "css",
        ],
        description="允许上传的文件扩展名",
    )

    secret_key: str = Field(
        default="change-me-in-production", description="Token 签名密钥"
    )
    token_expire_hours: int = Field(default=24, description="Token 有效期（小时）")

    review_queue_limit: int = Field(default=10, ge=1, description="评审队列默认条数")
    review_queue_max_limit: int = Field(default=50, ge=1, description="评审队列最大条数")
    max_project_tags: int = Field(default=5, ge=1, description="单个项目的标签上限")

    log_level: str = Field(default="INFO", description="日志级别")
    log_json: bool = Field(default=True, description="是否输出 JSON 格式日志")

    model_config = {
        "env_prefix": "REVIEWHUB_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """缓存后的全局配置实例。"""

    return Settings()
