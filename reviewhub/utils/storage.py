"""项目附件的存储工具。"""

from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile

from reviewhub.config import Settings
from reviewhub.errors import FieldValidationError

UPLOAD_CHUNK_SIZE = 64 * 1024


def ensure_directory(path: Path) -> None:
    """确保目录存在。"""

    path.mkdir(parents=True, exist_ok=True)


def _extension(filename: str) -> str:
    return Path(filename).suffix.lower().lstrip(".")


def build_destination(settings: Settings, filename: str) -> Path:
    """按时间戳生成不重名的存储路径，保留原扩展名。"""

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    suffix = Path(filename).suffix.lower()
    return settings.upload_dir / f"{stamp}_{uuid4().hex[:8]}{suffix}"


async def save_upload_file(upload: UploadFile, settings: Settings) -> Path:
    """校验扩展名与大小后保存上传文件，返回存储路径。

    分块读取，累计超过 ``max_upload_bytes`` 立即拒绝，不落盘。
    """

    filename = upload.filename or ""
    if _extension(filename) not in settings.allowed_upload_extensions:
        raise FieldValidationError(
            [{"field": "file", "message": "不支持的文件类型"}]
        )

    chunks = []
    size = 0
    while True:
        chunk = await upload.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > settings.max_upload_bytes:
            raise FieldValidationError(
                [{"field": "file", "message": f"文件不能超过 {settings.max_upload_bytes} 字节"}]
            )
        chunks.append(chunk)

    destination = build_destination(settings, filename)
    ensure_directory(destination.parent)
    with destination.open("wb") as f:
        for chunk in chunks:
            f.write(chunk)
    await upload.seek(0)
    return destination
