import asyncio
from io import BytesIO

import pytest
from fastapi import UploadFile

from reviewhub.config import Settings
from reviewhub.errors import FieldValidationError
from reviewhub.utils import storage
from reviewhub.utils.storage import save_upload_file


def _upload(name: str, data: bytes) -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=name)


def test_save_upload_file_writes_to_upload_dir(tmp_path):
    settings = Settings(upload_dir=tmp_path / "uploads")

    path = asyncio.run(save_upload_file(_upload("report.PDF", b"%PDF-1.4"), settings))

    assert path.parent == tmp_path / "uploads"
    assert path.suffix == ".pdf"
    assert path.read_bytes() == b"%PDF-1.4"


def test_rejects_unsupported_extension(tmp_path):
    settings = Settings(upload_dir=tmp_path)

    with pytest.raises(FieldValidationError):
        asyncio.run(save_upload_file(_upload("tool.exe", b"MZ"), settings))


def test_rejects_oversized_file(tmp_path):
    settings = Settings(upload_dir=tmp_path / "uploads", max_upload_bytes=4)

    with pytest.raises(FieldValidationError):
        asyncio.run(save_upload_file(_upload("notes.txt", b"too large"), settings))

    assert not (tmp_path / "uploads").exists()


class _CountingBytes(BytesIO):
    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.consumed = 0

    def read(self, size=-1):
        chunk = super().read(size)
        self.consumed += len(chunk)
        return chunk


def test_oversized_file_stops_reading_at_limit(tmp_path, monkeypatch):
    monkeypatch.setattr(storage, "UPLOAD_CHUNK_SIZE", 2)
    settings = Settings(upload_dir=tmp_path / "uploads", max_upload_bytes=4)
    body = _CountingBytes(b"x" * 100)

    with pytest.raises(FieldValidationError):
        asyncio.run(save_upload_file(UploadFile(file=body, filename="notes.txt"), settings))

    assert body.consumed == 6
