"""项目提交与查询API。"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from reviewhub.api.auth import get_current_user
from reviewhub.config import get_settings
from reviewhub.db import get_db
from reviewhub.models import ProjectCategory, User
from reviewhub.schemas.projects import (
    ProjectDetailResponse,
    ProjectResponse,
    ProjectStatusUpdate,
)
from reviewhub.services.projects import FileReference, project_service
from reviewhub.utils.storage import save_upload_file

router = APIRouter()


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def submit_project(
    title: str = Form(...),
    description: str = Form(...),
    category: ProjectCategory = Form(ProjectCategory.OTHER),
    tags: str = Form(""),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """提交新项目，标签以逗号分隔，附件可选。

    附件先落盘再建项目；建项目失败时删除已保存的附件。
    """
    path = None
    file_ref = None
    if file is not None and file.filename:
        path = await save_upload_file(file, get_settings())
        file_ref = FileReference(
            path=str(path), name=file.filename, content_type=file.content_type
        )

    try:
        return await run_in_threadpool(
            project_service.create_project,
            db,
            current_user,
            title=title,
            description=description,
            category=category,
            tags=tags,
            file_ref=file_ref,
        )
    except Exception:
        if path is not None:
            path.unlink(missing_ok=True)
        raise


@router.get("/mine", response_model=List[ProjectDetailResponse])
def list_my_projects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """查看自己提交的项目及收到的匿名评审。"""
    return project_service.list_submitted(db, current_user)


@router.get("/{project_id}", response_model=ProjectDetailResponse)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """项目详情，评审不包含评审者身份。"""
    return project_service.get_project(db, project_id)


@router.patch("/{project_id}/status", response_model=ProjectResponse)
def update_project_status(
    project_id: int,
    data: ProjectStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """提交者变更项目状态（如归档）。"""
    return project_service.change_status(db, current_user, project_id, data.status)
