"""用户认证API - 简化版本（无外部JWT依赖）。

评审核心只信任这里解析出的 ``User``，不做任何凭据校验。
"""

import base64
import hashlib
import hmac
import json
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Form, Header, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from reviewhub.config import get_settings
from reviewhub.db import get_db
from reviewhub.logging_config import get_logger
from reviewhub.models import User, UserRole

router = APIRouter()
logger = get_logger(__name__)

PBKDF2_ITERATIONS = 120_000


# === Schemas ===

class Token(BaseModel):
    access_token: str
    token_type: str


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=100)
    role: UserRole = UserRole.LEARNER


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: UserRole
    is_active: bool

    model_config = {"from_attributes": True}


# === 密码与Token工具函数 ===

def hash_password(password: str, salt: Optional[str] = None) -> str:
    """PBKDF2 哈希，结果格式为 ``salt$hexdigest``。"""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS
    ).hex()
    return f"{salt}${digest}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    salt, _, _digest = hashed_password.partition("$")
    return hmac.compare_digest(hash_password(plain_password, salt), hashed_password)


def create_token(user_id: int, role: str) -> str:
    """创建签名Token。"""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.token_expire_hours)
    payload = {"sub": user_id, "role": role, "exp": expire.isoformat()}
    payload_b64 = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()
    signature = hmac.new(
        settings.secret_key.encode(), payload_b64.encode(), hashlib.sha256
    ).hexdigest()
    return f"{payload_b64}.{signature}"


def decode_token(token: str) -> Optional[dict]:
    """解码Token，签名不符或已过期时返回 None。"""
    settings = get_settings()
    parts = token.split(".")
    if len(parts) != 2:
        return None
    payload_b64, signature = parts
    expected_sig = hmac.new(
        settings.secret_key.encode(), payload_b64.encode(), hashlib.sha256
    ).hexdigest()
    if not hmac.compare_digest(signature, expected_sig):
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64).decode())
        exp = datetime.fromisoformat(payload["exp"])
    except (ValueError, KeyError, TypeError):
        return None
    if datetime.now(timezone.utc) > exp:
        return None
    return payload


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """从Token获取当前用户。"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="无法验证凭据",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not authorization or not authorization.startswith("Bearer "):
        raise credentials_exception

    payload = decode_token(authorization[7:])
    if not payload or payload.get("sub") is None:
        raise credentials_exception

    user = db.get(User, payload["sub"])
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="账号已停用")
    return user


def require_administrator(current_user: User = Depends(get_current_user)) -> User:
    """要求管理员权限。"""
    if current_user.role != UserRole.ADMINISTRATOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="需要管理员权限"
        )
    return current_user


# === API 端点 ===

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """用户注册。"""
    if get_user_by_email(db, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="该邮箱已注册"
        )

    user = User(
        email=user_data.email.strip().lower(),
        password_hash=hash_password(user_data.password),
        name=user_data.name.strip(),
        role=user_data.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_registered", user_id=user.id, role=user.role.value)
    return user


@router.post("/login", response_model=Token)
def login(
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db)
):
    """用户登录，返回Token。"""
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="邮箱或密码错误",
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="账号已停用")

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()

    access_token = create_token(user.id, user.role.value)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """获取当前登录用户信息。"""
    return current_user
