import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from ledgerapi.config import settings
from ledgerapi.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
)
from ledgerapi.database.session import get_db
from ledgerapi.repositories.user_repository import UserRepository
from ledgerapi.schemas.user import User as UserSchema


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    return encoded_jwt


# Security scheme
security = HTTPBearer()


class TokenPayload(BaseModel):
    sub: uuid.UUID  # subject, the user's id


def verify_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> uuid.UUID:
    """JWT 토큰을 검증하고 user_id를 반환합니다."""
    token = credentials.credentials
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        token_data = TokenPayload.model_validate(payload)
        return token_data.sub
    except (JWTError, ValidationError) as e:
        raise AuthenticationError("Invalid authentication credentials") from e


def get_current_user(
    user_id: uuid.UUID = Depends(verify_token), db: Session = Depends(get_db)
) -> UserSchema:
    """현재 인증된 사용자 정보 조회"""
    user_repo = UserRepository(db)
    user = user_repo.get_by_id(user_id)
    if not user or not user.is_active:
        raise NotFoundError("User not found")
    return user


def require_admin(current_user: UserSchema = Depends(get_current_user)) -> UserSchema:
    """관리자 권한 확인"""
    if not current_user.is_admin:
        raise AuthorizationError("Admin privileges required")
    return current_user
