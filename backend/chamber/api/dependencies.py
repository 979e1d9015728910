from dataclasses import dataclass
from typing import Optional
from uuid import UUID
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError
import logging

from ..database.session import get_db
from ..core.exceptions import UnauthenticatedError, UnauthorizedError
from ..core.security import verify_token
from ..crud.user_crud import user_crud
from ..services.permission_service import PermissionService

logger = logging.getLogger(__name__)

# 자격 증명이 없을 때 403 대신 401 을 내기 위해 직접 처리
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentIdentity:
    """
    토큰에서 얻은 호출자 정보
    role 은 힌트일 뿐이며 실제 권한은 PermissionService 가 판단합니다.
    """
    user_id: UUID
    email: Optional[str] = None
    role: Optional[str] = None


def get_permission_service(request: Request) -> PermissionService:
    return request.app.state.permission_service


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> CurrentIdentity:
    if credentials is None:
        raise UnauthenticatedError("인증이 필요합니다", code="missing_credentials")

    try:
        payload = verify_token(credentials.credentials)
        user_id = UUID(str(payload.get("sub")))
    except (JWTError, ValueError):
        raise UnauthenticatedError("Could not validate credentials", code="invalid_token")

    email = payload.get("email")
    role = payload.get("role")

    # 역할 정보가 없는 토큰은 거부하지 않고 DB 에서 다시 조회
    if not role:
        user = await user_crud.get(db, id=user_id)
        if user is None or not user.is_active:
            raise UnauthenticatedError("Could not validate credentials", code="unknown_user")
        email = email or user.email
        role = user.role
        logger.debug(f"Token without role resolved from database: {user_id}")

    return CurrentIdentity(user_id=user_id, email=email, role=role)


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[CurrentIdentity]:
    if credentials is None:
        return None
    try:
        return await get_current_identity(credentials, db)
    except UnauthenticatedError:
        return None


async def ensure_permission(
    db: AsyncSession,
    permission_service: PermissionService,
    identity: CurrentIdentity,
    *keys: str,
    mode: str = "all"
) -> None:
    """리소스를 조회한 뒤에야 알 수 있는 권한 키 확인 (예: '<postType>.update')"""
    if mode == "any":
        allowed = await permission_service.has_any_permission(db, identity.user_id, keys)
    else:
        allowed = await permission_service.has_all_permissions(db, identity.user_id, keys)
    if not allowed:
        logger.warning(f"Permission denied: user={identity.user_id} required={list(keys)} mode={mode}")
        raise UnauthorizedError(keys, mode=mode)


def require_permission(*keys: str, mode: str = "all"):
    """
    라우트 권한 가드

    Depends(require_permission("event.attendee.manage")) 처럼 사용하며
    인증되지 않았으면 401, 권한이 없으면 403 을 반환합니다.
    """
    if mode not in ("all", "any"):
        raise ValueError(f"Unsupported permission mode: {mode}")

    async def permission_guard(
        identity: CurrentIdentity = Depends(get_current_identity),
        db: AsyncSession = Depends(get_db),
        permission_service: PermissionService = Depends(get_permission_service)
    ) -> CurrentIdentity:
        await ensure_permission(db, permission_service, identity, *keys, mode=mode)
        return identity

    return permission_guard
