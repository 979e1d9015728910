from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ...database.session import get_db
from ...api.dependencies import (
    CurrentIdentity, get_current_identity, get_permission_service, require_permission,
)
from ...core.constants import PERMISSION_MANAGE_MEMBERS
from ...schemas.acl import MembershipAssign, MembershipInfo, PermissionsResponse
from ...schemas.registration import RegistrationResponse, UserRegistrationResponse
from ...services import membership_service, registration_service
from ...services.content_access import resolve_content_access
from ...services.permission_service import PermissionService
from .posts import build_post_response, build_post_summary

router = APIRouter(tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/user/registrations", response_model=List[UserRegistrationResponse])
async def get_my_registrations(
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """
    내 참가 신청 목록
    삭제된 이벤트는 event = null, 더 이상 열람할 수 없는 이벤트는 제목과 일정만 반환합니다.
    """
    items = await registration_service.list_for_user(db, identity.user_id)
    access = await resolve_content_access(db, permission_service, identity.user_id)

    responses = []
    for item in items:
        event = None
        if item.event is not None:
            if access.can_view(item.event.post):
                event = build_post_response(item.event)
            else:
                event = build_post_summary(item.event)
        responses.append(UserRegistrationResponse(
            **RegistrationResponse.model_validate(item.registration).model_dump(),
            event=event,
        ))
    return responses


@router.get("/user/permissions", response_model=PermissionsResponse)
async def get_my_permissions(
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """내 권한 키 목록과 활성 멤버십"""
    permissions = await permission_service.get_user_permissions(db, identity.user_id)
    membership = await permission_service.get_user_membership_info(db, identity.user_id)
    return PermissionsResponse(
        user_id=identity.user_id,
        permissions=sorted(permissions),
        membership=membership,
    )


@router.put("/users/{user_id}/membership", response_model=MembershipInfo)
async def assign_user_membership(
    user_id: UUID,
    membership_in: MembershipAssign,
    identity: CurrentIdentity = Depends(require_permission(PERMISSION_MANAGE_MEMBERS)),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """회원 멤버십 변경 (기존 멤버십은 비활성화, 권한 캐시 무효화)"""
    try:
        await membership_service.assign_membership(
            db,
            permission_service,
            user_id,
            membership_in.tier_code,
            membership_in.role_code,
            expires_at=membership_in.expires_at,
            notes=membership_in.notes,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"멤버십 변경: user_id={user_id} by {identity.user_id}")
    return await permission_service.get_user_membership_info(db, user_id)
