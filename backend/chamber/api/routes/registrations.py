from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ...database.session import get_db
from ...api.dependencies import (
    CurrentIdentity, get_current_identity, get_permission_service, require_permission,
)
from ...core.constants import PERMISSION_MANAGE_ATTENDEES
from ...schemas.registration import RegistrationResponse, RegistrationStatusUpdate
from ...services import registration_service
from ...services.permission_service import PermissionService

router = APIRouter(prefix="/registrations", tags=["registrations"])
logger = logging.getLogger(__name__)


@router.post("/{registration_id}/cancel", response_model=RegistrationResponse)
async def cancel_registration(
    registration_id: UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """참가 신청 취소 (본인 또는 참석자 관리 권한)"""
    is_admin = await permission_service.has_permission(
        db, identity.user_id, PERMISSION_MANAGE_ATTENDEES
    )
    try:
        registration = await registration_service.cancel(
            db, registration_id, identity.user_id, is_admin=is_admin
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return RegistrationResponse.model_validate(registration)


@router.patch("/{registration_id}/status", response_model=RegistrationResponse)
async def update_registration_status(
    registration_id: UUID,
    status_in: RegistrationStatusUpdate,
    identity: CurrentIdentity = Depends(require_permission(PERMISSION_MANAGE_ATTENDEES)),
    db: AsyncSession = Depends(get_db)
):
    """신청 상태 변경: 승인, 참석 처리, 취소 (관리자)"""
    try:
        registration = await registration_service.update_status(db, registration_id, status_in.status)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"신청 상태 변경: {registration_id} -> {status_in.status.value} by {identity.user_id}")
    return RegistrationResponse.model_validate(registration)
