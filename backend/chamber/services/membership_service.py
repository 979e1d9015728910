from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..core.constants import ROLE_ADMIN, ROLE_MEMBER, TIER_ADMIN, TIER_CORP, TIER_MEMBER, TIER_PRO
from ..core.exceptions import ValidationError
from ..crud.membership_crud import membership_crud
from ..crud.user_crud import user_crud
from ..models.acl import UserMembership
from ..models.base import as_utc, utcnow
from .permission_service import PermissionService

logger = logging.getLogger(__name__)


def infer_membership_codes(user_role: Optional[str], membership_level: Optional[str]) -> Tuple[str, str]:
    """
    레거시 사용자 정보로 (등급 코드, 역할 코드) 추론

    admin   -> ADMIN / admin
    sponsor -> CORP  / member
    premium -> PRO   / member
    그 외   -> MEMBER / member
    """
    if user_role == ROLE_ADMIN:
        return TIER_ADMIN, ROLE_ADMIN
    if membership_level == "sponsor":
        return TIER_CORP, ROLE_MEMBER
    if membership_level == "premium":
        return TIER_PRO, ROLE_MEMBER
    return TIER_MEMBER, ROLE_MEMBER


async def assign_membership(
    db: AsyncSession,
    permission_service: Optional[PermissionService],
    user_id: UUID,
    tier_code: str,
    role_code: str,
    expires_at: Optional[datetime] = None,
    notes: Optional[str] = None
) -> UserMembership:
    """
    새 멤버십 부여
    기존 활성 멤버십은 비활성화하고(이력 보존) 권한 캐시를 무효화합니다.
    """
    await user_crud.get_or_404(db, user_id)

    tier = await membership_crud.get_tier_by_code(db, tier_code)
    if not tier:
        raise ValidationError(f"존재하지 않는 등급입니다: {tier_code}", code="unknown_tier")
    role = await membership_crud.get_role_by_code(db, role_code)
    if not role:
        raise ValidationError(f"존재하지 않는 역할입니다: {role_code}", code="unknown_role")

    expires_at = as_utc(expires_at)
    if expires_at is not None and expires_at <= utcnow():
        raise ValidationError("만료일시는 현재 이후여야 합니다", code="invalid_expiry")

    deactivated = await membership_crud.deactivate_all(db, user_id)
    membership = UserMembership(
        user_id=user_id,
        tier_id=tier.id,
        role_id=role.id,
        is_active=True,
        started_at=utcnow(),
        expires_at=expires_at,
        notes=notes,
    )
    db.add(membership)
    await db.flush()

    if permission_service is not None:
        permission_service.clear_user_permission_cache(user_id)

    logger.info(
        f"Membership assigned: user={user_id} tier={tier_code} role={role_code} "
        f"(deactivated {deactivated})"
    )
    # Transaction management moved to upper layer
    return membership


async def deactivate_membership(
    db: AsyncSession,
    permission_service: Optional[PermissionService],
    user_id: UUID
) -> int:
    deactivated = await membership_crud.deactivate_all(db, user_id)
    if permission_service is not None:
        permission_service.clear_user_permission_cache(user_id)
    logger.info(f"Membership deactivated: user={user_id} ({deactivated})")
    return deactivated
