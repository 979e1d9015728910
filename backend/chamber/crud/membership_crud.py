from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import desc, or_, select, update

from .base import BaseCRUD
from ..models.acl import Permission, Role, RolePermission, Tier, UserMembership
from ..models.base import as_utc, utcnow


def active_membership_condition(now: Optional[datetime] = None):
    """활성 멤버십: is_active 이고 만료되지 않음"""
    now = as_utc(now or utcnow())
    return (
        UserMembership.is_active.is_(True),
        or_(UserMembership.expires_at.is_(None), UserMembership.expires_at > now),
    )


class MembershipCRUD(BaseCRUD[UserMembership, UserMembership, UserMembership]):

    async def get_active(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> Optional[Tuple[UserMembership, Tier, Role]]:
        """가장 최근 활성 멤버십과 등급, 역할"""
        result = await db.execute(
            select(UserMembership, Tier, Role)
            .join(Tier, Tier.id == UserMembership.tier_id)
            .join(Role, Role.id == UserMembership.role_id)
            .where(UserMembership.user_id == user_id, *active_membership_condition())
            .order_by(desc(UserMembership.started_at))
        )
        row = result.first()
        return (row[0], row[1], row[2]) if row else None

    async def get_permission_keys(self, db: AsyncSession, user_id: UUID) -> List[str]:
        """활성 멤버십 역할의 권한 키"""
        result = await db.execute(
            select(Permission.key)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(UserMembership, UserMembership.role_id == RolePermission.role_id)
            .where(UserMembership.user_id == user_id, *active_membership_condition())
            .distinct()
        )
        return list(result.scalars().all())

    async def deactivate_all(self, db: AsyncSession, user_id: UUID) -> int:
        """활성 멤버십 비활성화 (이력 보존)"""
        result = await db.execute(
            update(UserMembership)
            .where(UserMembership.user_id == user_id, UserMembership.is_active.is_(True))
            .values(is_active=False, updated_at=utcnow())
        )
        return result.rowcount or 0

    async def get_tier_by_code(self, db: AsyncSession, code: str) -> Optional[Tier]:
        result = await db.execute(select(Tier).where(Tier.code == code))
        return result.scalars().first()

    async def get_role_by_code(self, db: AsyncSession, code: str) -> Optional[Role]:
        result = await db.execute(select(Role).where(Role.code == code))
        return result.scalars().first()

    async def user_ids_with_active_membership(self, db: AsyncSession) -> set:
        result = await db.execute(
            select(UserMembership.user_id).where(*active_membership_condition()).distinct()
        )
        return set(result.scalars().all())


# 싱글톤 인스턴스
membership_crud = MembershipCRUD(UserMembership)
