from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import desc, func, select

from .base import BaseCRUD
from ..models.post import Post
from ..models.registration import EventRegistration, RegistrationStatus
from ..models.user import User


class RegistrationCRUD(BaseCRUD[EventRegistration, EventRegistration, EventRegistration]):

    async def get_for_update(self, db: AsyncSession, registration_id: UUID) -> Optional[EventRegistration]:
        """상태 변경용 조회 (PostgreSQL 에서는 행 잠금)"""
        result = await db.execute(
            select(EventRegistration)
            .where(EventRegistration.id == registration_id)
            .with_for_update()
        )
        return result.scalars().first()

    async def get_latest_for_user(
        self,
        db: AsyncSession,
        event_id: UUID,
        user_id: UUID
    ) -> Optional[EventRegistration]:
        """
        (이벤트, 사용자)의 신청 조회
        활성 신청이 있으면 그것을, 없으면 가장 최근 취소 건을 반환합니다.
        """
        result = await db.execute(
            select(EventRegistration)
            .where(
                EventRegistration.event_id == event_id,
                EventRegistration.user_id == user_id,
            )
            .order_by(
                (EventRegistration.status == RegistrationStatus.CANCELLED),
                desc(EventRegistration.registered_at),
            )
        )
        return result.scalars().first()

    async def count_active(self, db: AsyncSession, event_id: UUID) -> int:
        result = await db.execute(
            select(func.count(EventRegistration.id)).where(
                EventRegistration.event_id == event_id,
                EventRegistration.status != RegistrationStatus.CANCELLED,
            )
        )
        return result.scalar() or 0

    async def list_for_event(
        self,
        db: AsyncSession,
        event_id: UUID
    ) -> List[Tuple[EventRegistration, Optional[User]]]:
        """신청 순 명단과 신청자 계정"""
        result = await db.execute(
            select(EventRegistration, User)
            .outerjoin(User, User.id == EventRegistration.user_id)
            .where(EventRegistration.event_id == event_id)
            .order_by(EventRegistration.registered_at, EventRegistration.id)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> List[Tuple[EventRegistration, Optional[Post]]]:
        """사용자 신청 목록 (최근 신청 순). 이벤트가 없으면 None"""
        result = await db.execute(
            select(EventRegistration, Post)
            .outerjoin(Post, Post.id == EventRegistration.event_id)
            .where(EventRegistration.user_id == user_id)
            .order_by(desc(EventRegistration.registered_at))
        )
        return [(row[0], row[1]) for row in result.all()]


# 싱글톤 인스턴스
registration_crud = RegistrationCRUD(EventRegistration)
