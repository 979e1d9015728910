"""
이벤트 참가 신청

상태 전이:
    registered -> approved | cancelled
    approved   -> attended | cancelled
    cancelled  -> registered (register 를 통한 재신청만)
    attended   -> (종료)
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..core.exceptions import (
    ConflictError, DuplicateRegistrationError, InvalidStatusTransitionError,
    NotFoundError, UnauthorizedError, ValidationError,
)
from ..core.constants import PERMISSION_MANAGE_ATTENDEES
from ..core.meta_keys import EVENT_META_KEYS
from ..crud.meta_crud import meta_crud
from ..crud.post_crud import HydratedPost, post_crud
from ..crud.registration_crud import registration_crud
from ..crud.user_crud import user_crud
from ..models.base import as_utc, utcnow
from ..models.post import PostType
from ..models.registration import EventRegistration, PaymentStatus, RegistrationStatus
from ..models.user import User
from ..schemas.registration import AttendeeInfo

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[RegistrationStatus, FrozenSet[RegistrationStatus]] = {
    RegistrationStatus.REGISTERED: frozenset({RegistrationStatus.APPROVED, RegistrationStatus.CANCELLED}),
    RegistrationStatus.APPROVED: frozenset({RegistrationStatus.ATTENDED, RegistrationStatus.CANCELLED}),
    # 재신청은 register() 에서만 허용
    RegistrationStatus.CANCELLED: frozenset(),
    RegistrationStatus.ATTENDED: frozenset(),
}


def ensure_transition(current: RegistrationStatus, new: RegistrationStatus) -> None:
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            f"신청 상태를 {current.value} 에서 {new.value} 로 변경할 수 없습니다",
            code="invalid_status_transition",
            details=[{"loc": ["status"], "msg": f"{current.value} -> {new.value} not allowed"}],
        )


@dataclass
class UserRegistration:
    registration: EventRegistration
    # 이벤트가 삭제된 경우 None
    event: Optional[HydratedPost]


async def register(
    db: AsyncSession,
    event_id: UUID,
    user_id: UUID,
    attendee: AttendeeInfo
) -> EventRegistration:
    """
    이벤트 참가 신청

    활성 신청이 있으면 DuplicateRegistrationError,
    취소된 신청이 있으면 같은 행을 재사용하여 재신청합니다.
    """
    event = await post_crud.get_or_404(db, event_id, "이벤트를 찾을 수 없습니다")
    if event.post_type != PostType.EVENT:
        raise ValidationError("이벤트에만 참가 신청할 수 있습니다", code="not_an_event")
    await user_crud.get_or_404(db, user_id)

    meta = await meta_crud.get_all_meta(db, event_id)
    now = utcnow()

    deadline = meta.get(EVENT_META_KEYS["registrationDeadline"])
    if deadline is not None and as_utc(deadline.value) < now:
        raise ValidationError("신청 기간이 종료되었습니다", code="registration_closed")

    existing = await registration_crud.get_latest_for_user(db, event_id, user_id)
    if existing and existing.status != RegistrationStatus.CANCELLED:
        raise DuplicateRegistrationError("이미 신청한 이벤트입니다", code="duplicate_registration")

    capacity = meta.get(EVENT_META_KEYS["capacity"])
    if capacity is not None:
        active_count = await registration_crud.count_active(db, event_id)
        if active_count >= capacity.value:
            raise ConflictError("정원이 마감되었습니다", code="event_full")

    fee = meta.get(EVENT_META_KEYS["fee"])
    payment_status = PaymentStatus.PENDING if fee is not None and fee.value > 0 else PaymentStatus.FREE

    attendee_fields = {
        "attendee_name": attendee.name,
        "attendee_email": attendee.email,
        "attendee_phone": attendee.phone,
        "company_name": attendee.company_name,
    }

    try:
        if existing:
            # 취소된 신청 재사용 (id 유지)
            for name, value in attendee_fields.items():
                setattr(existing, name, value)
            existing.status = RegistrationStatus.REGISTERED
            existing.payment_status = payment_status
            existing.registered_at = now
            registration = existing
            logger.info(f"Registration reactivated: {registration.id} (event={event_id}, user={user_id})")
        else:
            registration = EventRegistration(
                event_id=event_id,
                user_id=user_id,
                status=RegistrationStatus.REGISTERED,
                payment_status=payment_status,
                registered_at=now,
                **attendee_fields
            )
            db.add(registration)

        # 동시 신청은 부분 유니크 인덱스에서 걸러짐
        await db.flush()
    except IntegrityError:
        raise DuplicateRegistrationError("이미 신청한 이벤트입니다", code="duplicate_registration")

    if not existing:
        logger.info(f"Registration created: {registration.id} (event={event_id}, user={user_id})")
    # Transaction management moved to upper layer
    return registration


async def cancel(
    db: AsyncSession,
    registration_id: UUID,
    actor_id: UUID,
    is_admin: bool = False
) -> EventRegistration:
    """본인 또는 관리자만 취소. 이미 취소된 신청은 그대로 반환"""
    registration = await registration_crud.get_for_update(db, registration_id)
    if not registration:
        raise NotFoundError("신청 내역을 찾을 수 없습니다")
    if registration.user_id != actor_id and not is_admin:
        raise UnauthorizedError([PERMISSION_MANAGE_ATTENDEES])

    if registration.status == RegistrationStatus.CANCELLED:
        return registration

    ensure_transition(registration.status, RegistrationStatus.CANCELLED)
    registration.status = RegistrationStatus.CANCELLED
    logger.info(f"Registration cancelled: {registration.id} by {actor_id}")
    # Transaction management moved to upper layer
    return registration


async def update_status(
    db: AsyncSession,
    registration_id: UUID,
    new_status: RegistrationStatus
) -> EventRegistration:
    """관리자 상태 변경 (승인, 참석 처리, 취소)"""
    registration = await registration_crud.get_for_update(db, registration_id)
    if not registration:
        raise NotFoundError("신청 내역을 찾을 수 없습니다")

    if registration.status == new_status:
        return registration

    ensure_transition(registration.status, new_status)
    registration.status = new_status
    logger.info(f"Registration {registration.id} status -> {new_status.value}")
    # Transaction management moved to upper layer
    return registration


async def list_for_event(
    db: AsyncSession,
    event_id: UUID
) -> List[Tuple[EventRegistration, Optional[User]]]:
    await post_crud.get_or_404(db, event_id, "이벤트를 찾을 수 없습니다")
    return await registration_crud.list_for_event(db, event_id)


async def list_for_user(db: AsyncSession, user_id: UUID) -> List[UserRegistration]:
    rows = await registration_crud.list_for_user(db, user_id)
    posts = [post for _, post in rows if post is not None]
    hydrated = {h.post.id: h for h in await post_crud.hydrate(db, posts)}
    return [
        UserRegistration(registration=registration, event=hydrated.get(post.id) if post else None)
        for registration, post in rows
    ]
