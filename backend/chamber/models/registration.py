from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum
import enum

from .base import Base, TimestampMixin, UUIDMixin, utcnow


class RegistrationStatus(enum.Enum):
    """이벤트 신청 상태"""
    REGISTERED = "registered"
    APPROVED = "approved"
    CANCELLED = "cancelled"
    ATTENDED = "attended"

class PaymentStatus(enum.Enum):
    """참가비 상태 (결제 처리는 하지 않음)"""
    FREE = "free"
    PAID = "paid"
    PENDING = "pending"


_ACTIVE_ONLY = text("status <> 'cancelled'")


class EventRegistration(Base, UUIDMixin, TimestampMixin):
    """이벤트 참가 신청"""
    __tablename__ = "event_registrations"
    __table_args__ = (
        # (이벤트, 사용자) 당 활성 신청은 하나 - 동시 요청에서도 DB가 보장
        Index(
            "uq_event_registration_active",
            "event_id",
            "user_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        {"comment": "이벤트 참가 신청"}
    )

    event_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # 신청 시점의 참석자 정보 (프로필 변경과 무관)
    attendee_name = Column(String(100), nullable=False, comment="참석자 이름")
    attendee_email = Column(String(255), nullable=False, comment="참석자 이메일")
    attendee_phone = Column(String(30), nullable=True, comment="참석자 전화번호")
    company_name = Column(String(200), nullable=True, comment="참석자 회사")

    status = Column(
        SAEnum(RegistrationStatus, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=RegistrationStatus.REGISTERED,
        comment="신청 상태"
    )
    payment_status = Column(
        SAEnum(PaymentStatus, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=PaymentStatus.FREE,
        comment="참가비 상태"
    )

    registered_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, comment="(재)신청 일시")

    event = relationship("Post", back_populates="registrations", lazy="raise")
    user = relationship("User", back_populates="registrations", lazy="raise")
