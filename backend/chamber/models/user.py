from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """사용자 모델"""
    __tablename__ = "users"
    __table_args__ = {"comment": "사용자 정보"}

    # 기본 정보
    email = Column(String(255), unique=True, nullable=False, index=True, comment="이메일")
    name = Column(String(100), nullable=False, comment="이름")
    phone = Column(String(30), nullable=True, comment="전화번호")
    company_name = Column(String(200), nullable=True, comment="소속 회사")

    # 토큰에 실리는 역할 힌트 (실제 권한은 멤버십 기준)
    role = Column(String(20), nullable=False, default="member", comment="역할 힌트")
    # 레거시 회원 등급 (regular, premium, sponsor)
    membership_level = Column(String(20), nullable=True, comment="레거시 회원 등급")

    # 상태
    is_active = Column(Boolean, default=True, nullable=False, comment="활성 상태")

    # 관계
    memberships = relationship("UserMembership", back_populates="user", lazy="raise")
    registrations = relationship("EventRegistration", back_populates="user", lazy="raise")
