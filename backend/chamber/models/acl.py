from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, JSONType, TimestampMixin, UUIDMixin, utcnow


class Tier(Base, UUIDMixin, TimestampMixin):
    """유료 회원 등급 (접근 제어와는 별개의 카탈로그)"""
    __tablename__ = "tiers"
    __table_args__ = {"comment": "회원 등급"}

    code = Column(String(20), unique=True, nullable=False, comment="등급 코드")
    name = Column(String(100), nullable=False, comment="등급명")
    name_en = Column(String(100), nullable=True)
    name_zh = Column(String(100), nullable=True)
    annual_fee = Column(Integer, nullable=False, default=0, comment="연회비")
    benefits = Column(JSONType, nullable=True, default=list, comment="혜택 목록")
    order = Column(Integer, nullable=False, default=0, comment="정렬 순서")


class Role(Base, UUIDMixin, TimestampMixin):
    """접근 제어 역할"""
    __tablename__ = "roles"
    __table_args__ = {"comment": "역할"}

    code = Column(String(20), unique=True, nullable=False, comment="역할 코드")
    name = Column(String(100), nullable=False, comment="역할명")
    description = Column(Text, nullable=True)

    role_permissions = relationship("RolePermission", back_populates="role", lazy="raise")


class Permission(Base, UUIDMixin, TimestampMixin):
    """단일 권한 (resource.action)"""
    __tablename__ = "permissions"
    __table_args__ = {"comment": "권한"}

    key = Column(String(100), unique=True, nullable=False, comment="권한 키")
    resource = Column(String(50), nullable=False)
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)


class RolePermission(Base, UUIDMixin):
    """역할-권한 연결"""
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
        {"comment": "역할별 권한"}
    )

    role_id = Column(Uuid(as_uuid=True), ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id = Column(Uuid(as_uuid=True), ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)

    role = relationship("Role", back_populates="role_permissions", lazy="raise")
    permission = relationship("Permission", lazy="raise")


class UserMembership(Base, UUIDMixin, TimestampMixin):
    """
    사용자 멤버십 (등급 + 역할)
    이력 보존을 위해 삭제하지 않고 비활성화합니다.
    """
    __tablename__ = "user_memberships"
    __table_args__ = {"comment": "사용자 멤버십"}

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tier_id = Column(Uuid(as_uuid=True), ForeignKey("tiers.id"), nullable=False)
    role_id = Column(Uuid(as_uuid=True), ForeignKey("roles.id"), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True, comment="활성 여부")
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, comment="시작일시")
    expires_at = Column(DateTime(timezone=True), nullable=True, comment="만료일시")
    notes = Column(Text, nullable=True)

    user = relationship("User", back_populates="memberships", lazy="raise")
    tier = relationship("Tier", lazy="raise")
    role = relationship("Role", lazy="raise")
