from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column, DateTime, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declared_attr
import uuid

from ..database.session import Base


# PostgreSQL 에서는 JSONB, 그 외(SQLite 테스트)에서는 JSON
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """시간대 없는 값은 UTC 로 간주하고, 모든 값을 UTC 로 변환"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TimestampMixin:
    """
    생성일시와 수정일시를 자동 관리하는 믹스인
    모든 모델에서 이 믹스인을 상속받아 타임스탬프를 자동 관리합니다.
    """
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        comment="생성일시"
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        comment="수정일시"
    )


class UUIDMixin:
    """
    UUID 기본 키를 제공하는 믹스인
    정수 ID 대신 UUID를 사용하여 보안성과 확장성을 향상시킵니다.
    """
    @declared_attr
    def id(cls):
        return Column(
            Uuid(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False,
            comment=f"{cls.__name__} 고유 ID"
        )
