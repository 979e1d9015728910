from sqlalchemy import (
    BigInteger, Boolean, Column, DateTime, ForeignKey, Index, String, Text,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum
import enum

from .base import Base, JSONType, TimestampMixin, UUIDMixin


class PostType(enum.Enum):
    """콘텐츠 종류"""
    NEWS = "news"
    EVENT = "event"
    RESOURCE = "resource"

class PostStatus(enum.Enum):
    """게시 상태"""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

class PostVisibility(enum.Enum):
    """공개 범위"""
    PUBLIC = "public"
    MEMBERS = "members"
    PREMIUM = "premium"
    INTERNAL = "internal"

class Locale(enum.Enum):
    """지원 언어"""
    KO = "ko"
    EN = "en"
    ZH = "zh"


def _enum_column(enum_cls, **kwargs):
    return Column(
        SAEnum(enum_cls, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        **kwargs
    )


class Post(Base, UUIDMixin, TimestampMixin):
    """
    통합 콘텐츠 모델 (뉴스/이벤트/자료)
    언어별 본문은 PostTranslation, 타입별 필드는 PostMeta 에 저장합니다.
    """
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_type_status_published", "post_type", "status", "published_at"),
        {"comment": "통합 콘텐츠"}
    )

    post_type = _enum_column(PostType, nullable=False, index=True, comment="콘텐츠 종류")
    status = _enum_column(PostStatus, nullable=False, default=PostStatus.DRAFT, comment="게시 상태")
    visibility = _enum_column(PostVisibility, nullable=False, default=PostVisibility.PUBLIC, comment="공개 범위")

    slug = Column(String(255), unique=True, nullable=False, index=True, comment="URL 슬러그 (전체 유일)")
    primary_locale = _enum_column(Locale, nullable=False, default=Locale.KO, comment="기본 언어")

    # 작성자 삭제 시 NULL 처리
    author_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    cover_image = Column(Text, nullable=True, comment="커버 이미지 URL")
    list_image = Column(Text, nullable=True, comment="목록 이미지 URL")
    is_featured = Column(Boolean, nullable=False, default=False, comment="추천 여부")

    # 예: ["무역", "세미나"]
    tags = Column(JSONType, nullable=True, default=list, comment="태그 배열")

    published_at = Column(DateTime(timezone=True), nullable=True, comment="게시일시")
    scheduled_at = Column(DateTime(timezone=True), nullable=True, comment="예약 게시일시")
    expires_at = Column(DateTime(timezone=True), nullable=True, comment="만료일시")

    # 관계 (비동기 환경에서는 명시적 쿼리로만 조회)
    author = relationship("User", lazy="raise")
    translations = relationship("PostTranslation", back_populates="post", lazy="raise", passive_deletes=True)
    meta = relationship("PostMeta", back_populates="post", lazy="raise", passive_deletes=True)
    registrations = relationship("EventRegistration", back_populates="event", lazy="raise", passive_deletes=True)


class PostTranslation(Base, UUIDMixin, TimestampMixin):
    """언어별 본문"""
    __tablename__ = "post_translations"
    __table_args__ = (
        UniqueConstraint("post_id", "locale", name="uq_post_translation_locale"),
        {"comment": "콘텐츠 번역"}
    )

    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    locale = _enum_column(Locale, nullable=False, comment="언어")

    title = Column(Text, nullable=False, comment="제목")
    subtitle = Column(Text, nullable=True, comment="부제목")
    excerpt = Column(Text, nullable=True, comment="요약")
    # HTML 또는 JSON 문자열 (포스트 타입에 따라 다름)
    content = Column(Text, nullable=True, comment="본문")

    seo_title = Column(Text, nullable=True)
    seo_description = Column(Text, nullable=True)
    seo_keywords = Column(Text, nullable=True)

    post = relationship("Post", back_populates="translations", lazy="raise")


class PostMeta(Base, UUIDMixin, TimestampMixin):
    """
    타입별 속성 저장소
    행마다 value_* 컬럼 중 하나에만 값이 들어갑니다 (core.meta_keys 참고).
    """
    __tablename__ = "post_meta"
    __table_args__ = (
        UniqueConstraint("post_id", "key", name="uq_post_meta_key"),
        # 다가오는 이벤트 조회 (event.eventDate > now)
        Index("ix_post_meta_key_timestamp", "key", "value_timestamp"),
        {"comment": "콘텐츠 메타데이터"}
    )

    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String(100), nullable=False, comment="메타 키 (<postType>.<field>)")

    value_text = Column(Text, nullable=True)
    value_number = Column(BigInteger, nullable=True)
    value_boolean = Column(Boolean, nullable=True)
    value_timestamp = Column(DateTime(timezone=True), nullable=True)
    value_json = Column(JSONType, nullable=True)

    post = relationship("Post", back_populates="meta", lazy="raise")
