"""
통합 콘텐츠 이전 단계의 레거시 테이블 (news, events, resources)
데이터 이전 스크립트에서 읽기 전용으로 사용합니다.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Text, Uuid

from .base import Base, JSONType, TimestampMixin, UUIDMixin


class LegacyNews(Base, UUIDMixin, TimestampMixin):
    """레거시 뉴스"""
    __tablename__ = "news"
    __table_args__ = {"comment": "레거시 뉴스"}

    title = Column(Text, nullable=False)
    title_en = Column(Text, nullable=True)
    title_zh = Column(Text, nullable=True)
    excerpt = Column(Text, nullable=False)
    excerpt_en = Column(Text, nullable=True)
    excerpt_zh = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    content_en = Column(Text, nullable=True)
    content_zh = Column(Text, nullable=True)
    category = Column(Text, nullable=False)  # notice, press, activity
    tags = Column(JSONType, nullable=True)
    featured_image = Column(Text, nullable=True)
    images = Column(JSONType, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    author_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class LegacyEvent(Base, UUIDMixin, TimestampMixin):
    """레거시 이벤트"""
    __tablename__ = "events"
    __table_args__ = {"comment": "레거시 이벤트"}

    title = Column(Text, nullable=False)
    title_en = Column(Text, nullable=True)
    title_zh = Column(Text, nullable=True)
    description = Column(Text, nullable=False)
    description_en = Column(Text, nullable=True)
    description_zh = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    content_en = Column(Text, nullable=True)
    content_zh = Column(Text, nullable=True)
    event_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    location = Column(Text, nullable=False)
    category = Column(Text, nullable=False)  # networking, seminar, workshop, cultural
    event_type = Column(Text, nullable=False, default="offline")  # offline, online, hybrid
    capacity = Column(Integer, nullable=True)
    registration_deadline = Column(DateTime(timezone=True), nullable=True)
    fee = Column(Integer, nullable=True, default=0)
    is_public = Column(Boolean, nullable=False, default=True)
    requires_approval = Column(Boolean, nullable=False, default=False)
    images = Column(JSONType, nullable=True)
    speakers = Column(JSONType, nullable=True)
    program = Column(JSONType, nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class LegacyResource(Base, UUIDMixin, TimestampMixin):
    """레거시 자료"""
    __tablename__ = "resources"
    __table_args__ = {"comment": "레거시 자료"}

    title = Column(Text, nullable=False)
    title_en = Column(Text, nullable=True)
    title_zh = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)
    description_zh = Column(Text, nullable=True)
    category = Column(Text, nullable=False)  # reports, forms, presentations, guides
    file_url = Column(Text, nullable=False)
    file_name = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=True)
    file_type = Column(Text, nullable=False)
    access_level = Column(Text, nullable=False, default="public")  # public, members, premium
    download_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
