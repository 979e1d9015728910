from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import UUID
from pydantic import Field, field_validator

from .common import CamelModel
from ..models.post import Locale, PostStatus, PostType, PostVisibility


class TranslationFields(CamelModel):
    title: str = Field(..., min_length=1, max_length=500, description="제목")
    subtitle: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError("제목을 입력해주세요")
        return v.strip()


class TranslationUpsert(TranslationFields):
    locale: Locale


class MetaSet(CamelModel):
    key: str = Field(..., min_length=3, max_length=100, description="메타 키")
    value: Any = Field(..., description="값 (키의 선언 타입으로 저장)")


class MetaIncrement(CamelModel):
    key: str = Field(..., min_length=3, max_length=100)
    amount: int = Field(default=1, description="증가량")


class PostCreate(CamelModel):
    post_type: PostType
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[^\s/]+$", description="URL 슬러그")
    status: PostStatus = PostStatus.DRAFT
    visibility: PostVisibility = PostVisibility.PUBLIC
    primary_locale: Locale = Locale.KO
    author_id: Optional[UUID] = None
    cover_image: Optional[str] = None
    list_image: Optional[str] = None
    is_featured: bool = False
    tags: List[str] = Field(default_factory=list)
    published_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    # 생성과 함께 저장할 초기 번역/메타 (하나의 트랜잭션)
    translations: List[TranslationUpsert] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        return [tag.strip() for tag in v if tag and tag.strip()]

    @field_validator("translations")
    @classmethod
    def unique_locales(cls, v):
        locales = [t.locale for t in v]
        if len(locales) != len(set(locales)):
            raise ValueError("언어별 번역은 하나만 입력할 수 있습니다")
        return v


class PostUpdate(CamelModel):
    """게시글 필드 부분 수정 (번역/메타 제외)"""
    slug: Optional[str] = Field(None, min_length=1, max_length=255, pattern=r"^[^\s/]+$")
    status: Optional[PostStatus] = None
    visibility: Optional[PostVisibility] = None
    primary_locale: Optional[Locale] = None
    author_id: Optional[UUID] = None
    cover_image: Optional[str] = None
    list_image: Optional[str] = None
    is_featured: Optional[bool] = None
    tags: Optional[List[str]] = None
    published_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class TranslationResponse(CamelModel):
    id: Optional[UUID] = None
    post_id: UUID
    locale: Locale
    title: str
    subtitle: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DisplayTranslation(CamelModel):
    """화면 표시용 번역 (번역이 없으면 슬러그를 제목으로 사용)"""
    locale: Optional[Locale] = None
    title: str
    subtitle: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None


class MetaResponse(CamelModel):
    key: str
    value_type: Optional[str] = None
    value: Any = None


class PostResponse(CamelModel):
    id: UUID
    post_type: PostType
    status: PostStatus
    visibility: PostVisibility
    slug: str
    primary_locale: Locale
    author_id: Optional[UUID] = None
    cover_image: Optional[str] = None
    list_image: Optional[str] = None
    is_featured: bool
    tags: List[str] = Field(default_factory=list)
    published_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def none_tags(cls, v):
        return v or []


class PostDetailResponse(PostResponse):
    translations: List[TranslationResponse] = Field(default_factory=list)
    meta: List[MetaResponse] = Field(default_factory=list)
    # 요청 언어 기준으로 고른 번역 (없으면 기본 언어 -> 첫 번역 -> 슬러그)
    display: Optional[DisplayTranslation] = None


class PostListResponse(CamelModel):
    posts: List[PostDetailResponse]
    total: int


class MetaValueResponse(CamelModel):
    key: str
    value: Any = None


class MetaIncrementResponse(CamelModel):
    success: bool = True
    key: str
    value: int
