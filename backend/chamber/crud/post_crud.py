from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import String, and_, cast, delete, desc, exists, func, literal, or_, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import aliased
import logging

from .base import BaseCRUD
from .meta_crud import meta_crud
from .translation_crud import translation_crud
from ..core.config import settings
from ..core.exceptions import DuplicateSlugError, ValidationError
from ..core.meta_keys import EVENT_META_KEYS, MetaValue, is_known_meta_key
from ..models.base import as_utc, utcnow
from ..models.post import Post, PostMeta, PostStatus, PostTranslation, PostType, PostVisibility
from ..models.registration import EventRegistration
from ..schemas.post import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ("published_at", "scheduled_at", "expires_at")


@dataclass
class PostFilters:
    """목록 조회 조건"""
    post_type: Optional[PostType] = None
    status: Optional[PostStatus] = None
    visibility: Optional[PostVisibility] = None
    tags: Optional[List[str]] = None
    author_id: Optional[UUID] = None
    is_featured: Optional[bool] = None
    published_after: Optional[datetime] = None
    published_before: Optional[datetime] = None
    search: Optional[str] = None
    upcoming: bool = False
    limit: int = settings.DEFAULT_PAGE_LIMIT
    offset: int = 0


@dataclass
class HydratedPost:
    """번역과 메타가 함께 로드된 포스트"""
    post: Post
    translations: List[PostTranslation] = field(default_factory=list)
    meta: List[PostMeta] = field(default_factory=list)

    def meta_values(self) -> Dict[str, MetaValue]:
        values = {}
        for row in self.meta:
            value = MetaValue.from_row(row)
            if value is not None:
                values[row.key] = value
        return values


def build_meta_value(post_type: PostType, key: str, raw: Any) -> MetaValue:
    """
    카탈로그 검증 후 MetaValue 생성
    키의 네임스페이스는 포스트 타입과 같아야 합니다.
    """
    if not is_known_meta_key(key, post_type.value):
        raise ValidationError(
            f"'{post_type.value}' 포스트에 사용할 수 없는 메타 키입니다: {key}",
            code="unknown_meta_key",
            details=[{"loc": ["meta", key], "msg": "unknown meta key"}],
        )
    try:
        return MetaValue.for_key(key, raw)
    except ValueError as e:
        raise ValidationError(
            f"메타 값이 올바르지 않습니다: {key}",
            code="invalid_meta_value",
            details=[{"loc": ["meta", key], "msg": str(e)}],
        )


class PostCRUD(BaseCRUD[Post, PostCreate, PostUpdate]):
    not_found_message = "게시글을 찾을 수 없습니다"

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Optional[Post]:
        return await self.get_by(db, slug=slug)

    async def slug_exists(self, db: AsyncSession, slug: str, exclude_id: Optional[UUID] = None) -> bool:
        query = select(Post.id).where(Post.slug == slug)
        if exclude_id is not None:
            query = query.where(Post.id != exclude_id)
        result = await db.execute(query)
        return result.first() is not None

    async def create_post_with_content(
        self,
        db: AsyncSession,
        post_in: PostCreate,
        author_id: Optional[UUID] = None
    ) -> HydratedPost:
        """
        포스트 + 초기 번역 + 초기 메타 생성
        모두 같은 트랜잭션에서 실행되며, 커밋은 상위 계층에서 합니다.
        """
        if await self.slug_exists(db, post_in.slug):
            raise DuplicateSlugError(f"이미 사용 중인 슬러그입니다: {post_in.slug}", code="duplicate_slug")

        # 메타는 쓰기 전에 모두 검증
        meta_values = {
            key: build_meta_value(post_in.post_type, key, raw)
            for key, raw in post_in.meta.items()
        }

        post_data = post_in.model_dump(exclude={"translations", "meta"})
        for name in _DATETIME_FIELDS:
            post_data[name] = as_utc(post_data[name])
        if post_data["author_id"] is None:
            post_data["author_id"] = author_id
        if post_data["status"] == PostStatus.PUBLISHED and post_data["published_at"] is None:
            post_data["published_at"] = utcnow()

        db_post = Post(**post_data)
        db.add(db_post)
        await db.flush()

        for translation_in in post_in.translations:
            await translation_crud.upsert_translation(
                db, db_post.id, translation_in.locale, translation_in
            )
        for key, value in meta_values.items():
            await meta_crud.set_meta(db, db_post.id, key, value)

        logger.info(f"Post created: {db_post.id} ({db_post.post_type.value}/{db_post.slug})")
        # Transaction management moved to upper layer
        return await self.hydrate_one(db, db_post)

    async def update_post(
        self,
        db: AsyncSession,
        db_post: Post,
        post_in: PostUpdate
    ) -> Post:
        """부분 수정. 게시 상태로 바뀌면 게시일시를 채웁니다."""
        update_data = post_in.model_dump(exclude_unset=True)

        for name in ("status", "visibility", "primary_locale", "slug", "is_featured"):
            if name in update_data and update_data[name] is None:
                raise ValidationError(f"{name} 값은 비울 수 없습니다", code="null_not_allowed")

        new_slug = update_data.get("slug")
        if new_slug and new_slug != db_post.slug:
            if await self.slug_exists(db, new_slug, exclude_id=db_post.id):
                raise DuplicateSlugError(f"이미 사용 중인 슬러그입니다: {new_slug}", code="duplicate_slug")

        for name in _DATETIME_FIELDS:
            if name in update_data:
                update_data[name] = as_utc(update_data[name])
        if "tags" in update_data and update_data["tags"] is None:
            update_data["tags"] = []

        for name, value in update_data.items():
            setattr(db_post, name, value)

        if db_post.status == PostStatus.PUBLISHED and db_post.published_at is None:
            db_post.published_at = utcnow()

        db_post.updated_at = utcnow()
        # Transaction management moved to upper layer
        return db_post

    async def delete_post(self, db: AsyncSession, db_post: Post) -> None:
        """포스트와 번역, 메타, 참가 신청을 한 트랜잭션에서 삭제"""
        post_id = db_post.id
        await db.execute(delete(EventRegistration).where(EventRegistration.event_id == post_id))
        await db.execute(delete(PostMeta).where(PostMeta.post_id == post_id))
        await db.execute(delete(PostTranslation).where(PostTranslation.post_id == post_id))
        await db.delete(db_post)
        logger.info(f"Post deleted: {post_id}")
        # Transaction management moved to upper layer

    async def get_post_with_translations(
        self,
        db: AsyncSession,
        post_id: UUID
    ) -> Optional[HydratedPost]:
        """포스트와 모든 번역, 모든 메타"""
        db_post = await self.get(db, post_id)
        if not db_post:
            return None
        return await self.hydrate_one(db, db_post)

    async def hydrate_one(self, db: AsyncSession, db_post: Post) -> HydratedPost:
        hydrated = await self.hydrate(db, [db_post])
        return hydrated[0]

    async def hydrate(self, db: AsyncSession, posts: Sequence[Post]) -> List[HydratedPost]:
        """번역/메타를 포스트 수와 무관하게 두 번의 쿼리로 로드"""
        post_ids = [p.id for p in posts]
        translations = await translation_crud.get_translations_for_posts(db, post_ids)
        meta = await meta_crud.get_meta_for_posts(db, post_ids)
        return [
            HydratedPost(post=p, translations=translations.get(p.id, []), meta=meta.get(p.id, []))
            for p in posts
        ]

    async def list_posts(
        self,
        db: AsyncSession,
        filters: PostFilters,
        *,
        access_condition: Any = None,
        now: Optional[datetime] = None
    ) -> Tuple[List[HydratedPost], int]:
        """
        필터링된 포스트 목록과 페이지네이션 무관한 전체 개수

        access_condition: 호출자 기준 열람 가능 조건 (services.content_access)
        now: 다가오는 이벤트 기준 시각 (기본값: 현재 시각)
        """
        conditions = []
        if filters.post_type is not None:
            conditions.append(Post.post_type == filters.post_type)
        if filters.status is not None:
            conditions.append(Post.status == filters.status)
        if filters.visibility is not None:
            conditions.append(Post.visibility == filters.visibility)
        if filters.author_id is not None:
            conditions.append(Post.author_id == filters.author_id)
        if filters.is_featured is not None:
            conditions.append(Post.is_featured == filters.is_featured)
        if filters.published_after is not None:
            conditions.append(Post.published_at >= as_utc(filters.published_after))
        if filters.published_before is not None:
            conditions.append(Post.published_at <= as_utc(filters.published_before))
        if filters.tags:
            conditions.append(self._tags_condition(db, filters.tags))
        if filters.search and filters.search.strip():
            conditions.append(self._search_condition(filters.search.strip()))
        if access_condition is not None:
            conditions.append(access_condition)

        event_date = None
        query = select(Post)
        count_query = select(func.count(Post.id))
        if filters.upcoming:
            # 메타 계층 조인: (key, value_timestamp) 인덱스 사용
            event_date = aliased(PostMeta)
            join_on = and_(
                event_date.post_id == Post.id,
                event_date.key == EVENT_META_KEYS["eventDate"],
            )
            query = query.join(event_date, join_on)
            count_query = count_query.join(event_date, join_on)
            conditions.append(Post.post_type == PostType.EVENT)
            conditions.append(event_date.value_timestamp > as_utc(now or utcnow()))

        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        total = (await db.execute(count_query)).scalar() or 0

        if event_date is not None:
            query = query.order_by(event_date.value_timestamp, desc(Post.created_at))
        else:
            # 게시일시 최신순 (미게시는 뒤로), 같으면 생성일시 최신순
            query = query.order_by(
                Post.published_at.is_(None),
                desc(Post.published_at),
                desc(Post.created_at),
            )

        limit = min(max(filters.limit, 1), settings.MAX_PAGE_LIMIT)
        offset = max(filters.offset, 0)
        result = await db.execute(query.offset(offset).limit(limit))
        posts = list(result.scalars().all())

        return await self.hydrate(db, posts), total

    @staticmethod
    def _tags_condition(db: AsyncSession, tags: List[str]):
        """태그 중 하나라도 포함 (match-any)"""
        if db.get_bind().dialect.name == "postgresql":
            return cast(Post.tags, postgresql.JSONB).op("?|")(
                cast(postgresql.array(tags), postgresql.ARRAY(String))
            )

        tag_values = func.json_each(Post.tags).table_valued("value")
        return exists(
            select(literal(1)).select_from(tag_values).where(tag_values.c.value.in_(tags))
        )

    @staticmethod
    def _search_condition(search: str):
        """번역 제목/요약/본문 또는 슬러그 부분 일치 (대소문자 무시)"""
        needle = search.lower()
        translation_match = exists(
            select(PostTranslation.id).where(
                PostTranslation.post_id == Post.id,
                or_(
                    func.lower(PostTranslation.title).contains(needle, autoescape=True),
                    func.lower(PostTranslation.excerpt).contains(needle, autoescape=True),
                    func.lower(PostTranslation.content).contains(needle, autoescape=True),
                ),
            )
        )
        return or_(translation_match, func.lower(Post.slug).contains(needle, autoescape=True))


# 싱글톤 인스턴스
post_crud = PostCRUD(Post)
