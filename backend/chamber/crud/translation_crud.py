from typing import Dict, Iterable, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from .base import BaseCRUD
from ..database.session import dialect_insert
from ..models.base import utcnow
from ..models.post import Locale, PostTranslation
from ..schemas.post import TranslationFields, TranslationUpsert

# upsert 시 갱신하는 본문 필드
_TRANSLATION_FIELDS = (
    "title", "subtitle", "excerpt", "content",
    "seo_title", "seo_description", "seo_keywords",
)


class TranslationCRUD(BaseCRUD[PostTranslation, TranslationUpsert, TranslationFields]):

    async def upsert_translation(
        self,
        db: AsyncSession,
        post_id: UUID,
        locale: Locale,
        fields: TranslationFields
    ) -> PostTranslation:
        """
        (post, locale) 당 하나의 번역만 유지
        같은 언어로 다시 저장하면 요청에 포함된 필드만 덮어씁니다.
        """
        values = {name: getattr(fields, name) for name in _TRANSLATION_FIELDS}
        # 제목은 항상 갱신, 나머지는 명시적으로 보낸 필드만
        updates = {
            name: values[name]
            for name in _TRANSLATION_FIELDS
            if name == "title" or name in fields.model_fields_set
        }
        stmt = dialect_insert(db, PostTranslation.__table__).values(
            post_id=post_id,
            locale=locale,
            **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["post_id", "locale"],
            set_={**updates, "updated_at": utcnow()},
        )
        await db.execute(stmt)

        # 세션에 이미 로드된 객체가 있어도 DB 값으로 갱신
        result = await db.execute(
            select(PostTranslation)
            .where(PostTranslation.post_id == post_id, PostTranslation.locale == locale)
            .execution_options(populate_existing=True)
        )
        return result.scalars().one()

    async def get_translation(
        self, db: AsyncSession, post_id: UUID, locale: Locale
    ) -> Optional[PostTranslation]:
        result = await db.execute(
            select(PostTranslation).where(
                PostTranslation.post_id == post_id,
                PostTranslation.locale == locale,
            )
        )
        return result.scalars().first()

    async def get_translations(self, db: AsyncSession, post_id: UUID) -> List[PostTranslation]:
        """생성 순서대로 번역 목록"""
        result = await db.execute(
            select(PostTranslation)
            .where(PostTranslation.post_id == post_id)
            .order_by(PostTranslation.created_at, PostTranslation.id)
        )
        return list(result.scalars().all())

    async def get_translations_for_posts(
        self, db: AsyncSession, post_ids: Iterable[UUID]
    ) -> Dict[UUID, List[PostTranslation]]:
        """여러 포스트의 번역을 한 번의 쿼리로 조회"""
        post_ids = list(post_ids)
        grouped: Dict[UUID, List[PostTranslation]] = {post_id: [] for post_id in post_ids}
        if not post_ids:
            return grouped

        result = await db.execute(
            select(PostTranslation)
            .where(PostTranslation.post_id.in_(post_ids))
            .order_by(PostTranslation.created_at, PostTranslation.id)
        )
        for translation in result.scalars().all():
            grouped[translation.post_id].append(translation)
        return grouped


# 싱글톤 인스턴스
translation_crud = TranslationCRUD(PostTranslation)
