from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select

from .base import BaseCRUD
from ..core.meta_keys import MetaValue, MetaValueType, get_meta_value_type
from ..database.session import dialect_insert
from ..models.base import utcnow
from ..models.post import PostMeta


class MetaCRUD(BaseCRUD[PostMeta, Any, Any]):
    """
    포스트 메타 저장소
    MetaValue <-> value_* 컬럼 변환은 이 클래스에서만 수행합니다.
    """

    async def set_meta(
        self,
        db: AsyncSession,
        post_id: UUID,
        key: str,
        value: MetaValue
    ) -> PostMeta:
        """(post, key) 당 하나의 값. 다른 value_* 컬럼은 모두 비웁니다."""
        columns = value.to_columns()
        stmt = dialect_insert(db, PostMeta.__table__).values(
            post_id=post_id,
            key=key,
            **columns
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["post_id", "key"],
            set_={**columns, "updated_at": utcnow()},
        )
        await db.execute(stmt)

        result = await db.execute(
            select(PostMeta)
            .where(PostMeta.post_id == post_id, PostMeta.key == key)
            .execution_options(populate_existing=True)
        )
        return result.scalars().one()

    async def get_meta(self, db: AsyncSession, post_id: UUID, key: str) -> Optional[MetaValue]:
        result = await db.execute(
            select(PostMeta).where(PostMeta.post_id == post_id, PostMeta.key == key)
        )
        row = result.scalars().first()
        return MetaValue.from_row(row) if row else None

    async def get_all_meta(self, db: AsyncSession, post_id: UUID) -> Dict[str, MetaValue]:
        rows = await self.get_meta_rows(db, post_id)
        return _to_values(rows)

    async def get_meta_rows(self, db: AsyncSession, post_id: UUID) -> List[PostMeta]:
        result = await db.execute(
            select(PostMeta).where(PostMeta.post_id == post_id).order_by(PostMeta.key)
        )
        return list(result.scalars().all())

    async def get_meta_for_posts(
        self, db: AsyncSession, post_ids: Iterable[UUID]
    ) -> Dict[UUID, List[PostMeta]]:
        """여러 포스트의 메타를 한 번의 쿼리로 조회"""
        post_ids = list(post_ids)
        grouped: Dict[UUID, List[PostMeta]] = {post_id: [] for post_id in post_ids}
        if not post_ids:
            return grouped

        result = await db.execute(
            select(PostMeta)
            .where(PostMeta.post_id.in_(post_ids))
            .order_by(PostMeta.key)
        )
        for row in result.scalars().all():
            grouped[row.post_id].append(row)
        return grouped

    async def increment_meta_number(
        self,
        db: AsyncSession,
        post_id: UUID,
        key: str,
        amount: int = 1
    ) -> int:
        """
        숫자 메타 원자적 증가 (조회수, 다운로드 수)

        읽기-수정-쓰기 대신 INSERT ... ON CONFLICT DO UPDATE 한 문장으로 처리하므로
        동시 요청이 있어도 증가분이 유실되지 않습니다.
        키가 없으면 amount 로 생성합니다.
        """
        if get_meta_value_type(key) is not MetaValueType.NUMBER:
            raise ValueError(f"{key} 는 숫자 메타가 아닙니다")

        stmt = dialect_insert(db, PostMeta.__table__).values(
            post_id=post_id,
            key=key,
            value_number=amount,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["post_id", "key"],
            set_={
                "value_number": func.coalesce(PostMeta.__table__.c.value_number, 0) + amount,
                "updated_at": utcnow(),
            },
        ).returning(PostMeta.__table__.c.value_number)

        result = await db.execute(stmt)
        return result.scalar_one()


def _to_values(rows: Iterable[PostMeta]) -> Dict[str, MetaValue]:
    values = {}
    for row in rows:
        value = MetaValue.from_row(row)
        if value is not None:
            values[row.key] = value
    return values


# 싱글톤 인스턴스
meta_crud = MetaCRUD(PostMeta)
