from typing import Any, Generic, Optional, Type, TypeVar
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..core.exceptions import NotFoundError
from ..database.session import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseCRUD(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    모델 단위 조회 헬퍼
    쓰기 작업은 각 CRUD가 도메인 규칙과 함께 구현합니다.
    """

    not_found_message = "대상을 찾을 수 없습니다"

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalars().first()

    async def get_or_404(
        self,
        db: AsyncSession,
        id: Any,
        message: Optional[str] = None
    ) -> ModelType:
        obj = await self.get(db, id)
        if obj is None:
            raise NotFoundError(message or self.not_found_message)
        return obj

    async def get_by(self, db: AsyncSession, **filters: Any) -> Optional[ModelType]:
        """컬럼 값이 일치하는 첫 행 조회"""
        query = select(self.model)
        for column, value in filters.items():
            query = query.where(getattr(self.model, column) == value)
        result = await db.execute(query.limit(1))
        return result.scalars().first()
