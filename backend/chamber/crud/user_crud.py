from pydantic import BaseModel

from .base import BaseCRUD
from ..models.user import User


class UserCRUD(BaseCRUD[User, BaseModel, BaseModel]):
    not_found_message = "사용자를 찾을 수 없습니다"


# 싱글톤 인스턴스
user_crud = UserCRUD(User)
