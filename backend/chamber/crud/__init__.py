from .base import BaseCRUD
from .user_crud import user_crud
from .post_crud import post_crud, PostFilters, HydratedPost
from .translation_crud import translation_crud
from .meta_crud import meta_crud
from .registration_crud import registration_crud
from .membership_crud import membership_crud

__all__ = [
    "BaseCRUD",
    "user_crud",
    "post_crud",
    "PostFilters",
    "HydratedPost",
    "translation_crud",
    "meta_crud",
    "registration_crud",
    "membership_crud",
]
