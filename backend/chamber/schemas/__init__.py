from .common import CamelModel
from .post import (
    PostCreate, PostUpdate, PostResponse, PostDetailResponse, PostListResponse,
    TranslationUpsert, TranslationResponse, MetaSet, MetaIncrement, MetaResponse,
)
from .registration import AttendeeInfo, RegistrationResponse, RosterEntry, UserRegistrationResponse
from .acl import MembershipAssign, MembershipInfo, PermissionsResponse

__all__ = [
    "CamelModel",
    "PostCreate",
    "PostUpdate",
    "PostResponse",
    "PostDetailResponse",
    "PostListResponse",
    "TranslationUpsert",
    "TranslationResponse",
    "MetaSet",
    "MetaIncrement",
    "MetaResponse",
    "AttendeeInfo",
    "RegistrationResponse",
    "RosterEntry",
    "UserRegistrationResponse",
    "MembershipAssign",
    "MembershipInfo",
    "PermissionsResponse",
]
