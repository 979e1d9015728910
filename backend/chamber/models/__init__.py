from .base import Base, TimestampMixin, UUIDMixin
from .user import User
from .post import Post, PostTranslation, PostMeta, PostType, PostStatus, PostVisibility, Locale
from .registration import EventRegistration, RegistrationStatus, PaymentStatus
from .acl import Tier, Role, Permission, RolePermission, UserMembership
from .legacy import LegacyNews, LegacyEvent, LegacyResource

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "Post",
    "PostTranslation",
    "PostMeta",
    "EventRegistration",
    "Tier",
    "Role",
    "Permission",
    "RolePermission",
    "UserMembership",
    "LegacyNews",
    "LegacyEvent",
    "LegacyResource",
    # Enums
    "PostType",
    "PostStatus",
    "PostVisibility",
    "Locale",
    "RegistrationStatus",
    "PaymentStatus",
]
