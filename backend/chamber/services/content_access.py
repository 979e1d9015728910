"""
콘텐츠 열람 범위

- 비로그인: 게시된 공개(public) 콘텐츠
- '<type>.read' 권한: 회원(members) 콘텐츠 추가
- 유료 등급(PRO, CORP, PARTNER, ADMIN) + '<type>.read': 프리미엄(premium) 추가
- '<type>.update' 권한: 내부(internal) 및 미게시 콘텐츠 포함 전체
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional
from uuid import UUID
from sqlalchemy import and_, false, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.constants import PERMISSION_WILDCARD, PREMIUM_TIER_CODES
from ..models.post import Post, PostStatus, PostType, PostVisibility
from .permission_service import PermissionService, permission_matches


@dataclass(frozen=True)
class ContentAccess:
    readable_types: FrozenSet[PostType] = frozenset()
    manageable_types: FrozenSet[PostType] = frozenset()
    premium: bool = False

    @classmethod
    def anonymous(cls) -> "ContentAccess":
        return cls()

    def visibilities_for(self, post_type: PostType) -> FrozenSet[PostVisibility]:
        if post_type in self.manageable_types:
            return frozenset(PostVisibility)
        allowed = {PostVisibility.PUBLIC}
        if post_type in self.readable_types:
            allowed.add(PostVisibility.MEMBERS)
            if self.premium:
                allowed.add(PostVisibility.PREMIUM)
        return frozenset(allowed)

    def can_view(self, post: Post) -> bool:
        if post.post_type in self.manageable_types:
            return True
        return (
            post.status == PostStatus.PUBLISHED
            and post.visibility in self.visibilities_for(post.post_type)
        )

    def condition(self):
        """목록 조회에 붙이는 WHERE 조건"""
        clauses = []
        for post_type in PostType:
            if post_type in self.manageable_types:
                clauses.append(Post.post_type == post_type)
                continue
            clauses.append(and_(
                Post.post_type == post_type,
                Post.status == PostStatus.PUBLISHED,
                Post.visibility.in_(list(self.visibilities_for(post_type))),
            ))
        return or_(*clauses) if clauses else false()


async def resolve_content_access(
    db: AsyncSession,
    permission_service: PermissionService,
    user_id: Optional[UUID]
) -> ContentAccess:
    if user_id is None:
        return ContentAccess.anonymous()

    permissions = await permission_service.get_user_permissions(db, user_id)
    readable = frozenset(t for t in PostType if permission_matches(permissions, f"{t.value}.read"))
    manageable = frozenset(t for t in PostType if permission_matches(permissions, f"{t.value}.update"))

    premium = PERMISSION_WILDCARD in permissions
    if not premium:
        membership = await permission_service.get_user_membership_info(db, user_id)
        premium = membership is not None and membership.tier_code in PREMIUM_TIER_CODES

    return ContentAccess(readable_types=readable, manageable_types=manageable, premium=premium)
