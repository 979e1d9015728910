"""
권한 확인 서비스

사용자의 활성 멤버십 역할에서 권한 키 집합을 구하고,
'*' / 정확한 키 / 상위 와일드카드('a.b.*', 'a.*') 순으로 확인합니다.
권한 집합은 사용자별로 TTL 동안 프로세스 메모리에 캐시됩니다.
"""
import time
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..core.constants import PERMISSION_WILDCARD
from ..crud.membership_crud import membership_crud
from ..schemas.acl import MembershipInfo

logger = logging.getLogger(__name__)


class PermissionCache:
    """
    사용자별 권한 집합 캐시 (프로세스 로컬)

    다른 프로세스의 캐시는 무효화되지 않으므로,
    멤버십 변경은 다른 프로세스에서 최대 TTL 동안 반영되지 않을 수 있습니다.
    """

    def __init__(self, ttl_seconds: int = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[UUID, Tuple[float, FrozenSet[str]]] = {}

    def get(self, user_id: UUID) -> Optional[FrozenSet[str]]:
        entry = self._entries.get(user_id)
        if entry is None:
            return None
        cached_at, permissions = entry
        if self._clock() - cached_at >= self.ttl_seconds:
            self._entries.pop(user_id, None)
            return None
        return permissions

    def set(self, user_id: UUID, permissions: Iterable[str]) -> FrozenSet[str]:
        permissions = frozenset(permissions)
        self._entries[user_id] = (self._clock(), permissions)
        return permissions

    def invalidate(self, user_id: UUID) -> None:
        self._entries.pop(user_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def candidate_keys(key: str) -> Tuple[str, ...]:
    """'a.b.c' -> ('a.b.c', 'a.b.*', 'a.*')"""
    parts = key.split(".")
    ancestors = tuple(
        ".".join(parts[:i]) + ".*" for i in range(len(parts) - 1, 0, -1)
    )
    return (key,) + ancestors


def permission_matches(permissions: FrozenSet[str], key: str) -> bool:
    if PERMISSION_WILDCARD in permissions:
        return True
    return any(candidate in permissions for candidate in candidate_keys(key))


class PermissionService:
    def __init__(self, cache: PermissionCache):
        self.cache = cache

    async def get_user_permissions(self, db: AsyncSession, user_id: UUID) -> FrozenSet[str]:
        """활성 멤버십 역할의 권한 키 집합 (없으면 빈 집합)"""
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        keys = await membership_crud.get_permission_keys(db, user_id)
        logger.debug(f"Loaded {len(keys)} permissions for user {user_id}")
        return self.cache.set(user_id, keys)

    async def has_permission(self, db: AsyncSession, user_id: UUID, key: str) -> bool:
        permissions = await self.get_user_permissions(db, user_id)
        return permission_matches(permissions, key)

    async def has_any_permission(self, db: AsyncSession, user_id: UUID, keys: Iterable[str]) -> bool:
        permissions = await self.get_user_permissions(db, user_id)
        return any(permission_matches(permissions, key) for key in keys)

    async def has_all_permissions(self, db: AsyncSession, user_id: UUID, keys: Iterable[str]) -> bool:
        permissions = await self.get_user_permissions(db, user_id)
        return all(permission_matches(permissions, key) for key in keys)

    def clear_user_permission_cache(self, user_id: UUID) -> None:
        self.cache.invalidate(user_id)

    def clear_all_permission_cache(self) -> None:
        self.cache.clear()

    async def get_user_membership_info(self, db: AsyncSession, user_id: UUID) -> Optional[MembershipInfo]:
        """활성 멤버십의 등급/역할 정보"""
        active = await membership_crud.get_active(db, user_id)
        if active is None:
            return None
        membership, tier, role = active
        return MembershipInfo(
            id=membership.id,
            user_id=membership.user_id,
            tier_code=tier.code,
            tier_name=tier.name,
            role_code=role.code,
            role_name=role.name,
            is_active=membership.is_active,
            started_at=membership.started_at,
            expires_at=membership.expires_at,
        )
