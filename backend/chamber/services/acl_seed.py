"""
접근 제어 카탈로그 시드

등급/역할/권한을 코드(키) 기준으로 upsert 하고,
역할별 권한은 매번 전체 삭제 후 현재 카탈로그로 다시 채웁니다.
여러 번 실행해도 결과가 같습니다.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select
import logging

from ..core import acl_catalog
from ..core.constants import PERMISSION_WILDCARD
from ..database.session import dialect_insert
from ..models.acl import Permission, Role, RolePermission, Tier
from ..models.base import utcnow
from .permission_service import PermissionService

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    tiers: int = 0
    roles: int = 0
    permissions: int = 0
    role_permissions: Dict[str, int] = field(default_factory=dict)


def expand_permissions(patterns: Iterable[str], all_keys: Iterable[str]) -> List[str]:
    """
    역할 패턴을 실제 권한 키 목록으로 확장

    '*'       -> 모든 키
    'event.*' -> 'event.' 으로 시작하는 모든 키
    그 외     -> 그대로
    """
    all_keys = list(all_keys)
    expanded: List[str] = []
    for pattern in patterns:
        if pattern == PERMISSION_WILDCARD:
            matched = all_keys
        elif pattern.endswith(".*"):
            prefix = pattern[:-1]
            matched = [key for key in all_keys if key.startswith(prefix)]
        else:
            matched = [pattern]
        for key in matched:
            if key not in expanded:
                expanded.append(key)
    return expanded


async def _upsert(db: AsyncSession, model, index_column: str, rows: List[dict]) -> None:
    for row in rows:
        stmt = dialect_insert(db, model.__table__).values(**row)
        update_values = {k: v for k, v in row.items() if k != index_column}
        update_values["updated_at"] = utcnow()
        stmt = stmt.on_conflict_do_update(index_elements=[index_column], set_=update_values)
        await db.execute(stmt)


async def seed_acl(
    db: AsyncSession,
    permission_service: Optional[PermissionService] = None
) -> SeedReport:
    """카탈로그 시드. 커밋은 호출하는 쪽에서 합니다."""
    report = SeedReport()

    await _upsert(db, Tier, "code", [dict(tier) for tier in acl_catalog.TIERS])
    report.tiers = len(acl_catalog.TIERS)
    logger.info(f"Seeded {report.tiers} tiers")

    await _upsert(db, Role, "code", [dict(role) for role in acl_catalog.ROLES])
    report.roles = len(acl_catalog.ROLES)
    logger.info(f"Seeded {report.roles} roles")

    await _upsert(db, Permission, "key", [
        {"key": key, "resource": resource, "action": action, "description": description}
        for key, resource, action, description in acl_catalog.PERMISSIONS
    ])
    report.permissions = len(acl_catalog.PERMISSIONS)
    logger.info(f"Seeded {report.permissions} permissions")

    roles = {
        role.code: role
        for role in (await db.execute(select(Role))).scalars().all()
    }
    permissions = {
        permission.key: permission
        for permission in (await db.execute(select(Permission))).scalars().all()
    }
    # 확장은 항상 현재 전체 권한 목록 기준
    all_keys = list(permissions.keys())

    for role_code, patterns in acl_catalog.ROLE_PERMISSIONS.items():
        role = roles.get(role_code)
        if role is None:
            logger.warning(f"Role not found while seeding permissions: {role_code}")
            continue

        await db.execute(delete(RolePermission).where(RolePermission.role_id == role.id))

        keys = expand_permissions(patterns, all_keys)
        missing = [key for key in keys if key not in permissions]
        if missing:
            logger.warning(f"Unknown permission keys for role {role_code}: {missing}")

        for key in keys:
            if key in permissions:
                db.add(RolePermission(role_id=role.id, permission_id=permissions[key].id))
        await db.flush()

        report.role_permissions[role_code] = len(keys) - len(missing)
        logger.info(f"Assigned {report.role_permissions[role_code]} permissions to role {role_code}")

    if permission_service is not None:
        permission_service.clear_all_permission_cache()

    return report
