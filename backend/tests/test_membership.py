"""Membership assignment, legacy membership inference and the membership endpoints."""
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from chamber.core.exceptions import NotFoundError, ValidationError
from chamber.models import UserMembership
from chamber.models.base import utcnow
from chamber.services.membership_service import (
    assign_membership,
    deactivate_membership,
    infer_membership_codes,
)
from chamber.services.migration import migrate_user_memberships
from chamber.services.permission_service import PermissionCache, PermissionService
from conftest import auth_headers, create_user, grant


@pytest.mark.parametrize(
    "role, level, expected",
    [
        ("admin", "premium", ("ADMIN", "admin")),
        ("member", "sponsor", ("CORP", "member")),
        ("member", "premium", ("PRO", "member")),
        ("member", "regular", ("MEMBER", "member")),
        ("member", None, ("MEMBER", "member")),
    ],
)
def test_infer_membership_codes(role, level, expected):
    assert infer_membership_codes(role, level) == expected


async def _memberships(db, user):
    result = await db.execute(
        select(UserMembership)
        .where(UserMembership.user_id == user.id)
        .order_by(UserMembership.started_at)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def test_assign_deactivates_previous_and_invalidates_cache(db, seeded):
    service = PermissionService(PermissionCache())
    user = await create_user(db)
    await grant(db, user, "member", permission_service=service)

    assert not await service.has_permission(db, user.id, "news.update")

    await assign_membership(db, service, user.id, "MEMBER", "editor", notes="승격")
    await db.commit()

    memberships = await _memberships(db, user)
    assert [m.is_active for m in memberships] == [False, True]
    assert memberships[-1].notes == "승격"
    assert await service.has_permission(db, user.id, "news.update")


async def test_assign_rejects_unknown_codes_and_past_expiry(db, seeded):
    user = await create_user(db)

    with pytest.raises(ValidationError):
        await assign_membership(db, None, user.id, "GOLD", "member")
    with pytest.raises(ValidationError):
        await assign_membership(db, None, user.id, "MEMBER", "superuser")
    with pytest.raises(ValidationError):
        await assign_membership(
            db, None, user.id, "MEMBER", "member", expires_at=utcnow() - timedelta(days=1)
        )


async def test_assign_to_unknown_user(db, seeded):
    with pytest.raises(NotFoundError):
        await assign_membership(db, None, uuid.uuid4(), "MEMBER", "member")


async def test_deactivate_membership(db, seeded):
    service = PermissionService(PermissionCache())
    user = await create_user(db)
    await grant(db, user, "member")
    assert await service.has_permission(db, user.id, "news.read")

    assert await deactivate_membership(db, service, user.id) == 1
    await db.commit()

    assert not await service.has_permission(db, user.id, "news.read")


async def test_migrate_user_memberships(db, seeded):
    admin = await create_user(db, role="admin")
    sponsor = await create_user(db, membership_level="sponsor")
    regular = await create_user(db, membership_level="regular")
    already = await create_user(db)
    await grant(db, already, "editor", tier_code="PARTNER")

    report = await migrate_user_memberships(db)
    await db.commit()

    assert (report.total, report.migrated, report.skipped, report.failed) == (4, 3, 1, 0)

    service = PermissionService(PermissionCache())
    assert (await service.get_user_membership_info(db, admin.id)).tier_code == "ADMIN"
    assert (await service.get_user_membership_info(db, sponsor.id)).tier_code == "CORP"
    assert (await service.get_user_membership_info(db, regular.id)).role_code == "member"
    # 기존 멤버십은 그대로
    assert (await service.get_user_membership_info(db, already.id)).tier_code == "PARTNER"

    # 다시 실행해도 중복 생성 없음
    second = await migrate_user_memberships(db)
    assert (second.migrated, second.skipped) == (0, 4)


async def test_migrate_without_catalog_reports_failures(db):
    await create_user(db)
    report = await migrate_user_memberships(db)
    assert (report.migrated, report.failed) == (0, 1)


# =============================================================================
# Endpoints
# =============================================================================

async def test_my_permissions(client, db, seeded):
    user = await create_user(db)
    await grant(db, user, "member", tier_code="PRO")

    response = await client.get("/api/user/permissions", headers=auth_headers(user))
    assert response.status_code == 200
    body = response.json()
    assert body["userId"] == str(user.id)
    assert "event.read" in body["permissions"]
    assert "event.create" not in body["permissions"]
    assert body["membership"]["tierCode"] == "PRO"
    assert body["membership"]["roleCode"] == "member"


async def test_my_permissions_without_membership(client, db, seeded):
    user = await create_user(db)
    body = (await client.get("/api/user/permissions", headers=auth_headers(user))).json()
    assert body["permissions"] == []
    assert body["membership"] is None


async def test_membership_change_requires_member_manage(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")
    target = await create_user(db)

    response = await client.put(
        f"/api/users/{target.id}/membership",
        json={"tierCode": "PRO", "roleCode": "member"},
        headers=auth_headers(editor),
    )
    assert response.status_code == 403
    assert response.json()["required"] == "member.manage"


async def test_membership_change_takes_effect_immediately(client, db, seeded, permission_service):
    admin = await create_user(db, role="admin")
    await grant(db, admin, "admin", tier_code="ADMIN")
    target = await create_user(db)
    await grant(db, target, "member")

    # 캐시에 기존 권한 적재
    before = (await client.get("/api/user/permissions", headers=auth_headers(target))).json()
    assert "news.update" not in before["permissions"]

    response = await client.put(
        f"/api/users/{target.id}/membership",
        json={"tierCode": "CORP", "roleCode": "editor"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["tierCode"] == "CORP"
    assert response.json()["roleCode"] == "editor"

    after = (await client.get("/api/user/permissions", headers=auth_headers(target))).json()
    assert "news.update" in after["permissions"]


async def test_membership_change_with_unknown_tier(client, db, seeded):
    admin = await create_user(db, role="admin")
    await grant(db, admin, "admin", tier_code="ADMIN")
    target = await create_user(db)

    response = await client.put(
        f"/api/users/{target.id}/membership",
        json={"tierCode": "GOLD", "roleCode": "member"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 422
    assert response.json()["code"] == "unknown_tier"
