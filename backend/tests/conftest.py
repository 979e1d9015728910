"""
Test configuration and fixtures.

Provides:
- SQLite (aiosqlite) database file per test, tables created from metadata
- Seeded ACL catalog and helpers to grant memberships
- Token minting for authenticated requests
- HTTPX AsyncClient against the FastAPI app with get_db overridden
"""
import os
import uuid
from typing import AsyncGenerator, Iterable, Optional

# 설정 로딩 전에 테스트 환경 변수 지정
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-chamber-content-service-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./chamber_unused.db")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chamber.core.security import create_access_token
from chamber.database.session import build_engine, build_sessionmaker, get_db, init_db
from chamber.main import app
from chamber.crud.post_crud import HydratedPost, post_crud
from chamber.models import Permission, Role, RolePermission, Tier, User, UserMembership
from chamber.schemas.post import PostCreate
from chamber.services.acl_seed import seed_acl
from chamber.services.membership_service import assign_membership
from chamber.services.permission_service import PermissionCache, PermissionService


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'chamber_test.db'}")
    await init_db(bind=test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture(scope="function")
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def permission_service() -> PermissionService:
    """테스트마다 새 캐시 (앱 상태도 교체)"""
    service = PermissionService(PermissionCache(ttl_seconds=300))
    previous = app.state.permission_service
    app.state.permission_service = service
    yield service
    service.clear_all_permission_cache()
    app.state.permission_service = previous


@pytest.fixture(scope="function")
async def seeded(db: AsyncSession):
    report = await seed_acl(db)
    await db.commit()
    return report


# =============================================================================
# Helpers
# =============================================================================

async def create_user(
    db: AsyncSession,
    role: str = "member",
    membership_level: Optional[str] = None,
    name: str = "테스트 사용자",
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"user-{uuid.uuid4().hex[:8]}@test.com",
        name=name,
        role=role,
        membership_level=membership_level,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


async def grant(
    db: AsyncSession,
    user: User,
    role_code: str,
    tier_code: str = "MEMBER",
    permission_service: Optional[PermissionService] = None,
) -> UserMembership:
    membership = await assign_membership(db, permission_service, user.id, tier_code, role_code)
    await db.commit()
    return membership


async def create_role(db: AsyncSession, code: str, permission_keys: Iterable[str]) -> Role:
    """카탈로그와 별개로 임의 권한을 가진 역할 생성"""
    role = Role(id=uuid.uuid4(), code=code, name=code)
    db.add(role)
    await db.flush()
    for key in permission_keys:
        permission = (await db.execute(select(Permission).where(Permission.key == key))).scalars().first()
        if permission is None:
            resource, _, action = key.partition(".")
            permission = Permission(id=uuid.uuid4(), key=key, resource=resource, action=action or "*")
            db.add(permission)
            await db.flush()
        db.add(RolePermission(role_id=role.id, permission_id=permission.id))
    await db.commit()
    return role


async def create_membership(
    db: AsyncSession,
    user: User,
    role: Role,
    tier: Optional[Tier] = None,
    **kwargs
) -> UserMembership:
    if tier is None:
        tier = Tier(id=uuid.uuid4(), code=f"T{uuid.uuid4().hex[:6]}", name="테스트 등급")
        db.add(tier)
        await db.flush()
    membership = UserMembership(user_id=user.id, tier_id=tier.id, role_id=role.id, **kwargs)
    db.add(membership)
    await db.commit()
    return membership


async def create_post(
    db: AsyncSession,
    post_type: str = "news",
    slug: Optional[str] = None,
    status: str = "published",
    visibility: str = "public",
    translations: Optional[list] = None,
    meta: Optional[dict] = None,
    **kwargs
) -> HydratedPost:
    """번역/메타와 함께 포스트 생성 후 커밋"""
    if translations is None:
        translations = [{"locale": "ko", "title": f"{post_type} 제목"}]
    post_in = PostCreate(
        post_type=post_type,
        slug=slug or f"{post_type}-{uuid.uuid4().hex[:8]}",
        status=status,
        visibility=visibility,
        translations=translations,
        meta=meta or {},
        **kwargs
    )
    hydrated = await post_crud.create_post_with_content(db, post_in)
    await db.commit()
    return hydrated


def auth_headers(user: User, include_role: bool = True) -> dict:
    payload = {"sub": str(user.id), "email": user.email}
    if include_role:
        payload["role"] = user.role
    return {"Authorization": f"Bearer {create_access_token(payload)}"}


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(session_factory, permission_service) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient for the API; each request gets its own session
    on the per-test database.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
