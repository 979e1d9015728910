"""
레거시 뉴스/이벤트/자료 -> 통합 포스트 이전

레코드마다 별도 트랜잭션으로 처리하므로, 실패한 레코드는 로그만 남기고
다음 레코드를 계속 이전합니다. 결과는 타입별 MigrationReport 로 반환됩니다.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
import logging

from ..core.constants import EXCERPT_MAX_LENGTH, POST_TYPE_EVENT, POST_TYPE_NEWS, POST_TYPE_RESOURCE
from ..core.meta_keys import EVENT_META_KEYS, NEWS_META_KEYS, RESOURCE_META_KEYS
from ..crud.membership_crud import membership_crud
from ..crud.post_crud import post_crud
from ..models.acl import UserMembership
from ..models.base import utcnow
from ..models.legacy import LegacyEvent, LegacyNews, LegacyResource
from ..models.post import Locale, Post, PostStatus, PostType, PostVisibility
from ..models.user import User
from ..schemas.post import PostCreate, TranslationUpsert
from ..utils.slug import generate_slug, unique_slug
from .membership_service import infer_membership_codes

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    post_type: str
    total: int = 0
    migrated: int = 0
    failed: int = 0
    dry_run: bool = False
    # dry-run 시 (제목, 예상 슬러그)
    planned: List[Tuple[str, str]] = field(default_factory=list)

    def summary(self) -> str:
        if self.dry_run:
            return f"[DRY RUN] {self.post_type}: {self.total} records would be migrated"
        return f"{self.post_type}: migrated {self.migrated}, failed {self.failed} (of {self.total})"


@dataclass
class LegacyPostPlan:
    """레거시 레코드 하나를 포스트로 옮기기 위한 값"""
    legacy_id: str
    title: str
    post: Dict[str, Any]
    translations: List[Dict[str, Any]]
    meta: Dict[str, Any]

    @property
    def base_slug(self) -> str:
        return generate_slug(self.title, self.legacy_id, fallback=self.post["post_type"].value)


def _excerpt(text: Optional[str]) -> Optional[str]:
    return text[:EXCERPT_MAX_LENGTH] if text else None


def _localized(row: Any, name: str, locale: str) -> Optional[str]:
    return getattr(row, f"{name}_{locale}", None)


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def plan_news(news: LegacyNews) -> LegacyPostPlan:
    translations = [{
        "locale": Locale.KO,
        "title": news.title,
        "excerpt": news.excerpt,
        "content": news.content,
    }]
    for locale in (Locale.EN, Locale.ZH):
        title = _localized(news, "title", locale.value)
        excerpt = _localized(news, "excerpt", locale.value)
        content = _localized(news, "content", locale.value)
        # 번역 필드가 하나라도 있을 때만 생성, 빈 필드는 한국어로 채움
        if title or excerpt or content:
            translations.append({
                "locale": locale,
                "title": title or news.title,
                "excerpt": excerpt or news.excerpt,
                "content": content or news.content,
            })

    return LegacyPostPlan(
        legacy_id=str(news.id),
        title=news.title,
        post={
            "post_type": PostType.NEWS,
            "status": PostStatus.PUBLISHED if news.is_published else PostStatus.DRAFT,
            "visibility": PostVisibility.PUBLIC,
            "author_id": news.author_id,
            "cover_image": news.featured_image,
            "tags": news.tags or [],
            "published_at": news.published_at,
        },
        translations=translations,
        meta=_drop_none({
            NEWS_META_KEYS["category"]: news.category,
            NEWS_META_KEYS["viewCount"]: news.view_count,
            NEWS_META_KEYS["images"]: news.images or None,
        }),
    )


def plan_event(event: LegacyEvent) -> LegacyPostPlan:
    description = event.description or ""
    translations = [{
        "locale": Locale.KO,
        "title": event.title,
        "excerpt": _excerpt(description),
        "content": event.content or event.description or None,
    }]
    for locale in (Locale.EN, Locale.ZH):
        title = _localized(event, "title", locale.value)
        localized_description = _localized(event, "description", locale.value)
        content = _localized(event, "content", locale.value)
        if title or localized_description or content:
            translations.append({
                "locale": locale,
                "title": title or event.title,
                "excerpt": _excerpt(localized_description or description),
                "content": content or event.content or localized_description or event.description or None,
            })

    images = event.images or None
    return LegacyPostPlan(
        legacy_id=str(event.id),
        title=event.title,
        post={
            "post_type": PostType.EVENT,
            "status": PostStatus.PUBLISHED if event.is_public else PostStatus.DRAFT,
            "visibility": PostVisibility.PUBLIC if event.is_public else PostVisibility.MEMBERS,
            "author_id": event.created_by,
            "cover_image": images[0] if images else None,
            "tags": [],
            "published_at": event.created_at if event.is_public else None,
        },
        translations=translations,
        meta=_drop_none({
            EVENT_META_KEYS["eventDate"]: event.event_date,
            EVENT_META_KEYS["location"]: event.location,
            EVENT_META_KEYS["category"]: event.category,
            EVENT_META_KEYS["eventType"]: event.event_type,
            EVENT_META_KEYS["fee"]: event.fee if event.fee is not None else 0,
            EVENT_META_KEYS["isPublic"]: event.is_public,
            EVENT_META_KEYS["requiresApproval"]: event.requires_approval,
            EVENT_META_KEYS["endDate"]: event.end_date,
            EVENT_META_KEYS["capacity"]: event.capacity,
            EVENT_META_KEYS["registrationDeadline"]: event.registration_deadline,
            EVENT_META_KEYS["images"]: images,
            EVENT_META_KEYS["speakers"]: event.speakers or None,
            EVENT_META_KEYS["program"]: event.program or None,
        }),
    )


_ACCESS_LEVEL_VISIBILITY = {
    "public": PostVisibility.PUBLIC,
    "members": PostVisibility.MEMBERS,
    "premium": PostVisibility.PREMIUM,
}


def plan_resource(resource: LegacyResource) -> LegacyPostPlan:
    translations = [{
        "locale": Locale.KO,
        "title": resource.title,
        "excerpt": _excerpt(resource.description),
        "content": resource.description or None,
    }]
    for locale in (Locale.EN, Locale.ZH):
        title = _localized(resource, "title", locale.value)
        localized_description = _localized(resource, "description", locale.value)
        if title or localized_description:
            translations.append({
                "locale": locale,
                "title": title or resource.title,
                "excerpt": _excerpt(localized_description) or _excerpt(resource.description),
                "content": localized_description or resource.description or None,
            })

    return LegacyPostPlan(
        legacy_id=str(resource.id),
        title=resource.title,
        post={
            "post_type": PostType.RESOURCE,
            "status": PostStatus.PUBLISHED if resource.is_active else PostStatus.ARCHIVED,
            "visibility": _ACCESS_LEVEL_VISIBILITY.get(resource.access_level, PostVisibility.PUBLIC),
            "author_id": resource.created_by,
            "tags": [],
            "published_at": resource.created_at if resource.is_active else None,
        },
        translations=translations,
        meta=_drop_none({
            RESOURCE_META_KEYS["category"]: resource.category,
            RESOURCE_META_KEYS["fileUrl"]: resource.file_url,
            RESOURCE_META_KEYS["fileName"]: resource.file_name,
            RESOURCE_META_KEYS["fileType"]: resource.file_type,
            RESOURCE_META_KEYS["accessLevel"]: resource.access_level,
            RESOURCE_META_KEYS["downloadCount"]: resource.download_count,
            RESOURCE_META_KEYS["fileSize"]: resource.file_size,
        }),
    )


_LEGACY_SOURCES: Dict[str, Tuple[Any, Callable[[Any], LegacyPostPlan]]] = {
    POST_TYPE_NEWS: (LegacyNews, plan_news),
    POST_TYPE_EVENT: (LegacyEvent, plan_event),
    POST_TYPE_RESOURCE: (LegacyResource, plan_resource),
}


async def apply_plan(db: AsyncSession, plan: LegacyPostPlan) -> Post:
    """계획대로 포스트/번역/메타 생성. 커밋은 호출하는 쪽에서 합니다."""
    slug = await unique_slug(plan.base_slug, lambda candidate: post_crud.slug_exists(db, candidate))
    post_in = PostCreate(
        slug=slug,
        primary_locale=Locale.KO,
        is_featured=False,
        translations=[TranslationUpsert(**t) for t in plan.translations],
        meta=plan.meta,
        **plan.post
    )
    hydrated = await post_crud.create_post_with_content(db, post_in, author_id=plan.post.get("author_id"))
    return hydrated.post


async def migrate_post_type(
    session_factory: async_sessionmaker,
    post_type: str,
    dry_run: bool = False
) -> MigrationReport:
    model, planner = _LEGACY_SOURCES[post_type]
    report = MigrationReport(post_type=post_type, dry_run=dry_run)

    async with session_factory() as db:
        result = await db.execute(select(model).order_by(model.created_at, model.id))
        rows = list(result.scalars().all())
    report.total = len(rows)
    logger.info(f"Found {report.total} legacy {post_type} records")

    if dry_run:
        for row in rows:
            plan = planner(row)
            report.planned.append((plan.title, plan.base_slug))
        return report

    for row in rows:
        async with session_factory() as db:
            try:
                plan = planner(row)
                post = await apply_plan(db, plan)
                await db.commit()
                report.migrated += 1
                logger.info(f"Migrated {post_type} {row.id} -> {post.slug}")
            except Exception as e:
                # 한 레코드의 실패는 전체 이전을 중단하지 않음
                await db.rollback()
                report.failed += 1
                logger.error(f"Failed to migrate {post_type} {row.id} ({row.title}): {e}")

    logger.info(report.summary())
    return report


async def migrate_legacy_content(
    session_factory: async_sessionmaker,
    dry_run: bool = False,
    post_types: Tuple[str, ...] = (POST_TYPE_NEWS, POST_TYPE_EVENT, POST_TYPE_RESOURCE)
) -> Dict[str, MigrationReport]:
    reports = {}
    for post_type in post_types:
        reports[post_type] = await migrate_post_type(session_factory, post_type, dry_run=dry_run)
    return reports


@dataclass
class MembershipMigrationReport:
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    failed: int = 0


async def migrate_user_memberships(db: AsyncSession) -> MembershipMigrationReport:
    """
    활성 멤버십이 없는 사용자에게 레거시 정보로 추론한 멤버십 부여
    커밋은 호출하는 쪽에서 합니다.
    """
    report = MembershipMigrationReport()
    users = list((await db.execute(select(User).order_by(User.created_at))).scalars().all())
    report.total = len(users)
    with_membership = await membership_crud.user_ids_with_active_membership(db)

    for user in users:
        if user.id in with_membership:
            logger.info(f"Skipping {user.email} (already has membership)")
            report.skipped += 1
            continue

        tier_code, role_code = infer_membership_codes(user.role, user.membership_level)
        tier = await membership_crud.get_tier_by_code(db, tier_code)
        role = await membership_crud.get_role_by_code(db, role_code)
        if not tier or not role:
            logger.error(f"Missing tier or role for {user.email}: {tier_code}/{role_code}")
            report.failed += 1
            continue

        db.add(UserMembership(
            user_id=user.id,
            tier_id=tier.id,
            role_id=role.id,
            is_active=True,
            started_at=utcnow(),
            expires_at=None,
            notes="Migrated from legacy system",
        ))
        logger.info(f"{user.email}: {tier_code} / {role_code}")
        report.migrated += 1

    await db.flush()
    return report
