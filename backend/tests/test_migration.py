"""Legacy news/events/resources import into unified posts."""
import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from chamber.crud.meta_crud import meta_crud
from chamber.crud.post_crud import PostFilters, post_crud
from chamber.crud.translation_crud import translation_crud
from chamber.models import LegacyEvent, LegacyNews, LegacyResource, Post
from chamber.models.post import Locale, PostStatus, PostType, PostVisibility
from chamber.services.migration import (
    migrate_legacy_content,
    migrate_post_type,
    plan_event,
    plan_news,
    plan_resource,
)
from chamber.utils.slug import generate_slug, slugify, unique_slug


# =============================================================================
# Slugs
# =============================================================================

def test_slugify():
    assert slugify("Hello, World!  2024") == "hello-world-2024"
    assert slugify("상공회의소 신년 인사회") == "상공회의소-신년-인사회"
    assert slugify("--a  --  b--") == "a-b"
    assert slugify("!!!") == ""


def test_generate_slug_appends_legacy_id_prefix():
    legacy_id = "3f2a9c1e-0000-4000-8000-000000000000"
    assert generate_slug("Annual Meeting", legacy_id) == "annual-meeting-3f2a9c1e"
    assert generate_slug("???", legacy_id, fallback="news") == "news-3f2a9c1e"


async def test_unique_slug_adds_counter():
    taken = {"seminar", "seminar-2"}

    async def exists(candidate):
        return candidate in taken

    assert await unique_slug("seminar", exists) == "seminar-3"
    assert await unique_slug("workshop", exists) == "workshop"


# =============================================================================
# Planning
# =============================================================================

def _news(**overrides):
    values = dict(
        id=uuid.uuid4(),
        title="신년 인사회 개최",
        excerpt="신년 인사회 안내",
        content="<p>본문</p>",
        category="notice",
        tags=["행사"],
        is_published=True,
        published_at=datetime(2024, 1, 5, tzinfo=timezone.utc),
        view_count=12,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return LegacyNews(**values)


def _event(**overrides):
    values = dict(
        id=uuid.uuid4(),
        title="무역 세미나",
        description="수출 전략 세미나",
        event_date=datetime(2030, 4, 1, 5, 0, tzinfo=timezone.utc),
        location="서울",
        category="seminar",
        event_type="offline",
        capacity=50,
        fee=None,
        is_public=True,
        requires_approval=False,
        images=["https://cdn.test/a.jpg", "https://cdn.test/b.jpg"],
        created_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return LegacyEvent(**values)


def _resource(**overrides):
    values = dict(
        id=uuid.uuid4(),
        title="수출 가이드",
        description="수출 절차 안내서",
        category="guides",
        file_url="https://cdn.test/guide.pdf",
        file_name="guide.pdf",
        file_size=2048,
        file_type="pdf",
        access_level="members",
        download_count=3,
        is_active=True,
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return LegacyResource(**values)


def test_plan_news_translations_only_for_present_locales():
    plan = plan_news(_news(title_en="New Year Reception"))

    locales = [t["locale"] for t in plan.translations]
    assert locales == [Locale.KO, Locale.EN]
    english = plan.translations[1]
    assert english["title"] == "New Year Reception"
    # 번역이 없는 필드는 한국어로 채움
    assert english["excerpt"] == "신년 인사회 안내"
    assert plan.post["status"] == PostStatus.PUBLISHED
    assert plan.meta == {"news.category": "notice", "news.viewCount": 12}


def test_plan_event_maps_meta_and_visibility():
    plan = plan_event(_event())

    assert plan.post["post_type"] == PostType.EVENT
    assert plan.post["cover_image"] == "https://cdn.test/a.jpg"
    assert plan.meta["event.fee"] == 0
    assert plan.meta["event.capacity"] == 50
    assert plan.meta["event.isPublic"] is True
    assert "event.endDate" not in plan.meta

    private = plan_event(_event(is_public=False))
    assert private.post["status"] == PostStatus.DRAFT
    assert private.post["visibility"] == PostVisibility.MEMBERS
    assert private.post["published_at"] is None


def test_plan_resource_maps_access_level():
    plan = plan_resource(_resource())
    assert plan.post["visibility"] == PostVisibility.MEMBERS
    assert plan.meta["resource.fileSize"] == 2048

    inactive = plan_resource(_resource(is_active=False, access_level="unknown"))
    assert inactive.post["status"] == PostStatus.ARCHIVED
    assert inactive.post["visibility"] == PostVisibility.PUBLIC


# =============================================================================
# Running
# =============================================================================

async def _post_count(db):
    return (await db.execute(select(func.count()).select_from(Post))).scalar_one()


async def test_dry_run_writes_nothing(db, session_factory):
    db.add_all([_news(), _event()])
    await db.commit()

    reports = await migrate_legacy_content(session_factory, dry_run=True)

    assert reports["news"].total == 1
    assert reports["news"].planned[0][0] == "신년 인사회 개최"
    assert reports["event"].summary().startswith("[DRY RUN]")
    assert await _post_count(db) == 0


async def test_migrates_event_with_typed_meta(db, session_factory):
    legacy = _event(title_en="Trade Seminar", registration_deadline=datetime(2030, 3, 25, tzinfo=timezone.utc))
    db.add(legacy)
    await db.commit()

    report = await migrate_post_type(session_factory, "event")
    assert (report.total, report.migrated, report.failed) == (1, 1, 0)

    post = (await db.execute(select(Post))).scalars().one()
    assert post.slug == f"무역-세미나-{str(legacy.id)[:8]}"
    assert post.post_type == PostType.EVENT
    assert post.primary_locale == Locale.KO

    translations = await translation_crud.get_translations(db, post.id)
    assert [t.locale for t in translations] == [Locale.KO, Locale.EN]

    meta = await meta_crud.get_all_meta(db, post.id)
    assert meta["event.eventDate"].value == datetime(2030, 4, 1, 5, 0, tzinfo=timezone.utc)
    assert meta["event.capacity"].value == 50
    assert meta["event.images"].value == ["https://cdn.test/a.jpg", "https://cdn.test/b.jpg"]

    items, _ = await post_crud.list_posts(
        db, PostFilters(upcoming=True),
        now=datetime(2030, 1, 1, tzinfo=timezone.utc),
    )
    assert [item.post.id for item in items] == [post.id]


async def test_failed_record_does_not_stop_the_run(db, session_factory):
    db.add_all([
        _news(title="정상 뉴스", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
        _news(title="   ", created_at=datetime(2024, 1, 2, tzinfo=timezone.utc)),
        _news(title="또 다른 뉴스", created_at=datetime(2024, 1, 3, tzinfo=timezone.utc)),
    ])
    await db.commit()

    report = await migrate_post_type(session_factory, "news")

    assert (report.total, report.migrated, report.failed) == (3, 2, 1)
    assert await _post_count(db) == 2


async def test_rerun_creates_suffixed_slugs(db, session_factory):
    legacy = _resource()
    db.add(legacy)
    await db.commit()

    await migrate_post_type(session_factory, "resource")
    await migrate_post_type(session_factory, "resource")

    slugs = sorted((await db.execute(select(Post.slug))).scalars().all())
    base = f"수출-가이드-{str(legacy.id)[:8]}"
    assert slugs == [base, f"{base}-2"]


async def test_migrated_news_falls_back_to_korean_for_other_locales(client, db, session_factory):
    db.add(_news(title="한국어 전용 뉴스"))
    await db.commit()

    await migrate_post_type(session_factory, "news")
    post = (await db.execute(select(Post))).scalars().one()

    response = await client.get(f"/api/posts/{post.id}", params={"locale": "en"})
    assert response.status_code == 200
    body = response.json()
    assert body["display"]["title"] == "한국어 전용 뉴스"
    assert body["display"]["locale"] == "ko"
    assert [t["locale"] for t in body["translations"]] == ["ko"]


@pytest.mark.parametrize("post_type", ["news", "event", "resource"])
async def test_empty_legacy_tables(session_factory, post_type):
    report = await migrate_post_type(session_factory, post_type)
    assert (report.total, report.migrated, report.failed) == (0, 0, 0)
