"""Typed post metadata: coercion, storage columns, atomic counters."""
import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from chamber.core.exceptions import ValidationError
from chamber.core.meta_keys import MetaValue, MetaValueType, get_meta_value_type, is_known_meta_key
from chamber.crud.meta_crud import meta_crud
from chamber.crud.post_crud import build_meta_value
from chamber.models.post import PostMeta, PostType
from conftest import create_post


# =============================================================================
# Catalog and coercion
# =============================================================================

@pytest.mark.parametrize(
    "key, kind",
    [
        ("news.viewCount", MetaValueType.NUMBER),
        ("event.capacity", MetaValueType.NUMBER),
        ("event.eventDate", MetaValueType.TIMESTAMP),
        ("event.isPublic", MetaValueType.BOOLEAN),
        ("event.speakers", MetaValueType.JSON),
        ("event.location", MetaValueType.TEXT),
        ("resource.fileUrl", MetaValueType.TEXT),
    ],
)
def test_value_type_by_key(key, kind):
    assert get_meta_value_type(key) is kind


def test_known_keys_are_namespaced_by_post_type():
    assert is_known_meta_key("event.capacity")
    assert is_known_meta_key("event.capacity", "event")
    assert not is_known_meta_key("event.capacity", "news")
    assert not is_known_meta_key("event.unknownField")


def test_coercion_from_strings():
    assert MetaValue.for_key("event.capacity", "50").value == 50
    assert MetaValue.for_key("event.isPublic", "false").value is False

    event_date = MetaValue.for_key("event.eventDate", "2026-07-01T09:00:00+09:00").value
    assert event_date == datetime(2026, 7, 1, 0, 0, tzinfo=timezone.utc)


def test_naive_timestamp_is_treated_as_utc():
    value = MetaValue.for_key("event.eventDate", datetime(2026, 7, 1, 9, 0)).value
    assert value.tzinfo is not None
    assert value.hour == 9


@pytest.mark.parametrize(
    "key, raw",
    [
        ("event.capacity", "fifty"),
        ("event.capacity", True),
        ("event.capacity", 1.5),
        ("event.isPublic", "yes"),
        ("event.eventDate", 12345),
        ("event.speakers", "kim"),
        ("event.location", 3),
        ("event.location", None),
    ],
)
def test_coercion_rejects_mismatched_values(key, raw):
    with pytest.raises(ValueError):
        MetaValue.for_key(key, raw)


def test_build_meta_value_rejects_foreign_namespace():
    with pytest.raises(ValidationError) as exc_info:
        build_meta_value(PostType.NEWS, "event.capacity", 10)
    assert exc_info.value.code == "unknown_meta_key"

    with pytest.raises(ValidationError) as exc_info:
        build_meta_value(PostType.EVENT, "event.capacity", "many")
    assert exc_info.value.code == "invalid_meta_value"


def test_only_one_column_is_populated():
    columns = MetaValue(MetaValueType.NUMBER, 5).to_columns()
    assert columns["value_number"] == 5
    assert [name for name, value in columns.items() if value is not None] == ["value_number"]


# =============================================================================
# Storage
# =============================================================================

async def test_set_meta_overwrites_and_clears_other_columns(db):
    hydrated = await create_post(db, post_type="event")
    post_id = hydrated.post.id

    await meta_crud.set_meta(db, post_id, "event.location", MetaValue(MetaValueType.TEXT, "서울"))
    await meta_crud.set_meta(db, post_id, "event.location", MetaValue(MetaValueType.TEXT, "부산"))
    await db.commit()

    rows = (
        await db.execute(select(PostMeta).where(PostMeta.post_id == post_id, PostMeta.key == "event.location"))
    ).scalars().all()
    assert len(rows) == 1
    assert rows[0].value_text == "부산"
    assert rows[0].value_number is None

    value = await meta_crud.get_meta(db, post_id, "event.location")
    assert value == MetaValue(MetaValueType.TEXT, "부산")


async def test_create_post_stores_typed_meta(db):
    event_date = datetime(2030, 3, 1, 10, 0, tzinfo=timezone.utc)
    hydrated = await create_post(
        db,
        post_type="event",
        meta={
            "event.eventDate": event_date.isoformat(),
            "event.capacity": 30,
            "event.requiresApproval": True,
            "event.speakers": [{"name": "김대표"}],
        },
    )

    values = await meta_crud.get_all_meta(db, hydrated.post.id)
    assert values["event.eventDate"].value == event_date
    assert values["event.capacity"] == MetaValue(MetaValueType.NUMBER, 30)
    assert values["event.requiresApproval"].value is True
    assert values["event.speakers"].value == [{"name": "김대표"}]


async def test_get_missing_meta_returns_none(db):
    hydrated = await create_post(db)
    assert await meta_crud.get_meta(db, hydrated.post.id, "news.category") is None


# =============================================================================
# Counters
# =============================================================================

async def test_increment_creates_then_adds(db):
    hydrated = await create_post(db)
    post_id = hydrated.post.id

    assert await meta_crud.increment_meta_number(db, post_id, "news.viewCount") == 1
    assert await meta_crud.increment_meta_number(db, post_id, "news.viewCount", 4) == 5
    await db.commit()

    value = await meta_crud.get_meta(db, post_id, "news.viewCount")
    assert value.value == 5


async def test_increment_rejects_non_numeric_key(db):
    hydrated = await create_post(db)
    with pytest.raises(ValueError):
        await meta_crud.increment_meta_number(db, hydrated.post.id, "news.category")


async def test_concurrent_increments_are_not_lost(db, session_factory):
    hydrated = await create_post(db, meta={"news.viewCount": 10})
    post_id = hydrated.post.id

    async def bump(amount):
        async with session_factory() as session:
            value = await meta_crud.increment_meta_number(session, post_id, "news.viewCount", amount)
            await session.commit()
            return value

    await asyncio.gather(bump(3), bump(4), *(bump(1) for _ in range(5)))

    async with session_factory() as session:
        value = await meta_crud.get_meta(session, post_id, "news.viewCount")
    assert value.value == 10 + 3 + 4 + 5
