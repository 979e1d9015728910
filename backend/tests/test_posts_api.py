"""Posts HTTP API: authentication, permission guards, visibility, translations and meta."""
import uuid

from sqlalchemy import select

from chamber.models import PostMeta
from conftest import auth_headers, create_membership, create_post, create_role, create_user, grant


EVENT_PAYLOAD = {
    "postType": "event",
    "slug": "networking-night",
    "status": "draft",
    "visibility": "public",
    "tags": ["네트워킹", " "],
    "translations": [
        {"locale": "ko", "title": "네트워킹의 밤", "excerpt": "회원 교류 행사"},
        {"locale": "en", "title": "Networking Night"},
    ],
    "meta": {
        "event.eventDate": "2030-05-01T18:00:00+09:00",
        "event.capacity": 40,
        "event.location": "서울 상공회의소",
    },
}


# =============================================================================
# Authentication and permissions
# =============================================================================

async def test_create_requires_token(client, seeded):
    response = await client.post("/api/posts", json=EVENT_PAYLOAD)
    assert response.status_code == 401
    assert response.json()["error"] == "UnauthenticatedError"


async def test_invalid_token_is_rejected(client, seeded):
    response = await client.post(
        "/api/posts", json=EVENT_PAYLOAD, headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


async def test_member_cannot_create_event_but_can_list(client, db, seeded):
    member = await create_user(db)
    await grant(db, member, "member")

    response = await client.post("/api/posts", json=EVENT_PAYLOAD, headers=auth_headers(member))
    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "insufficient_permissions"
    assert body["required"] == "event.create"

    response = await client.get("/api/posts", params={"postType": "event"}, headers=auth_headers(member))
    assert response.status_code == 200


async def test_publishing_requires_publish_permission(client, db, seeded):
    author = await create_user(db)
    writer = await create_role(db, "writer", ["event.create", "event.update"])
    await create_membership(db, author, writer)

    response = await client.post(
        "/api/posts",
        json={**EVENT_PAYLOAD, "status": "published"},
        headers=auth_headers(author),
    )
    assert response.status_code == 403
    assert response.json()["required_all"] == ["event.create", "event.publish"]

    response = await client.post("/api/posts", json=EVENT_PAYLOAD, headers=auth_headers(author))
    assert response.status_code == 201


async def test_token_without_role_is_resolved_from_database(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")

    response = await client.post(
        "/api/posts", json=EVENT_PAYLOAD, headers=auth_headers(editor, include_role=False)
    )
    assert response.status_code == 201


async def test_token_without_role_for_unknown_user_is_rejected(client, seeded):
    ghost = type("Ghost", (), {"id": uuid.uuid4(), "email": "ghost@test.com", "role": None})()
    response = await client.post(
        "/api/posts", json=EVENT_PAYLOAD, headers=auth_headers(ghost, include_role=False)
    )
    assert response.status_code == 401


# =============================================================================
# Create / read
# =============================================================================

async def test_editor_creates_event_with_translations_and_meta(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")

    response = await client.post("/api/posts", json=EVENT_PAYLOAD, headers=auth_headers(editor))
    assert response.status_code == 201
    body = response.json()

    assert body["postType"] == "event"
    assert body["slug"] == "networking-night"
    assert body["authorId"] == str(editor.id)
    assert body["tags"] == ["네트워킹"]
    assert body["publishedAt"] is None
    assert {t["locale"] for t in body["translations"]} == {"ko", "en"}
    assert body["display"]["title"] == "네트워킹의 밤"

    meta = {m["key"]: m for m in body["meta"]}
    assert meta["event.capacity"]["value"] == 40
    assert meta["event.capacity"]["valueType"] == "number"
    assert meta["event.eventDate"]["valueType"] == "timestamp"


async def test_duplicate_slug_returns_conflict(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")

    first = await client.post("/api/posts", json=EVENT_PAYLOAD, headers=auth_headers(editor))
    assert first.status_code == 201
    second = await client.post("/api/posts", json=EVENT_PAYLOAD, headers=auth_headers(editor))
    assert second.status_code == 409
    assert second.json()["code"] == "duplicate_slug"


async def test_unknown_meta_key_fails_without_writing(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")

    payload = {**EVENT_PAYLOAD, "meta": {"news.viewCount": 1}}
    response = await client.post("/api/posts", json=payload, headers=auth_headers(editor))
    assert response.status_code == 422
    assert response.json()["code"] == "unknown_meta_key"

    listing = await client.get("/api/posts", headers=auth_headers(editor))
    assert listing.json()["total"] == 0


async def test_request_validation_errors(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")

    payload = {**EVENT_PAYLOAD, "translations": [{"locale": "ko", "title": "   "}]}
    response = await client.post("/api/posts", json=payload, headers=auth_headers(editor))
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"

    payload = {**EVENT_PAYLOAD, "slug": "has space"}
    response = await client.post("/api/posts", json=payload, headers=auth_headers(editor))
    assert response.status_code == 422


async def test_detail_uses_locale_hint_with_fallback(client, db):
    hydrated = await create_post(
        db,
        primary_locale="ko",
        translations=[{"locale": "ko", "title": "한국어 제목"}, {"locale": "zh", "title": "中文标题"}],
    )
    post_id = hydrated.post.id

    response = await client.get(f"/api/posts/{post_id}", params={"locale": "zh"})
    assert response.json()["display"]["title"] == "中文标题"

    response = await client.get(f"/api/posts/{post_id}", params={"locale": "en"})
    body = response.json()
    assert body["display"]["title"] == "한국어 제목"
    assert len(body["translations"]) == 2


async def test_detail_of_missing_post_is_404(client):
    response = await client.get(f"/api/posts/{uuid.uuid4()}")
    assert response.status_code == 404


# =============================================================================
# Visibility
# =============================================================================

async def test_anonymous_sees_only_published_public(client, db, seeded):
    public = await create_post(db, slug="public-news")
    members_only = await create_post(db, slug="members-news", visibility="members")
    await create_post(db, slug="draft-news", status="draft")

    response = await client.get("/api/posts")
    body = response.json()
    assert body["total"] == 1
    assert [p["slug"] for p in body["posts"]] == ["public-news"]

    assert (await client.get(f"/api/posts/{public.post.id}")).status_code == 200
    assert (await client.get(f"/api/posts/{members_only.post.id}")).status_code == 404


async def test_members_and_premium_visibility(client, db, seeded):
    await create_post(db, slug="public-news")
    await create_post(db, slug="members-news", visibility="members")
    await create_post(db, slug="premium-news", visibility="premium")
    await create_post(db, slug="internal-news", visibility="internal")

    member = await create_user(db)
    await grant(db, member, "member")
    pro = await create_user(db, membership_level="premium")
    await grant(db, pro, "member", tier_code="PRO")
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")

    async def slugs(user):
        response = await client.get("/api/posts", headers=auth_headers(user))
        return {p["slug"] for p in response.json()["posts"]}

    assert await slugs(member) == {"public-news", "members-news"}
    assert await slugs(pro) == {"public-news", "members-news", "premium-news"}
    assert await slugs(editor) == {"public-news", "members-news", "premium-news", "internal-news"}


async def test_list_filters_and_pagination(client, db):
    for index in range(3):
        await create_post(db, slug=f"news-{index}", tags=["무역"])
    await create_post(db, post_type="resource", slug="guide")

    response = await client.get("/api/posts", params={"postType": "news", "limit": 2})
    body = response.json()
    assert body["total"] == 3
    assert len(body["posts"]) == 2

    response = await client.get("/api/posts", params={"tags": "무역,기타"})
    assert response.json()["total"] == 3

    response = await client.get("/api/posts", params={"search": "guide"})
    assert [p["slug"] for p in response.json()["posts"]] == ["guide"]

    response = await client.get("/api/posts", params={"limit": 1000})
    assert response.status_code == 422


async def test_published_date_range(client, db):
    await create_post(db, slug="old-news", published_at="2020-01-01T00:00:00Z")
    await create_post(db, slug="new-news", published_at="2024-06-01T00:00:00Z")

    response = await client.get(
        "/api/posts",
        params={"publishedAfter": "2024-01-01T00:00:00Z", "publishedBefore": "2024-12-31T00:00:00Z"},
    )
    assert [p["slug"] for p in response.json()["posts"]] == ["new-news"]


async def test_upcoming_filter(client, db):
    await create_post(db, post_type="event", slug="future", meta={"event.eventDate": "2999-01-01T00:00:00Z"})
    await create_post(db, post_type="event", slug="past", meta={"event.eventDate": "2000-01-01T00:00:00Z"})

    await create_post(db, slug="plain-news")

    response = await client.get("/api/posts", params={"upcoming": "true"})
    assert [p["slug"] for p in response.json()["posts"]] == ["future"]

    # upcoming 은 항상 이벤트로 한정
    response = await client.get("/api/posts", params={"upcoming": "true", "postType": "news"})
    assert response.json()["total"] == 0

    response = await client.get("/api/posts", params={"upcoming": "false", "postType": "event"})
    assert response.json()["total"] == 2


# =============================================================================
# Update / delete
# =============================================================================

async def test_update_and_publish(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")
    hydrated = await create_post(db, slug="draft-news", status="draft")

    response = await client.patch(
        f"/api/posts/{hydrated.post.id}",
        json={"status": "published", "isFeatured": True},
        headers=auth_headers(editor),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "published"
    assert body["isFeatured"] is True
    assert body["publishedAt"] is not None


async def test_member_cannot_update_or_delete(client, db, seeded):
    member = await create_user(db)
    await grant(db, member, "member")
    hydrated = await create_post(db)

    response = await client.patch(
        f"/api/posts/{hydrated.post.id}", json={"isFeatured": True}, headers=auth_headers(member)
    )
    assert response.status_code == 403

    response = await client.delete(f"/api/posts/{hydrated.post.id}", headers=auth_headers(member))
    assert response.status_code == 403


async def test_delete_post(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")
    hydrated = await create_post(db, meta={"news.viewCount": 2})

    response = await client.delete(f"/api/posts/{hydrated.post.id}", headers=auth_headers(editor))
    assert response.status_code == 204

    response = await client.get(f"/api/posts/{hydrated.post.id}", headers=auth_headers(editor))
    assert response.status_code == 404

    rows = (await db.execute(select(PostMeta))).scalars().all()
    assert rows == []


# =============================================================================
# Translations and meta endpoints
# =============================================================================

async def test_translation_upsert_endpoint(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")
    hydrated = await create_post(db)
    post_id = hydrated.post.id

    for title in ("First", "Second"):
        response = await client.post(
            f"/api/posts/{post_id}/translations",
            json={"locale": "en", "title": title, "seoTitle": "SEO"},
            headers=auth_headers(editor),
        )
        assert response.status_code == 200

    assert response.json()["title"] == "Second"
    assert response.json()["seoTitle"] == "SEO"

    detail = (await client.get(f"/api/posts/{post_id}", params={"locale": "en"})).json()
    assert len(detail["translations"]) == 2
    assert detail["display"]["title"] == "Second"

    # 제목만 보내면 나머지 필드는 유지
    response = await client.post(
        f"/api/posts/{post_id}/translations",
        json={"locale": "en", "title": "Third"},
        headers=auth_headers(editor),
    )
    assert response.json()["title"] == "Third"
    assert response.json()["seoTitle"] == "SEO"


async def test_meta_endpoints(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")
    hydrated = await create_post(db, post_type="resource", meta={"resource.fileName": "guide.pdf"})
    post_id = hydrated.post.id
    headers = auth_headers(editor)

    response = await client.post(
        f"/api/posts/{post_id}/meta", json={"key": "resource.fileSize", "value": "2048"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json() == {"key": "resource.fileSize", "valueType": "number", "value": 2048}

    response = await client.get(f"/api/posts/{post_id}/meta", params={"key": "resource.fileSize"})
    assert response.json()["value"] == 2048

    response = await client.get(f"/api/posts/{post_id}/meta")
    assert {m["key"] for m in response.json()} == {"resource.fileName", "resource.fileSize"}

    response = await client.get(f"/api/posts/{post_id}/meta", params={"key": "resource.category"})
    assert response.status_code == 404

    response = await client.post(
        f"/api/posts/{post_id}/meta", json={"key": "resource.fileSize", "value": "big"}, headers=headers
    )
    assert response.status_code == 422


async def test_meta_increment_endpoint(client, db, seeded):
    editor = await create_user(db, role="editor")
    await grant(db, editor, "editor")
    hydrated = await create_post(db, post_type="resource")
    post_id = hydrated.post.id
    headers = auth_headers(editor)

    response = await client.post(
        f"/api/posts/{post_id}/meta/increment", json={"key": "resource.downloadCount"}, headers=headers
    )
    assert response.json() == {"success": True, "key": "resource.downloadCount", "value": 1}

    response = await client.post(
        f"/api/posts/{post_id}/meta/increment",
        json={"key": "resource.downloadCount", "amount": 5},
        headers=headers,
    )
    assert response.json()["value"] == 6

    response = await client.post(
        f"/api/posts/{post_id}/meta/increment", json={"key": "resource.fileName"}, headers=headers
    )
    assert response.status_code == 422
