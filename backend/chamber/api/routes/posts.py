from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ...database.session import get_db
from ...api.dependencies import (
    CurrentIdentity, ensure_permission, get_current_identity, get_optional_identity,
    get_permission_service, require_permission,
)
from ...core.config import settings
from ...core.constants import PERMISSION_MANAGE_ATTENDEES, POST_CREATE_ACTION
from ...core.exceptions import ChamberException, DuplicateSlugError, NotFoundError, ValidationError
from ...core.meta_keys import EVENT_META_KEYS, MetaValueType
from ...crud.meta_crud import meta_crud
from ...crud.post_crud import HydratedPost, PostFilters, build_meta_value, post_crud
from ...crud.translation_crud import translation_crud
from ...models.post import Locale, Post, PostStatus, PostType, PostVisibility
from ...schemas.post import (
    DisplayTranslation, MetaIncrement, MetaIncrementResponse, MetaResponse, MetaSet,
    PostCreate, PostDetailResponse, PostListResponse, PostResponse, PostUpdate, TranslationResponse,
    TranslationUpsert,
)
from ...schemas.registration import AttendeeInfo, RegistrationResponse, RosterEntry, RosterUser
from ...services import registration_service
from ...services.content_access import resolve_content_access
from ...services.permission_service import PermissionService
from ...utils.i18n import pick_translation

router = APIRouter(prefix="/posts", tags=["posts"])
logger = logging.getLogger(__name__)

# 열람 권한이 없어도 신청자에게 보여주는 일정 메타
_SUMMARY_META_KEYS = (
    EVENT_META_KEYS["eventDate"],
    EVENT_META_KEYS["endDate"],
    EVENT_META_KEYS["location"],
)


def build_post_response(hydrated: HydratedPost, locale: Optional[Locale] = None) -> PostDetailResponse:
    """포스트 + 번역 + 메타 + 표시용 번역"""
    post = hydrated.post
    display = pick_translation(post, hydrated.translations, locale)
    return PostDetailResponse(
        **PostResponse.model_validate(post).model_dump(),
        translations=[TranslationResponse.model_validate(t) for t in hydrated.translations],
        meta=[
            MetaResponse(key=key, value_type=value.kind.value, value=value.value)
            for key, value in hydrated.meta_values().items()
        ],
        display=DisplayTranslation(
            locale=display.locale,
            title=display.title,
            subtitle=display.subtitle,
            excerpt=display.excerpt,
            content=display.content,
        ),
    )


def build_post_summary(hydrated: HydratedPost, locale: Optional[Locale] = None) -> PostDetailResponse:
    """열람 권한이 없는 포스트: 표시 제목과 일정만"""
    post = hydrated.post
    display = pick_translation(post, hydrated.translations, locale)
    meta = hydrated.meta_values()
    return PostDetailResponse(
        **PostResponse.model_validate(post).model_dump(),
        translations=[],
        meta=[
            MetaResponse(key=key, value_type=meta[key].kind.value, value=meta[key].value)
            for key in _SUMMARY_META_KEYS
            if key in meta
        ],
        display=DisplayTranslation(locale=display.locale, title=display.title),
    )


async def _get_post_or_404(db: AsyncSession, post_id: UUID) -> Post:
    return await post_crud.get_or_404(db, post_id)


async def _get_visible_post(
    db: AsyncSession,
    permission_service: PermissionService,
    identity: Optional[CurrentIdentity],
    post_id: UUID
) -> Post:
    """열람 권한이 없는 포스트는 존재 여부를 드러내지 않고 404"""
    post = await _get_post_or_404(db, post_id)
    access = await resolve_content_access(
        db, permission_service, identity.user_id if identity else None
    )
    if not access.can_view(post):
        raise NotFoundError("게시글을 찾을 수 없습니다")
    return post


@router.get("", response_model=PostListResponse)
async def list_posts(
    post_type: Optional[PostType] = Query(None, alias="postType"),
    post_status: Optional[PostStatus] = Query(None, alias="status"),
    visibility: Optional[PostVisibility] = Query(None),
    tags: Optional[str] = Query(None, description="쉼표로 구분된 태그"),
    author_id: Optional[UUID] = Query(None, alias="authorId"),
    is_featured: Optional[bool] = Query(None, alias="isFeatured"),
    published_after: Optional[datetime] = Query(None, alias="publishedAfter"),
    published_before: Optional[datetime] = Query(None, alias="publishedBefore"),
    search: Optional[str] = Query(None, max_length=200),
    upcoming: Optional[str] = Query(
        None,
        description="'true' 이면 일정이 지나지 않은 이벤트만 (postType 과 무관하게 event 로 한정, 일정 오름차순)",
    ),
    locale: Optional[Locale] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    identity: Optional[CurrentIdentity] = Depends(get_optional_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """게시글 목록 (호출자 열람 범위 내)"""
    filters = PostFilters(
        post_type=post_type,
        status=post_status,
        visibility=visibility,
        tags=[tag.strip() for tag in tags.split(",") if tag.strip()] if tags else None,
        author_id=author_id,
        is_featured=is_featured,
        published_after=published_after,
        published_before=published_before,
        search=search,
        upcoming=upcoming == "true",
        limit=limit,
        offset=offset,
    )
    access = await resolve_content_access(
        db, permission_service, identity.user_id if identity else None
    )
    items, total = await post_crud.list_posts(db, filters, access_condition=access.condition())
    return PostListResponse(
        posts=[build_post_response(item, locale) for item in items],
        total=total,
    )


@router.get("/{post_id}", response_model=PostDetailResponse)
async def get_post(
    post_id: UUID,
    locale: Optional[Locale] = Query(None, description="표시 언어 힌트 (필터 아님)"),
    identity: Optional[CurrentIdentity] = Depends(get_optional_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """게시글 상세 (모든 번역과 메타 포함)"""
    await _get_visible_post(db, permission_service, identity, post_id)
    hydrated = await post_crud.get_post_with_translations(db, post_id)
    return build_post_response(hydrated, locale)


@router.post("", response_model=PostDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_in: PostCreate,
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """게시글 작성 (초기 번역/메타 포함 가능). 작성자는 기본적으로 호출자"""
    post_type = post_in.post_type.value
    required = [f"{post_type}.{POST_CREATE_ACTION[post_type]}"]
    if post_in.status == PostStatus.PUBLISHED:
        required.append(f"{post_type}.publish")
    await ensure_permission(db, permission_service, identity, *required)

    logger.info(f"게시글 작성 요청: user_id={identity.user_id}, type={post_type}, slug={post_in.slug}")
    try:
        hydrated = await post_crud.create_post_with_content(db, post_in, author_id=identity.user_id)
        await db.commit()
    except ChamberException:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"게시글 작성 충돌: {e}")
        raise DuplicateSlugError(f"이미 사용 중인 슬러그입니다: {post_in.slug}", code="duplicate_slug")

    return build_post_response(hydrated)


@router.patch("/{post_id}", response_model=PostDetailResponse)
async def update_post(
    post_id: UUID,
    post_in: PostUpdate,
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """게시글 필드 부분 수정 (번역/메타 제외)"""
    post = await _get_post_or_404(db, post_id)
    post_type = post.post_type.value
    required = [f"{post_type}.update"]
    if post_in.status == PostStatus.PUBLISHED and post.status != PostStatus.PUBLISHED:
        required.append(f"{post_type}.publish")
    await ensure_permission(db, permission_service, identity, *required)

    try:
        await post_crud.update_post(db, post, post_in)
        await db.commit()
    except ChamberException:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"게시글 수정 충돌: {e}")
        raise DuplicateSlugError("이미 사용 중인 슬러그입니다", code="duplicate_slug")

    hydrated = await post_crud.get_post_with_translations(db, post_id)
    return build_post_response(hydrated)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """게시글 삭제 (번역, 메타, 참가 신청 함께 삭제)"""
    post = await _get_post_or_404(db, post_id)
    await ensure_permission(db, permission_service, identity, f"{post.post_type.value}.delete")

    try:
        await post_crud.delete_post(db, post)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"게시글 삭제 완료: post_id={post_id}, user_id={identity.user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/translations", response_model=TranslationResponse)
async def upsert_translation(
    post_id: UUID,
    translation_in: TranslationUpsert,
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """언어별 번역 저장 (같은 언어는 덮어씀)"""
    post = await _get_post_or_404(db, post_id)
    await ensure_permission(db, permission_service, identity, f"{post.post_type.value}.update")

    try:
        translation = await translation_crud.upsert_translation(
            db, post.id, translation_in.locale, translation_in
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return TranslationResponse.model_validate(translation)


@router.get("/{post_id}/meta", response_model=Union[MetaResponse, List[MetaResponse]])
async def get_post_meta(
    post_id: UUID,
    key: Optional[str] = Query(None, description="지정하면 해당 키의 값만"),
    identity: Optional[CurrentIdentity] = Depends(get_optional_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """메타 조회: key 가 있으면 단일 값, 없으면 전체"""
    await _get_visible_post(db, permission_service, identity, post_id)

    if key:
        value = await meta_crud.get_meta(db, post_id, key)
        if value is None:
            raise NotFoundError(f"메타 값을 찾을 수 없습니다: {key}")
        return MetaResponse(key=key, value_type=value.kind.value, value=value.value)

    values = await meta_crud.get_all_meta(db, post_id)
    return [
        MetaResponse(key=meta_key, value_type=value.kind.value, value=value.value)
        for meta_key, value in values.items()
    ]


@router.post("/{post_id}/meta", response_model=MetaResponse)
async def set_post_meta(
    post_id: UUID,
    meta_in: MetaSet,
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """메타 저장 (키의 선언 타입 컬럼에 저장)"""
    post = await _get_post_or_404(db, post_id)
    await ensure_permission(db, permission_service, identity, f"{post.post_type.value}.update")

    value = build_meta_value(post.post_type, meta_in.key, meta_in.value)
    try:
        await meta_crud.set_meta(db, post.id, meta_in.key, value)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return MetaResponse(key=meta_in.key, value_type=value.kind.value, value=value.value)


@router.post("/{post_id}/meta/increment", response_model=MetaIncrementResponse)
async def increment_post_meta(
    post_id: UUID,
    increment_in: MetaIncrement,
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """숫자 메타 원자적 증가 (조회수, 다운로드 수)"""
    post = await _get_post_or_404(db, post_id)
    await ensure_permission(db, permission_service, identity, f"{post.post_type.value}.update")

    # 카탈로그/타입 검증
    value = build_meta_value(post.post_type, increment_in.key, increment_in.amount)
    if value.kind is not MetaValueType.NUMBER:
        raise ValidationError(
            f"숫자 메타만 증가시킬 수 있습니다: {increment_in.key}",
            code="not_numeric_meta",
            details=[{"loc": ["key"], "msg": "meta key is not numeric"}],
        )

    try:
        new_value = await meta_crud.increment_meta_number(
            db, post.id, increment_in.key, increment_in.amount
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return MetaIncrementResponse(key=increment_in.key, value=new_value)


@router.post("/{post_id}/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_for_event(
    post_id: UUID,
    attendee: AttendeeInfo,
    identity: CurrentIdentity = Depends(get_current_identity),
    permission_service: PermissionService = Depends(get_permission_service),
    db: AsyncSession = Depends(get_db)
):
    """이벤트 참가 신청 (취소했던 신청은 같은 건으로 재신청)"""
    await _get_visible_post(db, permission_service, identity, post_id)

    try:
        registration = await registration_service.register(db, post_id, identity.user_id, attendee)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return RegistrationResponse.model_validate(registration)


@router.get("/{post_id}/registrations", response_model=List[RosterEntry])
async def list_event_registrations(
    post_id: UUID,
    identity: CurrentIdentity = Depends(require_permission(PERMISSION_MANAGE_ATTENDEES)),
    db: AsyncSession = Depends(get_db)
):
    """참석자 명단 (관리자)"""
    rows = await registration_service.list_for_event(db, post_id)
    return [
        RosterEntry.model_validate({
            **RegistrationResponse.model_validate(registration).model_dump(),
            "user": RosterUser.model_validate(user) if user else None,
        })
        for registration, user in rows
    ]
