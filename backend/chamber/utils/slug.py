import re
from typing import Awaitable, Callable, Optional

from ..core.constants import SLUG_ID_SUFFIX_LENGTH

_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def slugify(text: str) -> str:
    """
    소문자 변환, 단어 문자 외 제거, 공백은 '-'
    한글/한자는 단어 문자로 유지됩니다.
    """
    slug = _NON_WORD.sub("", (text or "").lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")


def generate_slug(title: str, legacy_id: str, fallback: Optional[str] = None) -> str:
    """레거시 제목 + 레거시 ID 앞 8자리"""
    base = slugify(title) or fallback or "post"
    suffix = str(legacy_id)[:SLUG_ID_SUFFIX_LENGTH]
    return f"{base}-{suffix}"


async def unique_slug(base: str, exists: Callable[[str], Awaitable[bool]]) -> str:
    """이미 사용 중이면 -2, -3 ... 을 붙임"""
    candidate = base
    counter = 2
    while await exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
