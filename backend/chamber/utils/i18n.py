from dataclasses import dataclass
from typing import Optional, Sequence, Union

from ..models.post import Locale, Post, PostTranslation


@dataclass(frozen=True)
class FallbackTranslation:
    """번역이 하나도 없는 포스트의 표시용 값"""
    title: str
    excerpt: str = ""
    content: str = ""
    subtitle: Optional[str] = None
    locale: Optional[Locale] = None


def pick_translation(
    post: Post,
    translations: Sequence[PostTranslation],
    locale: Optional[Union[Locale, str]] = None
) -> Union[PostTranslation, FallbackTranslation]:
    """
    표시할 번역 선택

    1. 요청 언어
    2. 포스트 기본 언어
    3. 생성 순서상 첫 번역
    4. 슬러그를 제목으로 사용하는 빈 번역
    """
    if isinstance(locale, str):
        try:
            locale = Locale(locale)
        except ValueError:
            locale = None

    by_locale = {t.locale: t for t in translations}
    if locale is not None and locale in by_locale:
        return by_locale[locale]
    if post.primary_locale in by_locale:
        return by_locale[post.primary_locale]
    if translations:
        return translations[0]
    return FallbackTranslation(title=post.slug)
