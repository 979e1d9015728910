"""
포스트 타입별 메타 키 카탈로그

메타 키를 작성하는 쪽과 읽는 쪽의 계약입니다.
카탈로그에 없는 키는 저장할 수 없습니다.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import TypeAdapter

# 뉴스
NEWS_META_KEYS = {
    "category": "news.category",  # notice, press, activity
    "viewCount": "news.viewCount",
    "images": "news.images",
}

# 이벤트
EVENT_META_KEYS = {
    "eventDate": "event.eventDate",
    "endDate": "event.endDate",
    "registrationDeadline": "event.registrationDeadline",
    "location": "event.location",
    "category": "event.category",  # networking, seminar, workshop, cultural
    "eventType": "event.eventType",  # offline, online, hybrid
    "capacity": "event.capacity",
    "fee": "event.fee",
    "isPublic": "event.isPublic",
    "requiresApproval": "event.requiresApproval",
    "speakers": "event.speakers",
    "program": "event.program",
    "images": "event.images",
}

# 자료실
RESOURCE_META_KEYS = {
    "category": "resource.category",  # reports, forms, presentations, guides
    "fileUrl": "resource.fileUrl",
    "fileName": "resource.fileName",
    "fileSize": "resource.fileSize",  # bytes
    "fileType": "resource.fileType",
    "accessLevel": "resource.accessLevel",  # public, members, premium
    "downloadCount": "resource.downloadCount",
}

POST_META_KEYS = {
    "news": NEWS_META_KEYS,
    "event": EVENT_META_KEYS,
    "resource": RESOURCE_META_KEYS,
}

ALL_META_KEYS = frozenset(
    key for keys in POST_META_KEYS.values() for key in keys.values()
)


class MetaValueType(enum.Enum):
    """메타 값 저장 컬럼 타입"""
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    JSON = "json"


# 필드명 -> 값 타입 (없으면 text)
_FIELD_TYPE_MAP = {
    "viewCount": MetaValueType.NUMBER,
    "downloadCount": MetaValueType.NUMBER,
    "capacity": MetaValueType.NUMBER,
    "fee": MetaValueType.NUMBER,
    "fileSize": MetaValueType.NUMBER,
    "eventDate": MetaValueType.TIMESTAMP,
    "endDate": MetaValueType.TIMESTAMP,
    "registrationDeadline": MetaValueType.TIMESTAMP,
    "isPublic": MetaValueType.BOOLEAN,
    "requiresApproval": MetaValueType.BOOLEAN,
    "images": MetaValueType.JSON,
    "speakers": MetaValueType.JSON,
    "program": MetaValueType.JSON,
}


def get_meta_value_type(key: str) -> MetaValueType:
    """'event.capacity' -> NUMBER"""
    field = key.split(".", 1)[1] if "." in key else key
    return _FIELD_TYPE_MAP.get(field, MetaValueType.TEXT)


def is_known_meta_key(key: str, post_type: Optional[str] = None) -> bool:
    if key not in ALL_META_KEYS:
        return False
    if post_type is not None:
        return key.split(".", 1)[0] == post_type
    return True


@dataclass(frozen=True)
class MetaValue:
    """
    타입이 지정된 메타 값

    저장소에서는 여러 nullable 컬럼 중 하나에만 값이 들어갑니다.
    애플리케이션에서는 이 객체로만 다루고, 컬럼 변환은 CRUD 계층에서만 합니다.
    """
    kind: MetaValueType
    value: Any

    @classmethod
    def for_key(cls, key: str, raw: Any) -> "MetaValue":
        """키의 선언 타입에 맞춰 값을 변환. 변환 불가 시 ValueError"""
        kind = get_meta_value_type(key)
        return cls(kind, _coerce(kind, raw))

    def to_columns(self) -> Dict[str, Any]:
        columns = {
            "value_text": None,
            "value_number": None,
            "value_boolean": None,
            "value_timestamp": None,
            "value_json": None,
        }
        columns[_COLUMN_BY_KIND[self.kind]] = self.value
        return columns

    @classmethod
    def from_row(cls, row: Any) -> Optional["MetaValue"]:
        for kind, column in _COLUMN_BY_KIND.items():
            value = getattr(row, column, None)
            if value is not None:
                # SQLite 는 시간대 정보 없이 UTC 로 저장
                if kind is MetaValueType.TIMESTAMP and value.tzinfo is None:
                    value = value.replace(tzinfo=timezone.utc)
                return cls(kind, value)
        return None


_datetime_adapter = TypeAdapter(datetime)

_COLUMN_BY_KIND = {
    MetaValueType.TEXT: "value_text",
    MetaValueType.NUMBER: "value_number",
    MetaValueType.BOOLEAN: "value_boolean",
    MetaValueType.TIMESTAMP: "value_timestamp",
    MetaValueType.JSON: "value_json",
}


def _coerce(kind: MetaValueType, raw: Any) -> Any:
    if raw is None:
        raise ValueError("메타 값은 비어 있을 수 없습니다")

    if kind is MetaValueType.NUMBER:
        if isinstance(raw, bool):
            raise ValueError("숫자 값이 필요합니다")
        # 카탈로그의 숫자 필드는 모두 정수 (조회수, 정원, 참가비, 바이트)
        if isinstance(raw, int):
            return raw
        if isinstance(raw, float) and raw.is_integer():
            return int(raw)
        if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
            return int(raw)
        raise ValueError("정수 값이 필요합니다")

    if kind is MetaValueType.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw.lower() in ("true", "false"):
            return raw.lower() == "true"
        raise ValueError("불리언 값이 필요합니다")

    if kind is MetaValueType.TIMESTAMP:
        if isinstance(raw, datetime):
            value = raw
        elif isinstance(raw, str):
            value = _datetime_adapter.validate_python(raw)
        else:
            raise ValueError("날짜/시간 값이 필요합니다")
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if kind is MetaValueType.JSON:
        if isinstance(raw, (list, dict)):
            return raw
        raise ValueError("배열 또는 객체 값이 필요합니다")

    if not isinstance(raw, str):
        raise ValueError("문자열 값이 필요합니다")
    return raw
