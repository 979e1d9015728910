from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    애플리케이션 전체 설정을 관리하는 클래스
    환경 변수를 자동으로 읽어와 검증하고 타입을 보장합니다.
    """
    # 기본 애플리케이션 설정
    APP_NAME: str = "Chamber Content Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # API 설정
    API_PREFIX: str = "/api"
    ALLOWED_HOSTS: List[str] = Field(
        default=["*"],
        description="허용된 호스트 목록"
    )

    # 토큰 설정
    SECRET_KEY: str = Field(
        ...,
        min_length=32,
        description="토큰 서명용 비밀 키"
    )
    ALGORITHM: str = Field(
        default="HS256",
        description="토큰 서명 알고리즘"
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # PostgreSQL 설정
    POSTGRES_SERVER: str = Field(
        default="localhost",
        description="PostgreSQL 서버 주소"
    )
    POSTGRES_USER: str = Field(
        default="postgres",
        description="PostgreSQL 사용자명"
    )
    POSTGRES_PASSWORD: str = Field(
        default="",
        description="PostgreSQL 비밀번호"
    )
    POSTGRES_DB: str = Field(
        default="chamber_db",
        description="데이터베이스 이름"
    )
    POSTGRES_PORT: int = Field(
        default=5432,
        description="PostgreSQL 포트 번호"
    )

    # 전체 URL 직접 지정 (테스트용 SQLite 등)
    DATABASE_URL_OVERRIDE: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL",
        description="데이터베이스 URL 직접 지정"
    )

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # 프론트엔드 URL
    FRONTEND_URL: str = Field(
        default="http://localhost:5173",
        description="프론트엔드 URL"
    )

    # 권한 캐시
    PERMISSION_CACHE_TTL_SECONDS: int = Field(
        default=300,
        description="권한 캐시 유지 시간 (초)"
    )

    # 목록 조회 제한
    DEFAULT_PAGE_LIMIT: int = Field(
        default=20,
        description="기본 페이지 크기"
    )
    MAX_PAGE_LIMIT: int = Field(
        default=100,
        description="최대 페이지 크기"
    )

    # 다국어
    DEFAULT_LOCALE: str = Field(
        default="ko",
        description="기본 언어"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True
        extra = "ignore"

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v):
        if len(v) < 32:
            raise ValueError("SECRET_KEY는 최소 32자 이상이어야 합니다")
        return v

    @field_validator("DEFAULT_LOCALE")
    @classmethod
    def validate_default_locale(cls, v):
        if v not in ("ko", "en", "zh"):
            raise ValueError("DEFAULT_LOCALE은 ko, en, zh 중 하나여야 합니다")
        return v

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v):
        if isinstance(v, str):
            return [host.strip() for host in v.split(",")]
        return v


settings = Settings()
