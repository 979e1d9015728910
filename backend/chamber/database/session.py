from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy import event, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
import logging

from ..core.config import settings

# 로깅 설정
logger = logging.getLogger(__name__)

# SQLAlchemy Base 클래스 생성
Base = declarative_base()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    URL에 맞는 비동기 엔진 생성
    SQLite는 로컬/테스트 용도로만 사용하며 외래키 제약을 켭니다.
    """
    if database_url.startswith("sqlite"):
        sqlite_engine = create_async_engine(
            database_url,
            echo=echo,
            poolclass=NullPool,
            connect_args={"timeout": 30},
        )

        @event.listens_for(sqlite_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_async_engine(
        database_url,
        echo=echo,  # 디버그 모드에서 SQL 쿼리 출력
        pool_pre_ping=True,  # 연결 상태를 미리 확인
        pool_size=5,  # 기본 연결 풀 크기
        max_overflow=10,  # 최대 추가 연결 수
        pool_timeout=30,  # 연결 대기 시간 (초)
        pool_recycle=3600,  # 연결 재활용 시간 (1시간)
        connect_args={
            "server_settings": {
                "application_name": settings.APP_NAME,
                "jit": "off"
            },
            "command_timeout": 60,
        }
    )


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


# 비동기 엔진 생성
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# 비동기 세션 팩토리 생성
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db() -> AsyncSession: # type: ignore
    """
    FastAPI 의존성 주입용 데이터베이스 세션 제공 함수
    트랜잭션 제어(commit, rollback)는 API 라우터/서비스 레이어에서 수행합니다.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session  # 세션을 라우터 함수에 제공
        except Exception as e:
            await session.rollback() # 예외 발생 시 롤백
            logger.error(f"Database session error occurred, rolling back: {e}")
            raise
        finally:
            await session.close() # 세션 종료


def dialect_insert(db: AsyncSession, table):
    """
    ON CONFLICT 구문을 지원하는 방언별 INSERT 생성
    PostgreSQL과 SQLite 모두 on_conflict_do_update / do_nothing 을 지원합니다.
    """
    dialect_name = db.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(table)
    if dialect_name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Unsupported dialect for upsert: {dialect_name}")


async def init_db(bind: AsyncEngine = None):
    """
    데이터베이스 초기화 함수
    모델 메타데이터 기준으로 테이블을 생성합니다.
    """
    # 모든 모델이 메타데이터에 등록되도록 import
    from .. import models  # noqa: F401

    target = bind or engine
    try:
        async with target.begin() as conn:
            # 주의: 프로덕션에서는 Alembic 마이그레이션을 사용하세요
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


async def close_db():
    """
    데이터베이스 연결 종료 함수
    애플리케이션 종료 시 호출됩니다.
    """
    await engine.dispose()
    logger.info("Database connections closed")


async def check_db_connection():
    """
    데이터베이스 연결 상태를 확인하는 헬스체크 함수
    """
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
