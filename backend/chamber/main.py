from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from datetime import datetime, timezone

from dotenv import load_dotenv

load_dotenv()

from .core.config import settings
from .core.exceptions import (
    ChamberException,
    chamber_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler
)
from .api.middleware import LoggingMiddleware, SecurityHeadersMiddleware
from .database.session import check_db_connection, close_db, init_db
from .services.permission_service import PermissionCache, PermissionService
from .api.routes import (
    posts,
    registrations,
    users
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    description="상공회의소 통합 콘텐츠 / 멤버십 서비스",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# 권한 캐시는 프로세스당 하나 (종료 시 비움)
app.state.permission_service = PermissionService(
    PermissionCache(ttl_seconds=settings.PERMISSION_CACHE_TTL_SECONDS)
)

# CORS 미들웨어
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:3000",  # 개발용
        "http://127.0.0.1:3000",  # 개발용
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"]
)

# TrustedHost 미들웨어
if settings.ALLOWED_HOSTS != ["*"]:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )

app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# 예외 핸들러
app.add_exception_handler(ChamberException, chamber_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

@app.get("/")
async def root():
    return {
        "message": "Chamber Content Service API",
        "version": settings.APP_VERSION,
        "status": "running",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

@app.get("/health")
async def health_check():
    db_status = "connected" if await check_db_connection() else "error"
    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

# API 라우터 등록
api_prefix = settings.API_PREFIX
app.include_router(posts.router, prefix=api_prefix)
app.include_router(registrations.router, prefix=api_prefix)
app.include_router(users.router, prefix=api_prefix)

@app.on_event("startup")
async def startup_event():
    logger.info("Starting Chamber Content Service...")
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")

    logger.info("Chamber Content Service started")

@app.on_event("shutdown")
async def shutdown_event():
    app.state.permission_service.clear_all_permission_cache()
    await close_db()
    logger.info("Chamber Content Service stopped")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chamber.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
