from typing import Any, List, Optional, Sequence

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import logging

logger = logging.getLogger(__name__)


class ChamberException(Exception):
    """애플리케이션 기본 예외 클래스"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def to_content(self) -> dict:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
        }


class ValidationError(ChamberException):
    """입력 데이터가 올바르지 않은 경우"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, code: str = None, details: Optional[List[dict]] = None):
        super().__init__(message, code)
        self.details = details or []

    def to_content(self) -> dict:
        content = super().to_content()
        content["details"] = self.details
        return content


class InvalidStatusTransitionError(ValidationError):
    """허용되지 않는 상태 변경"""
    pass


class NotFoundError(ChamberException):
    """대상을 찾을 수 없는 경우"""
    status_code = status.HTTP_404_NOT_FOUND


class UnauthenticatedError(ChamberException):
    """인증 정보가 없거나 유효하지 않은 경우"""
    status_code = status.HTTP_401_UNAUTHORIZED


class UnauthorizedError(ChamberException):
    """인증은 되었으나 권한이 부족한 경우"""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, required: Sequence[str], mode: str = "all", message: str = "Insufficient permissions"):
        super().__init__(message, code="insufficient_permissions")
        self.required = list(required)
        self.mode = mode

    def to_content(self) -> dict:
        content = super().to_content()
        key = "required" if len(self.required) == 1 else f"required_{self.mode}"
        content[key] = self.required[0] if len(self.required) == 1 else self.required
        return content


class ConflictError(ChamberException):
    """이미 존재하는 리소스와 충돌하는 경우"""
    status_code = status.HTTP_409_CONFLICT


class DuplicateRegistrationError(ConflictError):
    """동일 이벤트에 활성 신청이 이미 있는 경우"""
    pass


class DuplicateSlugError(ConflictError):
    """슬러그가 이미 사용 중인 경우"""
    pass


# 전역 예외 처리기
async def chamber_exception_handler(request: Request, exc: ChamberException):
    if exc.status_code >= 500:
        logger.error(f"Application error: {exc.message}")
    else:
        logger.warning(f"Application error ({exc.status_code}): {exc.message}")
    headers = None
    if isinstance(exc, UnauthenticatedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_content()),
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({
            "error": "ValidationError",
            "message": "입력 데이터가 올바르지 않습니다",
            "details": exc.errors()
        })
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"HTTP error: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTPException",
            "message": exc.detail
        },
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"전역 예외: {type(exc).__name__}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal",
            "message": "서버 내부 오류가 발생했습니다"
        }
    )
