from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import EmailStr, Field, field_validator

from .common import CamelModel
from .post import PostDetailResponse
from ..models.registration import PaymentStatus, RegistrationStatus


class AttendeeInfo(CamelModel):
    """신청 시 입력하는 참석자 정보"""
    name: str = Field(..., min_length=1, max_length=100, description="참석자 이름")
    email: EmailStr = Field(..., description="참석자 이메일")
    phone: Optional[str] = Field(None, max_length=30)
    company_name: Optional[str] = Field(None, max_length=200)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("이름을 입력해주세요")
        return v.strip()


class RegistrationStatusUpdate(CamelModel):
    status: RegistrationStatus


class RegistrationResponse(CamelModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    attendee_name: str
    attendee_email: str
    attendee_phone: Optional[str] = None
    company_name: Optional[str] = None
    status: RegistrationStatus
    payment_status: PaymentStatus
    registered_at: datetime
    created_at: datetime
    updated_at: datetime


class RosterUser(CamelModel):
    id: UUID
    email: str
    name: str


class RosterEntry(RegistrationResponse):
    """관리자용 참석자 명단 항목"""
    user: Optional[RosterUser] = None


class UserRegistrationResponse(RegistrationResponse):
    # 이벤트가 삭제된 경우 None
    event: Optional[PostDetailResponse] = None
