from typing import List, Optional
from datetime import datetime
from uuid import UUID
from pydantic import Field

from .common import CamelModel


class MembershipAssign(CamelModel):
    tier_code: str = Field(..., min_length=1, max_length=20, description="등급 코드 (MEMBER, PRO, ...)")
    role_code: str = Field(..., min_length=1, max_length=20, description="역할 코드 (member, editor, ...)")
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None


class MembershipInfo(CamelModel):
    id: UUID
    user_id: UUID
    tier_code: str
    tier_name: str
    role_code: str
    role_name: str
    is_active: bool
    started_at: datetime
    expires_at: Optional[datetime] = None


class PermissionsResponse(CamelModel):
    user_id: UUID
    permissions: List[str]
    membership: Optional[MembershipInfo] = None
