from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class UserResponse(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: str
    phone: Optional[str] = None
    image: Optional[str] = None
    referral_code: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: int
    name: Optional[str] = None
    email: str

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    hasMore: bool


def build_pagination(total: int, limit: int, offset: int) -> Pagination:
    return Pagination(total=total, limit=limit, offset=offset, hasMore=offset + limit < total)
