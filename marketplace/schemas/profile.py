from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from .base import BaseSchema


class ProfileOut(BaseSchema):
    id: int
    username: str
    name: str
    city: Optional[str] = None
    avatar_url: Optional[str] = None


class MyProfileOut(ProfileOut):
    email: EmailStr
    phone: Optional[str] = None
    is_admin: bool
    banned: bool
    updated_at: datetime


class ProfileUpdateIn(BaseSchema):
    username: Optional[str] = Field(None, min_length=2, max_length=30)
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    city: Optional[str] = Field(None, max_length=100)
