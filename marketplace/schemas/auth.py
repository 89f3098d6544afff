from typing import Optional

from pydantic import EmailStr, Field, model_validator

from .base import BaseSchema  # ✅ 자동 camelCase 변환용 베이스


class SignupIn(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=8)
    confirm_password: str
    username: str = Field(..., min_length=2, max_length=30)
    name: str = Field("", max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    city: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("password_mismatch")
        return self


class LoginIn(BaseSchema):
    email: str
    password: str


class TokenOut(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    user_id: int
