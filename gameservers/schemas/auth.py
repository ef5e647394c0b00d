from datetime import datetime
from pydantic import Field, EmailStr, field_validator, model_validator
from .base import BaseSchema


class RegisterIn(BaseSchema):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str
    terms: bool

    @field_validator("username")
    @classmethod
    def _username_chars(cls, v: str) -> str:
        if not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError("Username may only contain letters, numbers, '-' and '_'")
        return v

    @field_validator("terms")
    @classmethod
    def _terms_accepted(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must agree to the terms")
        return v

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginIn(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserOut(BaseSchema):
    id: int
    username: str
    email: EmailStr
    is_admin: bool


class UserDetailOut(UserOut):
    is_verified: bool
    created_at: datetime


class LoginOut(BaseSchema):
    message: str
    access_token: str
    user: UserOut


class MessageOut(BaseSchema):
    message: str
