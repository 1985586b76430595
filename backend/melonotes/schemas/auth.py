"""Login request and token responses."""

from pydantic import BaseModel, Field, field_validator


class LoginRequest(BaseModel):
    username: str = Field(description="Account name")
    password: str = Field(description="Plain password, checked against the bcrypt hash")

    @field_validator("username")
    @classmethod
    def username_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Username is required")
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class UserOut(BaseModel):
    id: int
    username: str


class LoginResponse(BaseModel):
    message: str
    token: str = Field(description="Bearer token, valid for JWT_EXPIRE_HOURS")
    user: UserOut


class VerifyResponse(BaseModel):
    message: str
    user: UserOut
