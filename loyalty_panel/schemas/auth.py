"""
Auth Schemas
"""

from pydantic import BaseModel, EmailStr, Field

from loyalty_panel.permissions_config.permissions import UserPermissions


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    password_confirmation: str
    full_name: str | None = None


class VerifyPasswordRequest(BaseModel):
    password: str


class VerifyPasswordResponse(BaseModel):
    valid: bool


class CurrentUserResponse(BaseModel):
    id: str
    email: str
    role: str
    tenant_id: str | None = None
    permissions: dict[str, bool]

    @classmethod
    def build(cls, user, permissions: UserPermissions) -> "CurrentUserResponse":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            tenant_id=user.tenant_id,
            permissions=permissions.as_dict(),
        )


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: CurrentUserResponse
