"""
Authentication schemas.
"""
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field

from authserver.schemas.user import UserSummary


class RegisterRequest(BaseModel):
    """
    Self-registration request.
    Only DefaultUser and OrganizationAdmin may be requested; an OrganizationAdmin
    must name the organization it wants created.
    """
    email: EmailStr
    password: str
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: str = "DefaultUser"
    requested_org_name: Optional[str] = Field(None, max_length=200)

    class Config:
        json_schema_extra = {
            "example": {
                "email": "alice@company.com",
                "password": "Secur3Password",
                "first_name": "Alice",
                "last_name": "Smith",
                "role": "OrganizationAdmin",
                "requested_org_name": "Acme Corp"
            }
        }


class RegisterResponse(BaseModel):
    message: str
    status: str
    user_id: str


class LoginRequest(BaseModel):
    """User login request."""
    email: EmailStr
    password: str

    class Config:
        json_schema_extra = {
            "example": {
                "email": "alice@company.com",
                "password": "Secur3Password"
            }
        }


class TokenResponse(BaseModel):
    """Token response after login."""
    user: UserSummary
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    refresh_token: str
    must_change_password: bool = False


class RefreshRequest(BaseModel):
    """Refresh token request."""
    refresh_token: str


class RefreshResponse(BaseModel):
    """New token pair. The presented refresh token is revoked."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    """Change password for logged-in user."""
    current_password: str
    new_password: str
    confirm_password: str


class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class MeResponse(BaseModel):
    user: UserSummary
    roles: List[str]
