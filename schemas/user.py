from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import EmailStr, field_validator

from models.enums import UserRole
from schemas.common import CamelModel
from utils.otp import MOBILE_NUMBER_PATTERN


#----------------------------- User as returned after authentication -----------------------------#
class UserAuth(CamelModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    is_verified: bool


#----------------------------- Full profile -----------------------------#
class UserProfile(UserAuth):
    is_active: bool
    created_at: Optional[datetime] = None


class UserCreate(CamelModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole = UserRole.user

    @field_validator("password")
    def validate_password_length(cls, password):
        if len(password) < 6:
            raise ValueError("Password must be at least 6 characters")
        if len(password.encode("utf-8")) > 72:
            raise ValueError("Password must not exceed 72 bytes")
        return password

    @field_validator("first_name", "last_name")
    def validate_names(cls, v):
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator("phone")
    def validate_phone(cls, v):
        if v is None:
            return v
        phone = v.replace(" ", "").replace("-", "")
        if not MOBILE_NUMBER_PATTERN.fullmatch(phone):
            raise ValueError("Please provide a valid 10-digit mobile number")
        return phone

    @field_validator("role")
    def validate_role(cls, v):
        # admin accounts are provisioned separately
        if v == UserRole.admin:
            raise ValueError("Role must be 'user' or 'driver'")
        return v


class UserLogin(CamelModel):
    email: EmailStr
    password: str


#---------------------------- Schema for password change ----------------------------#
class PasswordChange(CamelModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    def validate_new_password(cls, v):
        if len(v) < 6:
            raise ValueError("New password must be at least 6 characters")
        return v
