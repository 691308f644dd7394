"""
Request and response models for account operations.
"""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")


def normalize_email(email: str) -> str:
    """Emails are stored and compared trimmed and lower-cased."""
    return email.strip().lower()


class UserRegistration(BaseModel):
    """Data required to register a new account."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=100)
    password: str = Field(..., min_length=6)
    phone: str = Field(...)
    gender: Literal["Male", "Female", "Other"]

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = normalize_email(v)
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        v = v.strip()
        if not PHONE_PATTERN.match(v):
            raise ValueError("Invalid phone number format")
        return v


class UserLogin(BaseModel):
    """Login credentials."""

    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = normalize_email(v)
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class UserSummary(BaseModel):
    """User details returned alongside a session token."""

    id: int
    name: str
    email: str
    phone: str
    gender: str
    registration_date: datetime


class LoginResult(BaseModel):
    token: str
    user: UserSummary


class UserProfile(BaseModel):
    """Dashboard view of the signed-in user."""

    id: int
    name: str
    email: str
    phone: str
    gender: str
    registration_date: str
    last_login: str


class UserListItem(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    gender: str
    registration_date: str


class DashboardStats(BaseModel):
    total_users: int
    active_users: int


class CourseItem(BaseModel):
    id: int
    course_name: str
    description: str
    created_at: str
