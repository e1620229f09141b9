"""
Pydantic schemas for the live wall API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from livewall.accounts import LoginProfile
from livewall.db import Account, AccountRole, SubmissionRecord


class SubmissionResponse(BaseModel):
    id: str
    photoUrl: Optional[str] = None
    message: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    status: str
    displayed: bool
    scheduledFor: Optional[datetime] = None
    uploadedBy: Optional[str] = None
    uploadSource: str
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_record(cls, record: SubmissionRecord) -> "SubmissionResponse":
        return cls(
            id=record.id,
            photoUrl=record.photo_url,
            message=record.message,
            username=record.username,
            email=record.email,
            status=record.status.value,
            displayed=record.displayed,
            scheduledFor=record.scheduled_for,
            uploadedBy=record.uploaded_by,
            uploadSource=record.upload_source.value,
            createdAt=record.created_at,
            updatedAt=record.updated_at,
        )


class SubmissionListResponse(BaseModel):
    uploads: list[SubmissionResponse]
    total: int
    page: int
    limit: int
    totalPages: int


class TransitionRequest(BaseModel):
    action: str
    scheduledFor: Optional[datetime] = None


class BulkTransitionRequest(BaseModel):
    ids: list[str]
    action: str


class BulkTransitionResponse(BaseModel):
    modifiedCount: int


class DisplayedResponse(BaseModel):
    id: str
    displayed: bool


class MessageResponse(BaseModel):
    message: str


class AccountCreateRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=72)


class AccountUpdateRequest(BaseModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=64)
    password: Optional[str] = Field(default=None, min_length=1, max_length=72)
    isActive: Optional[bool] = None
    role: Optional[AccountRole] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class AccountResponse(BaseModel):
    id: str
    username: str
    isActive: bool
    role: str
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            username=account.username,
            isActive=account.is_active,
            role=account.role.value,
            createdAt=account.created_at,
            updatedAt=account.updated_at,
        )


class LoginResponse(BaseModel):
    id: str
    username: str
    isActive: bool
    role: str

    @classmethod
    def from_profile(cls, profile: LoginProfile) -> "LoginResponse":
        return cls(
            id=profile.id,
            username=profile.username,
            isActive=profile.is_active,
            role=profile.role.value,
        )
