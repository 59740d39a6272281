"""
Pydantic schemas for the civic FastAPI backend.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Annotated, Generic, Literal, Optional, TypeVar

from pydantic import (
    AfterValidator,
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)

from civic.types import ProjectStatus, Role, TownhallStatus, VoteType

DataT = TypeVar("DataT")

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
# bcrypt only accepts this many bytes.
MAX_PASSWORD_BYTES = 72


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _future_utc(value: datetime) -> datetime:
    value = to_utc(value)
    if value <= datetime.now(timezone.utc):
        raise ValueError("Scheduled date must be in the future")
    return value


FutureDatetime = Annotated[datetime, AfterValidator(_future_utc)]


# Envelope


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class FieldError(BaseModel):
    field: str
    message: str
    location: Optional[str] = None


class ApiResponse(BaseModel, Generic[DataT]):
    status: Literal["success", "error"]
    message: Optional[str] = None
    data: Optional[DataT] = None
    meta: Optional[PageMeta] = None


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
    errors: Optional[list[FieldError]] = None


def success_response(
    data=None, *, message: Optional[str] = None, meta: Optional[PageMeta] = None
) -> dict:
    """
    Build a success envelope. Only supplied keys are included, so routes
    declared with ``response_model_exclude_unset`` omit the rest.
    """
    body: dict = {"status": "success"}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if meta is not None:
        body["meta"] = meta
    return body


# Auth


class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(
        ..., min_length=3, max_length=30, pattern=USERNAME_PATTERN
    )
    password: str = Field(..., min_length=6, max_length=MAX_PASSWORD_BYTES)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes long"
            )
        if not (
            re.search(r"[a-z]", value)
            and re.search(r"[A-Z]", value)
            and re.search(r"\d", value)
        ):
            raise ValueError(
                "Password must contain at least one uppercase letter, "
                "one lowercase letter, and one number"
            )
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserSummaryOut(BaseModel):
    id: int
    username: str
    email: str


class UserOut(BaseModel):
    id: int
    email: str
    username: str
    role: Role
    created_at: datetime


class AuthData(BaseModel):
    user: UserOut
    token: str


# Projects and votes


class ProjectCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20, max_length=2000)


class ProjectUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=20, max_length=2000)
    status: Optional[ProjectStatus] = None


class VoteRequest(BaseModel):
    vote_type: VoteType


class VoteCountsOut(BaseModel):
    upvotes: int
    downvotes: int
    total: int


class ProjectOut(BaseModel):
    id: int
    title: str
    description: str
    status: ProjectStatus
    proposer_id: int
    created_at: datetime
    updated_at: datetime
    proposer: Optional[UserSummaryOut] = None
    vote_counts: Optional[VoteCountsOut] = None


class VoterOut(BaseModel):
    id: int
    username: str


class ProjectVoteOut(BaseModel):
    vote_type: VoteType
    user: Optional[VoterOut] = None


class ProjectDetailOut(ProjectOut):
    votes: list[ProjectVoteOut] = []


class VoteOut(BaseModel):
    id: int
    user_id: int
    project_id: int
    vote_type: VoteType
    created_at: datetime
    updated_at: datetime


class ProjectVotesOut(BaseModel):
    project_id: int
    vote_counts: VoteCountsOut
    votes: list[ProjectVoteOut]


# Townhalls


class TownhallCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=5, max_length=200)
    description: str = Field(..., min_length=20, max_length=2000)
    scheduled_at: FutureDatetime
    zoom_link: Optional[AnyHttpUrl] = None


class TownhallUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=5, max_length=200)
    description: Optional[str] = Field(None, min_length=20, max_length=2000)
    scheduled_at: Optional[FutureDatetime] = None
    zoom_link: Optional[AnyHttpUrl] = None
    status: Optional[TownhallStatus] = None


class TownhallOut(BaseModel):
    id: int
    title: str
    description: str
    organizer_id: int
    scheduled_at: datetime
    zoom_link: Optional[str] = None
    status: TownhallStatus
    created_at: datetime
    updated_at: datetime
    organizer: Optional[UserSummaryOut] = None


# X updates


class XUpdateOut(BaseModel):
    id: int
    post_id: str
    content: str
    author: str
    posted_at: datetime
    fetched_at: datetime


class RefreshResult(BaseModel):
    new_updates_count: int
