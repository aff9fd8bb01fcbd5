"""
Pydantic schemas for the SkillSwap API.

Request models forbid unknown fields, which keeps server-owned fields such as
``id``, ``status`` or ``userId`` out of client payloads. Response models never
declare a password field, so a user can only leave the process without one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from skillswap.types import ExchangeStatus, SkillType


class RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class ResponseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Requests


class RegisterRequest(RequestModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=256)
    email: str = Field(..., max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    full_name: str = Field(..., min_length=1, max_length=128)
    avatar: Optional[str] = Field(default=None, max_length=2048)
    bio: Optional[str] = Field(default=None, max_length=4000)


class LoginRequest(RequestModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserUpdateRequest(RequestModel):
    # Absent fields are left untouched; only avatar and bio may be cleared.
    full_name: str = Field(default=None, min_length=1, max_length=128)
    avatar: Optional[str] = Field(default=None, max_length=2048)
    bio: Optional[str] = Field(default=None, max_length=4000)


class SkillCreateRequest(RequestModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=4000)
    type: SkillType
    category: str = Field(..., min_length=1, max_length=64)
    tags: list[str] = Field(default_factory=list)


class SkillUpdateRequest(RequestModel):
    title: str = Field(default=None, min_length=1, max_length=200)
    description: str = Field(default=None, min_length=1, max_length=4000)
    category: str = Field(default=None, min_length=1, max_length=64)
    tags: list[str] = Field(default=None)


class ExchangeCreateRequest(RequestModel):
    responder_id: int = Field(..., gt=0)
    initiator_skill_id: int = Field(..., gt=0)
    responder_skill_id: int = Field(..., gt=0)


class ExchangeStatusRequest(RequestModel):
    # Checked against ExchangeStatus by the lifecycle engine.
    status: str = Field(..., max_length=32)


class MessageCreateRequest(RequestModel):
    content: str = Field(..., min_length=1, max_length=5000)


# Responses


class UserPublic(ResponseModel):
    id: int
    username: str
    email: str
    full_name: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    rating: int = 0
    exchange_count: int = 0


class SkillResponse(ResponseModel):
    id: int
    user_id: int
    title: str
    description: str
    type: SkillType
    category: str
    tags: list[str]
    created_at: datetime


class SkillWithUser(SkillResponse):
    user: Optional[UserPublic] = None


class ExchangeResponse(ResponseModel):
    id: int
    initiator_id: int
    responder_id: int
    initiator_skill_id: int
    responder_skill_id: int
    status: ExchangeStatus
    created_at: datetime
    updated_at: datetime


class ExchangeDetail(ExchangeResponse):
    initiator: Optional[UserPublic] = None
    responder: Optional[UserPublic] = None
    initiator_skill: Optional[SkillResponse] = None
    responder_skill: Optional[SkillResponse] = None


class MessageResponse(ResponseModel):
    id: int
    exchange_id: int
    sender_id: int
    content: str
    created_at: datetime


class SessionResponse(ResponseModel):
    authenticated: bool
    user: Optional[UserPublic] = None


class StatusMessage(ResponseModel):
    message: str


class HealthResponse(ResponseModel):
    status: Literal["ok"]
    backend: str
