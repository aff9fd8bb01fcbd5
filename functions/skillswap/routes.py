"""
HTTP routes for the SkillSwap API.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from fastapi import APIRouter, Depends, Query, Request, Response, status

from skillswap import auth, exchanges
from skillswap.auth import get_optional_user, require_user
from skillswap.db import DbClient, ExchangeRecord, SkillRecord, UserRecord
from skillswap.dependencies import get_db_client
from skillswap.errors import Forbidden, InternalError, NotFound
from skillswap.schemas import (
    ExchangeCreateRequest,
    ExchangeDetail,
    ExchangeResponse,
    ExchangeStatusRequest,
    HealthResponse,
    LoginRequest,
    MessageCreateRequest,
    MessageResponse,
    RegisterRequest,
    SessionResponse,
    SkillCreateRequest,
    SkillResponse,
    SkillUpdateRequest,
    SkillWithUser,
    StatusMessage,
    UserPublic,
    UserUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

K = TypeVar("K")
V = TypeVar("V")


def _cached(cache: dict[K, Optional[V]], key: K, loader: Callable[[K], Optional[V]]):
    if key not in cache:
        cache[key] = loader(key)
    return cache[key]


def _public_user(user: Optional[UserRecord]) -> Optional[UserPublic]:
    return UserPublic.model_validate(user) if user else None


def _skill_with_user(
    db: DbClient, skill: SkillRecord, users: dict[int, Optional[UserRecord]]
) -> SkillWithUser:
    owner = _cached(users, skill.user_id, db.get_user)
    return SkillWithUser(
        **SkillResponse.model_validate(skill).model_dump(),
        user=_public_user(owner),
    )


def _exchange_detail(
    db: DbClient,
    exchange: ExchangeRecord,
    users: dict[int, Optional[UserRecord]],
    skills: dict[int, Optional[SkillRecord]],
) -> ExchangeDetail:
    # Deleted skills are tolerated and come back as null.
    initiator_skill = _cached(skills, exchange.initiator_skill_id, db.get_skill)
    responder_skill = _cached(skills, exchange.responder_skill_id, db.get_skill)
    return ExchangeDetail(
        **ExchangeResponse.model_validate(exchange).model_dump(),
        initiator=_public_user(_cached(users, exchange.initiator_id, db.get_user)),
        responder=_public_user(_cached(users, exchange.responder_id, db.get_user)),
        initiator_skill=(
            SkillResponse.model_validate(initiator_skill) if initiator_skill else None
        ),
        responder_skill=(
            SkillResponse.model_validate(responder_skill) if responder_skill else None
        ),
    )


@router.get("/health", response_model=HealthResponse)
def health(db: DbClient = Depends(get_db_client)):
    return HealthResponse(status="ok", backend=type(db).__name__)


# Auth


@router.post("/auth/register", response_model=UserPublic, status_code=201)
def register(payload: RegisterRequest, db: DbClient = Depends(get_db_client)):
    user = auth.register(db, **payload.model_dump())
    return UserPublic.model_validate(user)


@router.post("/auth/login", response_model=UserPublic)
def login(
    payload: LoginRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
):
    user = auth.authenticate(db, payload.username, payload.password)
    auth.establish_session(request, user)
    logger.info("User %s logged in", user.id)
    return UserPublic.model_validate(user)


@router.post("/auth/logout", response_model=StatusMessage)
def logout(request: Request, user: UserRecord = Depends(require_user)):
    auth.end_session(request)
    logger.info("User %s logged out", user.id)
    return StatusMessage(message="Logged out successfully")


@router.get("/auth/session", response_model=SessionResponse)
def session_status(user: Optional[UserRecord] = Depends(get_optional_user)):
    return SessionResponse(authenticated=user is not None, user=_public_user(user))


# Users


@router.get("/users/{user_id}", response_model=UserPublic)
def get_user(user_id: int, db: DbClient = Depends(get_db_client)):
    user = db.get_user(user_id)
    if not user:
        raise NotFound("User")
    return UserPublic.model_validate(user)


@router.put("/users/{user_id}", response_model=UserPublic)
def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    if current.id != user_id:
        raise Forbidden()
    updated = db.update_user(user_id, payload.model_dump(exclude_unset=True))
    if not updated:
        raise NotFound("User")
    return UserPublic.model_validate(updated)


# Skills


@router.get("/skills", response_model=list[SkillWithUser])
def list_skills(
    user_id: Optional[int] = Query(None, alias="userId"),
    category: Optional[str] = Query(None),
    skill_type: Optional[str] = Query(None, alias="type"),
    q: Optional[str] = Query(None, description="Search title, description and tags"),
    db: DbClient = Depends(get_db_client),
):
    skills = db.list_skills(
        user_id=user_id,
        category=category,
        skill_type=skill_type,
        search=q.strip() if q else None,
    )
    users: dict[int, Optional[UserRecord]] = {}
    return [_skill_with_user(db, skill, users) for skill in skills]


@router.get("/skills/{skill_id}", response_model=SkillWithUser)
def get_skill(skill_id: int, db: DbClient = Depends(get_db_client)):
    skill = db.get_skill(skill_id)
    if not skill:
        raise NotFound("Skill")
    return _skill_with_user(db, skill, {})


@router.post("/skills", response_model=SkillResponse, status_code=201)
def create_skill(
    payload: SkillCreateRequest,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    skill = db.create_skill(
        user_id=current.id,
        title=payload.title,
        description=payload.description,
        skill_type=payload.type,
        category=payload.category,
        tags=payload.tags,
    )
    return SkillResponse.model_validate(skill)


def _owned_skill(db: DbClient, skill_id: int, user: UserRecord) -> SkillRecord:
    skill = db.get_skill(skill_id)
    if not skill:
        raise NotFound("Skill")
    if skill.user_id != user.id:
        raise Forbidden()
    return skill


@router.put("/skills/{skill_id}", response_model=SkillResponse)
def update_skill(
    skill_id: int,
    payload: SkillUpdateRequest,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    _owned_skill(db, skill_id, current)
    updated = db.update_skill(skill_id, payload.model_dump(exclude_unset=True))
    if not updated:
        raise NotFound("Skill")
    return SkillResponse.model_validate(updated)


@router.delete("/skills/{skill_id}", status_code=204, response_class=Response)
def delete_skill(
    skill_id: int,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    _owned_skill(db, skill_id, current)
    deleted = db.delete_skill(skill_id)
    # Trust the re-read, not the flag.
    if not deleted or db.get_skill(skill_id) is not None:
        raise InternalError("Failed to delete skill")
    logger.info("Skill %s deleted by user %s", skill_id, current.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Exchanges


@router.get("/exchanges", response_model=list[ExchangeDetail])
def list_exchanges(
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    users: dict[int, Optional[UserRecord]] = {}
    skills: dict[int, Optional[SkillRecord]] = {}
    return [
        _exchange_detail(db, exchange, users, skills)
        for exchange in db.list_exchanges_for_user(current.id)
    ]


@router.get("/exchanges/{exchange_id}", response_model=ExchangeDetail)
def get_exchange(
    exchange_id: int,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    exchange = exchanges.get_for_participant(db, exchange_id, current.id)
    return _exchange_detail(db, exchange, {}, {})


@router.post("/exchanges", response_model=ExchangeResponse, status_code=201)
def create_exchange(
    payload: ExchangeCreateRequest,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    exchange = exchanges.propose(
        db,
        initiator_id=current.id,
        responder_id=payload.responder_id,
        initiator_skill_id=payload.initiator_skill_id,
        responder_skill_id=payload.responder_skill_id,
    )
    return ExchangeResponse.model_validate(exchange)


@router.put("/exchanges/{exchange_id}/status", response_model=ExchangeResponse)
def update_exchange_status(
    exchange_id: int,
    payload: ExchangeStatusRequest,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    exchange = exchanges.set_status(db, exchange_id, current.id, payload.status)
    return ExchangeResponse.model_validate(exchange)


# Messages


@router.get("/exchanges/{exchange_id}/messages", response_model=list[MessageResponse])
def list_messages(
    exchange_id: int,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    return [
        MessageResponse.model_validate(message)
        for message in exchanges.list_messages(db, exchange_id, current.id)
    ]


@router.post(
    "/exchanges/{exchange_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
def post_message(
    exchange_id: int,
    payload: MessageCreateRequest,
    current: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
):
    message = exchanges.post_message(db, exchange_id, current.id, payload.content)
    return MessageResponse.model_validate(message)
