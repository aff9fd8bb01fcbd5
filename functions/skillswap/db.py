"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    create_engine,
    or_,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from skillswap.errors import Conflict
from skillswap.types import ExchangeStatus, SkillType

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DbClient(Protocol):
    """Interface for database access."""

    def get_user(self, user_id: int) -> Optional["UserRecord"]:
        ...

    def get_user_by_username(self, username: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def create_user(
        self,
        *,
        username: str,
        password: str,
        email: str,
        full_name: str,
        avatar: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> "UserRecord":
        ...

    def update_user(self, user_id: int, changes: dict) -> Optional["UserRecord"]:
        ...

    def get_skill(self, skill_id: int) -> Optional["SkillRecord"]:
        ...

    def list_skills(
        self,
        *,
        user_id: Optional[int] = None,
        category: Optional[str] = None,
        skill_type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list["SkillRecord"]:
        ...

    def create_skill(
        self,
        *,
        user_id: int,
        title: str,
        description: str,
        skill_type: SkillType,
        category: str,
        tags: Iterable[str],
    ) -> "SkillRecord":
        ...

    def update_skill(self, skill_id: int, changes: dict) -> Optional["SkillRecord"]:
        ...

    def delete_skill(self, skill_id: int) -> bool:
        ...

    def get_exchange(self, exchange_id: int) -> Optional["ExchangeRecord"]:
        ...

    def list_exchanges_for_user(self, user_id: int) -> list["ExchangeRecord"]:
        ...

    def create_exchange(
        self,
        *,
        initiator_id: int,
        responder_id: int,
        initiator_skill_id: int,
        responder_skill_id: int,
        status: ExchangeStatus = ExchangeStatus.PENDING,
    ) -> "ExchangeRecord":
        ...

    def transition_exchange(
        self,
        exchange_id: int,
        new_status: ExchangeStatus,
        *,
        allowed_from: Iterable[ExchangeStatus],
        count_completion: bool = False,
    ) -> Optional["ExchangeRecord"]:
        ...

    def get_message(self, message_id: int) -> Optional["MessageRecord"]:
        ...

    def list_messages(self, exchange_id: int) -> list["MessageRecord"]:
        ...

    def create_message(
        self, *, exchange_id: int, sender_id: int, content: str
    ) -> "MessageRecord":
        ...


@dataclass
class UserRecord:
    id: int
    username: str
    password: str
    email: str
    full_name: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    rating: int = 0
    exchange_count: int = 0


@dataclass
class SkillRecord:
    id: int
    user_id: int
    title: str
    description: str
    type: SkillType
    category: str
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)

    def matches(self, search: str) -> bool:
        """Case-insensitive substring match over title, description and tags."""
        needle = search.lower()
        return (
            needle in self.title.lower()
            or needle in self.description.lower()
            or any(needle in tag.lower() for tag in self.tags)
        )


@dataclass
class ExchangeRecord:
    id: int
    initiator_id: int
    responder_id: int
    initiator_skill_id: int
    responder_skill_id: int
    status: ExchangeStatus
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def participant_ids(self) -> set[int]:
        return {self.initiator_id, self.responder_id}

    def is_participant(self, user_id: int) -> bool:
        return user_id in self.participant_ids


@dataclass
class MessageRecord:
    id: int
    exchange_id: int
    sender_id: int
    content: str
    created_at: datetime = field(default_factory=_utcnow)


USER_UPDATABLE_FIELDS = frozenset(
    f.name for f in fields(UserRecord) if f.name not in ("id", "username")
)
SKILL_UPDATABLE_FIELDS = frozenset(
    {"title", "description", "type", "category", "tags"}
)


def _check_changes(changes: dict, allowed: frozenset[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")


def _filter_search(skills: list[SkillRecord], search: Optional[str]) -> list[SkillRecord]:
    if not search:
        return skills
    return [skill for skill in skills if skill.matches(search)]


class InMemoryDbClient:
    """
    Simple in-memory database for development and tests.

    Ids come from per-table monotonic counters. A single re-entrant lock
    serializes every read-modify-write so route handlers running in the
    thread pool cannot interleave.
    """

    def __init__(self):
        self.users: Dict[int, UserRecord] = {}
        self.skills: Dict[int, SkillRecord] = {}
        self.exchanges: Dict[int, ExchangeRecord] = {}
        self.messages: Dict[int, MessageRecord] = {}
        self._ids = {
            name: itertools.count(1)
            for name in ("users", "skills", "exchanges", "messages")
        }
        self._lock = threading.RLock()

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    # Users

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self._lock:
            user = self.users.get(user_id)
            return replace(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users.values():
                if user.username == username:
                    return replace(user)
        return None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users.values():
                if user.email == email:
                    return replace(user)
        return None

    def create_user(
        self,
        *,
        username: str,
        password: str,
        email: str,
        full_name: str,
        avatar: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> UserRecord:
        with self._lock:
            for existing in self.users.values():
                if existing.username == username or existing.email == email:
                    raise Conflict("Username or email already exists")
            record = UserRecord(
                id=self._next_id("users"),
                username=username,
                password=password,
                email=email,
                full_name=full_name,
                avatar=avatar or None,
                bio=bio or None,
            )
            self.users[record.id] = record
            return replace(record)

    def update_user(self, user_id: int, changes: dict) -> Optional[UserRecord]:
        _check_changes(changes, USER_UPDATABLE_FIELDS)
        with self._lock:
            user = self.users.get(user_id)
            if not user:
                return None
            if "email" in changes and any(
                other.email == changes["email"] and other.id != user_id
                for other in self.users.values()
            ):
                raise Conflict("Email already exists")
            updated = replace(user, **changes)
            self.users[user_id] = updated
            return replace(updated)

    # Skills

    def get_skill(self, skill_id: int) -> Optional[SkillRecord]:
        with self._lock:
            skill = self.skills.get(skill_id)
            return replace(skill, tags=list(skill.tags)) if skill else None

    def list_skills(
        self,
        *,
        user_id: Optional[int] = None,
        category: Optional[str] = None,
        skill_type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[SkillRecord]:
        with self._lock:
            items = [
                replace(skill, tags=list(skill.tags))
                for skill in self.skills.values()
                if (user_id is None or skill.user_id == user_id)
                and (category is None or skill.category == category)
                and (skill_type is None or skill.type == skill_type)
            ]
        return _filter_search(items, search)

    def create_skill(
        self,
        *,
        user_id: int,
        title: str,
        description: str,
        skill_type: SkillType,
        category: str,
        tags: Iterable[str],
    ) -> SkillRecord:
        with self._lock:
            record = SkillRecord(
                id=self._next_id("skills"),
                user_id=user_id,
                title=title,
                description=description,
                type=SkillType(skill_type),
                category=category,
                tags=list(tags),
                created_at=_utcnow(),
            )
            self.skills[record.id] = record
            return replace(record, tags=list(record.tags))

    def update_skill(self, skill_id: int, changes: dict) -> Optional[SkillRecord]:
        _check_changes(changes, SKILL_UPDATABLE_FIELDS)
        with self._lock:
            skill = self.skills.get(skill_id)
            if not skill:
                return None
            if "tags" in changes:
                changes = {**changes, "tags": list(changes["tags"])}
            if "type" in changes:
                changes = {**changes, "type": SkillType(changes["type"])}
            updated = replace(skill, **changes)
            self.skills[skill_id] = updated
            return replace(updated, tags=list(updated.tags))

    def delete_skill(self, skill_id: int) -> bool:
        with self._lock:
            return self.skills.pop(skill_id, None) is not None

    # Exchanges

    def get_exchange(self, exchange_id: int) -> Optional[ExchangeRecord]:
        with self._lock:
            exchange = self.exchanges.get(exchange_id)
            return replace(exchange) if exchange else None

    def list_exchanges_for_user(self, user_id: int) -> list[ExchangeRecord]:
        with self._lock:
            items = [
                replace(exchange)
                for exchange in self.exchanges.values()
                if exchange.is_participant(user_id)
            ]
        return sorted(items, key=lambda e: (e.updated_at, e.id), reverse=True)

    def create_exchange(
        self,
        *,
        initiator_id: int,
        responder_id: int,
        initiator_skill_id: int,
        responder_skill_id: int,
        status: ExchangeStatus = ExchangeStatus.PENDING,
    ) -> ExchangeRecord:
        now = _utcnow()
        with self._lock:
            record = ExchangeRecord(
                id=self._next_id("exchanges"),
                initiator_id=initiator_id,
                responder_id=responder_id,
                initiator_skill_id=initiator_skill_id,
                responder_skill_id=responder_skill_id,
                status=ExchangeStatus(status),
                created_at=now,
                updated_at=now,
            )
            self.exchanges[record.id] = record
            return replace(record)

    def transition_exchange(
        self,
        exchange_id: int,
        new_status: ExchangeStatus,
        *,
        allowed_from: Iterable[ExchangeStatus],
        count_completion: bool = False,
    ) -> Optional[ExchangeRecord]:
        allowed = set(allowed_from)
        with self._lock:
            exchange = self.exchanges.get(exchange_id)
            if not exchange or exchange.status not in allowed:
                return None
            updated = replace(exchange, status=new_status, updated_at=_utcnow())
            self.exchanges[exchange_id] = updated
            if count_completion:
                for user_id in updated.participant_ids:
                    user = self.users.get(user_id)
                    if user is None:
                        logger.warning(
                            "Exchange %s participant %s missing; count skipped",
                            exchange_id,
                            user_id,
                        )
                        continue
                    self.users[user_id] = replace(
                        user, exchange_count=user.exchange_count + 1
                    )
            return replace(updated)

    # Messages

    def get_message(self, message_id: int) -> Optional[MessageRecord]:
        with self._lock:
            message = self.messages.get(message_id)
            return replace(message) if message else None

    def list_messages(self, exchange_id: int) -> list[MessageRecord]:
        with self._lock:
            items = [
                replace(message)
                for message in self.messages.values()
                if message.exchange_id == exchange_id
            ]
        return sorted(items, key=lambda m: (m.created_at, m.id))

    def create_message(
        self, *, exchange_id: int, sender_id: int, content: str
    ) -> MessageRecord:
        with self._lock:
            record = MessageRecord(
                id=self._next_id("messages"),
                exchange_id=exchange_id,
                sender_id=sender_id,
                content=content,
                created_at=_utcnow(),
            )
            self.messages[record.id] = record
            return replace(record)


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        engine_kwargs = {"future": True, "pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            username=row.username,
            password=row.password,
            email=row.email,
            full_name=row.full_name,
            avatar=row.avatar,
            bio=row.bio,
            rating=row.rating or 0,
            exchange_count=row.exchange_count or 0,
        )

    def _to_skill(self, row: "SkillRow") -> SkillRecord:
        return SkillRecord(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            description=row.description,
            type=SkillType(row.type),
            category=row.category,
            tags=list(row.tags or []),
            created_at=_as_utc(row.created_at),
        )

    def _to_exchange(self, row: "ExchangeRow") -> ExchangeRecord:
        return ExchangeRecord(
            id=row.id,
            initiator_id=row.initiator_id,
            responder_id=row.responder_id,
            initiator_skill_id=row.initiator_skill_id,
            responder_skill_id=row.responder_skill_id,
            status=ExchangeStatus(row.status),
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def _to_message(self, row: "MessageRow") -> MessageRecord:
        return MessageRecord(
            id=row.id,
            exchange_id=row.exchange_id,
            sender_id=row.sender_id,
            content=row.content,
            created_at=_as_utc(row.created_at),
        )

    # Users

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.username == username)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user(row) if row else None

    def create_user(
        self,
        *,
        username: str,
        password: str,
        email: str,
        full_name: str,
        avatar: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                username=username,
                password=password,
                email=email,
                full_name=full_name,
                avatar=avatar or None,
                bio=bio or None,
                rating=0,
                exchange_count=0,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise Conflict("Username or email already exists") from exc
            session.refresh(row)
            return self._to_user(row)

    def update_user(self, user_id: int, changes: dict) -> Optional[UserRecord]:
        _check_changes(changes, USER_UPDATABLE_FIELDS)
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise Conflict("Email already exists") from exc
            return self._to_user(row)

    # Skills

    def get_skill(self, skill_id: int) -> Optional[SkillRecord]:
        with self.Session() as session:
            row = session.get(SkillRow, skill_id)
            return self._to_skill(row) if row else None

    def list_skills(
        self,
        *,
        user_id: Optional[int] = None,
        category: Optional[str] = None,
        skill_type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[SkillRecord]:
        stmt = select(SkillRow).order_by(SkillRow.id.asc())
        if user_id is not None:
            stmt = stmt.where(SkillRow.user_id == user_id)
        if category is not None:
            stmt = stmt.where(SkillRow.category == category)
        if skill_type is not None:
            stmt = stmt.where(SkillRow.type == str(skill_type))
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            items = [self._to_skill(row) for row in rows]
        # Tags live in a JSON column, so free-text search runs in Python.
        return _filter_search(items, search)

    def create_skill(
        self,
        *,
        user_id: int,
        title: str,
        description: str,
        skill_type: SkillType,
        category: str,
        tags: Iterable[str],
    ) -> SkillRecord:
        with self.Session() as session:
            row = SkillRow(
                user_id=user_id,
                title=title,
                description=description,
                type=SkillType(skill_type).value,
                category=category,
                tags=list(tags),
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_skill(row)

    def update_skill(self, skill_id: int, changes: dict) -> Optional[SkillRecord]:
        _check_changes(changes, SKILL_UPDATABLE_FIELDS)
        with self.Session() as session:
            row = session.get(SkillRow, skill_id)
            if not row:
                return None
            for key, value in changes.items():
                if key == "type":
                    value = SkillType(value).value
                elif key == "tags":
                    value = list(value)
                setattr(row, key, value)
            session.commit()
            return self._to_skill(row)

    def delete_skill(self, skill_id: int) -> bool:
        with self.Session() as session:
            row = session.get(SkillRow, skill_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    # Exchanges

    def get_exchange(self, exchange_id: int) -> Optional[ExchangeRecord]:
        with self.Session() as session:
            row = session.get(ExchangeRow, exchange_id)
            return self._to_exchange(row) if row else None

    def list_exchanges_for_user(self, user_id: int) -> list[ExchangeRecord]:
        with self.Session() as session:
            stmt = (
                select(ExchangeRow)
                .where(
                    or_(
                        ExchangeRow.initiator_id == user_id,
                        ExchangeRow.responder_id == user_id,
                    )
                )
                .order_by(ExchangeRow.updated_at.desc(), ExchangeRow.id.desc())
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_exchange(row) for row in rows]

    def create_exchange(
        self,
        *,
        initiator_id: int,
        responder_id: int,
        initiator_skill_id: int,
        responder_skill_id: int,
        status: ExchangeStatus = ExchangeStatus.PENDING,
    ) -> ExchangeRecord:
        now = _utcnow()
        with self.Session() as session:
            row = ExchangeRow(
                initiator_id=initiator_id,
                responder_id=responder_id,
                initiator_skill_id=initiator_skill_id,
                responder_skill_id=responder_skill_id,
                status=ExchangeStatus(status).value,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_exchange(row)

    def transition_exchange(
        self,
        exchange_id: int,
        new_status: ExchangeStatus,
        *,
        allowed_from: Iterable[ExchangeStatus],
        count_completion: bool = False,
    ) -> Optional[ExchangeRecord]:
        allowed = [ExchangeStatus(status).value for status in allowed_from]
        with self.Session() as session:
            result = session.execute(
                update(ExchangeRow)
                .where(
                    ExchangeRow.id == exchange_id,
                    ExchangeRow.status.in_(allowed),
                )
                .values(status=ExchangeStatus(new_status).value, updated_at=_utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                return None
            row = session.get(ExchangeRow, exchange_id)
            if count_completion:
                counted = session.execute(
                    update(UserRow)
                    .where(UserRow.id.in_([row.initiator_id, row.responder_id]))
                    .values(exchange_count=UserRow.exchange_count + 1)
                    .execution_options(synchronize_session=False)
                )
                if counted.rowcount < len({row.initiator_id, row.responder_id}):
                    logger.warning(
                        "Exchange %s has a missing participant; count skipped",
                        exchange_id,
                    )
            session.commit()
            return self._to_exchange(row)

    # Messages

    def get_message(self, message_id: int) -> Optional[MessageRecord]:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            return self._to_message(row) if row else None

    def list_messages(self, exchange_id: int) -> list[MessageRecord]:
        with self.Session() as session:
            stmt = (
                select(MessageRow)
                .where(MessageRow.exchange_id == exchange_id)
                .order_by(MessageRow.created_at.asc(), MessageRow.id.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_message(row) for row in rows]

    def create_message(
        self, *, exchange_id: int, sender_id: int, content: str
    ) -> MessageRecord:
        with self.Session() as session:
            row = MessageRow(
                exchange_id=exchange_id,
                sender_id=sender_id,
                content=content,
                created_at=_utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_message(row)


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    full_name = Column(String, nullable=False)
    avatar = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    rating = Column(Integer, nullable=False, default=0)
    exchange_count = Column(Integer, nullable=False, default=0)


class SkillRow(Base):
    __tablename__ = "skills"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    type = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ExchangeRow(Base):
    __tablename__ = "exchanges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    initiator_id = Column(Integer, nullable=False, index=True)
    responder_id = Column(Integer, nullable=False, index=True)
    initiator_skill_id = Column(Integer, nullable=False)
    responder_skill_id = Column(Integer, nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class MessageRow(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    exchange_id = Column(Integer, nullable=False, index=True)
    sender_id = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
