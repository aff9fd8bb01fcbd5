"""
Exchange lifecycle: proposal, status transitions and participant access.

    pending ──► accepted ──► completed
       │                        ▲
       ├──► rejected            │
       └────────────────────────┘

``rejected`` and ``completed`` are terminal. Accept and reject belong to the
responder; either participant may complete. Authorization is checked before
state, so a caller who may never perform a transition always gets
``Forbidden`` regardless of where the exchange currently is.

Writes go through ``DbClient.transition_exchange``, a compare-and-set on the
stored status. Completion bumps both participants' ``exchange_count`` inside
that same operation, so a duplicate or concurrent completion loses the race
instead of counting twice.
"""

from __future__ import annotations

import logging

from skillswap.db import DbClient, ExchangeRecord, MessageRecord
from skillswap.errors import Forbidden, InvalidReference, InvalidTransition, NotFound
from skillswap.types import ExchangeStatus

logger = logging.getLogger(__name__)

RESPONDER_ONLY = frozenset({ExchangeStatus.ACCEPTED, ExchangeStatus.REJECTED})

ALLOWED_FROM: dict[ExchangeStatus, frozenset[ExchangeStatus]] = {
    ExchangeStatus.ACCEPTED: frozenset({ExchangeStatus.PENDING}),
    ExchangeStatus.REJECTED: frozenset({ExchangeStatus.PENDING}),
    ExchangeStatus.COMPLETED: frozenset(
        {ExchangeStatus.PENDING, ExchangeStatus.ACCEPTED}
    ),
}


def propose(
    db: DbClient,
    *,
    initiator_id: int,
    responder_id: int,
    initiator_skill_id: int,
    responder_skill_id: int,
) -> ExchangeRecord:
    """Create a pending exchange after checking skill ownership."""
    initiator_skill = db.get_skill(initiator_skill_id)
    responder_skill = db.get_skill(responder_skill_id)
    if not initiator_skill or not responder_skill:
        raise InvalidReference("Invalid skill IDs")
    if initiator_skill.user_id != initiator_id:
        raise Forbidden("You can only offer your own skills")
    if responder_skill.user_id != responder_id:
        raise InvalidReference("Responder skill does not belong to responder")

    exchange = db.create_exchange(
        initiator_id=initiator_id,
        responder_id=responder_id,
        initiator_skill_id=initiator_skill_id,
        responder_skill_id=responder_skill_id,
        status=ExchangeStatus.PENDING,
    )
    logger.info(
        "Exchange %s proposed by user %s to user %s",
        exchange.id,
        initiator_id,
        responder_id,
    )
    return exchange


def set_status(
    db: DbClient,
    exchange_id: int,
    requested_by: int,
    new_status: ExchangeStatus | str,
) -> ExchangeRecord:
    """
    Apply a status transition requested by ``requested_by``.

    The exchange must exist before the requested value is looked at, so an
    unknown id is always ``NotFound``.
    """
    exchange = db.get_exchange(exchange_id)
    if not exchange:
        raise NotFound("Exchange")

    try:
        new_status = ExchangeStatus(new_status)
    except ValueError:
        raise InvalidTransition("Invalid status transition") from None

    if new_status in RESPONDER_ONLY:
        if requested_by != exchange.responder_id:
            raise Forbidden("Only the responder can accept or reject")
    elif new_status == ExchangeStatus.COMPLETED:
        if not exchange.is_participant(requested_by):
            raise Forbidden("You are not part of this exchange")
    else:
        raise InvalidTransition("Invalid status transition")

    allowed_from = ALLOWED_FROM[new_status]
    if exchange.status not in allowed_from:
        raise _transition_error(exchange.status, new_status)

    updated = db.transition_exchange(
        exchange_id,
        new_status,
        allowed_from=allowed_from,
        count_completion=new_status == ExchangeStatus.COMPLETED,
    )
    if updated is None:
        current = db.get_exchange(exchange_id)
        if current is None:
            raise NotFound("Exchange")
        logger.warning(
            "Exchange %s moved to %s concurrently; %s by user %s rejected",
            exchange_id,
            current.status.value,
            new_status.value,
            requested_by,
        )
        raise _transition_error(current.status, new_status)

    logger.info(
        "Exchange %s: %s -> %s by user %s",
        exchange_id,
        exchange.status.value,
        updated.status.value,
        requested_by,
    )
    return updated


def _transition_error(
    current: ExchangeStatus, requested: ExchangeStatus
) -> InvalidTransition:
    if current.is_terminal:
        return InvalidTransition(f"Exchange is already {current.value}")
    return InvalidTransition(
        f"Cannot change exchange status from {current.value} to {requested.value}"
    )


def ensure_participant(exchange: ExchangeRecord, user_id: int) -> None:
    if not exchange.is_participant(user_id):
        raise Forbidden()


def get_for_participant(
    db: DbClient, exchange_id: int, user_id: int
) -> ExchangeRecord:
    exchange = db.get_exchange(exchange_id)
    if not exchange:
        raise NotFound("Exchange")
    ensure_participant(exchange, user_id)
    return exchange


def list_messages(
    db: DbClient, exchange_id: int, user_id: int
) -> list[MessageRecord]:
    get_for_participant(db, exchange_id, user_id)
    return db.list_messages(exchange_id)


def post_message(
    db: DbClient, exchange_id: int, sender_id: int, content: str
) -> MessageRecord:
    get_for_participant(db, exchange_id, sender_id)
    return db.create_message(
        exchange_id=exchange_id, sender_id=sender_id, content=content
    )
