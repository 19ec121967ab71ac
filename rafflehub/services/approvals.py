"""Winner assignment and the creator/winner settlement handshake.

Both approval flags are written by a single conditional UPDATE, so two parties
approving at the same moment can never overwrite each other.
"""

from __future__ import annotations

import logging
import uuid

from rafflehub.core.cache import get_cache
from rafflehub.core.errors import (
    AuthorizationError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from rafflehub.cqrs.commands import raffles as raffle_commands
from rafflehub.cqrs.queries import raffles as raffle_queries
from rafflehub.models.approval import SETTLED
from rafflehub.services import events

logger = logging.getLogger(__name__)


def _require_raffle(raffle_id: uuid.UUID) -> dict:
    raffle = raffle_queries.get_raffle(raffle_id)
    if raffle is None:
        raise NotFoundError("Raffle not found")
    return raffle


def assign_winner(raffle_id: uuid.UUID, winner_id: str) -> dict:
    if not winner_id:
        raise ValidationError("Winner is required")
    raffle = raffle_commands.assign_winner(raffle_id, winner_id)
    if raffle is None:
        _require_raffle(raffle_id)
        raise StateConflictError("Winner has already been assigned")
    get_cache().invalidate_raffle(raffle_id, raffle["creator_id"])
    logger.info("Raffle %s winner set to %s, awaiting approvals", raffle_id, winner_id)
    return raffle


def approve(raffle_id: uuid.UUID, identity: str) -> dict:
    if not identity:
        raise ValidationError("Identity is required")
    raffle = raffle_commands.record_approval(raffle_id, identity)
    if raffle is None:
        current = _require_raffle(raffle_id)
        if identity not in (current["creator_id"], current["winner_id"]):
            raise AuthorizationError("Not authorized to approve this raffle")
        if not current["winner_id"]:
            raise StateConflictError("Raffle has no winner yet")
        # Already approved by this party, or settled: nothing to change.
        return current

    get_cache().invalidate_raffle(raffle_id, raffle["creator_id"])
    events.publish(
        events.RAFFLE_APPROVED,
        {
            "raffle_id": raffle["id"],
            "approved_by_creator": raffle["approved_by_creator"],
            "approved_by_winner": raffle["approved_by_winner"],
            "approval_state": raffle["approval_state"],
        },
    )
    if raffle["approval_state"] == SETTLED:
        logger.info("Raffle %s settled", raffle_id)
    else:
        logger.info("Raffle %s approved by %s", raffle_id, identity)
    return raffle
