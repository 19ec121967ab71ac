"""Settlement states of a live raffle, derived from its winner and approval flags."""

from __future__ import annotations

WINNER_PENDING = "winner_pending"
AWAITING_APPROVALS = "awaiting_approvals"
PARTIALLY_APPROVED = "partially_approved"
SETTLED = "settled"


def approval_state(raffle: dict) -> str:
    if not raffle.get("winner_id"):
        return WINNER_PENDING
    approvals = int(bool(raffle.get("approved_by_creator"))) + int(bool(raffle.get("approved_by_winner")))
    if approvals == 2:
        return SETTLED
    if approvals == 1:
        return PARTIALLY_APPROVED
    return AWAITING_APPROVALS
