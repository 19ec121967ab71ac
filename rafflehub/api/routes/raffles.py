import uuid

from fastapi import APIRouter

from rafflehub.api.dependencies import require_db
from rafflehub.models.schemas import ApprovalRequest, RaffleCreate, RaffleOut, WinnerAssignRequest
from rafflehub.services import approvals, raffles

router = APIRouter(tags=["raffles"])


@router.post("/raffles", response_model=RaffleOut, status_code=201)
def create_raffle(payload: RaffleCreate):
    require_db()
    return raffles.create_raffle(payload)


@router.get("/raffles/active", response_model=list[RaffleOut])
def list_active_raffles():
    require_db()
    return raffles.list_active_raffles()


@router.get("/raffles/{raffle_id}", response_model=RaffleOut)
def get_raffle(raffle_id: uuid.UUID):
    require_db()
    return raffles.get_raffle(raffle_id)


@router.get("/creators/{creator_id}/raffles", response_model=list[RaffleOut])
def list_creator_raffles(creator_id: str):
    require_db()
    return raffles.list_raffles_by_creator(creator_id)


@router.post("/raffles/{raffle_id}/winner", response_model=RaffleOut)
def assign_winner(raffle_id: uuid.UUID, payload: WinnerAssignRequest):
    require_db()
    return approvals.assign_winner(raffle_id, payload.winner_id)


@router.post("/raffles/{raffle_id}/approve", response_model=RaffleOut)
def approve_settlement(raffle_id: uuid.UUID, payload: ApprovalRequest):
    require_db()
    return approvals.approve(raffle_id, payload.identity)
