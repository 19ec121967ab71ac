import uuid

from fastapi import APIRouter

from rafflehub.api.dependencies import require_db
from rafflehub.models.schemas import TicketPurchaseOut, TicketPurchaseRequest
from rafflehub.services import tickets

router = APIRouter(tags=["tickets"])


@router.post("/raffles/{raffle_id}/tickets", response_model=TicketPurchaseOut, status_code=201)
def purchase_tickets(raffle_id: uuid.UUID, payload: TicketPurchaseRequest):
    require_db()
    return tickets.purchase(
        payload.buyer_id,
        raffle_id,
        payload.quantity,
        payload.total_amount,
        payload.external_ref,
    )


@router.get("/raffles/{raffle_id}/tickets", response_model=list[TicketPurchaseOut])
def list_raffle_tickets(raffle_id: uuid.UUID):
    require_db()
    return tickets.list_by_raffle(raffle_id)


@router.get("/buyers/{buyer_id}/tickets", response_model=list[TicketPurchaseOut])
def list_buyer_tickets(buyer_id: str):
    require_db()
    return tickets.list_by_buyer(buyer_id)
