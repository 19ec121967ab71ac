import uuid

from fastapi import APIRouter, Query

from rafflehub.api.dependencies import require_db
from rafflehub.models.schemas import InboxMessageOut, UnreadCountResponse
from rafflehub.services import notifications

router = APIRouter(prefix="/inbox", tags=["inbox"])


@router.get("/{identity}", response_model=list[InboxMessageOut])
def list_inbox(identity: str, unread_only: bool = Query(False)):
    require_db()
    return notifications.list_inbox(identity, unread_only=unread_only)


@router.get("/{identity}/unread-count", response_model=UnreadCountResponse)
def unread_count(identity: str):
    require_db()
    return {"identity": identity, "unread": notifications.unread_count(identity)}


@router.post("/{identity}/messages/{message_id}/read", status_code=204)
def mark_read(identity: str, message_id: uuid.UUID):
    require_db()
    notifications.mark_read(identity, message_id)
