import uuid

from fastapi import APIRouter

from rafflehub.api.dependencies import require_db
from rafflehub.models.schemas import (
    AnnouncementCreate,
    AnnouncementOut,
    InterestToggleRequest,
    InterestToggleResponse,
    SessionInterestsResponse,
)
from rafflehub.services import interests, raffles

router = APIRouter(tags=["announcements"])


@router.post("/announcements", response_model=AnnouncementOut, status_code=201)
def create_announcement(payload: AnnouncementCreate):
    require_db()
    return raffles.create_announcement(payload)


@router.get("/announcements", response_model=list[AnnouncementOut])
def list_announcements():
    require_db()
    return raffles.list_active_announcements()


@router.get("/announcements/{announcement_id}", response_model=AnnouncementOut)
def get_announcement(announcement_id: uuid.UUID):
    require_db()
    return raffles.get_announcement(announcement_id)


@router.post("/announcements/{announcement_id}/interest", response_model=InterestToggleResponse)
def toggle_interest(announcement_id: uuid.UUID, payload: InterestToggleRequest):
    require_db()
    return interests.toggle_interest(payload.session_id, announcement_id, payload.action)


@router.get("/announcements/{announcement_id}/interested", response_model=list[str])
def list_interested(announcement_id: uuid.UUID):
    require_db()
    raffles.get_announcement(announcement_id)
    return interests.list_interested_identities(announcement_id)


@router.get("/sessions/{session_id}/interests", response_model=SessionInterestsResponse)
def list_session_interests(session_id: str):
    require_db()
    return {"session_id": session_id, "announcement_ids": interests.list_interests(session_id)}
