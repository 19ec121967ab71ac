from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    time: datetime


class MigrationRunResponse(BaseModel):
    status: str
    applied_at: datetime


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    prize_value: Decimal = Field(..., ge=0)
    ticket_price: Decimal = Field(..., gt=0)
    max_tickets: int = Field(..., gt=0, le=1_000_000)
    starts_at: datetime
    category_id: Optional[str] = Field(None, max_length=64)
    creator_id: str = Field(..., min_length=1, max_length=128)


class AnnouncementOut(BaseModel):
    id: str
    title: str
    description: str
    prize_value: Decimal
    ticket_price: Decimal
    max_tickets: int
    starts_at: datetime
    category_id: Optional[str]
    creator_id: str
    is_active: bool
    interested_count: int
    created_at: datetime
    updated_at: datetime


class InterestToggleRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    action: Literal["add", "remove"]


class InterestToggleResponse(BaseModel):
    announcement_id: str
    interested_count: int
    action: str
    recorded: bool


class SessionInterestsResponse(BaseModel):
    session_id: str
    announcement_ids: list[str]


class RaffleCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    prize_value: Decimal = Field(..., ge=0)
    ticket_price: Decimal = Field(..., gt=0)
    max_tickets: int = Field(..., gt=0, le=1_000_000)
    ends_at: Optional[datetime] = None
    category_id: Optional[str] = Field(None, max_length=64)
    creator_id: str = Field(..., min_length=1, max_length=128)


class RaffleOut(BaseModel):
    id: str
    title: str
    description: str
    prize_value: Decimal
    ticket_price: Decimal
    max_tickets: int
    tickets_sold: int
    ends_at: datetime
    category_id: Optional[str]
    creator_id: str
    is_active: bool
    winner_id: Optional[str]
    approved_by_creator: bool
    approved_by_winner: bool
    approval_state: str
    source_announcement_id: Optional[str]
    created_at: datetime
    updated_at: datetime


class TicketPurchaseRequest(BaseModel):
    buyer_id: str = Field(..., min_length=1, max_length=128)
    quantity: int = Field(..., gt=0)
    total_amount: Decimal = Field(..., ge=0)
    external_ref: Optional[str] = Field(None, max_length=128)


class TicketPurchaseOut(BaseModel):
    id: str
    raffle_id: str
    buyer_id: str
    quantity: int
    total_amount: Decimal
    external_ref: Optional[str]
    created_at: datetime


class WinnerAssignRequest(BaseModel):
    winner_id: str = Field(..., min_length=1, max_length=128)


class ApprovalRequest(BaseModel):
    identity: str = Field(..., min_length=1, max_length=128)


class InboxMessageOut(BaseModel):
    id: str
    recipient_id: str
    subject: str
    body: str
    is_read: bool
    created_at: datetime


class UnreadCountResponse(BaseModel):
    identity: str
    unread: int


class SchedulerTickResponse(BaseModel):
    checked: int
    activated: list[str]
    skipped: list[str]
    failed: list[str]
    ran_at: datetime


class SchedulerStatusResponse(BaseModel):
    running: bool
    interval_seconds: float
    last_tick_at: Optional[datetime]
