from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
import threading
import uuid

import pytest

from rafflehub.core import cache
from rafflehub.core.errors import CapacityError, NotFoundError, StateConflictError
from rafflehub.cqrs.commands import announcements as announcement_commands
from rafflehub.cqrs.commands import inbox as inbox_commands
from rafflehub.cqrs.commands import interests as interest_commands
from rafflehub.cqrs.commands import raffles as raffle_commands
from rafflehub.cqrs.commands import tickets as ticket_commands
from rafflehub.cqrs.queries import announcements as announcement_queries
from rafflehub.cqrs.queries import inbox as inbox_queries
from rafflehub.cqrs.queries import interests as interest_queries
from rafflehub.cqrs.queries import raffles as raffle_queries
from rafflehub.cqrs.queries import tickets as ticket_queries
from rafflehub.cqrs.rows import announcement_row, message_row, raffle_row, ticket_row
from rafflehub.models.schemas import AnnouncementCreate, RaffleCreate
from rafflehub.services import events


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _key(value) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class MemoryDatabase:
    """Stand-in for the PostgreSQL tables with the same conditional-update rules.

    Every mutation runs under one lock, mirroring the row locks the SQL relies on.
    ``failures`` maps an operation name to the exception it should raise.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.announcements: dict[uuid.UUID, dict] = {}
        self.interests: dict[tuple[str, uuid.UUID], datetime] = {}
        self.raffles: dict[uuid.UUID, dict] = {}
        self.tickets: list[dict] = []
        self.messages: list[dict] = []
        self.failures: dict[str, Exception] = {}
        self.failing_recipients: set[str] = set()
        self.failing_announcements: set[uuid.UUID] = set()

    def _maybe_fail(self, operation: str) -> None:
        exc = self.failures.get(operation)
        if exc is not None:
            raise exc

    # announcements

    def create_announcement(self, payload: AnnouncementCreate) -> dict:
        now = _utcnow()
        record = {
            "id": uuid.uuid4(),
            "title": payload.title,
            "description": payload.description,
            "prize_value": payload.prize_value,
            "ticket_price": payload.ticket_price,
            "max_tickets": payload.max_tickets,
            "starts_at": payload.starts_at,
            "category_id": payload.category_id,
            "creator_id": payload.creator_id,
            "is_active": True,
            "interested_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        with self.lock:
            self.announcements[record["id"]] = record
        return announcement_row(record)

    def list_due_announcements(self, now: datetime) -> list[dict]:
        self._maybe_fail("list_due_announcements")
        with self.lock:
            due = [a for a in self.announcements.values() if a["is_active"] and a["starts_at"] <= now]
        return [announcement_row(a) for a in sorted(due, key=lambda a: a["starts_at"])]

    def list_active_announcements(self) -> list[dict]:
        self._maybe_fail("list_active_announcements")
        with self.lock:
            return [announcement_row(a) for a in self.announcements.values() if a["is_active"]]

    def get_announcement(self, announcement_id) -> dict | None:
        self._maybe_fail("get_announcement")
        record = self.announcements.get(_key(announcement_id))
        return announcement_row(record) if record else None

    def activate_announcement(self, announcement_id, activated_at: datetime, ends_at: datetime):
        announcement_id = _key(announcement_id)
        with self.lock:
            self._maybe_fail("activate_announcement")
            if announcement_id in self.failing_announcements:
                raise RuntimeError(f"activation failed for {announcement_id}")
            source = self.announcements.get(announcement_id)
            if source is None or not source["is_active"]:
                return None
            # Read before mutating so a failed read leaves nothing behind, as a rollback would.
            interested = self._interested(announcement_id)
            source["is_active"] = False
            source["updated_at"] = activated_at
            raffle = {
                "id": uuid.uuid4(),
                "title": source["title"],
                "description": source["description"],
                "prize_value": source["prize_value"],
                "ticket_price": source["ticket_price"],
                "max_tickets": source["max_tickets"],
                "tickets_sold": 0,
                "ends_at": ends_at,
                "category_id": source["category_id"],
                "creator_id": source["creator_id"],
                "is_active": True,
                "winner_id": None,
                "approved_by_creator": False,
                "approved_by_winner": False,
                "source_announcement_id": announcement_id,
                "created_at": activated_at,
                "updated_at": activated_at,
            }
            self.raffles[raffle["id"]] = raffle
            return {"raffle": raffle_row(raffle), "interested_identities": interested}

    # interests

    def _interested(self, announcement_id: uuid.UUID) -> list[str]:
        self._maybe_fail("list_interested_identities")
        return sorted({session for session, target in self.interests if target == announcement_id})

    def _count_interest(self, announcement_id: uuid.UUID) -> int:
        count = sum(1 for _, target in self.interests if target == announcement_id)
        self.announcements[announcement_id]["interested_count"] = count
        return count

    def add_interest(self, session_id: str, announcement_id) -> int:
        announcement_id = _key(announcement_id)
        with self.lock:
            self._maybe_fail("add_interest")
            announcement = self.announcements.get(announcement_id)
            if announcement is None:
                raise NotFoundError("Announcement not found")
            if not announcement["is_active"]:
                raise StateConflictError("Announcement has already started")
            self.interests.setdefault((session_id, announcement_id), _utcnow())
            return self._count_interest(announcement_id)

    def remove_interest(self, session_id: str, announcement_id) -> int:
        announcement_id = _key(announcement_id)
        with self.lock:
            self._maybe_fail("remove_interest")
            if announcement_id not in self.announcements:
                raise NotFoundError("Announcement not found")
            self.interests.pop((session_id, announcement_id), None)
            return self._count_interest(announcement_id)

    def list_interested_identities(self, announcement_id, conn=None) -> list[str]:
        with self.lock:
            return self._interested(_key(announcement_id))

    def list_interests(self, session_id: str) -> list[str]:
        self._maybe_fail("list_interests")
        with self.lock:
            return [str(target) for session, target in self.interests if session == session_id]

    # raffles

    def create_raffle(self, payload: RaffleCreate, ends_at: datetime) -> dict:
        now = _utcnow()
        record = {
            "id": uuid.uuid4(),
            "title": payload.title,
            "description": payload.description,
            "prize_value": payload.prize_value,
            "ticket_price": payload.ticket_price,
            "max_tickets": payload.max_tickets,
            "tickets_sold": 0,
            "ends_at": ends_at,
            "category_id": payload.category_id,
            "creator_id": payload.creator_id,
            "is_active": True,
            "winner_id": None,
            "approved_by_creator": False,
            "approved_by_winner": False,
            "source_announcement_id": None,
            "created_at": now,
            "updated_at": now,
        }
        with self.lock:
            self.raffles[record["id"]] = record
        return raffle_row(record)

    def get_raffle(self, raffle_id) -> dict | None:
        self._maybe_fail("get_raffle")
        with self.lock:
            record = self.raffles.get(_key(raffle_id))
            return raffle_row(record) if record else None

    def list_active_raffles(self, now: datetime) -> list[dict]:
        self._maybe_fail("list_active_raffles")
        with self.lock:
            return [
                raffle_row(r)
                for r in self.raffles.values()
                if r["is_active"] and r["ends_at"] > now
            ]

    def list_raffles_by_creator(self, creator_id: str) -> list[dict]:
        self._maybe_fail("list_raffles_by_creator")
        with self.lock:
            return [raffle_row(r) for r in self.raffles.values() if r["creator_id"] == creator_id]

    def assign_winner(self, raffle_id, winner_id: str) -> dict | None:
        with self.lock:
            record = self.raffles.get(_key(raffle_id))
            if record is None or record["winner_id"] is not None:
                return None
            record["winner_id"] = winner_id
            record["is_active"] = False
            record["updated_at"] = _utcnow()
            return raffle_row(record)

    def record_approval(self, raffle_id, identity: str) -> dict | None:
        with self.lock:
            self._maybe_fail("record_approval")
            record = self.raffles.get(_key(raffle_id))
            if (
                record is None
                or record["winner_id"] is None
                or not (
                    (identity == record["creator_id"] and not record["approved_by_creator"])
                    or (identity == record["winner_id"] and not record["approved_by_winner"])
                )
            ):
                return None
            record["approved_by_creator"] = record["approved_by_creator"] or record["creator_id"] == identity
            record["approved_by_winner"] = record["approved_by_winner"] or record["winner_id"] == identity
            record["updated_at"] = _utcnow()
            return raffle_row(record)

    # tickets

    def purchase_tickets(self, raffle_id, buyer_id, quantity, total_amount, external_ref, now):
        raffle_id = _key(raffle_id)
        with self.lock:
            self._maybe_fail("purchase_tickets")
            record = self.raffles.get(raffle_id)
            if record is None:
                raise NotFoundError("Raffle not found")
            if not record["is_active"] or record["ends_at"] <= now:
                raise StateConflictError("Raffle is not active")
            if record["tickets_sold"] + quantity > record["max_tickets"]:
                remaining = record["max_tickets"] - record["tickets_sold"]
                raise CapacityError(f"Cannot buy {quantity} tickets, only {remaining} remaining")
            record["tickets_sold"] += quantity
            ticket = {
                "id": uuid.uuid4(),
                "raffle_id": raffle_id,
                "buyer_id": buyer_id,
                "quantity": quantity,
                "total_amount": total_amount,
                "external_ref": external_ref,
                "created_at": now,
            }
            self.tickets.append(ticket)
            return {
                "ticket": ticket_row(ticket),
                "tickets_sold": record["tickets_sold"],
                "max_tickets": record["max_tickets"],
                "creator_id": record["creator_id"],
            }

    def list_by_raffle(self, raffle_id) -> list[dict]:
        self._maybe_fail("list_by_raffle")
        return [ticket_row(t) for t in self.tickets if t["raffle_id"] == _key(raffle_id)]

    def list_by_buyer(self, buyer_id: str) -> list[dict]:
        self._maybe_fail("list_by_buyer")
        return [ticket_row(t) for t in self.tickets if t["buyer_id"] == buyer_id]

    # inbox

    def insert_message(self, recipient_id: str, subject: str, body: str) -> dict:
        self._maybe_fail("insert_message")
        if recipient_id in self.failing_recipients:
            raise ConnectionError(f"inbox unavailable for {recipient_id}")
        message = {
            "id": uuid.uuid4(),
            "recipient_id": recipient_id,
            "subject": subject,
            "body": body,
            "is_read": False,
            "created_at": _utcnow(),
        }
        with self.lock:
            self.messages.append(message)
        return message_row(message)

    def mark_read(self, recipient_id: str, message_id) -> bool:
        with self.lock:
            for message in self.messages:
                if message["id"] == _key(message_id) and message["recipient_id"] == recipient_id:
                    message["is_read"] = True
                    return True
        return False

    def list_messages(self, recipient_id: str, unread_only: bool = False) -> list[dict]:
        self._maybe_fail("list_messages")
        return [
            message_row(m)
            for m in self.messages
            if m["recipient_id"] == recipient_id and not (unread_only and m["is_read"])
        ]

    def count_unread(self, recipient_id: str) -> int:
        self._maybe_fail("count_unread")
        return sum(1 for m in self.messages if m["recipient_id"] == recipient_id and not m["is_read"])

    def inbox_of(self, recipient_id: str) -> list[dict]:
        return [m for m in self.messages if m["recipient_id"] == recipient_id]


PATCHED_FUNCTIONS = {
    announcement_commands: ("create_announcement", "activate_announcement"),
    interest_commands: ("add_interest", "remove_interest"),
    raffle_commands: ("create_raffle", "assign_winner", "record_approval"),
    ticket_commands: ("purchase_tickets",),
    inbox_commands: ("insert_message", "mark_read"),
    announcement_queries: ("list_due_announcements", "list_active_announcements", "get_announcement"),
    interest_queries: ("list_interested_identities", "list_interests"),
    raffle_queries: ("get_raffle", "list_active_raffles", "list_raffles_by_creator"),
    ticket_queries: ("list_by_raffle", "list_by_buyer"),
    inbox_queries: ("list_messages", "count_unread"),
}


@pytest.fixture
def memory_db(monkeypatch):
    db = MemoryDatabase()
    for module, names in PATCHED_FUNCTIONS.items():
        for name in names:
            monkeypatch.setattr(module, name, getattr(db, name))
    return db


@pytest.fixture(autouse=True)
def memory_cache(monkeypatch):
    instance = cache.RaffleCache(cache.MemoryBackend(ttl=60, maxsize=256))
    monkeypatch.setattr(cache, "_cache_instance", instance)
    return instance


@pytest.fixture(autouse=True)
def broadcaster(monkeypatch):
    instance = events.EventBroadcaster()
    monkeypatch.setattr(events, "_broadcaster", instance)
    return instance


@pytest.fixture
def captured_events(broadcaster):
    received: list[dict] = []
    broadcaster.subscribe(received.append)
    return received


@pytest.fixture
def make_announcement(memory_db):
    def _make(title="Prize A", starts_at=None, max_tickets=100, creator_id="creator-1"):
        payload = AnnouncementCreate(
            title=title,
            description=f"{title} description",
            prize_value=Decimal("250.00"),
            ticket_price=Decimal("2.50"),
            max_tickets=max_tickets,
            starts_at=starts_at or _utcnow() - timedelta(minutes=1),
            category_id="electronics",
            creator_id=creator_id,
        )
        return memory_db.create_announcement(payload)

    return _make


@pytest.fixture
def make_raffle(memory_db):
    def _make(title="Prize B", max_tickets=100, creator_id="creator-1", ends_in=timedelta(hours=24)):
        payload = RaffleCreate(
            title=title,
            description=f"{title} description",
            prize_value=Decimal("100.00"),
            ticket_price=Decimal("1.00"),
            max_tickets=max_tickets,
            creator_id=creator_id,
        )
        return memory_db.create_raffle(payload, _utcnow() + ends_in)

    return _make
