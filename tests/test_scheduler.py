from datetime import datetime, timedelta, timezone
import threading
import time
import uuid

from rafflehub.services import raffles as raffle_service
from rafflehub.services import scheduler as scheduler_module
from rafflehub.services.interests import record_interest
from rafflehub.services.scheduler import LifecycleScheduler


def _at(moment):
    return lambda: moment


def test_tick_activates_due_announcement_and_notifies_interested(memory_db, make_announcement):
    starts_at = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    announcement = make_announcement(title="Prize A", starts_at=starts_at, max_tickets=100)
    record_interest("sess-1", uuid.UUID(announcement["id"]))
    record_interest("sess-2", uuid.UUID(announcement["id"]))
    now = starts_at + timedelta(seconds=1)

    summary = LifecycleScheduler(clock=_at(now)).tick()

    assert summary["activated"] == [announcement["id"]]
    assert summary["failed"] == []
    source = memory_db.announcements[uuid.UUID(announcement["id"])]
    assert source["is_active"] is False
    [raffle] = memory_db.raffles.values()
    assert raffle["title"] == "Prize A"
    assert raffle["tickets_sold"] == 0
    assert raffle["max_tickets"] == 100
    assert raffle["is_active"] is True
    assert raffle["ends_at"] == now + timedelta(hours=24)
    assert raffle["source_announcement_id"] == uuid.UUID(announcement["id"])
    for session in ("sess-1", "sess-2"):
        [message] = memory_db.inbox_of(session)
        assert "Prize A" in message["subject"]
        assert "100" in message["body"]


def test_second_tick_does_not_create_duplicate(memory_db, make_announcement):
    make_announcement()
    scheduler = LifecycleScheduler()

    first = scheduler.tick()
    second = scheduler.tick()

    assert len(first["activated"]) == 1
    assert second["checked"] == 0
    assert len(memory_db.raffles) == 1


def test_future_announcement_is_left_alone(memory_db, make_announcement):
    announcement = make_announcement(starts_at=datetime.now(timezone.utc) + timedelta(hours=1))

    summary = LifecycleScheduler().tick()

    assert summary["checked"] == 0
    assert memory_db.raffles == {}
    assert memory_db.announcements[uuid.UUID(announcement["id"])]["is_active"] is True


def test_activation_without_interest_sends_nothing(memory_db, make_announcement):
    make_announcement()

    summary = LifecycleScheduler().tick()

    assert len(summary["activated"]) == 1
    assert memory_db.messages == []


def test_interest_read_failure_leaves_announcement_for_retry(memory_db, make_announcement):
    announcement = make_announcement()
    record_interest("sess-1", uuid.UUID(announcement["id"]))
    memory_db.failures["list_interested_identities"] = ConnectionError("read timeout")
    scheduler = LifecycleScheduler()

    failed = scheduler.tick()

    assert failed["failed"] == [announcement["id"]]
    assert memory_db.raffles == {}
    assert memory_db.announcements[uuid.UUID(announcement["id"])]["is_active"] is True

    memory_db.failures.clear()
    retried = scheduler.tick()

    assert retried["activated"] == [announcement["id"]]
    assert len(memory_db.raffles) == 1
    assert len(memory_db.inbox_of("sess-1")) == 1


def test_notification_failure_does_not_block_activation(memory_db, make_announcement):
    announcement = make_announcement()
    record_interest("sess-1", uuid.UUID(announcement["id"]))
    record_interest("sess-2", uuid.UUID(announcement["id"]))
    memory_db.failing_recipients.add("sess-1")

    summary = LifecycleScheduler().tick()

    assert summary["activated"] == [announcement["id"]]
    assert len(memory_db.raffles) == 1
    assert memory_db.inbox_of("sess-1") == []
    assert len(memory_db.inbox_of("sess-2")) == 1


def test_one_failing_announcement_does_not_abort_the_rest(memory_db, make_announcement):
    broken = make_announcement(title="Broken")
    healthy = make_announcement(title="Healthy")
    memory_db.failing_announcements.add(uuid.UUID(broken["id"]))

    summary = LifecycleScheduler().tick()

    assert summary["failed"] == [broken["id"]]
    assert summary["activated"] == [healthy["id"]]
    assert memory_db.announcements[uuid.UUID(broken["id"])]["is_active"] is True


def test_due_query_failure_returns_empty_summary(memory_db, make_announcement):
    make_announcement()
    memory_db.failures["list_due_announcements"] = ConnectionError("db down")

    summary = LifecycleScheduler().tick()

    assert summary["checked"] == 0
    assert summary["activated"] == []
    assert memory_db.raffles == {}


def test_racing_schedulers_activate_once(memory_db, make_announcement):
    for index in range(5):
        make_announcement(title=f"Prize {index}")
    schedulers = [LifecycleScheduler() for _ in range(4)]
    barrier = threading.Barrier(len(schedulers))
    summaries = []

    def run(scheduler):
        barrier.wait()
        summaries.append(scheduler.tick())

    threads = [threading.Thread(target=run, args=(s,)) for s in schedulers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(memory_db.raffles) == 5
    assert sum(len(s["activated"]) for s in summaries) == 5
    sources = [r["source_announcement_id"] for r in memory_db.raffles.values()]
    assert len(set(sources)) == 5


def test_activation_publishes_event_and_refreshes_active_list(
    memory_db, make_announcement, captured_events
):
    make_announcement(title="Prize A")
    assert raffle_service.list_active_raffles() == []

    LifecycleScheduler().tick()

    [raffle] = raffle_service.list_active_raffles()
    assert raffle["title"] == "Prize A"
    assert [e["type"] for e in captured_events] == ["RAFFLE_CREATED"]
    assert captured_events[0]["data"]["id"] == raffle["id"]


def test_custom_duration_is_applied(memory_db, make_announcement):
    make_announcement()
    now = datetime.now(timezone.utc)

    LifecycleScheduler(raffle_duration=timedelta(hours=2), clock=_at(now)).tick()

    [raffle] = memory_db.raffles.values()
    assert raffle["ends_at"] == now + timedelta(hours=2)


def test_background_loop_activates_and_stops(memory_db, make_announcement):
    make_announcement()
    scheduler = LifecycleScheduler(interval_seconds=0.01)

    assert scheduler.start() is True
    assert scheduler.start() is False
    deadline = time.monotonic() + 2
    while not memory_db.raffles and time.monotonic() < deadline:
        time.sleep(0.01)
    scheduler.stop(timeout=1)

    assert len(memory_db.raffles) == 1
    assert scheduler.running is False
    assert scheduler.status()["last_tick_at"] is not None


def test_get_scheduler_returns_singleton(monkeypatch):
    monkeypatch.setattr(scheduler_module, "_scheduler", None)

    assert scheduler_module.get_scheduler() is scheduler_module.get_scheduler()
