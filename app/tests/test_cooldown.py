"""
Tests for the cooldown manager
"""
import pytest

from app.models.attendance import AttendanceAction
from app.services.cooldown import (
    CooldownManager,
    CooldownState,
    InMemoryCooldownStore,
    SessionType,
    SqlCooldownStore,
)


@pytest.fixture
def store():
    return InMemoryCooldownStore()


@pytest.fixture
def manager(store, clock):
    return CooldownManager(store, clock=clock)


def test_start_uses_session_durations(manager):
    first = manager.start(1, SessionType.FIRST)
    assert first.duration_minutes == 3
    assert first.remaining_seconds == 180

    second = manager.start(2, SessionType.SECOND)
    assert second.duration_minutes == 2
    assert second.remaining_seconds == 120


def test_configured_durations(store, clock):
    manager = CooldownManager(store, clock=clock, first_session_minutes=5, second_session_minutes=1)
    assert manager.duration_for(SessionType.FIRST) == 5
    assert manager.duration_for(SessionType.SECOND) == 1


def test_only_check_ins_start_a_cooldown(manager):
    assert manager.start_for_action(1, AttendanceAction.FIRST_CHECK_OUT) is None
    state = manager.start_for_action(1, AttendanceAction.SECOND_CHECK_IN)
    assert state.session_type == SessionType.SECOND


def test_blocks_only_the_matching_check_out(manager):
    manager.start(1, SessionType.FIRST)
    assert manager.can_perform_action(1, AttendanceAction.FIRST_CHECK_OUT) is False
    assert manager.can_perform_action(1, AttendanceAction.SECOND_CHECK_OUT) is True
    assert manager.can_perform_action(2, AttendanceAction.FIRST_CHECK_OUT) is True


def test_tick_counts_down_and_expires(manager, clock):
    events = []
    manager.subscribe(lambda employee_id, state: events.append((employee_id, state)))
    manager.start(1, SessionType.SECOND)

    clock.advance(seconds=45)
    manager.tick()
    assert manager.current(1).remaining_seconds == 75
    assert manager.format_remaining(1) == "1:15"

    clock.advance(seconds=75)
    manager.tick()
    assert manager.current(1) is None
    assert manager.is_in_cooldown(1) is False
    assert events[-1] == (1, None)


def test_remaining_never_counts_back_up(manager, clock):
    manager.start(1, SessionType.FIRST)
    clock.advance(seconds=60)
    manager.tick()
    clock.advance(seconds=-30)
    manager.tick()
    assert manager.current(1).remaining_seconds == 120


def test_restore_subtracts_downtime(store, clock):
    manager = CooldownManager(store, clock=clock)
    manager.start(1, SessionType.FIRST)
    manager.close()

    # simulated restart 100 seconds later
    clock.advance(seconds=100)
    restarted = CooldownManager(store, clock=clock)
    assert restarted.restore() == 1
    state = restarted.current(1)
    assert state.remaining_seconds == 80
    assert state.session_type == SessionType.FIRST


def test_restore_drops_expired_snapshots(store, clock):
    manager = CooldownManager(store, clock=clock)
    manager.start(1, SessionType.FIRST)
    manager.close()

    clock.advance(minutes=5)
    restarted = CooldownManager(store, clock=clock)
    assert restarted.restore() == 0
    assert store.load(1) is None


def test_current_rehydrates_from_store(store, clock):
    store.save(
        CooldownState(
            employee_id=7,
            session_type=SessionType.SECOND,
            start_time=clock.now,
            duration_minutes=2,
            remaining_seconds=0,
        )
    )
    clock.advance(seconds=30)
    manager = CooldownManager(store, clock=clock)
    assert manager.current(7).remaining_seconds == 90


def test_clear_notifies_and_forgets(manager, store):
    events = []
    manager.subscribe(lambda employee_id, state: events.append(state))
    manager.start(1, SessionType.FIRST)
    manager.clear(1)
    assert manager.current(1) is None
    assert store.load(1) is None
    assert events[-1] is None


def test_failing_subscriber_does_not_stop_others(manager):
    received = []

    def broken(employee_id, state):
        raise RuntimeError("boom")

    manager.subscribe(broken)
    manager.subscribe(lambda employee_id, state: received.append(employee_id))
    manager.start(3, SessionType.FIRST)
    assert received == [3]


def test_unsubscribe(manager):
    received = []
    unsubscribe = manager.subscribe(lambda employee_id, state: received.append(employee_id))
    unsubscribe()
    manager.start(1, SessionType.FIRST)
    assert received == []


def test_sql_store_round_trip(session_factory, employee, clock):
    store = SqlCooldownStore(session_factory)
    start = clock.now
    manager = CooldownManager(store, clock=clock)
    manager.start(employee.id, SessionType.FIRST)

    loaded = store.load(employee.id)
    assert loaded.session_type == SessionType.FIRST
    assert loaded.start_time == start
    assert loaded.duration_minutes == 3

    clock.advance(seconds=150)
    restarted = CooldownManager(store, clock=clock)
    assert restarted.restore() == 1
    assert restarted.current(employee.id).remaining_seconds == 30

    restarted.clear(employee.id)
    assert store.load(employee.id) is None
