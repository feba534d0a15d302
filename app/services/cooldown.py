"""
Cooldown after a check-in: the matching check-out is refused until it ends.

One ``CooldownManager`` is created per application (see ``app.main``) with
an injected clock and store. State is per employee and is persisted as
``(session_type, start_time, duration_minutes)`` only; the remaining time is
always recomputed from the clock, so downtime is subtracted on restart.
The manager is a local convenience, not the source of truth across devices.
"""
import asyncio
import enum
import logging
import math
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.models.attendance import AttendanceAction
from app.models.cooldown import CooldownSnapshot
from app.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)


class SessionType(str, enum.Enum):
    FIRST = "first"
    SECOND = "second"


# Check-in that starts a cooldown -> session type, and the check-out it blocks
_SESSION_FOR_CHECK_IN = {
    AttendanceAction.FIRST_CHECK_IN: SessionType.FIRST,
    AttendanceAction.SECOND_CHECK_IN: SessionType.SECOND,
}
_BLOCKED_ACTION = {
    SessionType.FIRST: AttendanceAction.FIRST_CHECK_OUT,
    SessionType.SECOND: AttendanceAction.SECOND_CHECK_OUT,
}


@dataclass
class CooldownState:
    employee_id: int
    session_type: SessionType
    start_time: datetime
    duration_minutes: int
    remaining_seconds: int
    is_active: bool = True

    @property
    def ends_at(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)


Subscriber = Callable[[int, Optional[CooldownState]], None]


class CooldownStore(Protocol):
    """Persistence for cooldown snapshots, keyed by employee."""

    def save(self, state: CooldownState) -> None: ...

    def load(self, employee_id: int) -> Optional[CooldownState]: ...

    def load_all(self) -> List[CooldownState]: ...

    def delete(self, employee_id: int) -> None: ...


class InMemoryCooldownStore:
    """Process-local store; used in tests and when persistence is not wanted."""

    def __init__(self):
        self._rows: Dict[int, CooldownState] = {}

    def save(self, state: CooldownState) -> None:
        self._rows[state.employee_id] = replace(state)

    def load(self, employee_id: int) -> Optional[CooldownState]:
        row = self._rows.get(employee_id)
        return replace(row) if row else None

    def load_all(self) -> List[CooldownState]:
        return [replace(row) for row in self._rows.values()]

    def delete(self, employee_id: int) -> None:
        self._rows.pop(employee_id, None)


class SqlCooldownStore:
    """Stores snapshots in ``cooldown_states``; opens a short session per call."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @staticmethod
    def _to_state(row: CooldownSnapshot) -> CooldownState:
        return CooldownState(
            employee_id=row.employee_id,
            session_type=SessionType(row.session_type),
            start_time=ensure_utc(row.start_time),
            duration_minutes=row.duration_minutes,
            remaining_seconds=row.duration_minutes * 60,
        )

    def save(self, state: CooldownState) -> None:
        db: Session = self._session_factory()
        try:
            row = db.get(CooldownSnapshot, state.employee_id)
            if row is None:
                row = CooldownSnapshot(employee_id=state.employee_id)
                db.add(row)
            row.session_type = state.session_type.value
            row.start_time = state.start_time
            row.duration_minutes = state.duration_minutes
            db.commit()
        finally:
            db.close()

    def load(self, employee_id: int) -> Optional[CooldownState]:
        db: Session = self._session_factory()
        try:
            row = db.get(CooldownSnapshot, employee_id)
            return self._to_state(row) if row else None
        finally:
            db.close()

    def load_all(self) -> List[CooldownState]:
        db: Session = self._session_factory()
        try:
            return [self._to_state(row) for row in db.query(CooldownSnapshot).all()]
        finally:
            db.close()

    def delete(self, employee_id: int) -> None:
        db: Session = self._session_factory()
        try:
            db.query(CooldownSnapshot).filter(CooldownSnapshot.employee_id == employee_id).delete()
            db.commit()
        finally:
            db.close()


class CooldownManager:
    """
    Idle -> Active -> Idle per employee.

    ``start`` after a check-in commits; ``tick`` (1 Hz, see ``run``) counts
    down and clears expired states; subscribers hear every change as
    ``callback(employee_id, state_or_None)``.
    """

    def __init__(
        self,
        store: Optional[CooldownStore] = None,
        clock: Callable[[], datetime] = now_utc,
        *,
        first_session_minutes: int = 3,
        second_session_minutes: int = 2,
    ):
        self._store = store if store is not None else InMemoryCooldownStore()
        self._clock = clock
        self._durations = {
            SessionType.FIRST: first_session_minutes,
            SessionType.SECOND: second_session_minutes,
        }
        self._states: Dict[int, CooldownState] = {}
        self._subscribers: List[Subscriber] = []
        self._lock = threading.RLock()

    # --- persistence (best effort: the countdown is advisory, the record store is authoritative) ---

    def _persist(self, state: CooldownState) -> None:
        try:
            self._store.save(state)
        except SQLAlchemyError:
            logger.warning("Could not persist cooldown for employee_id=%s", state.employee_id, exc_info=True)

    def _forget(self, employee_id: int) -> None:
        try:
            self._store.delete(employee_id)
        except SQLAlchemyError:
            logger.warning("Could not delete cooldown for employee_id=%s", employee_id, exc_info=True)

    # --- internals ---

    def _remaining_seconds(self, start_time: datetime, duration_minutes: int) -> int:
        elapsed = (ensure_utc(self._clock()) - ensure_utc(start_time)).total_seconds()
        return math.ceil(duration_minutes * 60 - elapsed)

    def _notify(self, employee_id: int, state: Optional[CooldownState]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(employee_id, replace(state) if state else None)
            except Exception:
                logger.exception("Error in cooldown subscriber %r", callback)

    def _refresh(self, employee_id: int) -> Optional[CooldownState]:
        """Recompute one in-memory state; returns None (and schedules expiry) when it has run out."""
        state = self._states.get(employee_id)
        if state is None:
            return None
        remaining = self._remaining_seconds(state.start_time, state.duration_minutes)
        if remaining <= 0:
            del self._states[employee_id]
            return None
        # never count back up, even if the clock steps backwards
        state.remaining_seconds = min(state.remaining_seconds, remaining)
        return state

    def _expire(self, employee_id: int) -> None:
        self._forget(employee_id)
        logger.info("Cooldown finished for employee_id=%s", employee_id)
        self._notify(employee_id, None)

    # --- public API ---

    def duration_for(self, session_type: SessionType) -> int:
        return self._durations[session_type]

    def start(self, employee_id: int, session_type: SessionType) -> CooldownState:
        """Begin a cooldown now, replacing any active one for the employee."""
        duration = self._durations[session_type]
        state = CooldownState(
            employee_id=employee_id,
            session_type=session_type,
            start_time=ensure_utc(self._clock()),
            duration_minutes=duration,
            remaining_seconds=duration * 60,
        )
        with self._lock:
            self._states[employee_id] = state
        self._persist(state)
        logger.info("Cooldown started: employee_id=%s %s session for %s minutes", employee_id, session_type.value, duration)
        self._notify(employee_id, state)
        return replace(state)

    def start_for_action(self, employee_id: int, action: AttendanceAction) -> Optional[CooldownState]:
        """Start the cooldown that follows ``action``; check-outs start none."""
        session_type = _SESSION_FOR_CHECK_IN.get(action)
        if session_type is None:
            return None
        return self.start(employee_id, session_type)

    def current(self, employee_id: int) -> Optional[CooldownState]:
        """Active state for the employee, rehydrating from the store when not in memory."""
        with self._lock:
            if employee_id not in self._states:
                stored = self._store.load(employee_id)
                if stored is None:
                    return None
                stored.remaining_seconds = stored.duration_minutes * 60
                self._states[employee_id] = stored
            state = self._refresh(employee_id)
            snapshot = replace(state) if state else None
        if snapshot is None:
            self._expire(employee_id)
        return snapshot

    def is_in_cooldown(self, employee_id: int) -> bool:
        state = self.current(employee_id)
        return state is not None and state.is_active

    def can_perform_action(self, employee_id: int, action: AttendanceAction) -> bool:
        """False only for the check-out that matches the active session."""
        state = self.current(employee_id)
        if state is None:
            return True
        return action != _BLOCKED_ACTION[state.session_type]

    def format_remaining(self, employee_id: int) -> str:
        """``M:SS`` of the active cooldown, or an empty string."""
        state = self.current(employee_id)
        if state is None:
            return ""
        minutes, seconds = divmod(max(0, state.remaining_seconds), 60)
        return f"{minutes}:{seconds:02d}"

    def tick(self) -> None:
        """Advance every active countdown once; expired states are cleared and announced."""
        updated: List[CooldownState] = []
        expired: List[int] = []
        with self._lock:
            for employee_id in list(self._states):
                state = self._refresh(employee_id)
                if state is None:
                    expired.append(employee_id)
                else:
                    updated.append(replace(state))
        for employee_id in expired:
            self._expire(employee_id)
        for state in updated:
            self._notify(state.employee_id, state)

    def clear(self, employee_id: int) -> None:
        """Cancel an employee's cooldown (e.g. after an administrative reset)."""
        with self._lock:
            had_state = self._states.pop(employee_id, None) is not None
        self._forget(employee_id)
        if had_state:
            self._notify(employee_id, None)

    def restore(self) -> int:
        """Rehydrate every persisted cooldown; returns how many are still running."""
        restored = 0
        for stored in self._store.load_all():
            remaining = self._remaining_seconds(stored.start_time, stored.duration_minutes)
            if remaining <= 0:
                self._forget(stored.employee_id)
                continue
            stored.remaining_seconds = remaining
            with self._lock:
                self._states[stored.employee_id] = stored
            restored += 1
        if restored:
            logger.info("Restored %s active cooldown(s)", restored)
        return restored

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; the returned function unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def run(self, interval: float = 1.0) -> None:
        """Drive ``tick`` on the event loop until cancelled."""
        while True:
            self.tick()
            await asyncio.sleep(interval)

    def close(self) -> None:
        """Drop in-memory state and subscribers; persisted snapshots survive for the next start."""
        with self._lock:
            self._states.clear()
        self._subscribers.clear()
