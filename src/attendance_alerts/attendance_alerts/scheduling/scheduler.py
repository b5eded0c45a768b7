from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_SCHEDULER_TICK_SECONDS
from ..core.enums import RecurrenceKind, ScheduleState, TriggerKind
from ..core.exceptions import AuthorizationError, InfrastructureError, ValidationError
from ..dispatch.dispatcher import Dispatcher
from ..dispatch.model import BatchResult
from ..settings.repository import SettingsRepository
from .model import ScheduleEntry
from .recurrence import initial_next_run, next_run_after, validate_anchor
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)

# (trigger kind, recurrence, anchor day, anchor time); absence time comes from config.
SYSTEM_ENTRIES = (
    (TriggerKind.LOW_ATTENDANCE, RecurrenceKind.WEEKLY, 0, "09:00"),
    (TriggerKind.WEEKLY_REPORT, RecurrenceKind.WEEKLY, 4, "17:00"),
    (TriggerKind.MONTHLY_REPORT, RecurrenceKind.MONTHLY, 1, "18:00"),
)

_REPORT_KINDS = {TriggerKind.WEEKLY_REPORT, TriggerKind.MONTHLY_REPORT}
_IN_FLIGHT = (ScheduleState.DUE, ScheduleState.RUNNING)


def _log_crash(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Scheduled run crashed", exc_info=exc)


class Scheduler:
    """Fires due schedule entries.

    A single driver thread wakes every ``tick_seconds`` and hands each due
    entry to a small executor. An entry is DUE once submitted, RUNNING while
    it fires and back to SCHEDULED afterwards (``last_outcome`` keeps
    COMPLETED or FAILED). An entry still in flight when the next tick comes
    around is left alone; that is the only overlap guard.
    """

    def __init__(
        self,
        schedules: ScheduleRepository,
        settings: SettingsRepository,
        dispatcher: Dispatcher,
        *,
        clock: Callable[[], datetime] = now_local,
        tick_seconds: int = DEFAULT_SCHEDULER_TICK_SECONDS,
        max_workers: int = 4,
        absence_sweep_time: str = "16:00",
        batch_deadline_seconds: Optional[int] = None,
    ):
        self._schedules = schedules
        self._settings = settings
        self._dispatcher = dispatcher
        self._clock = clock
        self._tick_seconds = max(1, int(tick_seconds))
        self._max_workers = max(1, int(max_workers))
        self._absence_sweep_time = absence_sweep_time
        self._batch_deadline = timedelta(seconds=int(batch_deadline_seconds)) if batch_deadline_seconds else None

        self._lock = threading.Lock()
        self._states: dict[int, ScheduleState] = {}
        self._outcomes: dict[int, ScheduleState] = {}
        self._executor: Optional[ThreadPoolExecutor] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --- driver -----------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="schedule")
        self._thread = threading.Thread(target=self._loop, name="notification-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started (tick=%ss)", self._tick_seconds)

    def stop(self, *, wait: bool = True) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._tick_seconds + 1 if wait else 0)
            self._thread = None
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
        logger.info("Scheduler stopped")

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except InfrastructureError:
                logger.exception("Scheduler tick failed; retrying next tick")
            self._stop.wait(self._tick_seconds)

    def tick(self, now: Optional[datetime] = None) -> list[Future]:
        """Submit every due entry that is not already in flight."""
        now = now or self._clock()
        executor = self._executor
        if executor is None:
            executor = self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="schedule")

        futures: list[Future] = []
        for entry in self._schedules.list_due(now):
            with self._lock:
                if self._states.get(entry.entry_id) in _IN_FLIGHT:
                    logger.info("Schedule %s still running; skipping this tick", entry.entry_id)
                    continue
                self._states[entry.entry_id] = ScheduleState.DUE
            future = executor.submit(self._run_guarded, entry, now)
            future.add_done_callback(_log_crash)
            futures.append(future)
        return futures

    def state_of(self, entry_id: int) -> ScheduleState:
        """DUE or RUNNING while in flight, SCHEDULED otherwise."""
        with self._lock:
            return self._states.get(int(entry_id), ScheduleState.SCHEDULED)

    def last_outcome(self, entry_id: int) -> Optional[ScheduleState]:
        """COMPLETED or FAILED for the entry's latest run in this process, None if it has not run."""
        with self._lock:
            return self._outcomes.get(int(entry_id))

    def _run_guarded(self, entry: ScheduleEntry, now: datetime) -> list[BatchResult]:
        with self._lock:
            self._states[entry.entry_id] = ScheduleState.RUNNING
        outcome = ScheduleState.FAILED
        try:
            results = self.run_entry(entry, now)
            outcome = ScheduleState.COMPLETED
            return results
        except InfrastructureError:
            logger.exception("Schedule %s aborted; next_run left at %s", entry.entry_id, entry.next_run)
            return []
        except Exception:
            logger.exception("Schedule %s crashed; moving on to its next occurrence", entry.entry_id)
            self._advance(entry, now)
            return []
        finally:
            with self._lock:
                self._states.pop(entry.entry_id, None)
                self._outcomes[entry.entry_id] = outcome

    # --- firing -----------------------------------------------------------

    def run_entry(self, entry: ScheduleEntry, now: datetime) -> list[BatchResult]:
        """Fire one entry, then move it to its next occurrence.

        InfrastructureError propagates and leaves ``next_run`` untouched so
        the entry is picked up again on a later tick. Any other error is
        logged by the driver and the entry still moves on.
        """
        deadline = now + self._batch_deadline if self._batch_deadline else None
        extra = {"message": entry.message or "", "subject": "Message from your school"} if entry.message else None

        results = []
        for owner_id in self._owners_for(entry):
            results.append(
                self._dispatcher.dispatch_batch(
                    entry.trigger_kind, owner_id, now.date(), deadline=deadline, extra_variables=extra
                )
            )

        next_run = self._advance(entry, now)
        logger.info(
            "Schedule %s (%s) ran for %s owner(s); next run %s",
            entry.entry_id,
            entry.trigger_kind.value,
            len(results),
            next_run,
        )
        return results

    def _advance(self, entry: ScheduleEntry, now: datetime) -> datetime:
        next_run = next_run_after(entry.recurrence, entry.anchor_day, entry.anchor_time, entry.next_run, now)
        self._schedules.mark_run(entry_id=entry.entry_id, last_run=now, next_run=next_run)
        return next_run

    def _owners_for(self, entry: ScheduleEntry) -> Sequence[int]:
        if not entry.is_system:
            return [int(entry.owner_id)]
        owners = self._settings.list_owner_ids_with(entry.trigger_kind)
        if entry.trigger_kind in _REPORT_KINDS:
            own = self._schedules.owner_ids_with_active(entry.trigger_kind)
            owners = [o for o in owners if o not in own]
        return owners

    # --- entry management -------------------------------------------------

    def ensure_system_entries(self) -> int:
        """Seed the system sweeps once; returns how many were created."""
        now = self._clock()
        wanted = ((TriggerKind.ABSENCE, RecurrenceKind.DAILY, None, self._absence_sweep_time),) + SYSTEM_ENTRIES
        created = 0
        for kind, recurrence, anchor_day, anchor_time in wanted:
            if self._schedules.find_active(owner_id=None, trigger_kind=kind) is not None:
                continue
            self._schedules.add(
                ScheduleEntry(
                    entry_id=None,
                    owner_id=None,
                    trigger_kind=kind,
                    recurrence=recurrence,
                    anchor_day=anchor_day,
                    anchor_time=anchor_time,
                    next_run=initial_next_run(recurrence, anchor_day, anchor_time, now),
                )
            )
            created += 1
        if created:
            logger.info("Seeded %s system schedule entries", created)
        return created

    def add_custom_entry(
        self,
        *,
        owner_id: int,
        trigger_kind: TriggerKind,
        recurrence: RecurrenceKind,
        anchor_day: Optional[int],
        anchor_time: str,
        message: Optional[str] = None,
    ) -> int:
        anchor_day = validate_anchor(recurrence, anchor_day, anchor_time)
        message = (message or "").strip() or None
        if trigger_kind == TriggerKind.CUSTOM and not message:
            raise ValidationError("Custom schedules need a message")

        return self._schedules.add(
            ScheduleEntry(
                entry_id=None,
                owner_id=int(owner_id),
                trigger_kind=trigger_kind,
                recurrence=recurrence,
                anchor_day=anchor_day,
                anchor_time=anchor_time,
                next_run=initial_next_run(recurrence, anchor_day, anchor_time, self._clock()),
                message=message,
            )
        )

    def deactivate(self, *, owner_id: int, entry_id: int) -> None:
        entry = self._schedules.get(int(entry_id))
        if entry is None:
            raise ValidationError("Schedule not found")
        if entry.owner_id != int(owner_id):
            raise AuthorizationError("Schedule belongs to another owner")
        self._schedules.set_active(entry_id=entry.entry_id, active=False)

    def list_for_owner(self, owner_id: int) -> Sequence[ScheduleEntry]:
        return self._schedules.list_for_owner(int(owner_id))
