from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import AttendanceStats, GuardianContact, SubjectInfo


class AttendanceSource(Protocol):
    """Read-only queries into the attendance portal's own tables."""

    def list_absent(self, owner_id: int, on_date: date) -> Sequence[SubjectInfo]:
        raise NotImplementedError

    def list_subjects(self, owner_id: int) -> Sequence[SubjectInfo]:
        raise NotImplementedError

    def attendance_stats(self, subject_id: int, window_days: int, as_of: date) -> AttendanceStats:
        """Counts for ``as_of - window_days`` through ``as_of`` inclusive."""

        raise NotImplementedError

    def contacts_for(self, subject_id: int) -> Sequence[GuardianContact]:
        raise NotImplementedError
