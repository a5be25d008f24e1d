"""
Attendance Session Module - Roll Call Attendance System
Author: Roll Call Team

The swipe-driven capture loop. A session walks an ordered roster one
student at a time, records a present/absent decision for each, supports
step-by-step undo and reports live progress. Once every student has a
decision the session is complete and can be finalized into a ResultSet.

Undo history stores reverse deltas (the decided index and the status it
replaced) instead of copying the roster on every decision.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union
import logging
import threading

from rollcall.modules.roster_loader import Student, StudentStatus
from rollcall.modules.result_set import ResultSet, round_half_up


class AttendanceSessionError(Exception):
    """Base class for attendance session errors."""


class SessionClosed(AttendanceSessionError):
    """A decision or current student was requested after completion."""


class InvalidStatusValue(AttendanceSessionError, ValueError):
    """A decision used something other than present or absent."""


class SessionNotCompleted(AttendanceSessionError):
    """Finalize was requested while students are still undecided."""


class SessionState(Enum):
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class HistoryEntry:
    """Reverse delta for one decision: where it happened and what it replaced."""
    index: int
    previous_status: StudentStatus


DECISIONS = (StudentStatus.PRESENT, StudentStatus.ABSENT)


def coerce_decision(status: Union[StudentStatus, str]) -> StudentStatus:
    """Accept a StudentStatus or its string value; only present/absent pass."""
    if isinstance(status, StudentStatus):
        value = status
    else:
        try:
            value = StudentStatus(str(status).strip().lower())
        except ValueError:
            raise InvalidStatusValue(f"Unknown attendance status: {status!r}")

    if value not in DECISIONS:
        raise InvalidStatusValue(f"Status must be present or absent, got {value.value!r}")
    return value


class AttendanceSession:
    """
    State machine over a fixed roster.

    InProgress while ``cursor < len(roster)``, Completed once the cursor
    reaches the end. An empty roster is Completed from the start.
    """

    def __init__(self, roster: Iterable[Student]):
        self._roster: List[Student] = [student.copy() for student in roster]
        for student in self._roster:
            student.status = StudentStatus.UNDECIDED
        self._cursor = 0
        self._history: List[HistoryEntry] = []
        self._lock = threading.RLock()
        self.logger = logging.getLogger(__name__)

    @property
    def roster(self) -> List[Student]:
        """Copies of the roster students in order."""
        with self._lock:
            return [student.copy() for student in self._roster]

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    @property
    def history_size(self) -> int:
        with self._lock:
            return len(self._history)

    def __len__(self) -> int:
        return len(self._roster)

    @property
    def state(self) -> SessionState:
        with self._lock:
            if self._cursor >= len(self._roster):
                return SessionState.COMPLETED
            return SessionState.IN_PROGRESS

    @property
    def is_completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def can_undo(self) -> bool:
        with self._lock:
            return bool(self._history)

    def current(self) -> Student:
        """The student awaiting a decision."""
        with self._lock:
            if self.is_completed:
                raise SessionClosed("Attendance session is complete; no current student")
            return self._roster[self._cursor].copy()

    def upcoming(self, count: int = 3) -> List[Student]:
        """The current student followed by the next ones, up to ``count``."""
        with self._lock:
            return [s.copy() for s in self._roster[self._cursor:self._cursor + max(count, 0)]]

    def decide(self, status: Union[StudentStatus, str]) -> Student:
        """
        Record a decision for the current student and advance.

        Raises:
            InvalidStatusValue: status is not present or absent
            SessionClosed: every student already has a decision

        Returns:
            Student: the student just decided
        """
        decision = coerce_decision(status)

        with self._lock:
            if self.is_completed:
                raise SessionClosed("Attendance session is complete; no more decisions accepted")

            index = self._cursor
            student = self._roster[index]
            self._history.append(HistoryEntry(index, student.status))
            student.status = decision
            self._cursor += 1

            self.logger.debug(f"Marked {student.roll_no} {decision.value} ({self._cursor}/{len(self._roster)})")
            if self.is_completed:
                self.logger.info(f"Attendance session completed for {len(self._roster)} students")
            return student.copy()

    def undo(self) -> Optional[Student]:
        """
        Revert the most recent decision.

        Returns:
            The student made current again, or None when there is nothing to undo.
        """
        with self._lock:
            if not self._history:
                return None

            entry = self._history.pop()
            student = self._roster[entry.index]
            student.status = entry.previous_status
            self._cursor = entry.index

            self.logger.debug(f"Undid decision for {student.roll_no}")
            return student.copy()

    def restart(self) -> None:
        """Clear every decision and start again from the first student."""
        with self._lock:
            for student in self._roster:
                student.status = StudentStatus.UNDECIDED
            self._cursor = 0
            self._history.clear()
            self.logger.info("Attendance session restarted")

    def progress(self) -> float:
        """Fraction of the roster decided, in [0, 1]; 0.0 for an empty roster."""
        with self._lock:
            if not self._roster:
                return 0.0
            return self._cursor / len(self._roster)

    def progress_percentage(self) -> int:
        return round_half_up(self.progress() * 100)

    def finalize(self) -> ResultSet:
        """
        Hand the decided roster over as an independent ResultSet.

        Raises:
            SessionNotCompleted: some students are still undecided
        """
        with self._lock:
            if not self.is_completed:
                raise SessionNotCompleted(
                    f"{len(self._roster) - self._cursor} students still need a decision"
                )
            return ResultSet(self._roster)

    def to_dict(self, preview: int = 3) -> Dict[str, Any]:
        with self._lock:
            return {
                'state': self.state.value,
                'total': len(self._roster),
                'cursor': self._cursor,
                'progress': self.progress(),
                'progressPercentage': self.progress_percentage(),
                'canUndo': self.can_undo,
                'historySize': self.history_size,
                'current': None if self.is_completed else self._roster[self._cursor].to_dict(),
                'upcoming': [s.to_dict() for s in self.upcoming(preview)],
            }
