"""
Result Set Module - Roll Call Attendance System
Author: Roll Call Team

The finalized outcome of an attendance session. Every student is either
present or absent. The result set supports free-text search, sorting by roll
number or name, and status correction while edit mode is on.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union
import logging
import math

from rollcall.modules.roster_loader import Student, StudentStatus


class SortKey(Enum):
    ROLL_NO = 'rollNo'
    NAME = 'name'


class SortDirection(Enum):
    ASC = 'asc'
    DESC = 'desc'


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage of ``part`` in ``whole``; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return round_half_up(100 * part / whole)


@dataclass(frozen=True)
class AttendanceStats:
    total: int
    present: int
    absent: int
    present_percentage: int

    def to_dict(self) -> Dict[str, int]:
        return {
            'total': self.total,
            'present': self.present,
            'absent': self.absent,
            'presentPercentage': self.present_percentage,
        }


def compute_stats(students: Iterable[Student]) -> AttendanceStats:
    students = list(students)
    present = sum(1 for s in students if s.status is StudentStatus.PRESENT)
    absent = sum(1 for s in students if s.status is StudentStatus.ABSENT)
    return AttendanceStats(
        total=len(students),
        present=present,
        absent=absent,
        present_percentage=percentage(present, len(students)),
    )


class ResultSet:
    """
    Editable collection of final per-student statuses.

    Holds its own copies of the students; changes here never reach the
    session that produced them.
    """

    def __init__(self, students: Iterable[Student], edit_mode: bool = False):
        self._students = [student.copy() for student in students]
        undecided = [s.id for s in self._students if s.status is StudentStatus.UNDECIDED]
        if undecided:
            raise ValueError(f"Result set cannot contain undecided students: {', '.join(undecided)}")
        self.edit_mode = edit_mode
        self.logger = logging.getLogger(__name__)

    @property
    def students(self) -> List[Student]:
        return list(self._students)

    def __len__(self) -> int:
        return len(self._students)

    def __iter__(self) -> Iterator[Student]:
        return iter(self._students)

    def filter(self, predicate: Callable[[Student], bool]) -> Iterator[Student]:
        """Lazily yield the students matching ``predicate``."""
        return (student for student in self._students if predicate(student))

    def present(self) -> List[Student]:
        return list(self.filter(lambda s: s.status is StudentStatus.PRESENT))

    def absent(self) -> List[Student]:
        return list(self.filter(lambda s: s.status is StudentStatus.ABSENT))

    def search(self, query: Optional[str]) -> List[Student]:
        """Case-insensitive substring match on name or roll number."""
        needle = (query or '').strip().lower()
        if not needle:
            return self.students
        return list(self.filter(
            lambda s: needle in s.name.lower() or needle in s.roll_no.lower()
        ))

    def sort_by(self, key: Union[SortKey, str] = SortKey.ROLL_NO,
                direction: Union[SortDirection, str] = SortDirection.ASC,
                students: Optional[Iterable[Student]] = None) -> List[Student]:
        """
        Stable sort by numeric roll number or case-insensitive name.

        Roll numbers compare by the integer made of their digits; rolls with
        no digits come after numbered ones in ascending order.
        """
        key = SortKey(key)
        direction = SortDirection(direction)
        students = list(self._students if students is None else students)

        if key is SortKey.ROLL_NO:
            def sort_key(s):
                number = s.roll_number
                return (number is None, number or 0)
        else:
            def sort_key(s):
                return s.name.lower()

        return sorted(students, key=sort_key, reverse=direction is SortDirection.DESC)

    def view(self, query: Optional[str] = None,
             key: Union[SortKey, str] = SortKey.ROLL_NO,
             direction: Union[SortDirection, str] = SortDirection.ASC) -> List[Student]:
        """Search then sort, as the results screen shows them."""
        return self.sort_by(key, direction, students=self.search(query))

    def set_edit_mode(self, enabled: bool) -> bool:
        self.edit_mode = bool(enabled)
        return self.edit_mode

    def toggle_edit_mode(self) -> bool:
        return self.set_edit_mode(not self.edit_mode)

    def toggle_status(self, student_id: str, roll_no: str) -> Optional[Student]:
        """
        Flip present/absent for the student with this id and roll number.

        Returns:
            The updated student, or None when edit mode is off or nothing matched.
        """
        if not self.edit_mode:
            return None

        for student in self._students:
            if student.id == str(student_id) and student.roll_no == str(roll_no):
                student.status = (StudentStatus.ABSENT
                                  if student.status is StudentStatus.PRESENT
                                  else StudentStatus.PRESENT)
                self.logger.info(f"Corrected {student.roll_no} to {student.status.value}")
                return student

        self.logger.warning(f"No student matches id={student_id} rollNo={roll_no}")
        return None

    def stats(self) -> AttendanceStats:
        return compute_stats(self._students)

    def to_records(self, students: Optional[Iterable[Student]] = None) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in (self._students if students is None else students)]
