"""
Roster Loader Module - Roll Call Attendance System
Author: Roll Call Team

Loads a class's students from the document store and turns them into an
ordered roster for an attendance session. Students are filtered either by
their serial number (full class) or by the numeric part of their roll
number (custom range), and every student starts the session undecided.

The store may hold a class either as an array or as a map keyed by
arbitrary strings. Both shapes are normalized here into ``Student`` records
so the rest of the system never sees the raw store layout.
"""

from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union
import logging
import re


class StudentStatus(Enum):
    """Attendance decision for a single student."""
    UNDECIDED = 'undecided'
    PRESENT = 'present'
    ABSENT = 'absent'


class SelectionMode(Enum):
    """How a roll range selects students from a class."""
    FULL = 'full'
    CUSTOM = 'custom'


def extract_roll_number(roll_no: Any) -> Optional[int]:
    """Return the integer formed by the digits of a roll number, if any."""
    digits = re.sub(r'\D', '', str(roll_no or ''))
    return int(digits) if digits else None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RollRange:
    """Inclusive range of serial numbers or numeric roll numbers."""
    start: int
    end: int

    @classmethod
    def from_values(cls, start: Any, end: Any) -> Optional['RollRange']:
        """Build a range from loose input; missing or zero bounds mean no range."""
        start_value, end_value = _to_int(start), _to_int(end)
        if not start_value or not end_value:
            return None
        return cls(start_value, end_value)

    def __contains__(self, value: Optional[int]) -> bool:
        return value is not None and self.start <= value <= self.end

    def to_dict(self) -> Dict[str, int]:
        return {'start': self.start, 'end': self.end}


@dataclass
class Student:
    """A student as seen by an attendance session."""
    id: str
    roll_no: str
    name: str
    serial_no: Optional[int] = None
    status: StudentStatus = StudentStatus.UNDECIDED

    @property
    def roll_number(self) -> Optional[int]:
        return extract_roll_number(self.roll_no)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Optional['Student']:
        """
        Normalize a raw store record into a Student.

        Only ``id``, ``rollNo``, ``name`` and ``serialNo`` are read; any other
        field (including a persisted status) is dropped. Records with neither
        an id nor a roll number are rejected.
        """
        if not isinstance(record, dict):
            return None

        roll_no = record.get('rollNo')
        student_id = record.get('id')
        if student_id in (None, '') and roll_no in (None, ''):
            return None

        roll_no = str(roll_no) if roll_no not in (None, '') else str(student_id)
        return cls(
            id=str(student_id) if student_id not in (None, '') else roll_no,
            roll_no=roll_no,
            name=str(record.get('name') or ''),
            serial_no=_to_int(record.get('serialNo')),
        )

    def copy(self) -> 'Student':
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            'id': data['id'],
            'rollNo': data['roll_no'],
            'rollNumber': self.roll_number,
            'name': data['name'],
            'serialNo': data['serial_no'],
            'status': self.status.value,
        }


Roster = List[Student]


class RosterLoader:
    """
    Read-only loader producing session rosters from the document store.
    """

    def __init__(self, database_manager):
        """
        Args:
            database_manager: Store exposing ``get(path)``
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)

    def load(self, class_id: str,
             selection_mode: Union[SelectionMode, str] = SelectionMode.FULL,
             roll_range: Optional[RollRange] = None) -> Roster:
        """
        Load the roster for a class.

        Args:
            class_id (str): Class key under ``students/``
            selection_mode: ``full`` filters by serial number, ``custom`` by roll number
            roll_range (RollRange): Inclusive bounds; None keeps the whole class

        Returns:
            Roster: Ordered students, all undecided. Empty when the class is
            missing, empty, or cannot be read.
        """
        try:
            mode = SelectionMode(selection_mode)
        except ValueError:
            self.logger.warning(f"Unknown selection mode {selection_mode!r}, using full class")
            mode = SelectionMode.FULL

        try:
            raw = self.db.get(f"students/{class_id}")
        except Exception as e:
            self.logger.error(f"Failed to fetch students for {class_id}: {str(e)}")
            return []

        if not raw:
            self.logger.info(f"No students found for class {class_id}")
            return []

        students = self.normalize(raw)

        if roll_range is not None:
            if mode is SelectionMode.CUSTOM:
                students = [s for s in students if s.roll_number in roll_range]
            else:
                students = [s for s in students if s.serial_no in roll_range]

        for student in students:
            student.status = StudentStatus.UNDECIDED

        self.logger.info(
            f"Loaded {len(students)} students for {class_id} "
            f"(mode={mode.value}, range={roll_range.to_dict() if roll_range else 'all'})"
        )
        return students

    def normalize(self, raw: Union[List[Any], Dict[str, Any]]) -> Roster:
        """
        Turn a stored class (array or keyed map) into an ordered list of students.

        Arrays keep their order with empty slots dropped. Maps carry no order,
        so their values are sorted by serial number then id, with students
        lacking a serial number last.
        """
        if isinstance(raw, dict):
            records: Iterable[Any] = raw.values()
        elif isinstance(raw, list):
            records = raw
        else:
            self.logger.warning(f"Unexpected class payload of type {type(raw).__name__}")
            return []

        students = []
        for record in records:
            if record is None:
                continue
            student = Student.from_record(record)
            if student is None:
                self.logger.warning(f"Skipping student record without id or roll number: {record!r}")
                continue
            students.append(student)

        if isinstance(raw, dict):
            students.sort(key=lambda s: (s.serial_no is None, s.serial_no or 0, s.id))
        return students
