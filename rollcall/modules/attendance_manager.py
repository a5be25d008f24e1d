"""
Attendance Manager Module - Roll Call Attendance System
Author: Roll Call Team

This module ties attendance sessions to logged-in users and persists the
outcome. Each session context owns at most one running AttendanceSession
and, once it completes, one ResultSet. Finalized and corrected results are
saved under ``attendance/<classId>/<YYYY-MM-DD>`` as ``studentId -> status``,
which is what the admin attendance reports read back.

Features:
- Session start from the context's class and roll range selection
- Restart, finalize and discard per context
- Attendance persistence by class and date
- Saved attendance reports with statistics
"""

from datetime import datetime
import logging
import threading
from typing import Dict, List, Any, Optional

from rollcall.modules.attendance_session import AttendanceSession
from rollcall.modules.result_set import ResultSet
from rollcall.modules.roster_loader import RosterLoader, StudentStatus


class AttendanceManager:
    """
    Registry of running attendance sessions and their results, keyed by
    session context id, plus read/write access to saved attendance.
    """

    def __init__(self, database_manager, roster_loader: Optional[RosterLoader] = None):
        """
        Initialize the attendance manager with database connection.

        Args:
            database_manager: Document store
            roster_loader: Loader used to build rosters; one is created if omitted
        """
        self.db = database_manager
        self.roster_loader = roster_loader or RosterLoader(database_manager)
        self.logger = logging.getLogger(__name__)

        # Attendance status constants
        self.STATUS_PRESENT = StudentStatus.PRESENT.value
        self.STATUS_ABSENT = StudentStatus.ABSENT.value

        self._sessions: Dict[str, AttendanceSession] = {}
        self._results: Dict[str, ResultSet] = {}
        self._lock = threading.Lock()

    def start_session(self, context) -> AttendanceSession:
        """
        Load the roster for the context's selection and register a new session,
        replacing any previous session and result set of that context.

        Raises:
            ValueError: no class has been selected
        """
        if not context.selected_class:
            raise ValueError("Select a class before starting attendance")

        roster = self.roster_loader.load(
            context.selected_class,
            context.selection_mode,
            context.roll_range
        )
        session = AttendanceSession(roster)

        with self._lock:
            self._sessions[context.context_id] = session
            self._results.pop(context.context_id, None)

        self.logger.info(
            f"Attendance session started by {context.identity.username} "
            f"for {context.selected_class} with {len(roster)} students"
        )
        return session

    def get_session(self, context) -> Optional[AttendanceSession]:
        with self._lock:
            return self._sessions.get(context.context_id)

    def restart_session(self, context) -> Optional[AttendanceSession]:
        """Clear all decisions of the context's session and drop its results."""
        session = self.get_session(context)
        if session is None:
            return None
        session.restart()
        with self._lock:
            self._results.pop(context.context_id, None)
        return session

    def finalize_session(self, context, save: bool = True) -> ResultSet:
        """
        Turn the completed session into the context's result set.

        Once a result set exists it is returned as is, so corrections made
        in edit mode survive a repeated finalize. Restarting or starting a
        new session clears it.

        Raises:
            KeyError: the context has no session
            SessionNotCompleted: students are still undecided
        """
        session = self.get_session(context)
        if session is None:
            raise KeyError(f"No attendance session for context {context.context_id}")

        with self._lock:
            existing = self._results.get(context.context_id)
            if existing is not None:
                return existing
            result_set = session.finalize()
            self._results[context.context_id] = result_set

        if save and context.selected_class:
            self.save_attendance(context.selected_class, result_set)

        stats = result_set.stats()
        self.logger.info(
            f"Attendance finalized for {context.selected_class}: "
            f"{stats.present} present, {stats.absent} absent"
        )
        return result_set

    def get_result_set(self, context) -> Optional[ResultSet]:
        with self._lock:
            return self._results.get(context.context_id)

    def discard(self, context) -> None:
        """Forget the session and results of a context (logout)."""
        with self._lock:
            self._sessions.pop(context.context_id, None)
            self._results.pop(context.context_id, None)

    def save_attendance(self, class_id: str, result_set: ResultSet,
                        date: Optional[str] = None) -> Dict[str, Any]:
        """
        Persist a result set under ``attendance/<class_id>/<date>``, merged
        with whatever was already saved for that class and day.

        Args:
            class_id (str): Class key
            result_set (ResultSet): Decided students
            date (str): YYYY-MM-DD, today when omitted

        Returns:
            Dict[str, Any]: Save result
        """
        date = date or datetime.now().strftime('%Y-%m-%d')
        try:
            records = {student.id: student.status.value for student in result_set}
            if not records:
                self.logger.info(f"Nothing to save for {class_id} on {date}")
                return {'success': True, 'class_id': class_id, 'date': date, 'count': 0}

            self.db.update(f"attendance/{class_id}/{date}", records)

            self.logger.info(f"Attendance saved: {class_id} on {date} ({len(records)} records)")
            return {'success': True, 'class_id': class_id, 'date': date, 'count': len(records)}

        except Exception as e:
            self.logger.error(f"Failed to save attendance for {class_id} on {date}: {str(e)}")
            return {'success': False, 'error': 'Failed to save attendance'}

    def get_attendance_report(self, class_id: str, date: str) -> Dict[str, Any]:
        """
        Read saved attendance for a class and date.

        Returns:
            Dict[str, Any]: records [{id, status}] and statistics
        """
        try:
            data = self.db.get(f"attendance/{class_id}/{date}") or {}
            if isinstance(data, list):
                data = {str(index): status for index, status in enumerate(data) if status}

            records = [{'id': student_id, 'status': status} for student_id, status in data.items()]
            total = len(records)
            present = sum(1 for record in records if record['status'] == self.STATUS_PRESENT)

            return {
                'success': True,
                'class_id': class_id,
                'date': date,
                'records': records,
                'statistics': {
                    'total_students': total,
                    'present': present,
                    'absent': total - present,
                    'percentage': round(present / total * 100, 2) if total > 0 else 0
                }
            }

        except Exception as e:
            self.logger.error(f"Failed to fetch attendance for {class_id} on {date}: {str(e)}")
            return {'success': False, 'error': 'Failed to fetch attendance data'}

    def get_attendance_dates(self, class_id: str) -> List[str]:
        """Dates with saved attendance for a class, newest first."""
        try:
            data = self.db.get(f"attendance/{class_id}") or {}
            return sorted(data.keys(), reverse=True) if isinstance(data, dict) else []
        except Exception as e:
            self.logger.error(f"Failed to list attendance dates for {class_id}: {str(e)}")
            return []
