# Roll Call Attendance System - Package
"""
Main package for the Roll Call Attendance System.
Swipe-style classroom attendance with undo, plus result review, exports
and the admin console managers.
"""

__version__ = "1.0.0"
__author__ = "Roll Call Team"
__description__ = "Swipe-based classroom attendance with undo, result review and PDF/Excel export"

# Import core components for easy access
from .modules.database_manager import DatabaseManager
from .modules.roster_loader import RosterLoader, Student, StudentStatus, SelectionMode, RollRange
from .modules.attendance_session import AttendanceSession, SessionClosed, InvalidStatusValue, SessionNotCompleted
from .modules.result_set import ResultSet, AttendanceStats, SortKey, SortDirection
from .modules.attendance_manager import AttendanceManager
from .modules.report_generator import ReportGenerator, ReportLabel
from .modules.share_manager import ShareManager
from .modules.auth_manager import AuthManager
from .modules.student_manager import StudentManager
from .modules.teacher_manager import TeacherManager
from .modules.subject_manager import SubjectManager
from .modules.settings_manager import SettingsManager

__all__ = [
    'DatabaseManager',
    'RosterLoader',
    'Student',
    'StudentStatus',
    'SelectionMode',
    'RollRange',
    'AttendanceSession',
    'SessionClosed',
    'InvalidStatusValue',
    'SessionNotCompleted',
    'ResultSet',
    'AttendanceStats',
    'SortKey',
    'SortDirection',
    'AttendanceManager',
    'ReportGenerator',
    'ReportLabel',
    'ShareManager',
    'AuthManager',
    'StudentManager',
    'TeacherManager',
    'SubjectManager',
    'SettingsManager'
]
