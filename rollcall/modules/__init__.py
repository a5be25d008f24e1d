# Roll Call Attendance System - Modules Package
"""
Core business logic modules for the Roll Call Attendance System.
"""

__version__ = "1.0.0"
__description__ = "Core modules for swipe attendance functionality"

# Module descriptions
MODULES = {
    'database_manager': 'Hierarchical JSON document store on SQLite',
    'roster_loader': 'Class roster loading and roll range selection',
    'attendance_session': 'Swipe capture state machine with undo',
    'result_set': 'Finalized attendance review, search, sort and correction',
    'attendance_manager': 'Session registry and attendance persistence',
    'report_generator': 'PDF/Excel/CSV attendance exports',
    'share_manager': 'Email share links for attendance summaries',
    'auth_manager': 'Authentication and session contexts',
    'student_manager': 'Class catalogue and student administration',
    'teacher_manager': 'Teacher account administration',
    'subject_manager': 'Subjects and teacher assignments',
    'settings_manager': 'System settings'
}

def get_module_info():
    """Get information about available modules"""
    return MODULES
