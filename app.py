"""
Roll Call Attendance System - Main Application
Author: Roll Call Team

This module serves as the main entry point for the roll call attendance system.
It builds the Flask application from a configuration class, wires the core
managers together and exposes the JSON API used by the swipe client and the
admin console.

Features:
- Teacher and admin login with per-login session contexts
- Class and roll range selection
- Swipe-style attendance capture with undo and restart
- Results review with search, sorting and status correction
- PDF/Excel/CSV export and email share links
- Admin management of teachers, subjects, students and settings
- Saved attendance reports
"""

from flask import Flask, Blueprint, current_app, g, jsonify, request, send_file, session
from datetime import datetime
from functools import wraps
import io
import logging

from config import init_config, SettingsDefaults
from rollcall.modules.database_manager import DatabaseManager
from rollcall.modules.roster_loader import RosterLoader, RollRange, SelectionMode
from rollcall.modules.attendance_session import (
    SessionClosed, InvalidStatusValue, SessionNotCompleted
)
from rollcall.modules.attendance_manager import AttendanceManager
from rollcall.modules.result_set import SortKey, SortDirection
from rollcall.modules.report_generator import ReportGenerator
from rollcall.modules.share_manager import ShareManager, ShareError
from rollcall.modules.auth_manager import AuthManager, AuthenticationError
from rollcall.modules.student_manager import StudentManager
from rollcall.modules.teacher_manager import TeacherManager
from rollcall.modules.subject_manager import SubjectManager
from rollcall.modules.settings_manager import SettingsManager

logger = logging.getLogger(__name__)

bp = Blueprint('rollcall', __name__)


def services():
    """Managers of the running application."""
    return current_app.extensions['rollcall']


def current_context():
    return services()['auth'].get_session(session.get('context_id'))


def login_required(f):
    """Decorator to require a logged-in session context"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context = current_context()
        if context is None:
            return jsonify({'success': False, 'message': 'Please log in to continue.'}), 401
        g.context = context
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator to require admin privileges"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context = current_context()
        if context is None:
            return jsonify({'success': False, 'message': 'Please log in to continue.'}), 401
        if not context.identity.is_admin:
            return jsonify({'success': False, 'message': 'Admin privileges required.'}), 403
        g.context = context
        return f(*args, **kwargs)
    return decorated_function


def teacher_required(f):
    """Decorator for attendance routes, which belong to teachers"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context = current_context()
        if context is None:
            return jsonify({'success': False, 'message': 'Please log in to continue.'}), 401
        if context.identity.role != 'teacher':
            return jsonify({'success': False, 'message': 'Teacher account required.'}), 403
        g.context = context
        return f(*args, **kwargs)
    return decorated_function


def result_response(result, status_code=400):
    """JSON answer for a manager result dict."""
    if result.get('success'):
        return jsonify(result)
    return jsonify(result), status_code


def no_session_response():
    return jsonify({'success': False, 'message': 'No attendance session. Start one first.'}), 404


def no_results_response():
    return jsonify({'success': False, 'message': 'No results yet. Finish the attendance first.'}), 404


@bp.errorhandler(SessionClosed)
def handle_session_closed(e):
    return jsonify({'success': False, 'message': str(e)}), 409


@bp.errorhandler(SessionNotCompleted)
def handle_session_not_completed(e):
    return jsonify({'success': False, 'message': str(e)}), 409


@bp.errorhandler(InvalidStatusValue)
def handle_invalid_status(e):
    return jsonify({'success': False, 'message': str(e)}), 400


@bp.route('/')
def index():
    """Service status"""
    return jsonify({
        'success': True,
        'service': 'Roll Call Attendance System',
        'loggedIn': current_context() is not None
    })


# Authentication

def _login(role):
    data = request.get_json(silent=True) or {}
    username = data.get('username', '')
    password = data.get('password', '')
    auth = services()['auth']

    try:
        if role == 'admin':
            identity = auth.authenticate_admin(username, password)
        else:
            identity = auth.authenticate_teacher(username, password)

    except AuthenticationError as e:
        return jsonify({'success': False, 'message': e.message}), 401

    except Exception as e:
        logger.error(f"Login error: {str(e)}")
        return jsonify({'success': False, 'message': 'Login failed. Please try again later.'}), 500

    # A new login replaces whatever this browser session was doing
    stale = auth.get_session(session.pop('context_id', None))
    if stale is not None:
        services()['attendance'].discard(stale)
        auth.terminate_session(stale.context_id)

    context = auth.create_session(identity)
    session['context_id'] = context.context_id
    session.permanent = True

    logger.info(f"{role.title()} {identity.username} logged in successfully")
    return jsonify({'success': True, 'user': identity.to_dict()})


@bp.route('/api/auth/teacher/login', methods=['POST'])
def teacher_login():
    return _login('teacher')


@bp.route('/api/auth/admin/login', methods=['POST'])
def admin_login():
    return _login('admin')


@bp.route('/api/auth/logout', methods=['POST'])
@login_required
def logout():
    """Destroy the session context and any attendance state it owned"""
    username = g.context.identity.username
    services()['attendance'].discard(g.context)
    services()['auth'].terminate_session(g.context.context_id)
    session.clear()
    logger.info(f"User {username} logged out")
    return jsonify({'success': True, 'message': 'You have been logged out successfully.'})


@bp.route('/api/auth/me')
@login_required
def me():
    return jsonify({'success': True, 'context': g.context.to_dict()})


# Class selection

@bp.route('/api/classes')
@login_required
def list_classes():
    return jsonify({'success': True, 'classes': services()['students'].get_classes()})


@bp.route('/api/selection', methods=['POST'])
@teacher_required
def select_class():
    """
    Choose the class, subject and roll range for the next attendance.

    Body: className or classId, selectionMode (full/custom), rollStart,
    rollEnd, subjectId
    """
    data = request.get_json(silent=True) or {}
    student_manager = services()['students']

    class_id = student_manager.resolve_class(data.get('className') or data.get('classId') or '')
    if not class_id:
        return jsonify({'success': False, 'message': 'Please select a valid class.'}), 400

    try:
        selection_mode = SelectionMode(data.get('selectionMode', SelectionMode.FULL.value))
    except ValueError:
        return jsonify({'success': False, 'message': 'Selection mode must be full or custom.'}), 400

    # Full mode ranges over serial numbers and may be omitted; custom mode needs roll bounds
    roll_range = RollRange.from_values(data.get('rollStart'), data.get('rollEnd'))
    if selection_mode is SelectionMode.CUSTOM and roll_range is None:
        return jsonify({'success': False, 'message': 'Please enter a valid roll number range.'}), 400

    subject = None
    subject_id = data.get('subjectId')
    if subject_id:
        subject = next(
            (s for s in g.context.identity.assigned_subjects if s.get('id') == subject_id),
            None
        )
        if subject is None:
            return jsonify({'success': False, 'message': 'Subject is not assigned to you.'}), 403

    g.context.select_class(
        class_id,
        class_name=student_manager.class_name_for(class_id),
        selection_mode=selection_mode,
        roll_range=roll_range,
        subject=subject
    )
    return jsonify({'success': True, 'context': g.context.to_dict()})


# Attendance session

@bp.route('/api/session/start', methods=['POST'])
@teacher_required
def start_session():
    if not g.context.selected_class:
        return jsonify({'success': False, 'message': 'Select a class before starting attendance.'}), 400

    attendance_session = services()['attendance'].start_session(g.context)
    return jsonify({'success': True, 'session': attendance_session.to_dict()})


@bp.route('/api/session')
@teacher_required
def session_state():
    attendance_session = services()['attendance'].get_session(g.context)
    if attendance_session is None:
        return no_session_response()
    return jsonify({'success': True, 'session': attendance_session.to_dict()})


@bp.route('/api/session/decide', methods=['POST'])
@teacher_required
def decide():
    """Record present/absent for the current student (a right or left swipe)"""
    attendance_session = services()['attendance'].get_session(g.context)
    if attendance_session is None:
        return no_session_response()

    data = request.get_json(silent=True) or {}
    student = attendance_session.decide(data.get('status'))
    return jsonify({
        'success': True,
        'decided': student.to_dict(),
        'session': attendance_session.to_dict()
    })


@bp.route('/api/session/undo', methods=['POST'])
@teacher_required
def undo():
    attendance_session = services()['attendance'].get_session(g.context)
    if attendance_session is None:
        return no_session_response()

    student = attendance_session.undo()
    return jsonify({
        'success': True,
        'undone': student.to_dict() if student else None,
        'session': attendance_session.to_dict()
    })


@bp.route('/api/session/restart', methods=['POST'])
@teacher_required
def restart():
    attendance_session = services()['attendance'].restart_session(g.context)
    if attendance_session is None:
        return no_session_response()
    return jsonify({'success': True, 'session': attendance_session.to_dict()})


@bp.route('/api/session/finalize', methods=['POST'])
@teacher_required
def finalize():
    attendance = services()['attendance']
    if attendance.get_session(g.context) is None:
        return no_session_response()

    result_set = attendance.finalize_session(g.context)
    return jsonify({
        'success': True,
        'stats': result_set.stats().to_dict(),
        'students': result_set.to_records(result_set.view())
    })


# Results

@bp.route('/api/results')
@teacher_required
def results():
    """Results view. Query: q, sort (rollNo/name), direction (asc/desc)"""
    result_set = services()['attendance'].get_result_set(g.context)
    if result_set is None:
        return no_results_response()

    try:
        key = SortKey(request.args.get('sort', SortKey.ROLL_NO.value))
        direction = SortDirection(request.args.get('direction', SortDirection.ASC.value))
    except ValueError:
        return jsonify({'success': False, 'message': 'Invalid sort options.'}), 400

    students = result_set.view(request.args.get('q'), key, direction)
    return jsonify({
        'success': True,
        'editMode': result_set.edit_mode,
        'stats': result_set.stats().to_dict(),
        'students': result_set.to_records(students),
        'present': result_set.to_records(result_set.sort_by(key, direction, result_set.present())),
        'absent': result_set.to_records(result_set.sort_by(key, direction, result_set.absent()))
    })


@bp.route('/api/results/edit-mode', methods=['POST'])
@teacher_required
def edit_mode():
    result_set = services()['attendance'].get_result_set(g.context)
    if result_set is None:
        return no_results_response()

    data = request.get_json(silent=True) or {}
    if 'enabled' in data:
        enabled = result_set.set_edit_mode(bool(data['enabled']))
    else:
        enabled = result_set.toggle_edit_mode()
    return jsonify({'success': True, 'editMode': enabled})


@bp.route('/api/results/toggle', methods=['POST'])
@teacher_required
def toggle_status():
    """Flip one student's status while edit mode is on; the save is refreshed"""
    attendance = services()['attendance']
    result_set = attendance.get_result_set(g.context)
    if result_set is None:
        return no_results_response()

    if not result_set.edit_mode:
        return jsonify({'success': False, 'message': 'Enable edit mode to change attendance.'}), 409

    data = request.get_json(silent=True) or {}
    student = result_set.toggle_status(data.get('id'), data.get('rollNo'))
    if student is None:
        return jsonify({'success': False, 'message': 'Student not found.'}), 404

    if g.context.selected_class:
        attendance.save_attendance(g.context.selected_class, result_set)

    return jsonify({
        'success': True,
        'student': student.to_dict(),
        'stats': result_set.stats().to_dict()
    })


@bp.route('/api/results/export')
@teacher_required
def export_results():
    """Download a report. Query: label (Present/Absent/Complete), format (pdf/excel/csv)"""
    result_set = services()['attendance'].get_result_set(g.context)
    if result_set is None:
        return no_results_response()

    label = request.args.get('label', 'Complete')
    output_format = request.args.get('format', current_app.config['REPORTS_DEFAULT_FORMAT'])
    subject = g.context.selected_subject or {}

    try:
        report = services()['reports'].generate(
            result_set,
            label,
            output_format=output_format,
            subject_name=subject.get('name'),
            teacher_name=g.context.identity.name
        )
    except ValueError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    if not report['success']:
        return jsonify({'success': False, 'message': report['error']}), 400

    return send_file(
        io.BytesIO(report['document']),
        mimetype=report['mimetype'],
        as_attachment=True,
        download_name=report['filename']
    )


@bp.route('/api/results/share', methods=['POST'])
@teacher_required
def share_results():
    result_set = services()['attendance'].get_result_set(g.context)
    if result_set is None:
        return no_results_response()

    data = request.get_json(silent=True) or {}
    try:
        share = services()['share'].build_email_share(
            data.get('recipients', ''),
            result_set.stats(),
            g.context.identity.name
        )
    except ShareError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    return jsonify({'success': True, **share})


# Admin console

@bp.route('/api/admin/dashboard')
@admin_required
def admin_dashboard():
    """Admin dashboard with system overview"""
    try:
        return jsonify({
            'success': True,
            'stats': services()['auth'].get_system_stats(),
            'classes': services()['students'].get_classes(),
            'activeTeachers': services()['teachers'].get_teacher_count()
        })

    except Exception as e:
        logger.error(f"Admin dashboard error: {str(e)}")
        return jsonify({'success': False, 'message': 'Error loading admin dashboard.'}), 500


@bp.route('/api/admin/teachers', methods=['GET', 'POST'])
@admin_required
def admin_teachers():
    teachers = services()['teachers']
    if request.method == 'POST':
        return result_response(teachers.create_teacher(request.get_json(silent=True) or {}))
    return jsonify({'success': True, 'teachers': teachers.get_all_teachers()})


@bp.route('/api/admin/teachers/<teacher_id>', methods=['GET', 'PUT', 'DELETE'])
@admin_required
def admin_teacher(teacher_id):
    teachers = services()['teachers']
    if request.method == 'PUT':
        return result_response(teachers.update_teacher(teacher_id, request.get_json(silent=True) or {}))

    if request.method == 'DELETE':
        if not teachers.delete_teacher(teacher_id):
            return jsonify({'success': False, 'message': 'Teacher not found.'}), 404
        return jsonify({'success': True})

    teacher = teachers.get_teacher(teacher_id)
    if teacher is None:
        return jsonify({'success': False, 'message': 'Teacher not found.'}), 404
    return jsonify({'success': True, 'teacher': teacher})


@bp.route('/api/admin/teachers/<teacher_id>/status', methods=['POST'])
@admin_required
def admin_teacher_status(teacher_id):
    data = request.get_json(silent=True) or {}
    if not services()['teachers'].set_status(teacher_id, bool(data.get('active'))):
        return jsonify({'success': False, 'message': 'Teacher not found.'}), 404
    return jsonify({'success': True})


@bp.route('/api/admin/subjects', methods=['GET', 'POST'])
@admin_required
def admin_subjects():
    subjects = services()['subjects']
    if request.method == 'POST':
        return result_response(subjects.save_subject(request.get_json(silent=True) or {}))
    return jsonify({'success': True, 'subjects': subjects.get_all_subjects()})


@bp.route('/api/admin/subjects/<subject_id>', methods=['PUT', 'DELETE'])
@admin_required
def admin_subject(subject_id):
    subjects = services()['subjects']
    if request.method == 'DELETE':
        if not subjects.delete_subject(subject_id):
            return jsonify({'success': False, 'message': 'Subject not found.'}), 404
        return jsonify({'success': True})
    return result_response(subjects.save_subject(request.get_json(silent=True) or {}, subject_id))


@bp.route('/api/admin/subjects/<subject_id>/teachers/<teacher_id>', methods=['POST'])
@admin_required
def admin_toggle_assignment(subject_id, teacher_id):
    return result_response(services()['subjects'].toggle_teacher_assignment(subject_id, teacher_id))


@bp.route('/api/admin/classes/<class_id>/students', methods=['GET', 'POST'])
@admin_required
def admin_students(class_id):
    students = services()['students']
    if request.method == 'POST':
        return result_response(students.create_student(class_id, request.get_json(silent=True) or {}))
    return jsonify({
        'success': True,
        'students': [s.to_dict() for s in students.get_students(class_id)]
    })


@bp.route('/api/admin/classes/<class_id>/students/<student_id>', methods=['PUT', 'DELETE'])
@admin_required
def admin_student(class_id, student_id):
    students = services()['students']
    if request.method == 'DELETE':
        if not students.delete_student(class_id, student_id):
            return jsonify({'success': False, 'message': 'Student not found.'}), 404
        return jsonify({'success': True})
    return result_response(students.update_student(class_id, student_id, request.get_json(silent=True) or {}))


@bp.route('/api/admin/classes/<class_id>/students/import', methods=['POST'])
@admin_required
def admin_import_students(class_id):
    """Import students from an uploaded CSV file or a raw CSV body"""
    upload = request.files.get('file')
    if upload is not None:
        content = upload.read().decode('utf-8-sig')
    else:
        content = request.get_data(as_text=True)

    if not content.strip():
        return jsonify({'success': False, 'message': 'No CSV data provided.'}), 400
    return result_response(services()['students'].import_students_from_csv(class_id, content))


@bp.route('/api/admin/students/search')
@admin_required
def admin_search_students():
    limit = request.args.get('limit', 10, type=int)
    return jsonify({
        'success': True,
        'students': services()['students'].search_students(request.args.get('q', ''), limit)
    })


@bp.route('/api/admin/settings', methods=['GET', 'PUT'])
@admin_required
def admin_settings():
    settings = services()['settings']
    if request.method == 'PUT':
        return result_response(settings.update_settings(request.get_json(silent=True) or {}))
    return jsonify({'success': True, 'settings': settings.get_settings()})


@bp.route('/api/admin/attendance/<class_id>')
@admin_required
def admin_attendance_dates(class_id):
    return jsonify({'success': True, 'dates': services()['attendance'].get_attendance_dates(class_id)})


@bp.route('/api/admin/attendance/<class_id>/<date>')
@admin_required
def admin_attendance_report(class_id, date):
    try:
        datetime.strptime(date, '%Y-%m-%d')
    except ValueError:
        return jsonify({'success': False, 'message': 'Date must be YYYY-MM-DD.'}), 400
    return result_response(services()['attendance'].get_attendance_report(class_id, date), 500)


def create_app(config_name=None, overrides=None):
    """
    Build the application.

    Args:
        config_name (str): Key of the ``config`` map; FLASK_ENV when omitted
        overrides (dict): Values applied over the configuration class

    Returns:
        Flask: Configured application
    """
    app = Flask(__name__)
    init_config(app, config_name, overrides)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO),
        format=app.config['LOG_FORMAT']
    )

    # Initialize system components
    db_manager = DatabaseManager(app.config['DATABASE_PATH'])
    db_manager.initialize_database()

    settings_defaults = SettingsDefaults.as_dict()
    roster_loader = RosterLoader(db_manager)

    auth_manager = AuthManager(
        db_manager,
        default_admin={
            'id': app.config['DEFAULT_ADMIN_ID'],
            'username': app.config['DEFAULT_ADMIN_USERNAME'],
            'password': app.config['DEFAULT_ADMIN_PASSWORD'],
            'name': app.config['DEFAULT_ADMIN_NAME'],
        },
        default_settings=settings_defaults,
        session_lifetime=app.config['PERMANENT_SESSION_LIFETIME']
    )
    attendance_manager = AttendanceManager(db_manager, roster_loader)
    # Expired contexts take their sessions and results with them
    auth_manager.add_expiry_listener(attendance_manager.discard)

    app.extensions['rollcall'] = {
        'db': db_manager,
        'auth': auth_manager,
        'attendance': attendance_manager,
        'reports': ReportGenerator(
            str(app.config['REPORTS_FOLDER']),
            institution_name=app.config['INSTITUTION_NAME'],
            department_name=app.config['DEPARTMENT_NAME']
        ),
        'share': ShareManager(app.config['SHARE_MAIL_URL']),
        'students': StudentManager(db_manager, app.config['CLASS_MAPPING']),
        'teachers': TeacherManager(db_manager, app.config['PASSWORD_MIN_LENGTH']),
        'subjects': SubjectManager(db_manager),
        'settings': SettingsManager(db_manager, settings_defaults),
    }

    app.register_blueprint(bp)

    logger.info(f"Roll Call Attendance System initialized ({config_name or 'default'} configuration)")
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=app.config['DEBUG'], host='0.0.0.0', port=5000)
