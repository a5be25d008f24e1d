"""
Authentication Manager Module - Roll Call Attendance System
Author: Roll Call Team

This module handles teacher and admin authentication and the per-login
session context. Passwords are stored as werkzeug hashes. A successful
login creates a SessionContext holding the identity and the teacher's
class/range selection; the context lives until logout or until it has
been idle for longer than the session lifetime.

Features:
- Teacher authentication with assigned subject lookup
- Admin authentication with first-login bootstrap of the default admin
- Typed authentication failures with user-facing messages
- Explicit session contexts created at login and destroyed at logout
- Login/logout timestamps
- Idle session expiry with listeners for dependent state
"""

from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Any, Optional
import logging
import secrets
import threading
from dataclasses import dataclass, field

from rollcall.modules.roster_loader import RollRange, SelectionMode


class AuthenticationError(Exception):
    """Base class for login failures; the message is safe to show users."""
    message = 'Login failed. Please try again later.'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class MissingCredentials(AuthenticationError):
    message = 'Please enter both username and password'


class InvalidCredentials(AuthenticationError):
    message = 'Invalid username or password'


class InactiveAccount(AuthenticationError):
    message = 'Account is inactive. Please contact administrator.'


class SystemNotInitialized(AuthenticationError):
    message = 'System not initialized. Please contact administrator.'


@dataclass
class Identity:
    """Authenticated user as exposed to the rest of the application."""
    id: str
    username: str
    name: str
    role: str
    email: Optional[str] = None
    status: str = 'active'
    assigned_subjects: List[Dict[str, Any]] = field(default_factory=list)
    last_login: Optional[str] = None
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'username': self.username,
            'name': self.name,
            'role': self.role,
            'email': self.email,
            'status': self.status,
        }
        if self.role == 'teacher':
            data['assignedSubjects'] = self.assigned_subjects
        else:
            data['lastLogin'] = self.last_login
            data['stats'] = self.stats
        return data


@dataclass
class SessionContext:
    """Identity plus the teacher's current class and range selection."""
    context_id: str
    identity: Identity
    created_at: datetime
    selected_class: Optional[str] = None
    class_name: Optional[str] = None
    selected_subject: Optional[Dict[str, Any]] = None
    selection_mode: SelectionMode = SelectionMode.FULL
    roll_range: Optional[RollRange] = None
    last_activity: Optional[datetime] = None

    def __post_init__(self):
        if self.last_activity is None:
            self.last_activity = self.created_at

    def touch(self) -> None:
        self.last_activity = datetime.now()

    def select_class(self, class_id: str, class_name: Optional[str] = None,
                     selection_mode=SelectionMode.FULL,
                     roll_range: Optional[RollRange] = None,
                     subject: Optional[Dict[str, Any]] = None) -> None:
        self.selected_class = class_id
        self.class_name = class_name or class_id
        self.selection_mode = SelectionMode(selection_mode)
        self.roll_range = roll_range
        self.selected_subject = subject

    def to_dict(self) -> Dict[str, Any]:
        return {
            'identity': self.identity.to_dict(),
            'selectedClass': self.selected_class,
            'className': self.class_name,
            'selectedSubject': self.selected_subject,
            'selectionMode': self.selection_mode.value,
            'rollRange': self.roll_range.to_dict() if self.roll_range else None,
            'createdAt': self.created_at.isoformat(),
        }


class AuthManager:
    """
    Authenticates teachers and admins against the document store and keeps
    the session contexts of logged-in users.
    """

    def __init__(self, database_manager, default_admin: Optional[Dict[str, str]] = None,
                 default_settings: Optional[Dict[str, Any]] = None,
                 session_lifetime: Optional[timedelta] = None):
        """
        Args:
            database_manager: Document store
            default_admin (dict): id, username, password and name of the bootstrap admin
            default_settings (dict): Settings written on first admin login when absent
            session_lifetime (timedelta): Idle time after which a context expires
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)
        self.default_admin = default_admin or {
            'id': 'admin1',
            'username': 'admin',
            'password': 'admin123',
            'name': 'System Administrator',
        }
        self.default_settings = default_settings or {}
        self.session_lifetime = session_lifetime or timedelta(hours=8)

        # Active session contexts keyed by context id
        self.active_sessions: Dict[str, SessionContext] = {}
        self._sessions_lock = threading.Lock()
        self._expiry_listeners: List[Callable[[SessionContext], None]] = []

        self.logger.info("Authentication manager initialized")

    def authenticate_teacher(self, username: str, password: str) -> Identity:
        """
        Authenticate a teacher.

        Raises:
            MissingCredentials, SystemNotInitialized, InvalidCredentials, InactiveAccount
        """
        username = (username or '').strip()
        if not username or not password:
            raise MissingCredentials()

        teachers = self.db.get('teachers')
        if not teachers:
            self.logger.error("Teacher login attempted before any teachers exist")
            raise SystemNotInitialized()

        records = teachers.values() if isinstance(teachers, dict) else [t for t in teachers if t]
        teacher = next((t for t in records if t.get('username') == username), None)

        if not teacher or not self._check_password(teacher.get('password'), password):
            self.logger.warning(f"Authentication failed for teacher: {username}")
            raise InvalidCredentials()

        if teacher.get('status') != 'active':
            self.logger.warning(f"Inactive teacher attempted login: {username}")
            raise InactiveAccount()

        identity = Identity(
            id=str(teacher.get('id')),
            username=teacher['username'],
            name=teacher.get('name', username),
            role='teacher',
            email=teacher.get('email'),
            status=teacher.get('status', 'active'),
            assigned_subjects=self._subjects_for(str(teacher.get('id'))),
        )

        self.logger.info(f"Teacher authenticated successfully: {username}")
        return identity

    def authenticate_admin(self, username: str, password: str) -> Identity:
        """
        Authenticate an admin. When no admins exist yet, the configured default
        admin is stored (hashed) on its first successful login and the default
        settings are written if the settings node is empty.

        Raises:
            MissingCredentials, InvalidCredentials, InactiveAccount
        """
        username = (username or '').strip()
        if not username or not password:
            raise MissingCredentials()

        now = datetime.now().isoformat()
        admins = self.db.get('admins')

        if not admins:
            if (username != self.default_admin['username']
                    or password != self.default_admin['password']):
                self.logger.warning(f"Admin authentication failed: {username}")
                raise InvalidCredentials()

            admin = {
                'id': self.default_admin['id'],
                'username': self.default_admin['username'],
                'password': generate_password_hash(self.default_admin['password']),
                'name': self.default_admin['name'],
                'role': 'admin',
                'status': 'active',
                'lastLogin': now,
            }
            self.db.set(f"admins/{admin['id']}", admin)
            if self.default_settings and not self.db.exists('settings'):
                self.db.set('settings', dict(self.default_settings))
            self.logger.info("Default admin account created on first login")
        else:
            records = admins.values() if isinstance(admins, dict) else [a for a in admins if a]
            admin = next((a for a in records if a.get('username') == username), None)

            if not admin or not self._check_password(admin.get('password'), password):
                self.logger.warning(f"Admin authentication failed: {username}")
                raise InvalidCredentials()

            if admin.get('status') == 'inactive':
                self.logger.warning(f"Inactive admin attempted login: {username}")
                raise InactiveAccount('Account is inactive. Please contact support.')

            self.db.set(f"admins/{admin['id']}/lastLogin", now)

        identity = Identity(
            id=str(admin['id']),
            username=admin['username'],
            name=admin.get('name', username),
            role='admin',
            status=admin.get('status', 'active'),
            last_login=now,
            stats=self.get_system_stats(),
        )

        self.logger.info(f"Admin authenticated successfully: {username}")
        return identity

    def get_system_stats(self) -> Dict[str, int]:
        """Counts of students (all classes), teachers and subjects."""
        try:
            students = self.db.get('students') or {}
            teachers = self.db.get('teachers') or {}
            subjects = self.db.get('subjects') or {}

            total_students = 0
            for class_students in students.values():
                if isinstance(class_students, (list, dict)):
                    total_students += len([s for s in (
                        class_students.values() if isinstance(class_students, dict) else class_students
                    ) if s])

            return {
                'totalStudents': total_students,
                'totalTeachers': len(teachers),
                'totalSubjects': len(subjects),
            }

        except Exception as e:
            self.logger.error(f"Failed to compute system stats: {str(e)}")
            return {'totalStudents': 0, 'totalTeachers': 0, 'totalSubjects': 0}

    def _subjects_for(self, teacher_id: str) -> List[Dict[str, Any]]:
        subjects = self.db.get('subjects') or {}
        records = subjects.values() if isinstance(subjects, dict) else [s for s in subjects if s]
        return [
            {'id': s.get('id'), 'name': s.get('name'), 'code': s.get('code')}
            for s in records
            if teacher_id in (s.get('assignedTeachers') or [])
        ]

    def _check_password(self, stored_hash: Optional[str], password: str) -> bool:
        if not stored_hash:
            return False
        try:
            return check_password_hash(stored_hash, password)
        except ValueError:
            # Not a werkzeug hash
            self.logger.warning("Stored password is not a recognized hash")
            return False

    def create_session(self, identity: Identity) -> SessionContext:
        """Create and register the session context for a fresh login."""
        self.purge_expired_sessions()

        context = SessionContext(
            context_id=secrets.token_urlsafe(24),
            identity=identity,
            created_at=datetime.now(),
        )
        with self._sessions_lock:
            self.active_sessions[context.context_id] = context
        return context

    def add_expiry_listener(self, callback: Callable[[SessionContext], None]) -> None:
        """Register a callback run with every context that expires."""
        self._expiry_listeners.append(callback)

    def is_expired(self, context: SessionContext, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) - context.last_activity > self.session_lifetime

    def get_session(self, context_id: Optional[str]) -> Optional[SessionContext]:
        """
        Look up a live context and mark it active. A context idle for longer
        than the session lifetime is removed and None is returned.
        """
        if not context_id:
            return None

        with self._sessions_lock:
            context = self.active_sessions.get(context_id)
            if context is None:
                return None
            if self.is_expired(context):
                del self.active_sessions[context_id]
                expired = True
            else:
                context.touch()
                expired = False

        if expired:
            self._expire(context)
            return None
        return context

    def purge_expired_sessions(self) -> int:
        """
        Remove every idle context, including those whose browsers never came back.

        Returns:
            int: Number of contexts removed
        """
        now = datetime.now()
        with self._sessions_lock:
            expired = [c for c in self.active_sessions.values() if self.is_expired(c, now)]
            for context in expired:
                del self.active_sessions[context.context_id]

        for context in expired:
            self._expire(context)
        return len(expired)

    def _expire(self, context: SessionContext) -> None:
        self.logger.info(f"Session expired for {context.identity.username}")
        for callback in self._expiry_listeners:
            try:
                callback(context)
            except Exception as e:
                self.logger.error(f"Session expiry callback failed: {str(e)}")

    def terminate_session(self, context_id: Optional[str]) -> bool:
        """
        Destroy a session context. Admin logouts are timestamped in the store.

        Returns:
            bool: True if a context was removed
        """
        with self._sessions_lock:
            context = self.active_sessions.pop(context_id, None) if context_id else None

        if context is None:
            return False

        if context.identity.is_admin:
            try:
                self.db.set(f"admins/{context.identity.id}/lastLogout", datetime.now().isoformat())
            except Exception as e:
                self.logger.error(f"Failed to record logout for {context.identity.username}: {str(e)}")

        self.logger.info(f"Session terminated for {context.identity.username}")
        return True
