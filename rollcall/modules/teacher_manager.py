"""
Teacher Manager Module - Roll Call Attendance System
Author: Roll Call Team

Admin-side management of teacher accounts stored under ``teachers/<id>``.
Password hashes never leave this module.
"""

from werkzeug.security import generate_password_hash
from typing import Dict, List, Any, Optional
import logging
import re


class TeacherManager:
    """
    Teacher account administration.
    """

    STATUSES = ('active', 'inactive')

    def __init__(self, database_manager, password_min_length: int = 6):
        self.db = database_manager
        self.password_min_length = password_min_length
        self.logger = logging.getLogger(__name__)

    def _records(self) -> Dict[str, Dict[str, Any]]:
        teachers = self.db.get('teachers') or {}
        if isinstance(teachers, list):
            teachers = {str(t.get('id')): t for t in teachers if t}
        return teachers

    @staticmethod
    def _public(teacher: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in teacher.items() if k != 'password'}

    def get_all_teachers(self) -> List[Dict[str, Any]]:
        """All teachers ordered by name, without password hashes."""
        try:
            teachers = [self._public(t) for t in self._records().values()]
            return sorted(teachers, key=lambda t: (t.get('name') or '').lower())
        except Exception as e:
            self.logger.error(f"Failed to get teachers: {str(e)}")
            return []

    def get_teacher(self, teacher_id: str) -> Optional[Dict[str, Any]]:
        teacher = self.db.get(f"teachers/{teacher_id}")
        return self._public(teacher) if teacher else None

    def get_teacher_count(self, active_only: bool = True) -> int:
        try:
            return len([
                t for t in self._records().values()
                if not active_only or t.get('status') == 'active'
            ])
        except Exception as e:
            self.logger.error(f"Failed to get teacher count: {str(e)}")
            return 0

    def create_teacher(self, teacher_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a teacher account.

        Args:
            teacher_data (Dict[str, Any]): id, username, password, name, email, subjects

        Returns:
            Dict[str, Any]: Creation result
        """
        try:
            username = (teacher_data.get('username') or '').strip()
            validation_result = self._validate_teacher_data(
                username, teacher_data.get('password'), teacher_data.get('email')
            )
            if not validation_result['valid']:
                return {'success': False, 'error': validation_result['error']}

            if not (teacher_data.get('name') or '').strip():
                return {'success': False, 'error': 'Name is required'}

            teachers = self._records()
            if any(t.get('username') == username for t in teachers.values()):
                return {'success': False, 'error': 'Username already exists'}

            teacher_id = (teacher_data.get('id') or username).strip()
            if not re.match(r'^[A-Za-z0-9_-]+$', teacher_id):
                return {'success': False, 'error': 'Teacher ID can only contain letters, numbers, hyphens, and underscores'}
            if teacher_id in teachers:
                return {'success': False, 'error': 'Teacher ID already exists'}

            record = {
                'id': teacher_id,
                'username': username,
                'password': generate_password_hash(teacher_data['password']),
                'name': teacher_data['name'].strip(),
                'email': teacher_data.get('email'),
                'subjects': list(teacher_data.get('subjects') or []),
                'status': 'active'
            }
            self.db.set(f"teachers/{teacher_id}", record)

            self.logger.info(f"Teacher created successfully: {username} (ID: {teacher_id})")
            return {'success': True, 'teacher_id': teacher_id, 'message': 'Teacher created successfully'}

        except Exception as e:
            self.logger.error(f"Teacher creation failed for {teacher_data.get('username', 'unknown')}: {str(e)}")
            return {'success': False, 'error': 'Failed to create teacher'}

    def update_teacher(self, teacher_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update name, email, subjects, status or password of a teacher.

        Returns:
            Dict[str, Any]: Update result
        """
        try:
            teacher = self.db.get(f"teachers/{teacher_id}")
            if not teacher:
                return {'success': False, 'error': 'Teacher not found'}

            changes = {}
            for field in ('name', 'email', 'subjects'):
                if field in update_data:
                    changes[field] = update_data[field]

            if 'email' in changes and changes['email'] and not self._valid_email(changes['email']):
                return {'success': False, 'error': 'Invalid email address format'}

            if 'status' in update_data:
                if update_data['status'] not in self.STATUSES:
                    return {'success': False, 'error': 'Status must be active or inactive'}
                changes['status'] = update_data['status']

            if update_data.get('password'):
                password_validation = self._validate_password(update_data['password'])
                if not password_validation['valid']:
                    return {'success': False, 'error': password_validation['error']}
                changes['password'] = generate_password_hash(update_data['password'])

            if not changes:
                return {'success': False, 'error': 'No valid fields to update'}

            self.db.update(f"teachers/{teacher_id}", changes)
            self.logger.info(f"Teacher {teacher_id} updated: {', '.join(sorted(changes))}")
            return {'success': True, 'message': 'Teacher updated successfully'}

        except Exception as e:
            self.logger.error(f"Failed to update teacher {teacher_id}: {str(e)}")
            return {'success': False, 'error': 'Failed to update teacher'}

    def set_status(self, teacher_id: str, active: bool) -> bool:
        result = self.update_teacher(teacher_id, {'status': 'active' if active else 'inactive'})
        return result['success']

    def delete_teacher(self, teacher_id: str) -> bool:
        """
        Delete a teacher and unassign them from every subject.

        Returns:
            bool: Success status
        """
        try:
            if not self.db.exists(f"teachers/{teacher_id}"):
                return False

            subjects = self.db.get('subjects') or {}
            if isinstance(subjects, dict):
                for subject_id, subject in subjects.items():
                    assigned = subject.get('assignedTeachers') or []
                    if teacher_id in assigned:
                        self.db.set(
                            f"subjects/{subject_id}/assignedTeachers",
                            [t for t in assigned if t != teacher_id] or None
                        )

            self.db.remove(f"teachers/{teacher_id}")
            self.logger.info(f"Teacher {teacher_id} deleted")
            return True

        except Exception as e:
            self.logger.error(f"Failed to delete teacher {teacher_id}: {str(e)}")
            return False

    def _validate_teacher_data(self, username: str, password: str, email: str) -> Dict[str, Any]:
        if not username or len(username) < 3:
            return {'valid': False, 'error': 'Username must be at least 3 characters long'}

        if not re.match(r'^[a-zA-Z0-9_-]+$', username):
            return {'valid': False, 'error': 'Username can only contain letters, numbers, hyphens, and underscores'}

        password_validation = self._validate_password(password)
        if not password_validation['valid']:
            return password_validation

        if email and not self._valid_email(email):
            return {'valid': False, 'error': 'Invalid email address format'}

        return {'valid': True}

    def _validate_password(self, password: str) -> Dict[str, Any]:
        if not password:
            return {'valid': False, 'error': 'Password is required'}

        if len(password) < self.password_min_length:
            return {'valid': False, 'error': f'Password must be at least {self.password_min_length} characters long'}

        return {'valid': True}

    @staticmethod
    def _valid_email(email: str) -> bool:
        return bool(re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', email))
