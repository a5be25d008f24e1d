"""
Subject Manager Module - Roll Call Attendance System
Author: Roll Call Team

This module manages the subjects catalogue stored under ``subjects/<id>``
and the assignment of teachers to subjects. A teacher's assigned subjects
are the ones whose ``assignedTeachers`` list contains the teacher id.

Features:
- Subject listing and lookup
- Subject creation and update (ids derived from subject codes)
- Subject deletion
- Teacher assignment toggling
"""

from typing import Dict, List, Any, Optional
import logging
import re


class SubjectManager:
    """
    Subjects catalogue and teacher assignments.
    """

    def __init__(self, database_manager):
        """
        Initialize the subject manager with database connection.

        Args:
            database_manager: Document store
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)

    def _records(self) -> Dict[str, Dict[str, Any]]:
        subjects = self.db.get('subjects') or {}
        if isinstance(subjects, list):
            subjects = {str(s.get('id')): s for s in subjects if s}
        return subjects

    def get_all_subjects(self) -> List[Dict[str, Any]]:
        """
        Get all subjects ordered by code.

        Returns:
            List[Dict[str, Any]]: Subjects with their assigned teacher ids
        """
        try:
            subjects = []
            for subject_id, subject in self._records().items():
                record = dict(subject)
                record['id'] = record.get('id') or subject_id
                record['assignedTeachers'] = list(record.get('assignedTeachers') or [])
                subjects.append(record)
            return sorted(subjects, key=lambda s: (s.get('code') or s['id']).lower())

        except Exception as e:
            self.logger.error(f"Failed to get subjects: {str(e)}")
            return []

    def get_subject(self, subject_id: str) -> Optional[Dict[str, Any]]:
        subject = self.db.get(f"subjects/{subject_id}")
        if not subject:
            return None
        subject.setdefault('assignedTeachers', [])
        return subject

    def get_subjects_for_teacher(self, teacher_id: str) -> List[Dict[str, Any]]:
        return [
            s for s in self.get_all_subjects()
            if teacher_id in s['assignedTeachers']
        ]

    def save_subject(self, subject_data: Dict[str, Any],
                     subject_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a subject, or update it when ``subject_id`` is given.

        Args:
            subject_data (Dict[str, Any]): code, name, description, assignedTeachers
            subject_id (str): Existing subject to update

        Returns:
            Dict[str, Any]: Save result
        """
        try:
            code = (subject_data.get('code') or '').strip()
            name = (subject_data.get('name') or '').strip()

            if not code or not name:
                return {'success': False, 'error': 'Subject code and name are required'}

            if not re.match(r'^[A-Za-z0-9_-]+$', code):
                return {'success': False, 'error': 'Subject code can only contain letters, numbers, hyphens, and underscores'}

            if subject_id:
                existing = self.db.get(f"subjects/{subject_id}")
                if not existing:
                    return {'success': False, 'error': 'Subject not found'}
                assigned = subject_data.get('assignedTeachers', existing.get('assignedTeachers'))
            else:
                subject_id = code.lower()
                if self.db.exists(f"subjects/{subject_id}"):
                    return {'success': False, 'error': 'A subject with this code already exists'}
                assigned = subject_data.get('assignedTeachers')

            record = {
                'id': subject_id,
                'code': code,
                'name': name,
                'description': (subject_data.get('description') or '').strip(),
                'assignedTeachers': list(assigned or []),
            }
            self.db.set(f"subjects/{subject_id}", record)

            self.logger.info(f"Subject saved: {code} ({subject_id})")
            return {'success': True, 'subject_id': subject_id, 'message': 'Subject saved successfully'}

        except Exception as e:
            self.logger.error(f"Failed to save subject {subject_data.get('code', 'unknown')}: {str(e)}")
            return {'success': False, 'error': 'Failed to save subject'}

    def delete_subject(self, subject_id: str) -> bool:
        try:
            if not self.db.exists(f"subjects/{subject_id}"):
                return False
            self.db.remove(f"subjects/{subject_id}")
            self.logger.info(f"Subject {subject_id} deleted")
            return True

        except Exception as e:
            self.logger.error(f"Failed to delete subject {subject_id}: {str(e)}")
            return False

    def toggle_teacher_assignment(self, subject_id: str, teacher_id: str) -> Dict[str, Any]:
        """
        Assign the teacher to the subject, or unassign them if already assigned.

        Returns:
            Dict[str, Any]: Result with the new ``assigned`` state
        """
        try:
            subject = self.db.get(f"subjects/{subject_id}")
            if not subject:
                return {'success': False, 'error': 'Subject not found'}

            if not self.db.exists(f"teachers/{teacher_id}"):
                return {'success': False, 'error': 'Teacher not found'}

            assigned = list(subject.get('assignedTeachers') or [])
            if teacher_id in assigned:
                assigned.remove(teacher_id)
                now_assigned = False
            else:
                assigned.append(teacher_id)
                now_assigned = True

            self.db.set(f"subjects/{subject_id}/assignedTeachers", assigned or None)

            self.logger.info(
                f"Teacher {teacher_id} {'assigned to' if now_assigned else 'removed from'} {subject_id}"
            )
            return {'success': True, 'assigned': now_assigned, 'assignedTeachers': assigned}

        except Exception as e:
            self.logger.error(f"Failed to toggle assignment {teacher_id} -> {subject_id}: {str(e)}")
            return {'success': False, 'error': 'Failed to update assignment'}
