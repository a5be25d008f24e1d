"""
Student Manager Module - Roll Call Attendance System
Author: Roll Call Team

This module handles the class catalogue and student administration.
Classes are stored under ``students/<classId>`` as ordered arrays; the
display names teachers pick from (``CSE-1`` and so on) map onto those keys.

Features:
- Class catalogue with student counts
- Student listing, creation, update and deletion per class
- Automatic serial number assignment
- CSV import
- Student search across classes
"""

from typing import Dict, List, Any, Optional
import logging
import re
import csv
import io

from rollcall.modules.roster_loader import RosterLoader, Student, extract_roll_number


class StudentManager:
    """
    Student administration over the document store.
    """

    def __init__(self, database_manager, class_mapping: Optional[Dict[str, str]] = None):
        """
        Initialize the student manager with database connection.

        Args:
            database_manager: Document store
            class_mapping (dict): Display class name -> class key
        """
        self.db = database_manager
        self.class_mapping = dict(class_mapping or {})
        self.loader = RosterLoader(database_manager)
        self.logger = logging.getLogger(__name__)

        self.logger.info("Student manager initialized")

    def resolve_class(self, class_name_or_id: str) -> Optional[str]:
        """Map a display class name (or a raw class key) to its class key."""
        if class_name_or_id in self.class_mapping:
            return self.class_mapping[class_name_or_id]
        if class_name_or_id in self.class_mapping.values():
            return class_name_or_id
        return None

    def class_name_for(self, class_id: str) -> str:
        for name, key in self.class_mapping.items():
            if key == class_id:
                return name
        return class_id

    def get_classes(self) -> List[Dict[str, Any]]:
        """
        Get the configured classes with their student counts.

        Returns:
            List[Dict[str, Any]]: name, class id and number of students
        """
        try:
            data = self.db.get('students') or {}
        except Exception as e:
            self.logger.error(f"Error fetching student counts: {str(e)}")
            data = {}

        classes = []
        for name, class_id in self.class_mapping.items():
            raw = data.get(class_id) or []
            classes.append({
                'name': name,
                'classId': class_id,
                'students': len(self.loader.normalize(raw)) if raw else 0
            })
        return classes

    def get_students(self, class_id: str) -> List[Student]:
        """All students of a class in roster order."""
        try:
            raw = self.db.get(f"students/{class_id}")
        except Exception as e:
            self.logger.error(f"Failed to get students for {class_id}: {str(e)}")
            return []
        return self.loader.normalize(raw) if raw else []

    def get_student_count(self, class_id: Optional[str] = None) -> int:
        if class_id:
            return len(self.get_students(class_id))
        return sum(c['students'] for c in self.get_classes())

    def create_student(self, class_id: str, student_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add a student to a class.

        Args:
            class_id (str): Class key
            student_data (Dict[str, Any]): rollNo, name and optional id/serialNo

        Returns:
            Dict[str, Any]: Creation result
        """
        try:
            validation_result = self._validate_student_data(student_data)
            if not validation_result['valid']:
                return {'success': False, 'error': validation_result['error']}

            students = self.get_students(class_id)
            roll_no = str(student_data['rollNo']).strip()
            student_id = str(student_data.get('id') or roll_no).strip()

            if any(s.id == student_id for s in students):
                return {'success': False, 'error': 'Student ID already exists in this class'}

            roll_number = extract_roll_number(roll_no)
            if any(s.roll_number == roll_number for s in students):
                return {'success': False, 'error': 'Roll number already exists in this class'}

            serial_no = student_data.get('serialNo')
            if serial_no in (None, ''):
                serial_no = max((s.serial_no or 0 for s in students), default=0) + 1

            students.append(Student(
                id=student_id,
                roll_no=roll_no,
                name=student_data['name'].strip(),
                serial_no=int(serial_no),
            ))
            self._store(class_id, students)

            self.logger.info(f"Student created successfully: {roll_no} in {class_id}")
            return {
                'success': True,
                'student_id': student_id,
                'serial_no': int(serial_no),
                'message': 'Student created successfully'
            }

        except Exception as e:
            self.logger.error(f"Student creation failed for {student_data.get('rollNo', 'unknown')}: {str(e)}")
            return {'success': False, 'error': 'Failed to create student record'}

    def update_student(self, class_id: str, student_id: str,
                       update_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a student's roll number, name or serial number.

        Returns:
            Dict[str, Any]: Update result
        """
        try:
            students = self.get_students(class_id)
            student = next((s for s in students if s.id == str(student_id)), None)
            if student is None:
                return {'success': False, 'error': 'Student not found'}

            validation_result = self._validate_student_data(update_data, partial=True)
            if not validation_result['valid']:
                return {'success': False, 'error': validation_result['error']}

            if 'rollNo' in update_data:
                roll_number = extract_roll_number(update_data['rollNo'])
                if any(s.roll_number == roll_number and s is not student for s in students):
                    return {'success': False, 'error': 'Roll number already exists in this class'}
                student.roll_no = str(update_data['rollNo']).strip()
            if 'name' in update_data:
                student.name = update_data['name'].strip()
            if 'serialNo' in update_data:
                student.serial_no = int(update_data['serialNo'])

            self._store(class_id, students)
            self.logger.info(f"Student updated successfully: {student_id} in {class_id}")
            return {'success': True, 'message': 'Student updated successfully'}

        except Exception as e:
            self.logger.error(f"Student update failed for {student_id}: {str(e)}")
            return {'success': False, 'error': 'Failed to update student'}

    def delete_student(self, class_id: str, student_id: str) -> bool:
        """
        Remove a student from a class.

        Returns:
            bool: Success status
        """
        try:
            students = self.get_students(class_id)
            remaining = [s for s in students if s.id != str(student_id)]
            if len(remaining) == len(students):
                return False

            self._store(class_id, remaining)
            self.logger.info(f"Student {student_id} removed from {class_id}")
            return True

        except Exception as e:
            self.logger.error(f"Failed to delete student {student_id}: {str(e)}")
            return False

    def import_students_from_csv(self, class_id: str, csv_content: str) -> Dict[str, Any]:
        """
        Import students from CSV content with ``rollNo,name`` columns
        (``id`` and ``serialNo`` optional).

        Returns:
            Dict[str, Any]: Import result
        """
        try:
            csv_reader = csv.DictReader(io.StringIO(csv_content))
            created = 0
            errors = []

            for row_num, row in enumerate(csv_reader, start=2):  # Row 1 is the header
                row = {k.strip(): (v or '').strip() for k, v in row.items() if k}
                result = self.create_student(class_id, row)
                if result['success']:
                    created += 1
                else:
                    errors.append(f"Row {row_num}: {result['error']}")

            if created == 0 and not errors:
                return {'success': False, 'error': 'No valid student data found in CSV'}

            return {
                'success': created > 0,
                'created_count': created,
                'errors': errors,
                'import_method': 'csv'
            }

        except Exception as e:
            self.logger.error(f"CSV import failed: {str(e)}")
            return {'success': False, 'error': f'CSV import failed: {str(e)}'}

    def search_students(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Search students of every configured class by name or roll number.

        Returns:
            List[Dict[str, Any]]: Matching students tagged with their class
        """
        needle = (query or '').strip().lower()
        if not needle:
            return []

        results = []
        for name, class_id in self.class_mapping.items():
            for student in self.get_students(class_id):
                if needle in student.name.lower() or needle in student.roll_no.lower():
                    record = student.to_dict()
                    record.pop('status', None)
                    record['className'] = name
                    record['classId'] = class_id
                    results.append(record)
                    if len(results) >= limit:
                        return results
        return results

    def _store(self, class_id: str, students: List[Student]) -> None:
        self.db.set(f"students/{class_id}", [
            {
                'id': s.id,
                'rollNo': s.roll_no,
                'name': s.name,
                'serialNo': s.serial_no,
                'status': 'active'
            }
            for s in students
        ] or None)

    def _validate_student_data(self, student_data: Dict[str, Any],
                               partial: bool = False) -> Dict[str, Any]:
        """
        Validate student data.

        Args:
            student_data (Dict[str, Any]): Student data to validate
            partial (bool): Whether this is a partial update

        Returns:
            Dict[str, Any]: Validation result
        """
        if not partial:
            for field in ('rollNo', 'name'):
                if not str(student_data.get(field) or '').strip():
                    return {'valid': False, 'error': f'Missing required field: {field}'}

        if 'rollNo' in student_data and extract_roll_number(student_data['rollNo']) is None:
            return {'valid': False, 'error': 'Roll number must contain digits'}

        if 'name' in student_data and len(str(student_data['name']).strip()) < 2:
            return {'valid': False, 'error': 'Name must be at least 2 characters'}

        serial_no = student_data.get('serialNo')
        if serial_no not in (None, '') and not re.match(r'^\d+$', str(serial_no)):
            return {'valid': False, 'error': 'Serial number must be a positive integer'}

        return {'valid': True}
