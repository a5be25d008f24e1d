"""
Settings Manager Module - Roll Call Attendance System
Author: Roll Call Team

System-wide settings stored under the ``settings`` node.
"""

from typing import Dict, Any, Optional
import logging
import re


class SettingsManager:
    """
    Reads settings merged over defaults and validates updates.
    """

    BOOLEAN_SETTINGS = ('allowTeacherRegistration', 'requireAttendanceApproval', 'notifyAbsentees')

    def __init__(self, database_manager, defaults: Optional[Dict[str, Any]] = None):
        self.db = database_manager
        self.defaults = dict(defaults or {})
        self.logger = logging.getLogger(__name__)

    def get_settings(self) -> Dict[str, Any]:
        """Stored settings layered over the defaults."""
        settings = dict(self.defaults)
        try:
            stored = self.db.get('settings') or {}
            if isinstance(stored, dict):
                settings.update(stored)
        except Exception as e:
            self.logger.error(f"Failed to read settings: {str(e)}")
        return settings

    def ensure_defaults(self) -> bool:
        """Write the defaults when no settings exist yet."""
        if self.defaults and not self.db.exists('settings'):
            self.db.set('settings', dict(self.defaults))
            self.logger.info("Default settings written")
            return True
        return False

    def update_settings(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and store settings changes.

        Args:
            changes (Dict[str, Any]): Setting name -> new value

        Returns:
            Dict[str, Any]: Update result with the merged settings
        """
        validation_result = self._validate_settings(changes)
        if not validation_result['valid']:
            return {'success': False, 'error': validation_result['error']}

        try:
            self.db.update('settings', validation_result['values'])
            self.logger.info(f"Settings updated: {', '.join(sorted(validation_result['values']))}")
            return {'success': True, 'settings': self.get_settings()}

        except Exception as e:
            self.logger.error(f"Failed to update settings: {str(e)}")
            return {'success': False, 'error': 'Failed to update settings'}

    def _validate_settings(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(changes, dict) or not changes:
            return {'valid': False, 'error': 'No settings provided'}

        values = {}
        for key, value in changes.items():
            if key in self.BOOLEAN_SETTINGS:
                if not isinstance(value, bool):
                    return {'valid': False, 'error': f'{key} must be true or false'}
                values[key] = value

            elif key == 'attendanceCutoffTime':
                if not isinstance(value, str) or not re.match(r'^([01]\d|2[0-3]):[0-5]\d$', value):
                    return {'valid': False, 'error': 'Attendance cutoff time must be in HH:MM format'}
                values[key] = value

            elif key == 'maxAbsencesBeforeAlert':
                try:
                    number = int(value)
                except (TypeError, ValueError):
                    return {'valid': False, 'error': 'Max absences must be a number'}
                if isinstance(value, bool) or not 1 <= number <= 10:
                    return {'valid': False, 'error': 'Max absences must be between 1 and 10'}
                values[key] = number

            elif key == 'academicYear':
                if not re.match(r'^\d{4}$', str(value)):
                    return {'valid': False, 'error': 'Academic year must be a four-digit year'}
                values[key] = str(value)

            elif key == 'semester':
                if str(value) not in ('1', '2'):
                    return {'valid': False, 'error': 'Semester must be 1 or 2'}
                values[key] = str(value)

            else:
                return {'valid': False, 'error': f'Unknown setting: {key}'}

        return {'valid': True, 'values': values}
