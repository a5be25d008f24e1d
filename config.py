# Roll Call Attendance System Configuration

import os
from datetime import timedelta, datetime
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent.absolute()

class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'rollcall-secret-key-change-me'

    # Document store (SQLite-backed JSON tree)
    DATABASE_PATH = BASE_DIR / 'database' / 'rollcall.db'

    # Report Configuration
    REPORTS_FOLDER = BASE_DIR / 'reports'
    REPORTS_DEFAULT_FORMAT = 'pdf'
    REPORTS_SUPPORTED_FORMATS = ('pdf', 'excel', 'csv')

    # Institution details printed on exported reports
    INSTITUTION_NAME = os.environ.get('INSTITUTION_NAME') or 'DESPU UNIVERSITY'
    DEPARTMENT_NAME = os.environ.get('DEPARTMENT_NAME') or 'SCHOOL OF ENGINEERING AND TECHNOLOGY'

    # Display class name -> class key under students/ in the store
    CLASS_MAPPING = {
        'CSE-1': 'classA',
        'CSE-2': 'classB',
        'CSE-3': 'classC',
    }

    # Session Configuration
    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)
    SESSION_COOKIE_SECURE = False  # Set to True in production with HTTPS
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Security Configuration
    PASSWORD_MIN_LENGTH = 6
    DEFAULT_ADMIN_ID = 'admin1'
    DEFAULT_ADMIN_USERNAME = os.environ.get('DEFAULT_ADMIN_USERNAME') or 'admin'
    DEFAULT_ADMIN_PASSWORD = os.environ.get('DEFAULT_ADMIN_PASSWORD') or 'admin123'
    DEFAULT_ADMIN_NAME = 'System Administrator'

    # Share Configuration
    SHARE_MAIL_URL = 'https://mail.google.com/mail/?view=cm&fs=1'

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
    LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
    LOG_FILE = BASE_DIR / 'logs' / 'rollcall.log'
    LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5

    # Development Configuration
    DEBUG = os.environ.get('DEBUG', 'False').lower() in ['true', 'on', '1']
    TESTING = False

    @staticmethod
    def init_app(app):
        """Initialize application configuration"""
        directories = [
            Path(app.config['REPORTS_FOLDER']),
            Path(app.config['LOG_FILE']).parent,
        ]
        database_path = str(app.config['DATABASE_PATH'])
        if database_path != ':memory:':
            directories.append(Path(database_path).parent)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False

    DATABASE_PATH = BASE_DIR / 'database' / 'rollcall_dev.db'

    # More verbose logging
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True

    # Use in-memory database for testing
    DATABASE_PATH = ':memory:'

    # Relaxed password policy for fixtures
    PASSWORD_MIN_LENGTH = 4


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Enhanced security for production
    SESSION_COOKIE_SECURE = True  # Requires HTTPS
    PASSWORD_MIN_LENGTH = 8

    DATABASE_PATH = BASE_DIR / 'database' / 'rollcall_prod.db'

    # Production logging
    LOG_LEVEL = 'WARNING'

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        # Production-specific initialization
        import logging
        from logging.handlers import RotatingFileHandler

        # Setup file logging
        if not app.debug:
            file_handler = RotatingFileHandler(
                app.config['LOG_FILE'],
                maxBytes=cls.LOG_MAX_BYTES,
                backupCount=cls.LOG_BACKUP_COUNT
            )
            file_handler.setFormatter(logging.Formatter(cls.LOG_FORMAT))
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)

            app.logger.setLevel(logging.INFO)
            app.logger.info('Roll Call Attendance System startup')


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


class SettingsDefaults:
    """Defaults for the admin-editable settings node"""

    ALLOW_TEACHER_REGISTRATION = False
    REQUIRE_ATTENDANCE_APPROVAL = True
    ATTENDANCE_CUTOFF_TIME = '10:00'
    NOTIFY_ABSENTEES = True
    MAX_ABSENCES_BEFORE_ALERT = 3
    SEMESTER = '1'

    @classmethod
    def as_dict(cls):
        return {
            'allowTeacherRegistration': cls.ALLOW_TEACHER_REGISTRATION,
            'requireAttendanceApproval': cls.REQUIRE_ATTENDANCE_APPROVAL,
            'attendanceCutoffTime': cls.ATTENDANCE_CUTOFF_TIME,
            'notifyAbsentees': cls.NOTIFY_ABSENTEES,
            'maxAbsencesBeforeAlert': cls.MAX_ABSENCES_BEFORE_ALERT,
            'academicYear': str(datetime.now().year),
            'semester': cls.SEMESTER,
        }


# Environment-specific configurations
def get_config():
    """Get configuration based on environment variable"""
    return config.get(os.environ.get('FLASK_ENV', 'default'), DevelopmentConfig)


# Validation functions
def validate_config(app):
    """Validate configuration settings"""
    errors = []

    if not app.config.get('SECRET_KEY'):
        errors.append("SECRET_KEY must be set")

    database_path = str(app.config['DATABASE_PATH'])
    if database_path != ':memory:' and not Path(database_path).parent.exists():
        errors.append(f"Database directory does not exist: {Path(database_path).parent}")

    if app.config.get('REPORTS_DEFAULT_FORMAT') not in app.config.get('REPORTS_SUPPORTED_FORMATS', ()):
        errors.append(f"Unsupported default report format: {app.config.get('REPORTS_DEFAULT_FORMAT')}")

    if not app.config.get('CLASS_MAPPING'):
        errors.append("CLASS_MAPPING must define at least one class")

    return errors


# Initialize configuration
def init_config(app, config_name=None, overrides=None):
    """Initialize application with configuration"""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')

    config_class = config.get(config_name, DevelopmentConfig)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)
    config_class.init_app(app)

    # Validate configuration
    errors = validate_config(app)
    if errors:
        for error in errors:
            app.logger.error(f"Configuration error: {error}")
        raise RuntimeError("Configuration validation failed")

    return config_class
