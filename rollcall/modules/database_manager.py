"""
Database Manager Module - Roll Call Attendance System
Author: Roll Call Team

This module provides the hierarchical document store used by every other
component. Data is a keyed JSON tree (students, teachers, subjects, settings,
attendance, admins) addressed by slash-separated paths such as
``students/classA`` or ``attendance/classA/2026-10-19``.

The tree is persisted in SQLite with one row per top-level key. Reads walk
into the stored document; writes load the top-level document, modify it and
store it back inside a transaction.

Features:
- Path based get/set/update/remove on a JSON tree
- Thread-local SQLite connections
- Transaction support
- Idempotent schema creation and default data seeding
- System settings helpers
"""

import sqlite3
import logging
from contextlib import contextmanager
import threading
from werkzeug.security import generate_password_hash
import json
import os


DEFAULT_CLASSES = {
    'classA': [
        ('001', 'Riddhi Narendra Chatorikar'),
        ('002', 'Aashay Sanjay Meharkure'),
        ('003', 'Pranav Rahul Dadhe'),
        ('004', 'Tejas Jagannath Gawande'),
        ('005', 'Shubham Deepak Dindorkar'),
        ('006', 'Kriti Bablu Singh'),
        ('008', 'Pradyumna Bhagwan Pandekar'),
        ('009', 'Mrudula Vijay Pimparwar'),
        ('011', 'Riddhee Sandeep Kulkarni'),
        ('012', 'Lobhas Mahesh Kulkarni'),
    ],
    'classB': [
        ('B001', 'Aanya Khanna'),
        ('B002', 'Abhinav Sharma'),
        ('B003', 'Advik Patel'),
        ('B004', 'Ahana Singh'),
        ('B005', 'Akshay Kumar'),
        ('B006', 'Amrita Gupta'),
        ('B007', 'Aniket Verma'),
        ('B008', 'Anushka Reddy'),
        ('B009', 'Arushi Malhotra'),
        ('B010', 'Ayush Iyer'),
    ],
    'classC': [
        ('C001', 'Aaradhya Khanna'),
        ('C002', 'Abhay Sharma'),
        ('C003', 'Advika Patel'),
        ('C004', 'Agastya Singh'),
        ('C005', 'Amay Kumar'),
        ('C006', 'Anaisha Gupta'),
        ('C007', 'Atharv Verma'),
        ('C008', 'Avantika Reddy'),
        ('C009', 'Ayaan Malhotra'),
        ('C010', 'Bhoomi Iyer'),
    ],
}

DEFAULT_TEACHERS = [
    {
        'id': 'AI001',
        'username': 'oop_teacher',
        'password': 'oop123',
        'name': 'OOP Faculty',
        'email': 'oop.faculty@example.com',
        'subjects': ['oop'],
        'status': 'active'
    }
]

DEFAULT_SUBJECTS = [
    {
        'id': 'oop',
        'name': 'Object Oriented Programming',
        'code': 'OOP',
        'description': 'Learn object-oriented programming concepts and principles',
        'assignedTeachers': ['AI001']
    }
]


class DatabaseError(Exception):
    """Raised for malformed paths or writes the tree cannot represent."""


def split_path(path):
    """Split a slash separated path into its non-empty segments."""
    if path is None:
        return []
    return [segment for segment in str(path).strip('/').split('/') if segment]


class DatabaseManager:
    """
    Hierarchical JSON document store backed by SQLite.
    Each top-level key of the tree is stored as one JSON document row.
    """

    def __init__(self, db_path):
        """
        Initialize the database manager with the specified database path.

        Args:
            db_path (str): Path to the SQLite database file, or ':memory:'
        """
        self.db_path = str(db_path)
        self.logger = logging.getLogger(__name__)
        self._local = threading.local()
        self._write_lock = threading.RLock()

        # Ensure database directory exists
        directory = os.path.dirname(self.db_path)
        if self.db_path != ':memory:' and directory:
            os.makedirs(directory, exist_ok=True)

        self._create_schema()

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.
        Provides thread-local connections for thread safety.

        Yields:
            sqlite3.Connection: Database connection object
        """
        if not hasattr(self._local, 'connection'):
            self._local.connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )
            self._local.connection.row_factory = sqlite3.Row

        try:
            yield self._local.connection
        except Exception as e:
            self._local.connection.rollback()
            self.logger.error(f"Database operation failed: {str(e)}")
            raise

    @contextmanager
    def transaction(self):
        """
        Context manager for database transactions with automatic rollback on error.

        Yields:
            sqlite3.Connection: Database connection within transaction
        """
        with self._write_lock:
            with self.get_connection() as conn:
                try:
                    yield conn
                    conn.commit()
                except Exception as e:
                    conn.rollback()
                    self.logger.error(f"Transaction rolled back: {str(e)}")
                    raise

    def _create_schema(self):
        with self.transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS nodes (
                    root_key VARCHAR(100) PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def initialize_database(self):
        """
        Seed default classes, teachers and subjects when they are missing.
        This method is idempotent and can be called multiple times safely.
        """
        try:
            if not self.exists('students'):
                self.logger.info("Initializing database with default student data")
                students = {}
                for class_id, entries in DEFAULT_CLASSES.items():
                    students[class_id] = [
                        {
                            'id': roll_no,
                            'rollNo': roll_no,
                            'name': name,
                            'serialNo': serial_no,
                            'status': 'active'
                        }
                        for serial_no, (roll_no, name) in enumerate(entries, start=1)
                    ]
                self.set('students', students)

            if not self.exists('teachers') or not self.exists('subjects'):
                self.logger.info("Initializing teacher and subject data")
                for teacher in DEFAULT_TEACHERS:
                    record = dict(teacher)
                    record['password'] = generate_password_hash(teacher['password'])
                    self.set(f"teachers/{teacher['id']}", record)

                for subject in DEFAULT_SUBJECTS:
                    self.set(f"subjects/{subject['id']}", dict(subject))

            self.logger.info("Database initialized successfully")

        except Exception as e:
            self.logger.error(f"Failed to initialize database: {str(e)}")
            raise

    def _load_root(self, conn, root_key):
        row = conn.execute(
            "SELECT data FROM nodes WHERE root_key = ?", (root_key,)
        ).fetchone()
        return json.loads(row['data']) if row else None

    def _store_root(self, conn, root_key, value):
        if value is None or value == {} or value == []:
            conn.execute("DELETE FROM nodes WHERE root_key = ?", (root_key,))
            return
        conn.execute("""
            INSERT INTO nodes (root_key, data, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(root_key) DO UPDATE SET
                data = excluded.data, updated_at = CURRENT_TIMESTAMP
        """, (root_key, json.dumps(value)))

    @staticmethod
    def _child(node, segment):
        if isinstance(node, dict):
            return node.get(segment)
        if isinstance(node, list) and segment.isdigit():
            index = int(segment)
            return node[index] if index < len(node) else None
        return None

    def get(self, path=''):
        """
        Read the value stored at a path.

        Args:
            path (str): Slash separated path; empty for the whole tree

        Returns:
            The JSON value at the path, or None when nothing is stored there
        """
        segments = split_path(path)
        with self.get_connection() as conn:
            if not segments:
                rows = conn.execute("SELECT root_key, data FROM nodes ORDER BY root_key").fetchall()
                return {row['root_key']: json.loads(row['data']) for row in rows} or None

            node = self._load_root(conn, segments[0])

        for segment in segments[1:]:
            if node is None:
                return None
            node = self._child(node, segment)
        return node

    def exists(self, path):
        """Check whether any value is stored at a path."""
        return self.get(path) is not None

    def set(self, path, value):
        """
        Write a value at a path, creating intermediate maps as needed.
        Writing None removes the path.

        Args:
            path (str): Slash separated path
            value: Any JSON-serializable value
        """
        segments = split_path(path)
        if not segments:
            self._replace_tree(value)
            return

        with self.transaction() as conn:
            root_key = segments[0]
            if len(segments) == 1:
                self._store_root(conn, root_key, value)
                return

            root = self._load_root(conn, root_key)
            root = self._assign(root, segments[1:], value)
            self._store_root(conn, root_key, root)

    def update(self, path, values):
        """
        Write several children of a path in a single transaction.

        Args:
            path (str): Parent path
            values (dict): Child key -> value
        """
        if not isinstance(values, dict):
            raise DatabaseError("update() expects a mapping of child keys to values")

        parent = split_path(path)
        if not parent:
            for key, value in values.items():
                self.set(key, value)
            return

        with self.transaction() as conn:
            root_key = parent[0]
            root = self._load_root(conn, root_key)
            for key, value in values.items():
                root = self._assign(root, parent[1:] + split_path(key), value)
            self._store_root(conn, root_key, root)

    def remove(self, path):
        """Remove whatever is stored at a path."""
        self.set(path, None)

    def _replace_tree(self, value):
        if value is not None and not isinstance(value, dict):
            raise DatabaseError("The root of the tree must be a mapping")

        with self.transaction() as conn:
            conn.execute("DELETE FROM nodes")
            for root_key, root_value in (value or {}).items():
                self._store_root(conn, root_key, root_value)

    def _assign(self, node, segments, value):
        """Return ``node`` with ``value`` placed at ``segments``."""
        if not segments:
            return value

        segment = segments[0]
        if isinstance(node, list):
            if segment.isdigit() and int(segment) < len(node):
                node[int(segment)] = self._assign(node[int(segment)], segments[1:], value)
                if node[int(segment)] is None and int(segment) == len(node) - 1:
                    node.pop()
                return node
            if segment.isdigit() and int(segment) == len(node) and value is not None:
                node.append(self._assign(None, segments[1:], value))
                return node
            if value is None:
                return node
            # Non-sequential key: the list becomes a map keyed by index
            node = {str(index): item for index, item in enumerate(node) if item is not None}

        if not isinstance(node, dict):
            if value is None:
                return node
            node = {}

        child = self._assign(node.get(segment), segments[1:], value)
        if child is None or child == {} or child == []:
            node.pop(segment, None)
        else:
            node[segment] = child
        return node or None

    def get_system_setting(self, key, default_value=None):
        """
        Get a system setting value by key.

        Args:
            key (str): Setting key
            default_value: Default value if setting not found

        Returns:
            Setting value
        """
        try:
            value = self.get(f"settings/{key}")
            return default_value if value is None else value

        except Exception as e:
            self.logger.error(f"Failed to get system setting {key}: {str(e)}")
            return default_value

    def update_system_setting(self, key, value):
        """
        Update or insert a system setting.

        Returns:
            bool: Success status
        """
        try:
            self.set(f"settings/{key}", value)
            return True

        except Exception as e:
            self.logger.error(f"Failed to update system setting {key}: {str(e)}")
            return False

    def close_all_connections(self):
        """Close the current thread's database connection."""
        try:
            if hasattr(self._local, 'connection'):
                self._local.connection.close()
                del self._local.connection
        except Exception as e:
            self.logger.error(f"Error closing connections: {str(e)}")
