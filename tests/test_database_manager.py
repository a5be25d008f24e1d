import pytest

from rollcall.modules.database_manager import DatabaseError, DatabaseManager, split_path


def test_split_path_ignores_extra_slashes():
    assert split_path("/students//classA/") == ["students", "classA"]
    assert split_path("") == []
    assert split_path(None) == []


def test_initialize_seeds_defaults_with_hashed_passwords(db):
    classes = db.get("students")
    teacher = db.get("teachers/AI001")

    assert set(classes) == {"classA", "classB", "classC"}
    assert classes["classA"][0]["serialNo"] == 1
    assert teacher["username"] == "oop_teacher"
    assert teacher["password"] != "oop123"
    assert db.get("subjects/oop/assignedTeachers") == ["AI001"]


def test_initialize_is_idempotent(db):
    db.set("students/classA/0/name", "Renamed")

    db.initialize_database()

    assert db.get("students/classA/0/name") == "Renamed"


def test_set_creates_intermediate_maps(empty_db):
    empty_db.set("attendance/classA/2026-01-05/s1", "present")

    assert empty_db.get("attendance") == {"classA": {"2026-01-05": {"s1": "present"}}}


def test_get_missing_path_is_none(empty_db):
    assert empty_db.get("nothing/here") is None
    assert empty_db.get() is None
    assert empty_db.exists("nothing") is False


def test_list_segments_are_indices(db):
    assert db.get("students/classB/1/rollNo") == "B002"
    assert db.get("students/classB/99") is None


def test_removing_last_child_removes_top_level_key(empty_db):
    empty_db.set("settings/semester", "1")

    empty_db.remove("settings/semester")

    assert empty_db.exists("settings") is False


def test_update_writes_children_together(empty_db):
    empty_db.set("settings", {"semester": "1", "notifyAbsentees": True})

    empty_db.update("settings", {"semester": "2", "academicYear": "2026"})

    assert empty_db.get("settings") == {
        "semester": "2", "notifyAbsentees": True, "academicYear": "2026",
    }


def test_update_rejects_non_mapping(empty_db):
    with pytest.raises(DatabaseError):
        empty_db.update("settings", ["not", "a", "map"])


def test_false_values_are_kept(empty_db):
    empty_db.set("settings/allowTeacherRegistration", False)

    assert empty_db.get("settings/allowTeacherRegistration") is False


def test_data_survives_reopen(tmp_path):
    path = tmp_path / "persist.db"
    first = DatabaseManager(path)
    first.set("admins/a1/name", "Root")
    first.close_all_connections()

    second = DatabaseManager(path)

    assert second.get("admins/a1/name") == "Root"
    second.close_all_connections()


def test_system_setting_helpers(empty_db):
    assert empty_db.get_system_setting("semester", "1") == "1"
    assert empty_db.update_system_setting("semester", "2") is True
    assert empty_db.get_system_setting("semester") == "2"
