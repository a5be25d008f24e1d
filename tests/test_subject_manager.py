import pytest

from rollcall.modules.subject_manager import SubjectManager


@pytest.fixture
def subjects(db):
    return SubjectManager(db)


def test_list_subjects(subjects):
    listing = subjects.get_all_subjects()

    assert [s["id"] for s in listing] == ["oop"]
    assert listing[0]["assignedTeachers"] == ["AI001"]


def test_new_subject_id_is_lowercased_code(subjects):
    result = subjects.save_subject({"code": "DSA", "name": "Data Structures"})

    assert result["subject_id"] == "dsa"
    assert subjects.get_subject("dsa")["assignedTeachers"] == []


def test_duplicate_code_is_rejected(subjects):
    assert subjects.save_subject({"code": "oop", "name": "Again"})["success"] is False


def test_save_requires_code_and_name(subjects):
    assert subjects.save_subject({"code": "X1"})["success"] is False


def test_update_keeps_assignments(subjects):
    result = subjects.save_subject({"code": "OOP", "name": "OOP in Java"}, subject_id="oop")

    assert result["success"] is True
    subject = subjects.get_subject("oop")
    assert subject["name"] == "OOP in Java"
    assert subject["assignedTeachers"] == ["AI001"]


def test_toggle_teacher_assignment(subjects):
    removed = subjects.toggle_teacher_assignment("oop", "AI001")
    added = subjects.toggle_teacher_assignment("oop", "AI001")

    assert removed["assigned"] is False
    assert added["assigned"] is True
    assert [s["id"] for s in subjects.get_subjects_for_teacher("AI001")] == ["oop"]


def test_toggle_unknown_teacher(subjects):
    assert subjects.toggle_teacher_assignment("oop", "ghost")["error"] == "Teacher not found"


def test_delete_subject(subjects):
    assert subjects.delete_subject("oop") is True
    assert subjects.get_subject("oop") is None
    assert subjects.delete_subject("oop") is False
