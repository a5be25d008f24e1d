import pytest

from rollcall.modules.attendance_manager import AttendanceManager
from rollcall.modules.attendance_session import SessionNotCompleted
from rollcall.modules.auth_manager import AuthManager
from rollcall.modules.result_set import ResultSet
from rollcall.modules.roster_loader import RollRange, SelectionMode


@pytest.fixture
def context(db):
    auth = AuthManager(db)
    context = auth.create_session(auth.authenticate_teacher("oop_teacher", "oop123"))
    context.select_class("classB", "CSE-2", SelectionMode.FULL, RollRange(1, 3))
    return context


@pytest.fixture
def manager(db):
    return AttendanceManager(db)


def complete(session, *statuses):
    for status in statuses:
        session.decide(status)


def test_start_session_requires_a_class(manager, db):
    auth = AuthManager(db)
    context = auth.create_session(auth.authenticate_teacher("oop_teacher", "oop123"))

    with pytest.raises(ValueError):
        manager.start_session(context)


def test_start_session_uses_context_selection(manager, context):
    session = manager.start_session(context)

    assert [s.roll_no for s in session.roster] == ["B001", "B002", "B003"]
    assert manager.get_session(context) is session


def test_finalize_saves_attendance(manager, context, db):
    complete(manager.start_session(context), "present", "absent", "present")

    result_set = manager.finalize_session(context, save=True)

    assert manager.get_result_set(context) is result_set
    dates = manager.get_attendance_dates("classB")
    assert len(dates) == 1
    assert db.get(f"attendance/classB/{dates[0]}") == {
        "B001": "present", "B002": "absent", "B003": "present",
    }


def test_finalize_incomplete_session(manager, context):
    manager.start_session(context).decide("present")

    with pytest.raises(SessionNotCompleted):
        manager.finalize_session(context)


def test_finalize_without_session(manager, context):
    with pytest.raises(KeyError):
        manager.finalize_session(context)


def test_restart_drops_results(manager, context):
    complete(manager.start_session(context), "present", "present", "present")
    manager.finalize_session(context, save=False)

    session = manager.restart_session(context)

    assert session.cursor == 0
    assert manager.get_result_set(context) is None


def test_start_session_replaces_previous_results(manager, context):
    complete(manager.start_session(context), "absent", "absent", "absent")
    manager.finalize_session(context, save=False)

    manager.start_session(context)

    assert manager.get_result_set(context) is None


def test_discard_forgets_context(manager, context):
    manager.start_session(context)

    manager.discard(context)

    assert manager.get_session(context) is None


def test_attendance_report_statistics(manager, context):
    complete(manager.start_session(context), "present", "absent", "present")
    result_set = manager.finalize_session(context, save=False)
    manager.save_attendance("classB", result_set, date="2026-03-02")

    report = manager.get_attendance_report("classB", "2026-03-02")

    assert report["success"] is True
    assert report["statistics"] == {
        "total_students": 3, "present": 2, "absent": 1, "percentage": 66.67,
    }


def test_attendance_report_without_data(manager):
    report = manager.get_attendance_report("classA", "2020-01-01")

    assert report["records"] == []
    assert report["statistics"]["percentage"] == 0


def test_attendance_dates_newest_first(manager, context):
    complete(manager.start_session(context), "present", "present", "present")
    result_set = manager.finalize_session(context, save=False)
    for date in ("2026-01-10", "2026-03-01", "2026-02-14"):
        manager.save_attendance("classB", result_set, date=date)

    assert manager.get_attendance_dates("classB") == ["2026-03-01", "2026-02-14", "2026-01-10"]


def test_second_finalize_keeps_edit_mode_corrections(manager, context, db):
    complete(manager.start_session(context), "present", "present", "present")
    result_set = manager.finalize_session(context)
    result_set.set_edit_mode(True)
    result_set.toggle_status("B001", "B001")

    again = manager.finalize_session(context)

    assert again is result_set
    assert again.stats().absent == 1
    date = manager.get_attendance_dates("classB")[0]
    assert db.get(f"attendance/classB/{date}/B001") == "present"


def test_range_sessions_on_one_day_are_merged(manager, context, db):
    for start, end in ((1, 3), (4, 6)):
        context.select_class("classA", "CSE-1", SelectionMode.CUSTOM, RollRange(start, end))
        complete(manager.start_session(context), "present", "absent", "present")
        manager.save_attendance("classA", manager.finalize_session(context, save=False), date="2026-03-02")

    saved = db.get("attendance/classA/2026-03-02")

    assert sorted(saved) == ["001", "002", "003", "004", "005", "006"]
    assert saved["005"] == "absent"


def test_empty_result_set_leaves_saved_day_alone(manager, context, db):
    complete(manager.start_session(context), "present", "absent", "present")
    manager.save_attendance("classB", manager.finalize_session(context, save=False), date="2026-03-02")

    result = manager.save_attendance("classB", ResultSet([]), date="2026-03-02")

    assert result["count"] == 0
    assert len(db.get("attendance/classB/2026-03-02")) == 3
