from datetime import timedelta

import pytest


def start_attendance(client, **selection):
    body = {"className": "CSE-2", "selectionMode": "custom", "rollStart": 1, "rollEnd": 3}
    body.update(selection)
    assert client.post("/api/selection", json=body).status_code == 200
    response = client.post("/api/session/start")
    assert response.status_code == 200
    return response.get_json()["session"]


def finish_attendance(client, *statuses):
    for status in statuses:
        assert client.post("/api/session/decide", json={"status": status}).status_code == 200
    response = client.post("/api/session/finalize")
    assert response.status_code == 200
    return response.get_json()


def test_index(client):
    assert client.get("/").get_json()["loggedIn"] is False


def test_routes_require_login(client):
    assert client.get("/api/classes").status_code == 401
    assert client.post("/api/session/start").status_code == 401
    assert client.get("/api/admin/dashboard").status_code == 401


def test_teacher_cannot_use_admin_routes(teacher_client):
    assert teacher_client.get("/api/admin/teachers").status_code == 403


def test_admin_cannot_take_attendance(admin_client):
    assert admin_client.post("/api/session/start").status_code == 403


def test_teacher_login_failure_message(client):
    response = client.post("/api/auth/teacher/login", json={"username": "oop_teacher", "password": "x"})

    assert response.status_code == 401
    assert response.get_json()["message"] == "Invalid username or password"


def test_teacher_login_returns_subjects(client):
    response = client.post("/api/auth/teacher/login", json={"username": "oop_teacher", "password": "oop123"})

    user = response.get_json()["user"]
    assert user["role"] == "teacher"
    assert user["assignedSubjects"][0]["id"] == "oop"


def test_selection_validates_input(teacher_client):
    assert teacher_client.post("/api/selection", json={"className": "CSE-9"}).status_code == 400
    assert teacher_client.post("/api/selection", json={
        "className": "CSE-1", "selectionMode": "custom", "rollStart": 5,
    }).status_code == 400
    assert teacher_client.post("/api/selection", json={
        "className": "CSE-1", "subjectId": "math",
    }).status_code == 403


def test_start_without_selection(teacher_client):
    assert teacher_client.post("/api/session/start").status_code == 400


def test_session_state_without_session(teacher_client):
    assert teacher_client.get("/api/session").status_code == 404
    assert teacher_client.post("/api/session/decide", json={"status": "present"}).status_code == 404


def test_swipe_flow_with_undo(teacher_client):
    session = start_attendance(teacher_client)
    assert session["total"] == 3
    assert session["current"]["rollNo"] == "B001"

    teacher_client.post("/api/session/decide", json={"status": "present"})
    undo = teacher_client.post("/api/session/undo").get_json()
    assert undo["undone"]["rollNo"] == "B001"
    assert undo["session"]["cursor"] == 0

    result = finish_attendance(teacher_client, "absent", "present", "present")
    assert result["stats"] == {"total": 3, "present": 2, "absent": 1, "presentPercentage": 67}


def test_invalid_status_is_400(teacher_client):
    start_attendance(teacher_client)

    response = teacher_client.post("/api/session/decide", json={"status": "late"})

    assert response.status_code == 400
    assert teacher_client.get("/api/session").get_json()["session"]["cursor"] == 0


def test_decide_after_completion_is_409(teacher_client):
    start_attendance(teacher_client, rollEnd=1)
    teacher_client.post("/api/session/decide", json={"status": "present"})

    response = teacher_client.post("/api/session/decide", json={"status": "absent"})

    assert response.status_code == 409


def test_finalize_before_completion_is_409(teacher_client):
    start_attendance(teacher_client)

    assert teacher_client.post("/api/session/finalize").status_code == 409


def test_restart(teacher_client):
    start_attendance(teacher_client)
    teacher_client.post("/api/session/decide", json={"status": "present"})

    session = teacher_client.post("/api/session/restart").get_json()["session"]

    assert session["cursor"] == 0
    assert session["canUndo"] is False


def test_results_search_and_sort(teacher_client):
    start_attendance(teacher_client)
    finish_attendance(teacher_client, "present", "absent", "present")

    response = teacher_client.get("/api/results?sort=rollNo&direction=desc")
    data = response.get_json()
    assert [s["rollNo"] for s in data["students"]] == ["B003", "B002", "B001"]
    assert [s["rollNo"] for s in data["absent"]] == ["B002"]

    searched = teacher_client.get("/api/results?q=advik").get_json()
    assert [s["name"] for s in searched["students"]] == ["Advik Patel"]

    assert teacher_client.get("/api/results?sort=age").status_code == 400


def test_toggle_requires_edit_mode_and_resaves(teacher_client, app):
    start_attendance(teacher_client)
    finish_attendance(teacher_client, "present", "absent", "present")

    body = {"id": "B002", "rollNo": "B002"}
    assert teacher_client.post("/api/results/toggle", json=body).status_code == 409

    assert teacher_client.post("/api/results/edit-mode", json={"enabled": True}).get_json()["editMode"] is True
    response = teacher_client.post("/api/results/toggle", json=body)
    assert response.get_json()["stats"]["present"] == 3

    attendance = app.extensions["rollcall"]["attendance"]
    date = attendance.get_attendance_dates("classB")[0]
    assert app.extensions["rollcall"]["db"].get(f"attendance/classB/{date}/B002") == "present"


def test_results_without_finalize(teacher_client):
    assert teacher_client.get("/api/results").status_code == 404


def test_export_pdf_download(teacher_client):
    start_attendance(teacher_client, subjectId="oop")
    finish_attendance(teacher_client, "present", "absent", "present")

    response = teacher_client.get("/api/results/export?label=Present&format=pdf")

    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert "present_attendance_" in response.headers["Content-Disposition"]
    assert response.data.startswith(b"%PDF")


def test_export_rejects_unknown_format(teacher_client):
    start_attendance(teacher_client)
    finish_attendance(teacher_client, "present", "absent", "present")

    assert teacher_client.get("/api/results/export?format=docx").status_code == 400


def test_share_link(teacher_client):
    start_attendance(teacher_client)
    finish_attendance(teacher_client, "present", "absent", "present")

    missing = teacher_client.post("/api/results/share", json={"recipients": ""})
    assert missing.status_code == 400
    assert missing.get_json()["message"] == "Please enter at least one email address"

    share = teacher_client.post("/api/results/share", json={"recipients": "hod@example.com"}).get_json()
    assert share["url"].startswith("https://mail.google.com/mail/?view=cm&fs=1&to=hod@example.com")
    assert share["subject"].startswith("Attendance Report - OOP Faculty - ")


def test_logout_discards_session(teacher_client):
    start_attendance(teacher_client)

    assert teacher_client.post("/api/auth/logout").status_code == 200
    assert teacher_client.get("/api/session").status_code == 401


def test_admin_dashboard(admin_client):
    data = admin_client.get("/api/admin/dashboard").get_json()

    assert data["stats"] == {"totalStudents": 30, "totalTeachers": 1, "totalSubjects": 1}
    assert data["activeTeachers"] == 1


def test_admin_teacher_management(admin_client):
    created = admin_client.post("/api/admin/teachers", json={
        "username": "math_teacher", "password": "math1234", "name": "Maths Faculty",
    })
    assert created.get_json()["success"] is True

    assert admin_client.post("/api/admin/teachers", json={"username": "m"}).status_code == 400
    assert admin_client.get("/api/admin/teachers/math_teacher").get_json()["teacher"]["name"] == "Maths Faculty"
    assert admin_client.post("/api/admin/teachers/math_teacher/status", json={"active": False}).status_code == 200
    assert admin_client.delete("/api/admin/teachers/math_teacher").status_code == 200
    assert admin_client.get("/api/admin/teachers/math_teacher").status_code == 404


def test_admin_subject_assignment(admin_client):
    created = admin_client.post("/api/admin/subjects", json={"code": "DBMS", "name": "Databases"}).get_json()
    assert created["subject_id"] == "dbms"

    toggled = admin_client.post("/api/admin/subjects/dbms/teachers/AI001").get_json()
    assert toggled["assigned"] is True


def test_admin_student_management(admin_client):
    created = admin_client.post("/api/admin/classes/classC/students", json={"rollNo": "C011", "name": "Charu Nair"})
    assert created.get_json()["serial_no"] == 11

    imported = admin_client.post(
        "/api/admin/classes/classC/students/import",
        data="rollNo,name\nC012,Dev Anand\n",
        content_type="text/csv"
    )
    assert imported.get_json()["created_count"] == 1

    listing = admin_client.get("/api/admin/classes/classC/students").get_json()["students"]
    assert len(listing) == 12

    found = admin_client.get("/api/admin/students/search?q=charu").get_json()["students"]
    assert found[0]["classId"] == "classC"

    assert admin_client.delete("/api/admin/classes/classC/students/C011").status_code == 200


def test_admin_settings(admin_client):
    settings = admin_client.get("/api/admin/settings").get_json()["settings"]
    assert settings["semester"] == "1"

    assert admin_client.put("/api/admin/settings", json={"semester": "5"}).status_code == 400
    updated = admin_client.put("/api/admin/settings", json={"semester": "2"}).get_json()
    assert updated["settings"]["semester"] == "2"


def test_admin_attendance_reports(client):
    client.post("/api/auth/teacher/login", json={"username": "oop_teacher", "password": "oop123"})
    start_attendance(client)
    finish_attendance(client, "present", "absent", "present")
    client.post("/api/auth/logout")
    client.post("/api/auth/admin/login", json={"username": "admin", "password": "admin123"})

    dates = client.get("/api/admin/attendance/classB").get_json()["dates"]
    report = client.get(f"/api/admin/attendance/classB/{dates[0]}").get_json()

    assert report["statistics"]["present"] == 2
    assert client.get("/api/admin/attendance/classB/yesterday").status_code == 400


def test_full_mode_selection_filters_by_serial_range(teacher_client):
    session = start_attendance(
        teacher_client, className=None, classId="classA", selectionMode="full", rollStart=2, rollEnd=3
    )

    assert session["total"] == 2
    assert [s["rollNo"] for s in session["upcoming"]] == ["002", "003"]
    context = teacher_client.get("/api/auth/me").get_json()["context"]
    assert context["rollRange"] == {"start": 2, "end": 3}


def test_full_mode_selection_without_range_takes_whole_class(teacher_client):
    session = start_attendance(teacher_client, selectionMode="full", rollStart=None, rollEnd=None)

    assert session["total"] == 10


def test_second_finalize_keeps_corrections(teacher_client, app):
    start_attendance(teacher_client)
    finish_attendance(teacher_client, "present", "present", "present")
    teacher_client.post("/api/results/edit-mode", json={"enabled": True})
    teacher_client.post("/api/results/toggle", json={"id": "B001", "rollNo": "B001"})

    again = teacher_client.post("/api/session/finalize").get_json()

    assert again["stats"]["absent"] == 1
    attendance = app.extensions["rollcall"]["attendance"]
    date = attendance.get_attendance_dates("classB")[0]
    assert app.extensions["rollcall"]["db"].get(f"attendance/classB/{date}/B001") == "absent"


def test_idle_context_expires_with_its_attendance(teacher_client, app):
    start_attendance(teacher_client)
    auth = app.extensions["rollcall"]["auth"]
    attendance = app.extensions["rollcall"]["attendance"]
    context = next(iter(auth.active_sessions.values()))
    context.last_activity -= app.config["PERMANENT_SESSION_LIFETIME"] + timedelta(minutes=1)

    assert teacher_client.get("/api/session").status_code == 401
    assert auth.active_sessions == {}
    assert attendance.get_session(context) is None
