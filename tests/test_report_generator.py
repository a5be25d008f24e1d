import io
from datetime import datetime

import pandas as pd
import pytest

from rollcall.modules.report_generator import ReportGenerator, ReportLabel
from rollcall.modules.result_set import ResultSet
from rollcall.modules.roster_loader import Student, StudentStatus

GENERATED_AT = datetime(2026, 3, 2, 9, 15, 30)


@pytest.fixture
def result_set():
    return ResultSet([
        Student(id="1", roll_no="001", name="Asha", status=StudentStatus.PRESENT),
        Student(id="2", roll_no="002", name="Bilal", status=StudentStatus.ABSENT),
        Student(id="3", roll_no="003", name="Chen", status=StudentStatus.PRESENT),
    ])


@pytest.fixture
def generator(tmp_path):
    return ReportGenerator(str(tmp_path / "reports"), "DESPU UNIVERSITY", "SCHOOL OF ENGINEERING")


def test_filename_follows_label_and_timestamp():
    assert ReportGenerator.build_filename("Present", "pdf", GENERATED_AT) == "present_attendance_20260302_091530.pdf"
    assert ReportGenerator.build_filename(ReportLabel.COMPLETE, "excel", GENERATED_AT).endswith(".xlsx")


def test_labels_select_partitions(generator, result_set):
    assert [s.id for s in generator.select_students(result_set, "Present")] == ["1", "3"]
    assert [s.id for s in generator.select_students(result_set, "absent")] == ["2"]
    assert len(generator.select_students(result_set, ReportLabel.COMPLETE)) == 3


def test_unknown_label_fails(generator, result_set):
    result = generator.generate(result_set, "Late", generated_at=GENERATED_AT)

    assert result["success"] is False


def test_unsupported_format_fails(generator, result_set):
    result = generator.generate(result_set, "Complete", output_format="docx")

    assert result["success"] is False
    assert "docx" in result["error"]


def test_pdf_export(generator, result_set, tmp_path):
    result = generator.generate(
        result_set, "Complete", "pdf",
        subject_name="Object Oriented Programming", teacher_name="OOP Faculty",
        generated_at=GENERATED_AT
    )

    assert result["success"] is True
    assert result["document"].startswith(b"%PDF")
    assert result["size"] == len(result["document"])
    assert (tmp_path / "reports" / result["filename"]).read_bytes() == result["document"]


def test_csv_export_contains_only_the_partition(generator, result_set):
    result = generator.generate(result_set, "Absent", "csv", generated_at=GENERATED_AT)

    frame = pd.read_csv(io.BytesIO(result["document"]))
    assert list(frame.columns) == ["Sr. No.", "Roll No.", "Name", "Status"]
    assert frame.to_dict("records") == [{"Sr. No.": 1, "Roll No.": 2, "Name": "Bilal", "Status": "A"}]


def test_excel_export_has_summary_over_exported_students(generator, result_set):
    result = generator.generate(result_set, "Present", "excel", generated_at=GENERATED_AT)

    sheets = pd.read_excel(io.BytesIO(result["document"]), sheet_name=None)
    assert set(sheets) == {"Students", "Summary"}
    assert sheets["Students"]["Status"].tolist() == ["P", "P"]

    summary = dict(zip(sheets["Summary"]["Field"], sheets["Summary"]["Value"]))
    assert str(summary["Total Students"]) == "2"
    assert str(summary["Absent"]) == "0"
    assert str(summary["Attendance %"]) == "100"


def test_export_does_not_change_result_set(generator, result_set):
    generator.generate(result_set, "Present", "csv")

    assert [s.status for s in result_set] == [
        StudentStatus.PRESENT, StudentStatus.ABSENT, StudentStatus.PRESENT,
    ]


def test_empty_partition_still_exports(generator):
    result_set = ResultSet([Student(id="1", roll_no="1", name="A", status=StudentStatus.PRESENT)])

    result = generator.generate(result_set, "Absent", "pdf")

    assert result["success"] is True


def test_generator_without_output_dir_keeps_nothing(result_set):
    result = ReportGenerator().generate(result_set, "Complete", "csv")

    assert result["success"] is True
    assert result["filepath"] is None
