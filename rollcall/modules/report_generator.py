"""
Report Generator Module - Roll Call Attendance System
Author: Roll Call Team

This module turns a finalized result set into a downloadable attendance
document. Each export covers one partition of the result set (present
students, absent students, or the complete list) and carries a summary
computed over the exported students only.

Features:
- PDF attendance lists with institution header and page numbering
- Excel workbooks with student and summary sheets
- CSV export
- Optional copy of every export in the reports folder
"""

import pandas as pd
import io
import os
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Any, Optional, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from rollcall.modules.result_set import ResultSet, compute_stats
from rollcall.modules.roster_loader import Student, StudentStatus


class ReportLabel(Enum):
    PRESENT = 'Present'
    ABSENT = 'Absent'
    COMPLETE = 'Complete'


FILE_EXTENSIONS = {
    'pdf': 'pdf',
    'excel': 'xlsx',
    'csv': 'csv',
}

MIME_TYPES = {
    'pdf': 'application/pdf',
    'excel': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'csv': 'text/csv',
}


def coerce_label(label: Union[ReportLabel, str]) -> ReportLabel:
    if isinstance(label, ReportLabel):
        return label
    try:
        return ReportLabel(str(label).strip().capitalize())
    except ValueError:
        raise ValueError(f"Unknown report label: {label!r}")


def status_letter(student: Student) -> str:
    return 'P' if student.status is StudentStatus.PRESENT else 'A'


class NumberedCanvas(canvas.Canvas):
    """Canvas that stamps "Page n of m" and the generation time on every page."""

    def __init__(self, *args, generated_at: str = '', **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []
        self._generated_at = generated_at

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, page_count: int):
        width, _ = self._pagesize
        self.setFont('Helvetica', 8)
        self.setFillColor(colors.grey)
        self.drawString(0.75 * inch, 0.5 * inch, f"Generated on {self._generated_at}")
        self.drawRightString(width - 0.75 * inch, 0.5 * inch,
                             f"Page {self._pageNumber} of {page_count}")


class ReportGenerator:
    """
    Attendance document export for result sets.
    """

    def __init__(self, output_dir: Optional[str] = None,
                 institution_name: str = '', department_name: str = ''):
        """
        Initialize the report generator.

        Args:
            output_dir (str): Folder that keeps a copy of every export; None to skip
            institution_name (str): First header line of PDF exports
            department_name (str): Second header line of PDF exports
        """
        self.logger = logging.getLogger(__name__)
        self.output_dir = output_dir
        self.institution_name = institution_name
        self.department_name = department_name
        self.supported_formats = list(FILE_EXTENSIONS)

        if self.output_dir:
            os.makedirs(self.output_dir, exist_ok=True)

    def select_students(self, result_set: ResultSet,
                        label: Union[ReportLabel, str]) -> List[Student]:
        """The partition of the result set a label exports."""
        label = coerce_label(label)
        if label is ReportLabel.PRESENT:
            return result_set.present()
        if label is ReportLabel.ABSENT:
            return result_set.absent()
        return result_set.students

    @staticmethod
    def build_filename(label: Union[ReportLabel, str], output_format: str,
                       generated_at: datetime) -> str:
        label = coerce_label(label)
        return (f"{label.value.lower()}_attendance_"
                f"{generated_at.strftime('%Y%m%d_%H%M%S')}.{FILE_EXTENSIONS[output_format]}")

    def generate(self, result_set: ResultSet, label: Union[ReportLabel, str],
                 output_format: str = 'pdf', subject_name: Optional[str] = None,
                 teacher_name: Optional[str] = None,
                 generated_at: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Export one partition of a result set.

        Args:
            result_set (ResultSet): Finalized attendance
            label: Present, Absent or Complete
            output_format (str): pdf, excel or csv
            subject_name (str): Shown in the document header
            teacher_name (str): Shown in the document header
            generated_at (datetime): Timestamp for the file name and header

        Returns:
            Dict[str, Any]: success, filename, document bytes, format, mimetype and size
        """
        try:
            label = coerce_label(label)
            if output_format not in self.supported_formats:
                return {
                    'success': False,
                    'error': f'Unsupported format: {output_format}'
                }

            generated_at = generated_at or datetime.now()
            students = self.select_students(result_set, label)
            filename = self.build_filename(label, output_format, generated_at)

            if output_format == 'pdf':
                document = self._generate_pdf(students, label, subject_name, teacher_name, generated_at)
            elif output_format == 'excel':
                document = self._generate_excel(students, label, subject_name, teacher_name, generated_at)
            else:
                document = self._generate_csv(students)

            filepath = None
            if self.output_dir:
                filepath = os.path.join(self.output_dir, filename)
                with open(filepath, 'wb') as f:
                    f.write(document)

            self.logger.info(f"Generated {output_format} report {filename} with {len(students)} students")
            return {
                'success': True,
                'filename': filename,
                'filepath': filepath,
                'document': document,
                'format': output_format,
                'mimetype': MIME_TYPES[output_format],
                'size': len(document)
            }

        except Exception as e:
            self.logger.error(f"Report generation failed: {str(e)}")
            return {
                'success': False,
                'error': str(e)
            }

    def _rows(self, students: List[Student]) -> List[Dict[str, Any]]:
        return [
            {
                'Sr. No.': index,
                'Roll No.': student.roll_number if student.roll_number is not None else student.roll_no,
                'Name': student.name,
                'Status': status_letter(student)
            }
            for index, student in enumerate(students, start=1)
        ]

    def _summary(self, students: List[Student]) -> Dict[str, Any]:
        stats = compute_stats(students)
        return {
            'Total Students': stats.total,
            'Present': stats.present,
            'Absent': stats.absent,
            'Attendance %': stats.present_percentage
        }

    def _generate_pdf(self, students: List[Student], label: ReportLabel,
                      subject_name: Optional[str], teacher_name: Optional[str],
                      generated_at: datetime) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=A4,
            topMargin=0.75 * inch, bottomMargin=0.9 * inch,
            title=f"{label.value} Students List"
        )
        elements = []
        styles = getSampleStyleSheet()

        header_style = ParagraphStyle(
            'InstitutionHeader',
            parent=styles['Heading1'],
            fontSize=16,
            spaceAfter=4,
            alignment=1  # Center alignment
        )
        subheader_style = ParagraphStyle(
            'DepartmentHeader',
            parent=styles['Heading3'],
            spaceAfter=12,
            alignment=1
        )
        title_style = ParagraphStyle(
            'ListTitle',
            parent=styles['Heading2'],
            spaceAfter=12,
            alignment=1
        )

        if self.institution_name:
            elements.append(Paragraph(self.institution_name, header_style))
        if self.department_name:
            elements.append(Paragraph(self.department_name, subheader_style))
        elements.append(Paragraph(f"{label.value.upper()} STUDENTS LIST", title_style))

        info_data = []
        if subject_name:
            info_data.append(['Subject:', subject_name])
        if teacher_name:
            info_data.append(['Teacher:', teacher_name])
        info_data.append(['Date:', generated_at.strftime('%d/%m/%Y')])
        info_data.append(['Time:', generated_at.strftime('%I:%M %p')])

        info_table = Table(info_data, hAlign='LEFT')
        info_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        elements.append(info_table)
        elements.append(Spacer(1, 12))

        stats = compute_stats(students)
        summary_line = (
            f"Total Students: {stats.total} | Present: {stats.present} | "
            f"Absent: {stats.absent} | Attendance: {stats.present_percentage}%"
        )
        elements.append(Paragraph(summary_line, styles['Normal']))
        elements.append(Spacer(1, 16))

        table_data = [['Sr. No.', 'Roll No.', 'Name', 'Status']]
        for row in self._rows(students):
            table_data.append([str(row['Sr. No.']), str(row['Roll No.']), row['Name'], row['Status']])

        data_table = Table(
            table_data,
            colWidths=[0.8 * inch, 1.0 * inch, 3.8 * inch, 0.8 * inch],
            repeatRows=1
        )
        data_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('ALIGN', (0, 0), (1, -1), 'CENTER'),
            ('ALIGN', (3, 0), (3, -1), 'CENTER'),
            ('ALIGN', (2, 1), (2, -1), 'LEFT'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black)
        ]))
        elements.append(data_table)

        timestamp = generated_at.strftime('%d/%m/%Y %I:%M %p')
        doc.build(
            elements,
            canvasmaker=lambda *args, **kwargs: NumberedCanvas(*args, generated_at=timestamp, **kwargs)
        )
        return buffer.getvalue()

    def _generate_excel(self, students: List[Student], label: ReportLabel,
                        subject_name: Optional[str], teacher_name: Optional[str],
                        generated_at: datetime) -> bytes:
        buffer = io.BytesIO()
        df_students = pd.DataFrame(self._rows(students), columns=['Sr. No.', 'Roll No.', 'Name', 'Status'])

        summary_rows = [
            {'Field': 'Institution', 'Value': self.institution_name},
            {'Field': 'Department', 'Value': self.department_name},
            {'Field': 'List', 'Value': f"{label.value} Students"},
            {'Field': 'Subject', 'Value': subject_name or ''},
            {'Field': 'Teacher', 'Value': teacher_name or ''},
            {'Field': 'Generated On', 'Value': generated_at.strftime('%Y-%m-%d %H:%M:%S')},
        ]
        summary_rows.extend({'Field': k, 'Value': v} for k, v in self._summary(students).items())
        df_summary = pd.DataFrame(summary_rows)

        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df_students.to_excel(writer, sheet_name='Students', index=False)
            df_summary.to_excel(writer, sheet_name='Summary', index=False)

        return buffer.getvalue()

    def _generate_csv(self, students: List[Student]) -> bytes:
        df = pd.DataFrame(self._rows(students), columns=['Sr. No.', 'Roll No.', 'Name', 'Status'])
        return df.to_csv(index=False).encode('utf-8')

    def delete_old_reports(self, days_old: int = 30) -> Dict[str, Any]:
        """
        Remove saved exports older than ``days_old`` days.

        Returns:
            Dict[str, Any]: Cleanup result
        """
        if not self.output_dir:
            return {'success': True, 'deleted_count': 0}

        try:
            cutoff = datetime.now().timestamp() - days_old * 86400
            deleted_count = 0

            for filename in os.listdir(self.output_dir):
                filepath = os.path.join(self.output_dir, filename)
                if os.path.isfile(filepath) and os.path.getmtime(filepath) < cutoff:
                    os.remove(filepath)
                    deleted_count += 1

            self.logger.info(f"Deleted {deleted_count} old reports")
            return {'success': True, 'deleted_count': deleted_count}

        except Exception as e:
            self.logger.error(f"Failed to delete old reports: {str(e)}")
            return {'success': False, 'error': str(e)}
