"""
Share Manager Module - Roll Call Attendance System
Author: Roll Call Team

Builds the "share by email" link for a finished attendance: a Gmail compose
URL prefilled with the recipients, a subject line and a summary body. The
report file itself is downloaded separately and attached by the teacher.
"""

from datetime import datetime
from typing import Dict, List, Any, Optional
from urllib.parse import quote
import logging
import re

from jinja2 import Template

from rollcall.modules.result_set import AttendanceStats


EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

SHARE_BODY_TEMPLATE = """Dear Recipient,

Please find attached the attendance report for {{ teacher_name }} taken on {{ date }} at {{ time }}.

Attendance Summary:
- Total Students: {{ stats.total }}
- Present: {{ stats.present }}
- Absent: {{ stats.absent }}
- Attendance Rate: {{ stats.present_percentage }}%

Note: The attendance report PDF has been downloaded to your computer. Please attach it manually to this email.

Best regards,
{{ teacher_name }}"""


class ShareError(ValueError):
    """Recipient input that cannot be turned into a share link."""


class ShareManager:
    """
    Email share link builder.
    """

    def __init__(self, mail_url: str = 'https://mail.google.com/mail/?view=cm&fs=1'):
        self.mail_url = mail_url
        self.logger = logging.getLogger(__name__)
        self.body_template = Template(SHARE_BODY_TEMPLATE)

    def parse_recipients(self, recipients: str) -> List[str]:
        """
        Split a comma separated recipient list and validate every address.

        Raises:
            ShareError: the list is blank or contains an invalid address
        """
        emails = [email.strip() for email in (recipients or '').split(',') if email.strip()]
        if not emails:
            raise ShareError('Please enter at least one email address')

        invalid = [email for email in emails if not EMAIL_PATTERN.match(email)]
        if invalid:
            raise ShareError(f"Invalid email address: {', '.join(invalid)}")
        return emails

    def build_email_share(self, recipients: str, stats: AttendanceStats,
                          teacher_name: str, taken_at: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Build the compose link for sharing an attendance summary.

        Args:
            recipients (str): Comma separated email addresses
            stats (AttendanceStats): Summary of the shared result set
            teacher_name (str): Named in the subject, body and signature
            taken_at (datetime): When the attendance was taken; now if omitted

        Returns:
            Dict[str, Any]: url, recipients, subject and body
        """
        emails = self.parse_recipients(recipients)
        taken_at = taken_at or datetime.now()
        date = taken_at.strftime('%d/%m/%Y')

        subject = f"Attendance Report - {teacher_name} - {date}"
        body = self.body_template.render(
            teacher_name=teacher_name,
            date=date,
            time=taken_at.strftime('%I:%M:%S %p'),
            stats=stats
        )

        url = (f"{self.mail_url}&to={quote(','.join(emails), safe=',@')}"
               f"&su={quote(subject, safe='')}&body={quote(body, safe='')}")

        self.logger.info(f"Share link built for {len(emails)} recipients by {teacher_name}")
        return {
            'url': url,
            'recipients': emails,
            'subject': subject,
            'body': body
        }
