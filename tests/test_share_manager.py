from datetime import datetime
from urllib.parse import parse_qs, urlparse

import pytest

from rollcall.modules.result_set import AttendanceStats
from rollcall.modules.share_manager import ShareError, ShareManager

STATS = AttendanceStats(total=40, present=36, absent=4, present_percentage=90)
TAKEN_AT = datetime(2026, 3, 2, 9, 5, 0)


def test_blank_recipients_are_rejected():
    with pytest.raises(ShareError) as excinfo:
        ShareManager().build_email_share(" , ", STATS, "OOP Faculty")

    assert str(excinfo.value) == "Please enter at least one email address"


def test_invalid_recipient_is_rejected():
    with pytest.raises(ShareError):
        ShareManager().build_email_share("hod@example.com, not-an-email", STATS, "OOP Faculty")


def test_share_link_prefills_gmail_compose():
    share = ShareManager().build_email_share(
        "hod@example.com, office@example.com", STATS, "OOP Faculty", taken_at=TAKEN_AT
    )

    url = urlparse(share["url"])
    query = parse_qs(url.query)
    assert url.netloc == "mail.google.com"
    assert query["view"] == ["cm"]
    assert query["to"] == ["hod@example.com,office@example.com"]
    assert query["su"] == ["Attendance Report - OOP Faculty - 02/03/2026"]
    assert query["body"] == [share["body"]]


def test_share_body_summarizes_stats():
    body = ShareManager().build_email_share(
        "hod@example.com", STATS, "OOP Faculty", taken_at=TAKEN_AT
    )["body"]

    assert "taken on 02/03/2026 at 09:05:00 AM" in body
    assert "- Total Students: 40" in body
    assert "- Attendance Rate: 90%" in body
    assert "attach it manually" in body
    assert body.rstrip().endswith("OOP Faculty")


def test_recipient_list_is_url_encoded():
    share = ShareManager().build_email_share(
        "a+b@example.com, hod@example.com", STATS, "OOP Faculty", taken_at=TAKEN_AT
    )

    assert "to=a%2Bb@example.com,hod@example.com&su=" in share["url"]
    assert parse_qs(urlparse(share["url"]).query)["to"] == ["a+b@example.com,hod@example.com"]
