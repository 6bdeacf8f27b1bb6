"""
Attendance summaries and CSV reports.

Everything here is a pure function of the member list and the attendance
snapshot, recomputed on every call:
- members: sequence of member documents ({id, name, instrument, created_at})
- attendance: {member_id: {'YYYY-MM-DD': status}}

A (member, date) pair with no record counts as absent.
"""

import csv
import io
from datetime import date, datetime, timedelta

from rollcall.models.attendance import AttendanceStatus


STATUS_CODES = {
    AttendanceStatus.PRESENT: 'P',
    AttendanceStatus.ABSENT: 'A',
    AttendanceStatus.HALF_DAY: 'H',
}

ROLLING_DAYS = 30


def utc_today() -> date:
    return datetime.utcnow().date()


def trailing_dates(days: int, today: date = None) -> list:
    """The last ``days`` calendar dates ending with today, oldest first."""
    today = today or utc_today()
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def status_on(attendance: dict, member_id, day: date):
    """Recorded status for a member on a day, or None if nothing is stored."""
    return AttendanceStatus.parse(attendance.get(member_id, {}).get(day.isoformat()))


def member_since(member: dict):
    """Calendar date the member was created, or None if unknown."""
    created_at = member.get('created_at')
    if isinstance(created_at, datetime):
        return created_at.date()
    if isinstance(created_at, date):
        return created_at
    if isinstance(created_at, str) and created_at:
        return datetime.fromisoformat(created_at.replace('Z', '+00:00')).date()
    return None


def _count_day(members, attendance, day):
    present = 0
    half_day = 0
    for member in members:
        status = status_on(attendance, member['id'], day)
        if status == AttendanceStatus.PRESENT:
            present += 1
        elif status == AttendanceStatus.HALF_DAY:
            half_day += 1
    return present, half_day


def today_summary(members, attendance, today: date = None) -> dict:
    """Counts for today. absent is always total minus the other two."""
    today = today or utc_today()
    total = len(members)
    present, half_day = _count_day(members, attendance, today)
    return {
        'present': present,
        'absent': total - present - half_day,
        'half_day': half_day,
        'total': total,
    }


def weekly_summary(members, attendance, today: date = None) -> list:
    """One entry per day for the trailing 7 days, oldest first."""
    summary = []
    for day in trailing_dates(7, today):
        present, half_day = _count_day(members, attendance, day)
        summary.append({
            'label': day.strftime('%a'),
            'date': day.isoformat(),
            'present': present,
            'absent': len(members) - present - half_day,
            'half_day': half_day,
        })
    return summary


def _eligible_days(member, today, days):
    """Trailing days newest first, skipping those before the member existed."""
    since = member_since(member)
    today = today or utc_today()
    for offset in range(days):
        day = today - timedelta(days=offset)
        if since and day < since:
            continue
        yield day


def member_summary(member: dict, records: dict, today: date = None, days: int = ROLLING_DAYS) -> dict:
    """Rolling per-member counts.

    ``records`` is that member's {date: status} map. Days with no record count
    as absent once the member existed.
    """
    present = 0
    half_day = 0
    days_considered = 0
    for day in _eligible_days(member, today, days):
        days_considered += 1
        status = AttendanceStatus.parse(records.get(day.isoformat()))
        if status == AttendanceStatus.PRESENT:
            present += 1
        elif status == AttendanceStatus.HALF_DAY:
            half_day += 1
    return {
        'present': present,
        'absent': days_considered - present - half_day,
        'half_day': half_day,
        'days_considered': days_considered,
    }


def member_history(member: dict, records: dict, today: date = None, days: int = ROLLING_DAYS) -> list:
    """Day-by-day statuses for the member, newest first."""
    history = []
    for day in _eligible_days(member, today, days):
        status = AttendanceStatus.parse(records.get(day.isoformat())) or AttendanceStatus.ABSENT
        history.append({'date': day.isoformat(), 'status': status.value})
    return history


def summary_text(history: list, summary: dict) -> str:
    """Plain-text summary handed to the remark generator."""
    return (
        f"Total days tracked: {len(history)}. "
        f"Present: {summary['present']}, Absent: {summary['absent']}, Half Day: {summary['half_day']}."
    )


def generate_csv_report(members, attendance, days: int, today: date = None) -> str:
    """Attendance grid: one row per member, one P/A/H column per date.

    Members keep the order given; dates run oldest to newest. Every field is
    quoted and rows are joined with newlines (no trailing newline).
    """
    dates = [day.isoformat() for day in trailing_dates(days, today)]

    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(['Member Name', 'Instrument'] + dates)

    for member in members:
        records = attendance.get(member['id'], {})
        row = [member.get('name', ''), member.get('instrument') or '']
        for day in dates:
            status = AttendanceStatus.parse(records.get(day)) or AttendanceStatus.ABSENT
            row.append(STATUS_CODES[status])
        writer.writerow(row)

    return output.getvalue().rstrip('\n')


def report_filename(days: int, today: date = None) -> str:
    today = today or utc_today()
    kind = 'weekly' if days == 7 else 'monthly'
    return f'{kind}-attendance-report-{today.isoformat()}.csv'


def search_members(members, term: str = '') -> list:
    """Members sorted by name, filtered on name or instrument (case-insensitive)."""
    term = (term or '').strip().lower()
    ordered = sorted(members, key=lambda m: (m.get('name') or '').lower())
    if not term:
        return ordered
    return [
        m for m in ordered
        if term in (m.get('name') or '').lower() or term in (m.get('instrument') or '').lower()
    ]
