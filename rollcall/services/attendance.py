"""
Attendance write path.

Every write is an upsert keyed by (member_id, date): an existing record gets
its status overwritten, otherwise a new one is inserted. All writes from one
action go through a single store batch, so they land together or not at all.
"""

from datetime import date, timedelta
from flask import current_app

from rollcall.exceptions import NotFoundError, ValidationError
from rollcall.models.attendance import AttendanceStatus
from rollcall.services.aggregator import utc_today
from rollcall.services.state import get_state
from rollcall.services.store import get_store


def parse_day(value=None) -> date:
    """Accept a date, an ISO string or None (today)."""
    if value is None or value == '':
        return utc_today()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f'Invalid date: {value} (use YYYY-MM-DD)')


def _check_editable(day: date):
    today = utc_today()
    oldest = today - timedelta(days=current_app.config.get('SNAPSHOT_DAYS', 30))
    if day > today:
        raise ValidationError('Attendance cannot be marked for a future date.')
    if day < oldest:
        raise ValidationError(f'Attendance before {oldest.isoformat()} cannot be edited.')


def _clean_statuses(statuses) -> dict:
    if not isinstance(statuses, dict):
        raise ValidationError('Statuses must map member ids to a status.')
    cleaned = {}
    for member_id, value in statuses.items():
        status = AttendanceStatus.parse(value)
        if status is None:
            raise ValidationError(f'Invalid status for member {member_id}: {value}')
        cleaned[str(member_id)] = status
    return cleaned


def mark_attendance_for_date(statuses: dict, day=None) -> int:
    """
    Upsert a status for each member on one day, as a single batch.

    Args:
        statuses: {member_id: status}
        day: date or ISO string; defaults to today

    Returns:
        Number of records written
    """
    day = parse_day(day)
    _check_editable(day)
    cleaned = _clean_statuses(statuses)
    if not cleaned:
        return 0

    store = get_store()
    day_str = day.isoformat()

    for member_id in cleaned:
        if store.get('members', member_id) is None:
            raise NotFoundError(f'Member not found: {member_id}')

    with store.batch() as batch:
        for member_id, status in cleaned.items():
            existing = store.query('attendance', where=[
                ('member_id', '==', member_id),
                ('date', '==', day_str),
            ])
            if existing:
                batch.update('attendance', existing[0]['id'], {'status': status.value})
            else:
                batch.set('attendance', {
                    'member_id': member_id,
                    'date': day_str,
                    'status': status.value,
                })

    current_app.logger.info(f"Attendance saved for {len(cleaned)} member(s) on {day_str}")
    return len(cleaned)


def toggle_present(member_id: str, day=None) -> AttendanceStatus:
    """Present flips to absent; anything else (including no record) becomes present."""
    day = parse_day(day)
    current = get_state().status_of(member_id, day)
    new_status = AttendanceStatus.ABSENT if current == AttendanceStatus.PRESENT else AttendanceStatus.PRESENT
    mark_attendance_for_date({member_id: new_status}, day)
    return new_status


def mark_half_day(member_id: str, day=None) -> bool:
    """Mark a half day. Returns False without writing if already a half day."""
    day = parse_day(day)
    if get_state().status_of(member_id, day) == AttendanceStatus.HALF_DAY:
        return False
    mark_attendance_for_date({member_id: AttendanceStatus.HALF_DAY}, day)
    return True


def mark_all_present(day=None) -> int:
    """Mark every member not already present as present, in one batch."""
    day = parse_day(day)
    state = get_state()
    pending = {
        member['id']: AttendanceStatus.PRESENT
        for member in state.members
        if state.status_of(member['id'], day) != AttendanceStatus.PRESENT
    }
    if not pending:
        return 0
    return mark_attendance_for_date(pending, day)
