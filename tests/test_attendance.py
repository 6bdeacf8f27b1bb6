from datetime import timedelta

import pytest

from rollcall.exceptions import NotFoundError, ValidationError
from rollcall.models import AttendanceStatus
from rollcall.services import attendance
from rollcall.services.aggregator import utc_today
from rollcall.services.store import WriteBatch


@pytest.fixture
def members(store, state):
    return [
        store.add('members', {'name': 'Asha', 'instrument': 'Dhol'}),
        store.add('members', {'name': 'Ravi', 'instrument': 'Tasha'}),
        store.add('members', {'name': 'Meera', 'instrument': 'Zanj'}),
    ]


@pytest.fixture
def commits(monkeypatch):
    """Count batch commits."""
    calls = []
    original = WriteBatch.commit

    def counting_commit(self):
        calls.append(len(self))
        return original(self)

    monkeypatch.setattr(WriteBatch, 'commit', counting_commit)
    return calls


def test_mark_inserts_then_updates(store, state, members):
    today = utc_today()

    attendance.mark_attendance_for_date({members[0]: 'present'}, today)
    attendance.mark_attendance_for_date({members[0]: 'halfday'}, today)

    records = store.query('attendance', where=[('member_id', '==', members[0])])
    assert len(records) == 1
    assert records[0]['status'] == 'halfday'
    assert state.status_of(members[0], today) == AttendanceStatus.HALF_DAY


def test_mark_many_members_is_one_batch(store, state, members, commits):
    saved = attendance.mark_attendance_for_date(
        {members[0]: 'present', members[1]: 'absent', members[2]: 'halfday'},
        utc_today().isoformat(),
    )

    assert saved == 3
    assert commits == [3]
    assert state.today_summary() == {'present': 1, 'absent': 1, 'half_day': 1, 'total': 3}


def test_mark_rejects_bad_status_before_writing(store, state, members, commits):
    with pytest.raises(ValidationError):
        attendance.mark_attendance_for_date({members[0]: 'present', members[1]: 'late'})

    assert commits == []
    assert store.query('attendance') == []


def test_mark_rejects_unknown_member(members):
    with pytest.raises(NotFoundError):
        attendance.mark_attendance_for_date({'missing': 'present'})


def test_mark_rejects_dates_outside_window(members):
    with pytest.raises(ValidationError):
        attendance.mark_attendance_for_date({members[0]: 'present'}, utc_today() + timedelta(days=1))
    with pytest.raises(ValidationError):
        attendance.mark_attendance_for_date({members[0]: 'present'}, utc_today() - timedelta(days=31))
    with pytest.raises(ValidationError):
        attendance.mark_attendance_for_date({members[0]: 'present'}, 'yesterday')


def test_empty_statuses_write_nothing(members, commits):
    assert attendance.mark_attendance_for_date({}) == 0
    assert commits == []


def test_toggle_present_flips_between_present_and_absent(state, members):
    assert attendance.toggle_present(members[0]) == AttendanceStatus.PRESENT
    assert attendance.toggle_present(members[0]) == AttendanceStatus.ABSENT
    assert attendance.toggle_present(members[0]) == AttendanceStatus.PRESENT
    assert state.status_of(members[0], utc_today()) == AttendanceStatus.PRESENT


def test_toggle_from_half_day_marks_present(state, members):
    attendance.mark_half_day(members[0])

    assert attendance.toggle_present(members[0]) == AttendanceStatus.PRESENT


def test_half_day_twice_skips_second_write(members, commits):
    assert attendance.mark_half_day(members[0]) is True
    assert attendance.mark_half_day(members[0]) is False
    assert commits == [1]


def test_mark_all_present_only_writes_pending_members(state, members, commits):
    attendance.mark_attendance_for_date({members[1]: 'present'})

    assert attendance.mark_all_present() == 2
    assert commits == [1, 2]
    assert state.today_summary()['present'] == 3

    assert attendance.mark_all_present() == 0
    assert commits == [1, 2]
