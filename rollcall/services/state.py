"""
Live attendance state for the running app.

The store pushes the member list and the trailing attendance window in here
through two subscriptions. Summaries and reports are derived on demand from
whatever snapshot is current; a write only shows up once the subscription
delivers the updated snapshot.

Readiness is tracked separately for auth, members and attendance so a slow or
failing source never holds up the others.
"""

import logging
import threading
import time
from datetime import date, timedelta
from flask import current_app

from rollcall.models.attendance import AttendanceStatus
from rollcall.services import aggregator

logger = logging.getLogger(__name__)


class Readiness:
    """Independent ready flags, one per data source."""

    SOURCES = ('auth', 'members', 'attendance')

    def __init__(self):
        self._ready = dict.fromkeys(self.SOURCES, False)

    def mark(self, source):
        if source not in self._ready:
            raise ValueError(f'Unknown source: {source}')
        self._ready[source] = True

    def is_ready(self, source) -> bool:
        return self._ready[source]

    def as_dict(self) -> dict:
        return dict(self._ready)


class AttendanceState:
    """Snapshot of members and recent attendance, kept current by the store."""

    def __init__(self, snapshot_days: int = 30):
        self.snapshot_days = snapshot_days
        self.members = []
        self.attendance = {}
        self.readiness = Readiness()
        self.started = False
        self._records = []
        self._unsubscribers = []
        self._last_push = None
        self._start_lock = threading.Lock()

    # ---- subscriptions ----

    def start(self, store, identity=None):
        """Subscribe to the store (and identity provider, if given). Later calls are no-ops."""
        with self._start_lock:
            if self.started:
                return
            self.started = True
            if identity is not None:
                self._unsubscribers.append(identity.on_auth_change(self._on_auth_change))
            else:
                self.readiness.mark('auth')
            # id breaks created_at ties within a bulk import
            self._unsubscribers.append(store.subscribe(
                'members',
                self._on_members,
                order_by=('-created_at', 'id'),
                on_error=lambda e: self._on_error('members', e),
            ))
            self._unsubscribers.append(store.subscribe(
                'attendance',
                self._on_attendance,
                where=[('date', '>=', self.window_start)],
                on_error=lambda e: self._on_error('attendance', e),
            ))

    def stop(self):
        with self._start_lock:
            for unsubscribe in self._unsubscribers:
                unsubscribe()
            self._unsubscribers = []
            self.started = False

    def resync_if_stale(self, store, max_age_seconds):
        """Re-pull snapshots when the last push is older than ``max_age_seconds``."""
        if self._last_push is None or time.monotonic() - self._last_push >= max_age_seconds:
            store.refresh()

    def window_start(self) -> str:
        """Oldest date (ISO) loaded into the snapshot."""
        return (aggregator.utc_today() - timedelta(days=self.snapshot_days)).isoformat()

    def _on_auth_change(self, user):
        self.readiness.mark('auth')
        logger.info("Auth state changed: %s", user['email'] if user else 'signed out')

    def _on_members(self, documents):
        self.members = documents
        self._rebuild()
        self.readiness.mark('members')

    def _on_attendance(self, documents):
        self._records = documents
        self._rebuild()
        self.readiness.mark('attendance')

    def _on_error(self, source, error):
        logger.error("Error fetching %s: %s", source, error)
        self.readiness.mark(source)

    def _rebuild(self):
        attendance = {member['id']: {} for member in self.members}
        for record in self._records:
            if record['member_id'] not in attendance:
                continue
            status = AttendanceStatus.parse(record['status'])
            if status is not None:
                attendance[record['member_id']][record['date']] = status.value
        self.attendance = attendance
        self._last_push = time.monotonic()

    # ---- lookups ----

    def member(self, member_id):
        for member in self.members:
            if member['id'] == member_id:
                return member
        return None

    def records_for(self, member_id) -> dict:
        return self.attendance.get(member_id, {})

    def status_of(self, member_id, day: date):
        return aggregator.status_on(self.attendance, member_id, day)

    def statuses_on(self, day: date) -> dict:
        """Recorded statuses for a day, keyed by member id (unrecorded members omitted)."""
        statuses = {}
        for member in self.members:
            status = self.status_of(member['id'], day)
            if status is not None:
                statuses[member['id']] = status.value
        return statuses

    # ---- derived views ----

    def today_summary(self, today: date = None) -> dict:
        return aggregator.today_summary(self.members, self.attendance, today)

    def weekly_summary(self, today: date = None) -> list:
        return aggregator.weekly_summary(self.members, self.attendance, today)

    def csv_report(self, days: int, today: date = None) -> str:
        return aggregator.generate_csv_report(self.members, self.attendance, days, today)


def init_state(app, store, identity=None):
    """Attach the state container and sync it at the start of each request."""
    state = AttendanceState(snapshot_days=app.config.get('SNAPSHOT_DAYS', 30))
    app.extensions['rollcall_state'] = state

    @app.before_request
    def sync_attendance_state():
        if not state.started:
            state.start(store, identity)
        else:
            state.resync_if_stale(store, app.config.get('SNAPSHOT_REFRESH_SECONDS', 30))

    return state


def get_state():
    """Get the state container bound to the current app."""
    return current_app.extensions['rollcall_state']
