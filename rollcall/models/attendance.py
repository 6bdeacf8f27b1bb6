from datetime import datetime
from enum import Enum
from rollcall import db
from rollcall.models.member import new_document_id


class AttendanceStatus(str, Enum):
    """Stored attendance states. A missing record reads as ABSENT."""

    PRESENT = 'present'
    ABSENT = 'absent'
    HALF_DAY = 'halfday'

    @classmethod
    def parse(cls, value):
        """Normalise a stored or submitted value; returns None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        # Older records used 'leave' for what is now a half day
        if value == 'leave':
            return cls.HALF_DAY
        try:
            return cls(value)
        except ValueError:
            return None


class AttendanceRecord(db.Model):
    """One member's status on one calendar day."""
    __tablename__ = 'attendance'

    id = db.Column(db.String(32), primary_key=True, default=new_document_id)
    member_id = db.Column(db.String(32), db.ForeignKey('members.id'), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    status = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Unique constraint: one attendance record per member per day
    __table_args__ = (
        db.UniqueConstraint('member_id', 'date', name='unique_member_date'),
    )

    def __repr__(self):
        return f'<AttendanceRecord member={self.member_id} date={self.date} status={self.status}>'

    def to_dict(self):
        return {
            'id': self.id,
            'member_id': self.member_id,
            'date': self.date,
            'status': self.status,
        }
