import uuid
from datetime import datetime
from rollcall import db


def new_document_id():
    """Opaque string id, the way a document store hands them out."""
    return uuid.uuid4().hex


class Member(db.Model):
    """Troupe member."""
    __tablename__ = 'members'

    id = db.Column(db.String(32), primary_key=True, default=new_document_id)
    name = db.Column(db.String(100), nullable=False)
    instrument = db.Column(db.String(100), nullable=False, default='')
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    attendance_records = db.relationship('AttendanceRecord', backref='member', lazy='dynamic')

    def __repr__(self):
        return f'<Member {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'instrument': self.instrument or '',
            'created_at': self.created_at,
        }
