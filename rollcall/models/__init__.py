# Import all models here so they're registered with SQLAlchemy
from rollcall.models.member import Member
from rollcall.models.attendance import AttendanceRecord, AttendanceStatus

__all__ = ['Member', 'AttendanceRecord', 'AttendanceStatus']
