# Business logic services
from rollcall.services.remark_service import remark_service
from rollcall.services.store import get_store
from rollcall.services.identity import get_identity
from rollcall.services.state import get_state

__all__ = [
    'remark_service',
    'get_store',
    'get_identity',
    'get_state',
]
