"""
API routes for AJAX/JSON endpoints.

Includes:
- Session and data-source readiness status
- Gemini performance remark for a member
"""

from flask import Blueprint, jsonify
from rollcall.routes.admin import admin_required
from rollcall.services import aggregator
from rollcall.services.identity import get_identity
from rollcall.services.remark_service import remark_service
from rollcall.services.state import get_state

api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.route('/status')
def status():
    """
    Current user and per-source readiness.

    Returns:
        JSON with 'user' (or null), 'ready' flags for auth/members/attendance,
        and whether the remark generator is configured
    """
    return jsonify({
        'user': get_identity().current_user(),
        'ready': get_state().readiness.as_dict(),
        'remarks_configured': remark_service.is_configured(),
    })


@api_bp.route('/members/<member_id>/remark', methods=['POST'])
@admin_required
def member_remark(member_id):
    """
    Generate a short performance remark from the member's last 30 days.

    Always answers 200 with a 'remark' string; API failures come back as a
    fallback message rather than an error status.
    """
    state = get_state()
    member = state.member(member_id)
    if not member:
        return jsonify({'success': False, 'error': 'Member not found'}), 404

    records = state.records_for(member_id)
    summary = aggregator.member_summary(member, records)
    history = aggregator.member_history(member, records)
    remark = remark_service.generate_remark(member['name'], aggregator.summary_text(history, summary))
    return jsonify({'success': True, 'remark': remark})
