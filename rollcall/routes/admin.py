from functools import wraps
from flask import Blueprint, request, jsonify, current_app, Response
from rollcall.exceptions import NotFoundError, StoreError, ValidationError
from rollcall.routes.main import request_data
from rollcall.services import aggregator
from rollcall.services.attendance import (
    mark_all_present,
    mark_attendance_for_date,
    mark_half_day,
    parse_day,
    toggle_present,
)
from rollcall.services.identity import get_identity
from rollcall.services.members import add_member, add_multiple_members, parse_member_csv, update_member
from rollcall.services.state import get_state

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

SAVE_FAILED = 'An error occurred while saving. Please try again.'


def admin_required(f):
    """Decorator to require admin authentication."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_identity().current_user():
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


@admin_bp.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({'success': False, 'error': str(e)}), 400


@admin_bp.errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({'success': False, 'error': str(e)}), 404


@admin_bp.errorhandler(StoreError)
def handle_store_error(e):
    current_app.logger.error(f"Write failed: {e}")
    return jsonify({'success': False, 'error': SAVE_FAILED}), 500


def member_or_404(member_id):
    member = get_state().member(member_id)
    if member is None:
        raise NotFoundError('Member not found')
    return member


def serialize_member(member):
    created_at = member.get('created_at')
    return {
        'id': member['id'],
        'name': member['name'],
        'instrument': member.get('instrument') or '',
        'created_at': created_at.isoformat() if created_at else None,
    }


# ============== DASHBOARD ==============

@admin_bp.route('/dashboard')
@admin_required
def dashboard():
    """Today's counts plus the trailing week."""
    state = get_state()
    return jsonify({
        'today': state.today_summary(),
        'weekly': state.weekly_summary(),
        'ready': state.readiness.as_dict(),
    })


# ============== MEMBERS ==============

@admin_bp.route('/members')
@admin_required
def members():
    """Member list sorted by name, optionally filtered by ?q= on name or instrument."""
    state = get_state()
    found = aggregator.search_members(state.members, request.args.get('q', ''))
    return jsonify({
        'members': [serialize_member(m) for m in found],
        'total': len(state.members),
    })


@admin_bp.route('/members', methods=['POST'])
@admin_required
def create_member():
    """Add a new member."""
    data = request_data()
    member_id = add_member(data.get('name'), data.get('instrument'))
    return jsonify({'success': True, 'id': member_id}), 201


@admin_bp.route('/members/import', methods=['POST'])
@admin_required
def import_members():
    """Import members from an uploaded CSV with 'name' and 'instrument' columns."""
    if 'csv_file' not in request.files:
        raise ValidationError('No file uploaded')

    file = request.files['csv_file']
    if file.filename == '':
        raise ValidationError('No file selected')

    if not file.filename.lower().endswith('.csv'):
        raise ValidationError('File must be a CSV')

    try:
        text = file.stream.read().decode('utf-8-sig')  # utf-8-sig handles BOM
    except UnicodeDecodeError:
        raise ValidationError('Error reading file.')

    rows = parse_member_csv(text)
    ids = add_multiple_members(rows)
    return jsonify({'success': True, 'added': len(ids), 'ids': ids}), 201


@admin_bp.route('/members/<member_id>')
@admin_required
def member_details(member_id):
    """Member profile with a rolling 30-day summary and day-by-day history."""
    member = member_or_404(member_id)
    records = get_state().records_for(member_id)
    return jsonify({
        'member': serialize_member(member),
        'summary': aggregator.member_summary(member, records),
        'history': aggregator.member_history(member, records),
    })


@admin_bp.route('/members/<member_id>/edit', methods=['POST'])
@admin_required
def edit_member(member_id):
    """Edit a member's name and instrument."""
    data = request_data()
    update_member(member_id, data.get('name'), data.get('instrument'))
    return jsonify({'success': True})


# ============== ATTENDANCE ==============

@admin_bp.route('/attendance')
@admin_required
def attendance():
    """Recorded statuses for a day (?date=YYYY-MM-DD, defaults to today)."""
    day = parse_day(request.args.get('date'))
    state = get_state()
    return jsonify({
        'date': day.isoformat(),
        'statuses': state.statuses_on(day),
        'members': [serialize_member(m) for m in state.members],
    })


@admin_bp.route('/attendance', methods=['POST'])
@admin_required
def save_attendance():
    """Save a batch of statuses: {"date": ..., "statuses": {member_id: status}}."""
    data = request_data()
    saved = mark_attendance_for_date(data.get('statuses'), data.get('date'))
    return jsonify({'success': True, 'saved': saved})


@admin_bp.route('/attendance/<member_id>/toggle', methods=['POST'])
@admin_required
def toggle_attendance(member_id):
    """Flip a member between present and absent."""
    member_or_404(member_id)
    status = toggle_present(member_id, request_data().get('date'))
    return jsonify({'success': True, 'status': status.value})


@admin_bp.route('/attendance/<member_id>/half-day', methods=['POST'])
@admin_required
def half_day(member_id):
    """Mark a member as half day (no-op if already)."""
    member_or_404(member_id)
    changed = mark_half_day(member_id, request_data().get('date'))
    return jsonify({'success': True, 'changed': changed})


@admin_bp.route('/attendance/mark-all-present', methods=['POST'])
@admin_required
def all_present():
    """Mark everyone present for the day in one batch."""
    saved = mark_all_present(request_data().get('date'))
    return jsonify({'success': True, 'saved': saved})


# ============== REPORTS ==============

@admin_bp.route('/reports/<int:days>')
@admin_required
def download_report(days):
    """CSV attendance grid for the trailing ``days`` days."""
    max_days = current_app.config.get('SNAPSHOT_DAYS', 30)
    if days < 1 or days > max_days:
        raise ValidationError(f'Report window must be between 1 and {max_days} days')

    today = aggregator.utc_today()
    return Response(
        get_state().csv_report(days, today),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={aggregator.report_filename(days, today)}'}
    )
