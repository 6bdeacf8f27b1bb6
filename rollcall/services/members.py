"""Member management: add, bulk add, edit and CSV import parsing."""

import csv
import io
from datetime import datetime
from flask import current_app

from rollcall.exceptions import NotFoundError, ValidationError
from rollcall.services.store import get_store


REQUIRED_MESSAGE = 'Both name and instrument are required.'


def _clean(name, instrument):
    if not isinstance(name or '', str) or not isinstance(instrument or '', str):
        raise ValidationError(REQUIRED_MESSAGE)
    name = (name or '').strip()
    instrument = (instrument or '').strip()
    if not name or not instrument:
        raise ValidationError(REQUIRED_MESSAGE)
    return name, instrument


def add_member(name: str, instrument: str) -> str:
    """Create a member and return its id."""
    name, instrument = _clean(name, instrument)
    member_id = get_store().add('members', {
        'name': name,
        'instrument': instrument,
        'created_at': datetime.utcnow(),
    })
    current_app.logger.info(f"Added member {name} ({instrument})")
    return member_id


def add_multiple_members(rows) -> list:
    """Create several members in one batch. Nothing is written if any row is invalid."""
    cleaned = [_clean(row.get('name'), row.get('instrument')) for row in rows]
    if not cleaned:
        raise ValidationError('No members to add.')

    ids = []
    created_at = datetime.utcnow()
    with get_store().batch() as batch:
        for name, instrument in cleaned:
            ids.append(batch.set('members', {
                'name': name,
                'instrument': instrument,
                'created_at': created_at,
            }))

    current_app.logger.info(f"Bulk added {len(ids)} members")
    return ids


def update_member(member_id: str, name: str, instrument: str):
    name, instrument = _clean(name, instrument)
    store = get_store()
    if store.get('members', member_id) is None:
        raise NotFoundError('Member not found')
    store.update('members', member_id, {'name': name, 'instrument': instrument})
    current_app.logger.info(f"Updated member {member_id}: {name} ({instrument})")


def parse_member_csv(text: str) -> list:
    """
    Parse an uploaded member list.

    The header must contain 'name' and 'instrument' columns (any case, any
    position). Rows missing either value are skipped.

    Returns:
        list of {'name', 'instrument'} dicts

    Raises:
        ValidationError: if the file has no data rows, lacks a required
            column, or contains no valid members
    """
    text = (text or '').lstrip('\ufeff')  # BOM from spreadsheet exports
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValidationError('CSV must have a header and at least one data row.')

    reader = csv.reader(io.StringIO('\n'.join(lines)))
    header = [column.strip().lower() for column in next(reader)]
    if 'name' not in header or 'instrument' not in header:
        raise ValidationError("CSV header must contain 'name' and 'instrument' columns.")
    name_index = header.index('name')
    instrument_index = header.index('instrument')

    members = []
    for row in reader:
        name = row[name_index].strip() if len(row) > name_index else ''
        instrument = row[instrument_index].strip() if len(row) > instrument_index else ''
        if name and instrument:
            members.append({'name': name, 'instrument': instrument})

    if not members:
        raise ValidationError('No valid members found in the CSV file.')
    return members
