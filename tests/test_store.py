from datetime import datetime

import pytest

from rollcall.exceptions import NotFoundError, StoreError


def test_add_and_query_members(store):
    first = store.add('members', {'name': 'Asha', 'instrument': 'Dhol', 'created_at': datetime(2024, 1, 1)})
    second = store.add('members', {'name': 'Ravi', 'instrument': 'Tasha', 'created_at': datetime(2024, 2, 1)})

    newest_first = store.query('members', order_by='-created_at')

    assert [m['id'] for m in newest_first] == [second, first]
    assert newest_first[0]['name'] == 'Ravi'
    assert isinstance(first, str) and first != second


def test_query_with_filters(store):
    member_id = store.add('members', {'name': 'Asha', 'instrument': 'Dhol'})
    store.add('attendance', {'member_id': member_id, 'date': '2024-01-01', 'status': 'present'})
    store.add('attendance', {'member_id': member_id, 'date': '2024-01-05', 'status': 'absent'})

    recent = store.query('attendance', where=[('date', '>=', '2024-01-03')])

    assert [r['date'] for r in recent] == ['2024-01-05']


def test_update_changes_only_given_fields(store):
    member_id = store.add('members', {'name': 'Asha', 'instrument': 'Dhol'})

    store.update('members', member_id, {'instrument': 'Tasha'})

    member = store.get('members', member_id)
    assert member['name'] == 'Asha'
    assert member['instrument'] == 'Tasha'


def test_update_missing_document(store):
    with pytest.raises(NotFoundError):
        store.update('members', 'nope', {'name': 'X'})


def test_unknown_collection(store):
    with pytest.raises(ValueError):
        store.query('lunches')


def test_batch_is_atomic(store):
    member_id = store.add('members', {'name': 'Asha', 'instrument': 'Dhol'})
    store.add('attendance', {'member_id': member_id, 'date': '2024-01-01', 'status': 'present'})

    with pytest.raises(StoreError):
        with store.batch() as batch:
            batch.set('members', {'name': 'Ravi', 'instrument': 'Tasha'})
            # Violates the one-record-per-member-per-day constraint
            batch.set('attendance', {'member_id': member_id, 'date': '2024-01-01', 'status': 'absent'})

    assert [m['name'] for m in store.query('members')] == ['Asha']
    assert store.query('attendance')[0]['status'] == 'present'


def test_subscribe_pushes_now_and_after_writes(store):
    snapshots = []
    unsubscribe = store.subscribe('members', snapshots.append, order_by='name')

    assert snapshots == [[]]

    store.add('members', {'name': 'Asha', 'instrument': 'Dhol'})
    assert [m['name'] for m in snapshots[-1]] == ['Asha']

    unsubscribe()
    store.add('members', {'name': 'Ravi', 'instrument': 'Tasha'})
    assert len(snapshots) == 2


def test_subscription_only_hears_its_collection(store):
    member_snapshots = []
    store.subscribe('members', member_snapshots.append)
    member_id = store.add('members', {'name': 'Asha', 'instrument': 'Dhol'})
    pushes = len(member_snapshots)

    store.add('attendance', {'member_id': member_id, 'date': '2024-01-01', 'status': 'present'})

    assert len(member_snapshots) == pushes


def test_subscription_evaluates_callable_filters_on_each_push(store):
    member_id = store.add('members', {'name': 'Asha', 'instrument': 'Dhol'})
    store.add('attendance', {'member_id': member_id, 'date': '2024-01-01', 'status': 'present'})
    store.add('attendance', {'member_id': member_id, 'date': '2024-01-10', 'status': 'present'})
    cutoff = ['2024-01-05']
    snapshots = []

    store.subscribe('attendance', snapshots.append, where=[('date', '>=', lambda: cutoff[0])])
    assert len(snapshots[-1]) == 1

    cutoff[0] = '2023-12-01'
    store.refresh()
    assert len(snapshots[-1]) == 2


def test_query_breaks_order_ties(store):
    created_at = datetime(2024, 3, 1)
    with store.batch() as batch:
        ids = [batch.set('members', {'name': name, 'instrument': 'Dhol', 'created_at': created_at})
               for name in ('Asha', 'Ravi', 'Meera')]
    older = store.add('members', {'name': 'Kiran', 'instrument': 'Tasha', 'created_at': datetime(2024, 1, 1)})

    members = store.query('members', order_by=('-created_at', 'id'))

    assert [m['id'] for m in members] == sorted(ids) + [older]
