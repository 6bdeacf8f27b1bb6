"""
Document-store adapter for the attendance tracker.

Exposes the database as two collections of plain-dict documents:
- members: {id, name, instrument, created_at}
- attendance: {id, member_id, date, status}

Operations:
- add / update / query / get for single documents
- batch() for a set of writes committed as one transaction
- subscribe() for live snapshots, pushed on registration and again after
  every write committed through this store (or on refresh())
"""

import operator
from contextlib import contextmanager
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from rollcall import db
from rollcall.exceptions import NotFoundError, StoreError
from rollcall.models import Member, AttendanceRecord
from rollcall.models.member import new_document_id


COLLECTIONS = {
    'members': Member,
    'attendance': AttendanceRecord,
}

OPERATORS = {
    '==': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
    'in': lambda column, value: column.in_(value),
}


def _model_for(collection):
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f'Unknown collection: {collection}')


class Subscription:
    """A live query. Values in ``where`` may be callables, evaluated on each push."""

    def __init__(self, store, collection, callback, where=(), order_by=None, on_error=None):
        self.store = store
        self.collection = collection
        self.callback = callback
        self.where = list(where)
        self.order_by = order_by
        self.on_error = on_error
        self.active = True

    def push(self):
        if not self.active:
            return
        where = [
            (field, op, value() if callable(value) else value)
            for field, op, value in self.where
        ]
        try:
            documents = self.store.query(self.collection, where=where, order_by=self.order_by)
        except SQLAlchemyError as e:
            db.session.rollback()
            if self.on_error:
                self.on_error(e)
            else:
                current_app.logger.error(f"Subscription to {self.collection} failed: {e}")
            return
        self.callback(documents)

    def unsubscribe(self):
        self.active = False
        self.store._forget(self)


class WriteBatch:
    """Collects writes and applies them in a single transaction on commit()."""

    def __init__(self, store):
        self.store = store
        self._operations = []
        self.committed = False

    def __len__(self):
        return len(self._operations)

    def set(self, collection, doc):
        """Queue an insert and return the id the new document will have."""
        model = _model_for(collection)
        instance = model(**doc)
        if not instance.id:
            instance.id = new_document_id()
        self._operations.append(('set', collection, instance, None))
        return instance.id

    def update(self, collection, doc_id, partial):
        """Queue a partial update of an existing document."""
        _model_for(collection)
        self._operations.append(('update', collection, doc_id, dict(partial)))

    def commit(self):
        if self.committed:
            raise StoreError('Batch already committed')
        touched = set()
        try:
            for kind, collection, target, partial in self._operations:
                model = _model_for(collection)
                if kind == 'set':
                    db.session.add(target)
                else:
                    instance = db.session.get(model, target)
                    if instance is None:
                        raise NotFoundError(f'{collection}/{target} does not exist')
                    for key, value in partial.items():
                        if key not in model.__table__.columns or key == 'id':
                            raise ValueError(f'Unknown field for {collection}: {key}')
                        setattr(instance, key, value)
                touched.add(collection)
            db.session.commit()
        except NotFoundError:
            db.session.rollback()
            raise
        except (SQLAlchemyError, ValueError) as e:
            db.session.rollback()
            current_app.logger.error(f"Batch of {len(self._operations)} writes failed: {e}")
            raise StoreError(str(e)) from e

        self.committed = True
        self.store.refresh(touched)


class DocumentStore:
    """Collection-level access to members and attendance records."""

    def __init__(self):
        self._subscriptions = []

    def query(self, collection, where=(), order_by=None):
        """Return matching documents as dicts.

        ``where`` is a sequence of (field, op, value) tuples. ``order_by`` is a
        field name, prefixed with '-' for descending order, or a sequence of
        them for tie-breaking.
        """
        model = _model_for(collection)
        q = model.query
        for field, op, value in where:
            q = q.filter(OPERATORS[op](getattr(model, field), value))
        if isinstance(order_by, str):
            order_by = [order_by]
        for key in order_by or ():
            column = getattr(model, key.lstrip('-'))
            q = q.order_by(column.desc() if key.startswith('-') else column.asc())
        return [instance.to_dict() for instance in q.all()]

    def get(self, collection, doc_id):
        instance = db.session.get(_model_for(collection), doc_id)
        return instance.to_dict() if instance else None

    def add(self, collection, doc):
        with self.batch() as batch:
            doc_id = batch.set(collection, doc)
        return doc_id

    def update(self, collection, doc_id, partial):
        with self.batch() as batch:
            batch.update(collection, doc_id, partial)

    @contextmanager
    def batch(self):
        """Yield a WriteBatch that commits when the block exits cleanly."""
        batch = WriteBatch(self)
        yield batch
        if len(batch):
            batch.commit()

    def subscribe(self, collection, callback, where=(), order_by=None, on_error=None):
        """Register a live query and push the current snapshot immediately.

        Returns a function that cancels the subscription.
        """
        _model_for(collection)
        subscription = Subscription(self, collection, callback, where, order_by, on_error)
        self._subscriptions.append(subscription)
        subscription.push()
        return subscription.unsubscribe

    def refresh(self, collections=None):
        """Re-push snapshots to subscribers, optionally only for some collections."""
        for subscription in list(self._subscriptions):
            if collections is None or subscription.collection in collections:
                subscription.push()

    def _forget(self, subscription):
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


def init_store(app):
    store = DocumentStore()
    app.extensions['rollcall_store'] = store
    return store


def get_store():
    """Get the store bound to the current app."""
    return current_app.extensions['rollcall_store']
