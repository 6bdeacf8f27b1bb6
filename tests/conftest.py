import pytest

from rollcall import create_app, db
from rollcall.services.state import get_state
from rollcall.services.store import get_store


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    response = client.post('/login', json={'username': 'admin@example.com', 'password': 'secret'})
    assert response.status_code == 200
    return client


@pytest.fixture
def store(app):
    return get_store()


@pytest.fixture
def state(app, store):
    """State container subscribed to the store, as it is after the first request."""
    state = get_state()
    if not state.started:
        state.start(store)
    return state
