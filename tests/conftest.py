import pytest
from sqlalchemy import create_engine

from token_relay.main import create_app
from token_relay.store import StoreUnavailable, TokenStore

VALID_STATE = "0000040000020002"
OTHER_VALID_STATE = "1234541234521231"


class SpyStore:
    """Records calls; every operation fails when `fail` is set."""

    table_name = "spy"

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail:
            raise StoreUnavailable(f"{name}: database unavailable")

    def insert(self, state, token):
        self._call("insert", state, token)

    def pop(self, state):
        self._call("pop", state)
        return None

    def purge_expired(self):
        self._call("purge_expired")
        return 0


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'relay.db'}", future=True)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    store = TokenStore(engine, "access_tokens")
    store.create_schema()
    return store


@pytest.fixture
def app(store):
    app = create_app(store=store)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
