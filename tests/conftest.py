# tests/conftest.py

"""
Pytest fixtures shared by the catalog dashboard tests.

Nothing here touches the network: the auth gate is an in-memory fake and the
catalog loader returns prepared records.
"""

from datetime import datetime

import pytest

from core.data import IngestionError
from core.session import DashboardSession
from core.settings import DashboardSettings
from core.store import CollectionStore
from tests.helpers import FakeAuthGate, StubLoader, make_records


@pytest.fixture
def auth_gate():
    return FakeAuthGate()


@pytest.fixture
def settings():
    return DashboardSettings(csv_url="memory://catalog", page_size=100)


@pytest.fixture
def records_250():
    return make_records(250)


@pytest.fixture
def clock():
    return lambda: datetime(2026, 10, 18, 9, 30, 0)


@pytest.fixture
def make_session(auth_gate, settings, clock):
    def _make(*loader_results, **kwargs) -> DashboardSession:
        loader = StubLoader(*(loader_results or ([],)))
        session = DashboardSession(
            CollectionStore(),
            kwargs.pop("gate", auth_gate),
            loader,
            settings=kwargs.pop("settings", settings),
            clock=clock,
            **kwargs,
        )
        return session

    return _make


@pytest.fixture
def signed_in_session(make_session, auth_gate, records_250):
    session = make_session(records_250)
    session.start()
    auth_gate.sign_in_with_email_and_password("staff@iku.com", "secret")
    return session


@pytest.fixture
def ingestion_error():
    return IngestionError("Could not load catalog: HTTP Error 503")
