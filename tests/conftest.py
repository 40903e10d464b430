#!/usr/bin/env python3
"""
Shared fixtures: a SQLite-backed relational store, an in-memory Firestore
fake for the document store, and a store context wired around both.
"""

import os
from unittest.mock import patch

import pytest
import pytest_asyncio

from cleanbook.core.config import Settings
from cleanbook.db.base import init_db
from cleanbook.db.session import create_engine
from cleanbook.services.context import StoreContext
from cleanbook.stores.base import StoreKind
from cleanbook.stores.firestore import FirestoreStore
from cleanbook.stores.postgres import PostgresStore
from tests.mocks.firestore import FakeFirestoreClient


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Keep the developer's .env and shell out of the tests"""
    test_env = {
        'APP_ENV': 'testing',
        'PRIMARY_STORE': 'firestore',
        'STORE_SELECTION_POLICY': 'probe_primary',
        'MIRROR_ENABLED': 'true',
        'FIREBASE_PROJECT_ID': 'cleanbook-test',
    }
    with patch.dict(os.environ, test_env):
        yield


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        APP_ENV="testing",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'cleanbook.db'}",
        HEALTH_PROBE_TIMEOUT=0.5,
        DOCUMENT_SCAN_LIMIT=1000,
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = create_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def fake_firestore():
    client = FakeFirestoreClient()
    client.seed_health()
    return client


@pytest.fixture
def firestore_store(fake_firestore):
    return FirestoreStore(fake_firestore)


@pytest.fixture
def postgres_store(engine):
    return PostgresStore(engine)


@pytest.fixture
def stores(firestore_store, postgres_store):
    return {StoreKind.FIRESTORE: firestore_store, StoreKind.POSTGRES: postgres_store}


@pytest_asyncio.fixture
async def make_context(settings, stores):
    """Build store contexts over the shared stores with settings overrides."""
    built = []

    def build(**overrides):
        context = StoreContext(settings.model_copy(update=overrides), stores)
        built.append(context)
        return context

    yield build
    # Let background mirror writes finish before the engine goes away
    for context in built:
        await context.mirror.drain()


@pytest.fixture
def context(make_context):
    return make_context()


@pytest.fixture
def router(context):
    return context.router


@pytest.fixture(params=[StoreKind.FIRESTORE, StoreKind.POSTGRES], ids=lambda k: k.value)
def any_store(request, stores):
    return stores[request.param]


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies")
    config.addinivalue_line("markers", "integration: Tests that exercise both stores together")
