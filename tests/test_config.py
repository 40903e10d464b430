#!/usr/bin/env python3
"""
Configuration tests.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from cleanbook.core.config import Settings

pytestmark = pytest.mark.unit


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.PRIMARY_STORE == "firestore"
    assert settings.STORE_SELECTION_POLICY == "probe_primary"
    assert settings.MIRROR_ENABLED is True
    assert settings.HEALTH_COLLECTION == "_health"
    assert settings.UNIQUE_COLLECTION == "_unique"


def test_postgres_urls_quote_the_password():
    settings = Settings(_env_file=None, POSTGRES_PASSWORD="p@ss/word", POSTGRES_HOST="db")

    assert settings.async_db_uri == "postgresql+asyncpg://postgres:p%40ss%2Fword@db:5432/cleanbook"
    assert settings.sync_db_uri == "postgresql://postgres:p%40ss%2Fword@db:5432/cleanbook"


def test_database_url_overrides_both_uris():
    settings = Settings(_env_file=None, DATABASE_URL="sqlite+aiosqlite:///./dev.db")

    assert settings.async_db_uri == "sqlite+aiosqlite:///./dev.db"
    assert settings.sync_db_uri == "sqlite:///./dev.db"


def test_environment_selects_primary_and_policy():
    with patch.dict(os.environ, {"PRIMARY_STORE": "postgres", "STORE_SELECTION_POLICY": "probe_both",
                                 "MIRROR_ENABLED": "false"}):
        settings = Settings(_env_file=None)

    assert settings.PRIMARY_STORE == "postgres"
    assert settings.STORE_SELECTION_POLICY == "probe_both"
    assert settings.MIRROR_ENABLED is False


def test_unknown_store_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, PRIMARY_STORE="mongodb")


def test_cors_origins_list():
    settings = Settings(_env_file=None, ALLOWED_CORS_ORIGINS="https://a.example, https://b.example,")
    assert settings.allowed_origins_list == ["https://a.example", "https://b.example"]
