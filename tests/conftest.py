"""
Shared fixtures.

Every test gets its own SQLite file under tmp_path; no test touches the
network (the assistant is driven through httpx.MockTransport).
"""

import pytest

from family_finance.audit import AuditLogger
from family_finance.config import ExportSettings, OpenAISettings, StorageSettings
from family_finance.services.storage import DatabaseClient, SqlFinanceStorage


@pytest.fixture
def database_client(tmp_path):
    client = DatabaseClient(StorageSettings(database_path=str(tmp_path / "finance.db")))
    yield client
    client.dispose()


@pytest.fixture
def storage(database_client):
    return SqlFinanceStorage(database_client)


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def openai_settings():
    return OpenAISettings(api_key="sk-test-0123456789")


@pytest.fixture
def export_settings(tmp_path):
    return ExportSettings(output_dir=str(tmp_path / "exports"))
