"""Shared fixtures for all tests."""

from collections.abc import Generator
from datetime import datetime, timezone

import pytest

ACCOUNT_NAME = "testacct"
# base64 of b"0123456789abcdef0123456789abcdef"
ACCOUNT_KEY = "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="

BLOB_URL = f"https://{ACCOUNT_NAME}.blob.core.windows.net"
QUEUE_URL = f"https://{ACCOUNT_NAME}.queue.core.windows.net"
TABLE_URL = f"https://{ACCOUNT_NAME}.table.core.windows.net"

FIXED_NOW = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)
FIXED_NOW_RFC1123 = "Mon, 15 Jan 2024 10:30:00 GMT"


@pytest.fixture
def mock_env_clear(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear storage related environment variables.

    This ensures tests don't accidentally use real credentials from the environment.
    """
    monkeypatch.delenv("AZURE_STORAGE_CONNECTION_STRING", raising=False)
    yield


@pytest.fixture
def account_key() -> str:
    return ACCOUNT_KEY


@pytest.fixture
def connection_string() -> str:
    """Shared key connection string resolving to the public cloud endpoints."""
    return (
        "DefaultEndpointsProtocol=https;"
        f"AccountName={ACCOUNT_NAME};"
        f"AccountKey={ACCOUNT_KEY};"
        "EndpointSuffix=core.windows.net"
    )


@pytest.fixture
def sas_connection_string() -> str:
    return (
        f"BlobEndpoint={BLOB_URL};"
        f"QueueEndpoint={QUEUE_URL};"
        f"TableEndpoint={TABLE_URL};"
        "SharedAccessSignature=sv=2025-05-05&ss=bqt&sig=abc%3D"
    )


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
