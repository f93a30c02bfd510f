"""HTTP configuration for storage service clients."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..errors import InvalidConnectionStringError

DEFAULT_TIMEOUT = 60.0
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_MAX = 2.0
STORAGE_API_VERSION = "2025-05-05"

# Request Timeout, Too Many Requests, Internal Server Error, Bad Gateway,
# Service Unavailable, Gateway Timeout
RETRY_ON_STATUS = frozenset({408, 429, 500, 502, 503, 504})

CONNECTION_STRING_ENV = "AZURE_STORAGE_CONNECTION_STRING"

HEADER_DATE = "x-ms-date"
HEADER_VERSION = "x-ms-version"
HEADER_CLIENT_REQUEST_ID = "x-ms-client-request-id"
HEADER_AUTHORIZATION = "Authorization"


@dataclass
class ClientConfig:
    """Transport and retry settings shared by every service client."""

    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    retry_on_status: frozenset[int] = RETRY_ON_STATUS
    retry_on_transport_errors: bool = False
    backoff_max: float = DEFAULT_BACKOFF_MAX
    api_version: str = STORAGE_API_VERSION
    headers: dict[str, str] = field(default_factory=dict)

    def default_headers(self) -> dict[str, str]:
        """Headers added to every request unless the caller already set them."""
        return {HEADER_VERSION: self.api_version, **self.headers}


def require_connection_string(connection_string: str | None) -> str:
    """Resolve the connection string from argument or environment, raising if not found."""
    resolved = connection_string or os.getenv(CONNECTION_STRING_ENV)
    if not resolved:
        raise InvalidConnectionStringError(
            f"Missing connection string. Pass connection_string=... or set {CONNECTION_STRING_ENV}."
        )
    return resolved


__all__ = [
    "ClientConfig",
    "DEFAULT_TIMEOUT",
    "DEFAULT_RETRIES",
    "DEFAULT_BACKOFF_MAX",
    "STORAGE_API_VERSION",
    "RETRY_ON_STATUS",
    "CONNECTION_STRING_ENV",
    "HEADER_DATE",
    "HEADER_VERSION",
    "HEADER_CLIENT_REQUEST_ID",
    "HEADER_AUTHORIZATION",
    "require_connection_string",
]
