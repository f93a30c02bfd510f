"""Error types raised by the storage clients."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any

import httpx


class StorageError(Exception):
    """Base class for every error raised by this package."""

    layer = "storage"


class ConfigurationError(StorageError):
    """Invalid client configuration, detected before any request is sent."""

    layer = "configuration"


class InvalidConnectionStringError(ConfigurationError):
    pass


class InvalidAccountKeyError(ConfigurationError):
    def __init__(self, message: str = "Account key is not valid base64.") -> None:
        super().__init__(message)


class StorageTransportError(StorageError):
    """The request could not be completed at the HTTP level.

    ``response`` is ``None`` when the failure happened before any response was
    received (connection refused, timeout, TLS failure).
    """

    layer = "transport"

    def __init__(self, message: str, *, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        self.response = response


class StorageResponseError(StorageTransportError):
    """The service answered with a non-2xx status."""

    layer = "protocol"

    def __init__(
        self,
        response: httpx.Response,
        message: str,
        *,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message, response=response)
        self.response: httpx.Response = response
        self.status_code = response.status_code
        self.headers = response.headers
        self.body = response.content
        self.error_code = error_code


class AuthenticationFailedError(StorageResponseError):
    pass


class ResourceNotFoundError(StorageResponseError):
    pass


class ResourceExistsError(StorageResponseError):
    pass


class PreconditionFailedError(StorageResponseError):
    pass


class DomainError(StorageError):
    """A call that cannot succeed, rejected locally without a round-trip."""

    layer = "domain"


class EntitySchemaError(DomainError):
    pass


class EmptyMessageListError(DomainError):
    pass


class InvalidMessageError(DomainError):
    pass


_STATUS_ERRORS: dict[int, type[StorageResponseError]] = {
    403: AuthenticationFailedError,
    404: ResourceNotFoundError,
    409: ResourceExistsError,
    412: PreconditionFailedError,
}


def _parse_error_body(response: httpx.Response) -> tuple[str | None, str | None]:
    """Extract ``(code, message)`` from an XML or JSON error document."""
    content = response.content
    if not content:
        return None, None

    text = content.lstrip()
    if text.startswith(b"{"):
        try:
            data: Any = json.loads(content)
        except ValueError:
            return None, None
        if not isinstance(data, dict):
            return None, None
        error = data.get("odata.error") or data.get("error") or {}
        if not isinstance(error, dict):
            return None, None
        message = error.get("message")
        if isinstance(message, dict):
            message = message.get("value")
        return error.get("code"), message

    if text.startswith(b"<"):
        try:
            root = ET.fromstring(content)
        except ET.ParseError:
            return None, None
        return root.findtext("Code"), root.findtext("Message")

    return None, None


def map_response_error(response: httpx.Response) -> StorageResponseError:
    """Build the error matching a failed response."""
    code, detail = _parse_error_body(response)
    code = response.headers.get("x-ms-error-code") or code

    message = f"HTTP {response.status_code}"
    if response.reason_phrase:
        message = f"{message} {response.reason_phrase}"
    if detail:
        first_line = detail.strip().splitlines()[0] if detail.strip() else ""
        if first_line:
            message = f"{message}: {first_line}"
    if code:
        message = f"{message} (code={code})"

    error_cls = _STATUS_ERRORS.get(response.status_code, StorageResponseError)
    return error_cls(response, message, error_code=code)


__all__ = [
    "StorageError",
    "ConfigurationError",
    "InvalidConnectionStringError",
    "InvalidAccountKeyError",
    "StorageTransportError",
    "StorageResponseError",
    "AuthenticationFailedError",
    "ResourceNotFoundError",
    "ResourceExistsError",
    "PreconditionFailedError",
    "DomainError",
    "EntitySchemaError",
    "EmptyMessageListError",
    "InvalidMessageError",
    "map_response_error",
]
