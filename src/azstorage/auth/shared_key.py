"""Shared Key request signing.

Both dialects of the storage services are handled by :func:`string_to_sign`:
blob and queue requests use the full form, table requests the lite form.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import httpx

from ..errors import InvalidAccountKeyError

if TYPE_CHECKING:
    from .._http.request import StorageRequest

# Order matters: these values appear in the string-to-sign in this sequence.
STANDARD_HEADERS = (
    "Content-Encoding",
    "Content-Language",
    "Content-Length",
    "Content-MD5",
    "Content-Type",
    "Date",
    "If-Modified-Since",
    "If-Match",
    "If-None-Match",
    "If-Unmodified-Since",
    "Range",
)

_FOLD = re.compile(r"\r?\n[ \t]*")


class SigningDialect(Enum):
    SHARED_KEY = "SharedKey"
    SHARED_KEY_LITE = "SharedKeyLite"

    @property
    def scheme(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class SharedKeyCredential:
    """Account name plus its base64 encoded access key."""

    account_name: str
    account_key: str

    def decoded_key(self) -> bytes:
        try:
            return base64.b64decode(self.account_key, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidAccountKeyError() from exc

    def __repr__(self) -> str:
        return f"SharedKeyCredential(account_name={self.account_name!r}, account_key='***')"


def _header_value(headers: httpx.Headers, name: str) -> str:
    # httpx joins repeated headers with ", "
    return headers.get(name, "")


def canonicalized_headers(headers: httpx.Headers) -> str:
    """``name:value`` lines for every ``x-ms-*`` header, sorted by name."""
    entries: dict[str, str] = {}
    for name, value in headers.items():
        name = name.lower()
        if not name.startswith("x-ms-"):
            continue
        entries[name] = _FOLD.sub(" ", value).lstrip()
    return "\n".join(f"{name}:{entries[name]}" for name in sorted(entries))


def _encoded_path(url: httpx.URL) -> str:
    path = url.raw_path.split(b"?", 1)[0].decode("ascii")
    return path or "/"


def canonicalized_resource(account_name: str, url: httpx.URL) -> str:
    resource = f"/{account_name}{_encoded_path(url)}"
    grouped: dict[str, list[str]] = {}
    for name, value in url.params.multi_items():
        grouped.setdefault(name.lower(), []).append(value)
    for name in sorted(grouped):
        resource += f"\n{name}:{','.join(sorted(grouped[name]))}"
    return resource


def canonicalized_resource_lite(account_name: str, url: httpx.URL) -> str:
    resource = f"/{account_name}{_encoded_path(url)}"
    comp = url.params.get("comp")
    if comp is not None:
        resource += f"?comp={comp}"
    return resource


def string_to_sign(
    method: str,
    url: httpx.URL,
    headers: httpx.Headers,
    account_name: str,
    dialect: SigningDialect = SigningDialect.SHARED_KEY,
) -> str:
    if dialect is SigningDialect.SHARED_KEY_LITE:
        date = headers.get("Date") or headers.get("x-ms-date", "")
        return f"{date}\n{canonicalized_resource_lite(account_name, url)}"

    values = [method.upper()]
    for name in STANDARD_HEADERS:
        value = _header_value(headers, name)
        if name == "Content-Length" and value == "0":
            value = ""
        values.append(value)
    parts = "\n".join(values)
    canonical_headers = canonicalized_headers(headers)
    if canonical_headers:
        parts += "\n" + canonical_headers
    return parts + "\n" + canonicalized_resource(account_name, url)


def compute_signature(credential: SharedKeyCredential, payload: str) -> str:
    digest = hmac.new(credential.decoded_key(), payload.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def authorization_header(
    method: str,
    url: httpx.URL,
    headers: httpx.Headers,
    credential: SharedKeyCredential,
    dialect: SigningDialect = SigningDialect.SHARED_KEY,
) -> str:
    payload = string_to_sign(method, url, headers, credential.account_name, dialect)
    signature = compute_signature(credential, payload)
    return f"{dialect.scheme} {credential.account_name}:{signature}"


def sign_request(
    request: StorageRequest,
    credential: SharedKeyCredential,
    dialect: SigningDialect = SigningDialect.SHARED_KEY,
) -> str:
    """Return the ``Authorization`` value for ``request``."""
    return authorization_header(request.method, request.url, request.headers, credential, dialect)


__all__ = [
    "STANDARD_HEADERS",
    "SigningDialect",
    "SharedKeyCredential",
    "canonicalized_headers",
    "canonicalized_resource",
    "canonicalized_resource_lite",
    "string_to_sign",
    "compute_signature",
    "authorization_header",
    "sign_request",
]
