"""Connection string parsing and service endpoint resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from urllib.parse import quote

import httpx

from ..errors import InvalidConnectionStringError
from .shared_key import SharedKeyCredential

ServiceName = Literal["blob", "queue", "table"]

EMULATOR_ACCOUNT_NAME = "devstoreaccount1"
EMULATOR_ACCOUNT_KEY = (
    "Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFr2ksGSM8Qys6F7bRkY1FzwIqQ=="
)
EMULATOR_PORTS: dict[str, int] = {"blob": 10000, "queue": 10001, "table": 10002}

_PATH_SAFE = "/~!$&'()*+,;=:@"


def quote_segment(segment: str) -> str:
    return quote(segment, safe=_PATH_SAFE)


@dataclass(frozen=True, slots=True)
class Endpoint:
    """Base URL of one service plus the query string attached to every call.

    ``query`` holds the shared access signature, if any. ``url`` always ends
    with a slash so that :meth:`url_for` can append path segments.
    """

    url: httpx.URL
    query: str = ""

    @classmethod
    def from_url(cls, url: str | httpx.URL, query: str | None = None) -> Endpoint:
        parsed = httpx.URL(url)
        if query is None:
            query = parsed.query.decode("ascii")
        path = parsed.raw_path.split(b"?", 1)[0].decode("ascii").rstrip("/") + "/"
        return cls(parsed.copy_with(raw_path=path.encode("ascii")), query.lstrip("?"))

    @property
    def is_sas(self) -> bool:
        return bool(self.query)

    def url_for(self, *segments: str) -> httpx.URL:
        """Absolute URL for ``segments`` below the endpoint, without the SAS query."""
        base = self.url.raw_path.decode("ascii")
        path = base + "/".join(quote_segment(s.strip("/")) for s in segments if s)
        return self.url.copy_with(raw_path=path.encode("ascii"))

    def __str__(self) -> str:
        return str(self.url)


@dataclass(frozen=True)
class ConnectionString:
    """Parsed ``Key=Value;...`` connection string."""

    parts: dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, connection_string: str) -> ConnectionString:
        parts: dict[str, str] = {}
        for segment in connection_string.split(";"):
            if "=" not in segment:
                continue
            name, value = segment.split("=", 1)
            parts[name.strip()] = value.strip()
        return cls(parts)

    @property
    def account_name(self) -> str | None:
        name = self.parts.get("AccountName")
        if name is None and self.use_development_storage:
            return EMULATOR_ACCOUNT_NAME
        return name

    @property
    def account_key(self) -> str | None:
        key = self.parts.get("AccountKey")
        if key is None and self.use_development_storage:
            return EMULATOR_ACCOUNT_KEY
        return key

    @property
    def shared_access_signature(self) -> str | None:
        return self.parts.get("SharedAccessSignature")

    @property
    def use_development_storage(self) -> bool:
        return self.parts.get("UseDevelopmentStorage", "").lower() == "true"

    def is_sas(self) -> bool:
        return "SharedAccessSignature" in self.parts

    def endpoint(self, service: ServiceName) -> Endpoint:
        explicit = self.parts.get(f"{service.capitalize()}Endpoint")
        account_name = self.parts.get("AccountName")
        suffix = self.parts.get("EndpointSuffix")
        if explicit:
            url = httpx.URL(explicit)
        elif account_name and suffix:
            url = httpx.URL(f"https://{account_name}.{service}.{suffix}")
        elif self.use_development_storage:
            url = httpx.URL(f"http://127.0.0.1:{EMULATOR_PORTS[service]}/{EMULATOR_ACCOUNT_NAME}")
        else:
            raise InvalidConnectionStringError(f'Missing endpoint for "{service}" service.')

        protocol = self.parts.get("DefaultEndpointsProtocol")
        if protocol:
            url = url.copy_with(scheme=protocol)

        # without a SharedAccessSignature key, a query on the endpoint itself is kept
        return Endpoint.from_url(url, self.shared_access_signature)

    def credential(self) -> SharedKeyCredential | None:
        """Shared key credential, or ``None`` when the string carries a SAS."""
        if self.is_sas():
            return None
        account_name = self.account_name
        account_key = self.account_key
        if not account_name or not account_key:
            raise InvalidConnectionStringError(
                "Connection string must contain AccountName and AccountKey "
                "or a SharedAccessSignature."
            )
        return SharedKeyCredential(account_name, account_key)

    def __repr__(self) -> str:
        names = ", ".join(sorted(self.parts))
        return f"ConnectionString(keys=[{names}])"


def parse_connection_string(connection_string: str) -> ConnectionString:
    return ConnectionString.parse(connection_string)


__all__ = [
    "ServiceName",
    "EMULATOR_ACCOUNT_NAME",
    "EMULATOR_ACCOUNT_KEY",
    "EMULATOR_PORTS",
    "Endpoint",
    "ConnectionString",
    "parse_connection_string",
    "quote_segment",
]
