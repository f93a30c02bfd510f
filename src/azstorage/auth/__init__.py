"""Credentials, request signing and connection strings."""

from .connection_string import (
    EMULATOR_ACCOUNT_KEY,
    EMULATOR_ACCOUNT_NAME,
    ConnectionString,
    Endpoint,
    parse_connection_string,
)
from .shared_key import SharedKeyCredential, SigningDialect, sign_request, string_to_sign

__all__ = [
    "EMULATOR_ACCOUNT_KEY",
    "EMULATOR_ACCOUNT_NAME",
    "ConnectionString",
    "Endpoint",
    "parse_connection_string",
    "SharedKeyCredential",
    "SigningDialect",
    "sign_request",
    "string_to_sign",
]
