"""Tests for Shared Key canonicalization and signing."""

import base64
import hashlib
import hmac

import httpx
import pytest

from azstorage.auth.shared_key import (
    SharedKeyCredential,
    SigningDialect,
    authorization_header,
    canonicalized_headers,
    canonicalized_resource,
    canonicalized_resource_lite,
    compute_signature,
    string_to_sign,
)
from azstorage.errors import InvalidAccountKeyError

ACCOUNT_NAME = "testacct"
ACCOUNT_KEY = "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="
BLOB_URL = f"https://{ACCOUNT_NAME}.blob.core.windows.net"
TABLE_URL = f"https://{ACCOUNT_NAME}.table.core.windows.net"


@pytest.fixture
def credential() -> SharedKeyCredential:
    return SharedKeyCredential(ACCOUNT_NAME, ACCOUNT_KEY)


class TestStringToSign:
    def test_full_dialect_layout(self) -> None:
        url = httpx.URL(f"{BLOB_URL}/photos/cat.png?comp=block&blockid=MDAwMDAw")
        headers = httpx.Headers(
            {
                "Content-Length": "0",
                "Content-Type": "text/plain",
                "x-ms-version": "2025-05-05",
                "x-ms-date": "Mon, 15 Jan 2024 10:30:00 GMT",
            }
        )

        result = string_to_sign("put", url, headers, ACCOUNT_NAME)

        assert result == "\n".join(
            [
                "PUT",
                "",  # Content-Encoding
                "",  # Content-Language
                "",  # Content-Length of 0 is signed as empty
                "",  # Content-MD5
                "text/plain",
                "",  # Date
                "",
                "",
                "",
                "",
                "",  # Range
                "x-ms-date:Mon, 15 Jan 2024 10:30:00 GMT",
                "x-ms-version:2025-05-05",
                f"/{ACCOUNT_NAME}/photos/cat.png",
                "blockid:MDAwMDAw",
                "comp:block",
            ]
        )

    def test_non_zero_content_length_is_signed(self) -> None:
        url = httpx.URL(f"{BLOB_URL}/photos/cat.png")
        headers = httpx.Headers({"Content-Length": "13"})

        lines = string_to_sign("PUT", url, headers, ACCOUNT_NAME).split("\n")

        assert lines[3] == "13"

    def test_lite_dialect_uses_date_and_comp_only(self) -> None:
        url = httpx.URL(f"{TABLE_URL}/people?comp=acl&timeout=30")
        headers = httpx.Headers(
            {
                "Date": "Mon, 15 Jan 2024 10:30:00 GMT",
                "Content-Type": "application/json",
                "x-ms-version": "2025-05-05",
            }
        )

        result = string_to_sign("GET", url, headers, ACCOUNT_NAME, SigningDialect.SHARED_KEY_LITE)

        assert result == f"Mon, 15 Jan 2024 10:30:00 GMT\n/{ACCOUNT_NAME}/people?comp=acl"

    def test_lite_dialect_falls_back_to_ms_date(self) -> None:
        url = httpx.URL(f"{TABLE_URL}/Tables")
        headers = httpx.Headers({"x-ms-date": "Mon, 15 Jan 2024 10:30:00 GMT"})

        result = string_to_sign("GET", url, headers, ACCOUNT_NAME, SigningDialect.SHARED_KEY_LITE)

        assert result.startswith("Mon, 15 Jan 2024 10:30:00 GMT\n")


class TestCanonicalization:
    def test_ms_headers_sorted_lowercased_and_unfolded(self) -> None:
        headers = httpx.Headers(
            {
                "X-MS-Meta-b": "2",
                "x-ms-meta-a": " 1\r\n  continued",
                "Content-Type": "text/plain",
            }
        )

        assert canonicalized_headers(headers) == "x-ms-meta-a:1 continued\nx-ms-meta-b:2"

    def test_no_ms_headers(self) -> None:
        assert canonicalized_headers(httpx.Headers({"Accept": "*/*"})) == ""

    def test_resource_sorts_params_and_joins_multi_values(self) -> None:
        url = httpx.URL(f"{BLOB_URL}/photos?b=2&A=z&a=y&restype=container")

        resource = canonicalized_resource(ACCOUNT_NAME, url)

        assert resource == f"/{ACCOUNT_NAME}/photos\na:y,z\nb:2\nrestype:container"

    def test_resource_for_service_root(self) -> None:
        url = httpx.URL(f"{BLOB_URL}/?comp=list")

        assert canonicalized_resource(ACCOUNT_NAME, url) == f"/{ACCOUNT_NAME}/\ncomp:list"

    def test_resource_keeps_encoded_path(self) -> None:
        url = httpx.URL(f"{BLOB_URL}/photos/my%20cat.png")

        assert canonicalized_resource(ACCOUNT_NAME, url) == f"/{ACCOUNT_NAME}/photos/my%20cat.png"

    def test_lite_resource_without_comp(self) -> None:
        url = httpx.URL(f"{TABLE_URL}/people()?$top=5")

        assert canonicalized_resource_lite(ACCOUNT_NAME, url) == f"/{ACCOUNT_NAME}/people()"


class TestSignature:
    def test_signature_is_hmac_sha256_of_payload(self, credential: SharedKeyCredential) -> None:
        expected = base64.b64encode(
            hmac.new(base64.b64decode(ACCOUNT_KEY), b"payload", hashlib.sha256).digest()
        ).decode()

        assert compute_signature(credential, "payload") == expected

    def test_authorization_header_is_deterministic(self, credential: SharedKeyCredential) -> None:
        url = httpx.URL(f"{BLOB_URL}/photos?restype=container")
        headers = httpx.Headers({"x-ms-date": "Mon, 15 Jan 2024 10:30:00 GMT"})

        first = authorization_header("GET", url, headers, credential)
        second = authorization_header("GET", url, headers, credential)

        assert first == second
        assert first.startswith(f"SharedKey {ACCOUNT_NAME}:")

    def test_lite_scheme(self, credential: SharedKeyCredential) -> None:
        url = httpx.URL(f"{TABLE_URL}/Tables")
        headers = httpx.Headers({"Date": "Mon, 15 Jan 2024 10:30:00 GMT"})

        value = authorization_header("GET", url, headers, credential, SigningDialect.SHARED_KEY_LITE)

        assert value.startswith(f"SharedKeyLite {ACCOUNT_NAME}:")

    def test_different_dates_give_different_signatures(self, credential: SharedKeyCredential) -> None:
        url = httpx.URL(f"{BLOB_URL}/photos")
        one = authorization_header("GET", url, httpx.Headers({"x-ms-date": "a"}), credential)
        two = authorization_header("GET", url, httpx.Headers({"x-ms-date": "b"}), credential)

        assert one != two

    def test_invalid_key_raises(self) -> None:
        credential = SharedKeyCredential(ACCOUNT_NAME, "not base64!!")

        with pytest.raises(InvalidAccountKeyError):
            compute_signature(credential, "payload")

    def test_repr_masks_key(self, credential: SharedKeyCredential) -> None:
        assert ACCOUNT_KEY not in repr(credential)
        assert ACCOUNT_NAME in repr(credential)
