"""Integration tests for the queue clients using respx mocking."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import httpx
import pytest
import respx

from azstorage._http.config import ClientConfig
from azstorage.errors import (
    EmptyMessageListError,
    InvalidMessageError,
    ResourceNotFoundError,
    StorageResponseError,
)
from azstorage.queue import AsyncQueueServiceClient, QueueClient, QueueServiceClient

QUEUE_HOST = "testacct.queue.core.windows.net"
QUEUE_URL = f"https://{QUEUE_HOST}"
NO_RETRY = ClientConfig(retries=0)


def _message_xml(
    message_id: str,
    *,
    text: str | None = None,
    pop_receipt: str | None = "receipt-1",
    dequeue_count: int | None = None,
) -> str:
    parts = [
        f"<MessageId>{message_id}</MessageId>",
        "<InsertionTime>Mon, 15 Jan 2024 10:30:00 GMT</InsertionTime>",
        "<ExpirationTime>Mon, 22 Jan 2024 10:30:00 GMT</ExpirationTime>",
    ]
    if pop_receipt is not None:
        parts.append(f"<PopReceipt>{pop_receipt}</PopReceipt>")
        parts.append("<TimeNextVisible>Mon, 15 Jan 2024 10:31:00 GMT</TimeNextVisible>")
    if dequeue_count is not None:
        parts.append(f"<DequeueCount>{dequeue_count}</DequeueCount>")
    if text is not None:
        parts.append(f"<MessageText>{text}</MessageText>")
    return f"<QueueMessage>{''.join(parts)}</QueueMessage>"


def _messages(*messages: str) -> bytes:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f"<QueueMessagesList>{''.join(messages)}</QueueMessagesList>"
    ).encode()


def _messages_route(method: str):
    return respx.route(method=method, host=QUEUE_HOST, path="/jobs/messages")


class TestSendMessage:
    @respx.mock
    def test_send_message(self, mock_env_clear, connection_string):
        route = _messages_route("POST").mock(
            return_value=httpx.Response(201, content=_messages(_message_xml("id-1")))
        )

        with QueueServiceClient.from_connection_string(connection_string) as service:
            message = service.get_queue_client("jobs").send_message("hello", time_to_live=3600)

        assert message.id == "id-1"
        assert message.pop_receipt == "receipt-1"
        assert message.text == "hello"
        assert message.insertion_time.day == 15
        assert message.expiration_time.day == 22

        request = route.calls.last.request
        assert request.url.params["messagettl"] == "3600"
        assert request.url.params["visibilitytimeout"] == "0"
        body = ET.fromstring(request.read())
        assert body.tag == "QueueMessage"
        assert body.findtext("MessageText") == "hello"

    @respx.mock
    @pytest.mark.asyncio
    async def test_send_message_async(self, mock_env_clear, connection_string):
        _messages_route("POST").mock(
            return_value=httpx.Response(201, content=_messages(_message_xml("id-2")))
        )

        async with AsyncQueueServiceClient.from_connection_string(connection_string) as service:
            message = await service.get_queue_client("jobs").send_message("hi")

        assert message.id == "id-2"
        assert message.text == "hi"

    @respx.mock
    def test_send_message_without_receipt(self, mock_env_clear, connection_string):
        _messages_route("POST").mock(return_value=httpx.Response(201, content=_messages()))

        with QueueServiceClient.from_connection_string(connection_string) as service:
            with pytest.raises(EmptyMessageListError):
                service.get_queue_client("jobs").send_message("hello")


class TestReceiveMessages:
    @respx.mock
    def test_receive_messages(self, mock_env_clear, connection_string):
        route = _messages_route("GET").mock(
            return_value=httpx.Response(
                200,
                content=_messages(
                    _message_xml("id-1", text="one", dequeue_count=1),
                    _message_xml("id-2", text="two", pop_receipt="receipt-2", dequeue_count=3),
                ),
            )
        )

        with QueueServiceClient.from_connection_string(connection_string) as service:
            messages = service.get_queue_client("jobs").receive_messages(
                max_messages=2, visibility_timeout=60
            )

        assert len(messages) == 2
        assert [message.text for message in messages] == ["one", "two"]
        assert messages[1].dequeue_count == 3
        assert messages[1].pop_receipt == "receipt-2"
        assert messages[0].next_visible_time.minute == 31
        params = route.calls.last.request.url.params
        assert params["numofmessages"] == "2"
        assert params["visibilitytimeout"] == "60"

    @respx.mock
    @pytest.mark.asyncio
    async def test_receive_message_on_empty_queue(self, mock_env_clear, connection_string):
        _messages_route("GET").mock(return_value=httpx.Response(200, content=_messages()))

        async with AsyncQueueServiceClient.from_connection_string(connection_string) as service:
            assert await service.get_queue_client("jobs").receive_message() is None

    @respx.mock
    def test_peek_messages(self, mock_env_clear, connection_string):
        route = _messages_route("GET").mock(
            return_value=httpx.Response(
                200, content=_messages(_message_xml("id-1", text="one", pop_receipt=None))
            )
        )

        with QueueServiceClient.from_connection_string(connection_string) as service:
            messages = service.get_queue_client("jobs").peek_messages(max_messages=5)

        assert messages[0].pop_receipt is None
        assert messages[0].next_visible_time is None
        assert route.calls.last.request.url.params["peekonly"] == "true"


class TestDeleteAndUpdate:
    @respx.mock
    def test_delete_message(self, mock_env_clear, connection_string):
        route = respx.route(method="DELETE", host=QUEUE_HOST, path="/jobs/messages/id-1").mock(
            return_value=httpx.Response(204)
        )

        with QueueServiceClient.from_connection_string(connection_string) as service:
            service.get_queue_client("jobs").delete_message("id-1", "receipt-1")

        assert route.calls.last.request.url.params["popreceipt"] == "receipt-1"

    @respx.mock
    def test_delete_with_stale_receipt_surfaces_service_error(self, mock_env_clear, connection_string):
        respx.route(method="DELETE", host=QUEUE_HOST, path="/jobs/messages/id-1").mock(
            return_value=httpx.Response(
                404,
                content=(
                    b"<?xml version=\"1.0\" encoding=\"utf-8\"?><Error><Code>MessageNotFound</Code>"
                    b"<Message>The specified message does not exist.</Message></Error>"
                ),
            )
        )

        with QueueServiceClient.from_connection_string(connection_string) as service:
            with pytest.raises(StorageResponseError) as exc_info:
                service.get_queue_client("jobs").delete_message("id-1", "stale")

        assert isinstance(exc_info.value, ResourceNotFoundError)
        assert exc_info.value.error_code == "MessageNotFound"

    @respx.mock
    def test_missing_receipt_rejected_locally(self, mock_env_clear, connection_string):
        with QueueServiceClient.from_connection_string(connection_string) as service:
            queue = service.get_queue_client("jobs")
            with pytest.raises(InvalidMessageError):
                queue.delete_message("id-1", "")
            with pytest.raises(InvalidMessageError):
                queue.update_message("", "receipt-1", "text")

    @respx.mock
    @pytest.mark.asyncio
    async def test_update_message_async(self, mock_env_clear, connection_string):
        route = respx.route(method="PUT", host=QUEUE_HOST, path="/jobs/messages/id-1").mock(
            return_value=httpx.Response(
                204,
                headers={
                    "x-ms-popreceipt": "receipt-2",
                    "x-ms-time-next-visible": "Mon, 15 Jan 2024 10:45:00 GMT",
                },
            )
        )

        async with AsyncQueueServiceClient.from_connection_string(connection_string) as service:
            update = await service.get_queue_client("jobs").update_message(
                "id-1", "receipt-1", "updated", visibility_timeout=900
            )

        assert update.pop_receipt == "receipt-2"
        assert update.next_visible_time.minute == 45
        request = route.calls.last.request
        assert request.url.params["popreceipt"] == "receipt-1"
        assert request.url.params["visibilitytimeout"] == "900"
        assert ET.fromstring(await request.aread()).findtext("MessageText") == "updated"

    @respx.mock
    def test_clear_messages(self, mock_env_clear, connection_string):
        route = _messages_route("DELETE").mock(return_value=httpx.Response(204))

        with QueueServiceClient.from_connection_string(connection_string) as service:
            service.get_queue_client("jobs").clear_messages()

        assert route.called


class TestQueueLifecycle:
    @respx.mock
    def test_exists(self, mock_env_clear, connection_string):
        respx.head(f"{QUEUE_URL}/jobs?comp=metadata").mock(return_value=httpx.Response(200))
        respx.head(f"{QUEUE_URL}/missing?comp=metadata").mock(return_value=httpx.Response(404))
        respx.head(f"{QUEUE_URL}/broken?comp=metadata").mock(return_value=httpx.Response(500))

        with QueueServiceClient.from_connection_string(connection_string, config=NO_RETRY) as service:
            assert service.get_queue_client("jobs").exists() is True
            assert service.get_queue_client("missing").exists() is False
            with pytest.raises(StorageResponseError):
                service.get_queue_client("broken").exists()

    @respx.mock
    def test_create_with_metadata_and_read_it_back(self, mock_env_clear, connection_string):
        create = respx.put(f"{QUEUE_URL}/jobs").mock(return_value=httpx.Response(201))
        respx.get(f"{QUEUE_URL}/jobs?comp=metadata").mock(
            return_value=httpx.Response(200, headers={"x-ms-meta-team": "ops"})
        )

        with QueueClient.from_connection_string("jobs", connection_string) as queue:
            queue.create(metadata={"team": "ops"})
            metadata = queue.get_metadata()

        assert create.calls.last.request.headers["x-ms-meta-team"] == "ops"
        assert metadata == {"team": "ops"}

    @respx.mock
    def test_from_environment(self, mock_env_clear, monkeypatch, connection_string):
        monkeypatch.setenv("AZURE_STORAGE_CONNECTION_STRING", connection_string)
        route = respx.delete(f"{QUEUE_URL}/jobs").mock(return_value=httpx.Response(204))

        with QueueClient.from_connection_string("jobs") as queue:
            queue.delete()

        assert route.calls.last.request.headers["authorization"].startswith("SharedKey testacct:")

    @respx.mock
    @pytest.mark.asyncio
    async def test_iter_queues_async(self, mock_env_clear, connection_string):
        pages = {
            None: (
                "<EnumerationResults><Queues><Queue><Name>a</Name></Queue>"
                "<Queue><Name>b</Name><Metadata><team>ops</team></Metadata></Queue></Queues>"
                "<NextMarker>/testacct/c</NextMarker></EnumerationResults>"
            ),
            "/testacct/c": (
                "<EnumerationResults><Queues><Queue><Name>c</Name></Queue></Queues>"
                "<NextMarker /></EnumerationResults>"
            ),
        }

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["comp"] == "list"
            return httpx.Response(200, content=pages[request.url.params.get("marker")].encode())

        respx.route(method="GET", host=QUEUE_HOST, path="/").mock(side_effect=handler)

        async with AsyncQueueServiceClient.from_connection_string(connection_string) as service:
            queues = [queue async for queue in service.iter_queues(include_metadata=True)]

        assert [queue.name for queue in queues] == ["a", "b", "c"]
        assert queues[1].metadata == {"team": "ops"}


    @respx.mock
    def test_query_on_explicit_endpoint_is_sent(self, mock_env_clear):
        route = respx.route(method="DELETE", host=QUEUE_HOST, path="/jobs").mock(
            return_value=httpx.Response(204)
        )
        connection_string = (
            f"QueueEndpoint={QUEUE_URL}?sv=1&sig=a;"
            "AccountName=testacct;AccountKey=MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="
        )

        with QueueClient.from_connection_string("jobs", connection_string) as queue:
            queue.delete()

        params = route.calls.last.request.url.params
        assert params["sv"] == "1"
        assert params["sig"] == "a"

EMPTY_QUEUE_LISTING = (
    b'<?xml version="1.0" encoding="utf-8"?>'
    b'<EnumerationResults ServiceEndpoint="https://testacct.queue.core.windows.net/">'
    b"<MaxResults>5</MaxResults><Queues /><NextMarker /></EnumerationResults>"
)


class TestEmptyListing:
    @respx.mock
    def test_empty_queue_listing_terminates(self, mock_env_clear, connection_string):
        route = respx.route(method="GET", host=QUEUE_HOST, path="/").mock(
            return_value=httpx.Response(200, content=EMPTY_QUEUE_LISTING)
        )

        with QueueServiceClient.from_connection_string(connection_string) as service:
            page = service.list_queues(max_results=5)
            assert page.items == []
            assert page.next_marker is None
            assert page.max_results == 5
            assert route.call_count == 1

            assert list(service.iter_queues()) == []

        assert route.call_count == 2

    @respx.mock
    @pytest.mark.asyncio
    async def test_empty_queue_listing_terminates_async(self, mock_env_clear, connection_string):
        route = respx.route(method="GET", host=QUEUE_HOST, path="/").mock(
            return_value=httpx.Response(200, content=EMPTY_QUEUE_LISTING)
        )

        async with AsyncQueueServiceClient.from_connection_string(connection_string) as service:
            queues = [queue async for queue in service.iter_queues()]

        assert queues == []
        assert route.call_count == 1
