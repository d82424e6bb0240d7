"""Unit tests for dispatch, response bookkeeping and error surfacing."""
from __future__ import annotations

import io

import pytest

from servicecall.app.application.request import ServiceRequest
from servicecall.app.constants import ExecutionState
from servicecall.app.domain.content import ByteArrayContent, InputStreamContent
from servicecall.app.domain.error_materializer import DecodedErrorMaterializer
from servicecall.app.domain.errors import HttpStatusError, InvalidStateError, TransportError
from servicecall.app.domain.models import NO_CONTENT
from servicecall.app.infrastructure.codec.pydantic_codec import PydanticJsonCodec
from tests.fakes import FakeMediaFactory, FakeResponse, FakeTransport, make_client
from tests.test_data import ERROR_BODY, ITEM_BODY, ErrorEnvelope, Item


def _get_item(transport: FakeTransport, **client_kwargs) -> ServiceRequest:
    return ServiceRequest(
        make_client(transport, **client_kwargs),
        "GET",
        "/items/{id}",
        None,
        Item,
        params={"id": "42"},
    )


def test_last_status_code_is_minus_one_before_execution():
    request = _get_item(FakeTransport())

    assert request.last_status_code == -1
    assert request.last_status_message is None
    assert request.last_response_headers is None


@pytest.mark.asyncio
async def test_execute_decodes_result_and_records_status():
    transport = FakeTransport([FakeResponse(200, ITEM_BODY, {"Content-Type": "application/json", "ETag": "v1"})])
    request = _get_item(transport)

    item = await request.execute()

    assert isinstance(item, Item)
    assert item.id == "42"
    assert request.last_status_code == 200
    assert request.last_status_message == "OK"
    assert request.last_response_headers["etag"] == "v1"
    assert request.state is ExecutionState.SUCCEEDED
    assert transport.executed[0].url == "https://api.example.com/v1/items/42"


@pytest.mark.asyncio
async def test_response_headers_are_a_snapshot():
    response = FakeResponse(200, ITEM_BODY, {"ETag": "v1"})
    request = _get_item(FakeTransport([response]))

    await request.execute()
    response.headers["ETag"] = "v2"

    assert request.last_response_headers["ETag"] == "v1"


@pytest.mark.asyncio
async def test_error_status_raises_and_keeps_last_status():
    transport = FakeTransport([FakeResponse(404, b"not here")])
    request = _get_item(transport)

    with pytest.raises(HttpStatusError) as exc_info:
        await request.execute()

    assert exc_info.value.status_code == 404
    assert exc_info.value.status_message == "Not Found"
    assert exc_info.value.content == "not here"
    assert request.last_status_code == 404
    assert request.state is ExecutionState.FAILED


@pytest.mark.asyncio
async def test_engine_disables_transport_throwing_and_surfaces_errors_itself():
    transport = FakeTransport([FakeResponse(500)])
    request = _get_item(transport)

    with pytest.raises(HttpStatusError):
        await request.execute()

    assert transport.executed[0].throw_exception_on_execute_error is False


@pytest.mark.asyncio
async def test_error_status_returned_when_throwing_disabled():
    transport = FakeTransport([FakeResponse(404, b"not here")])
    request = _get_item(transport)
    request.throw_exception_on_execute_error = False

    response = await request.execute_unparsed()

    assert response.status_code == 404
    assert request.last_status_code == 404
    assert request.state is ExecutionState.SUCCEEDED
    assert await response.read() == b"not here"


@pytest.mark.asyncio
async def test_decoded_error_materializer_attaches_details():
    codec = PydanticJsonCodec()
    transport = FakeTransport([FakeResponse(404, ERROR_BODY)])
    request = _get_item(transport, error_materializer=DecodedErrorMaterializer(codec, ErrorEnvelope))

    with pytest.raises(HttpStatusError) as exc_info:
        await request.execute()

    assert exc_info.value.details.error.message == "Item not found"


@pytest.mark.asyncio
async def test_new_exception_on_error_can_be_overridden():
    class NotFound(Exception):
        pass

    class ItemRequest(ServiceRequest):
        async def new_exception_on_error(self, response):
            await response.aclose()
            return NotFound(response.status_code)

    request = ItemRequest(make_client(FakeTransport([FakeResponse(404)])), "GET", "/items/1", None, Item)

    with pytest.raises(NotFound):
        await request.execute()
    assert request.last_status_code == 404


@pytest.mark.asyncio
async def test_transport_failure_propagates_and_leaves_status_unset():
    transport = FakeTransport(raise_on_execute=TransportError("connection refused"))
    request = _get_item(transport)

    with pytest.raises(TransportError, match="connection refused"):
        await request.execute()

    assert request.last_status_code == -1
    assert request.last_response_headers is None


@pytest.mark.asyncio
async def test_request_executes_at_most_once():
    transport = FakeTransport([FakeResponse(200, ITEM_BODY), FakeResponse(200, ITEM_BODY)])
    request = _get_item(transport)
    await request.execute()

    with pytest.raises(InvalidStateError):
        await request.execute()
    assert len(transport.executed) == 1


@pytest.mark.asyncio
async def test_no_content_result_discards_body():
    response = FakeResponse(204)
    request = ServiceRequest(make_client(FakeTransport([response])), "DELETE", "/items/1", None, NO_CONTENT)

    assert await request.execute() is None
    assert response.closed is True


@pytest.mark.asyncio
async def test_gzip_enabled_by_default_and_can_be_disabled():
    transport = FakeTransport([FakeResponse(200, ITEM_BODY), FakeResponse(200, ITEM_BODY)])
    client = make_client(transport)
    content = ByteArrayContent("application/json", b"{}")

    await ServiceRequest(client, "PUT", "/items/1", content, Item).execute()
    disabled = ServiceRequest(client, "PUT", "/items/1", content, Item)
    disabled.disable_gzip_content = True
    await disabled.execute()

    assert transport.executed[0].enable_gzip_content is True
    assert transport.executed[1].enable_gzip_content is False


@pytest.mark.asyncio
async def test_client_level_gzip_default():
    transport = FakeTransport([FakeResponse(200, ITEM_BODY)])
    request = _get_item(transport, disable_gzip_content=True)

    await request.execute()

    assert transport.executed[0].enable_gzip_content is False


@pytest.mark.asyncio
async def test_execute_as_stream_yields_body_and_closes():
    response = FakeResponse(200, b"0123456789")
    request = _get_item(FakeTransport([response]))

    stream = await request.execute_as_stream()
    chunks = [chunk async for chunk in stream]

    assert b"".join(chunks) == b"0123456789"
    assert response.closed is True


@pytest.mark.asyncio
async def test_upload_path_uses_uploader_and_binds_parser():
    transport = FakeTransport()
    media_factory = FakeMediaFactory(transport, upload_response=FakeResponse(200, b'{"id":"7"}'))
    client = make_client(transport, media_factory=media_factory)
    metadata = ByteArrayContent("application/json", b'{"name":"photo"}')
    request = ServiceRequest(client, "POST", "/upload/items", metadata, Item)
    request.request_headers["X-Trace"] = "abc"
    uploader = request.initialize_media_upload(InputStreamContent("image/png", io.BytesIO(b"png-bytes")))

    item = await request.execute()

    assert item.id == "7"
    assert uploader.uploaded_urls == ["https://api.example.com/v1/upload/items"]
    assert uploader.initiation_method == "POST"
    assert uploader.metadata is metadata
    assert uploader.initiation_headers["X-Trace"] == "abc"
    assert transport.executed == []
    assert request.last_status_code == 200


@pytest.mark.asyncio
async def test_upload_error_raises_with_status_recorded():
    transport = FakeTransport()
    media_factory = FakeMediaFactory(transport, upload_response=FakeResponse(403, b"quota"))
    request = ServiceRequest(make_client(transport, media_factory=media_factory), "POST", "/upload/items", None, Item)
    request.initialize_media_upload(InputStreamContent("image/png", io.BytesIO(b"png")))

    with pytest.raises(HttpStatusError) as exc_info:
        await request.execute()

    assert exc_info.value.status_code == 403
    assert request.last_status_code == 403


def test_only_one_media_transfer_may_be_attached():
    transport = FakeTransport()
    request = ServiceRequest(
        make_client(transport, media_factory=FakeMediaFactory(transport)), "GET", "/items/1", None, Item
    )
    request.initialize_media_download()

    with pytest.raises(InvalidStateError):
        request.initialize_media_upload(InputStreamContent("image/png", io.BytesIO(b"png")))
    assert request.media_http_uploader is None
    assert request.media_http_downloader is not None
