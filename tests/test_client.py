import httpx
import pytest

from assessment.client.api import AssessmentClient
from assessment.main import create_app
from assessment.utils.exceptions import (
    InvalidStateError,
    SessionNotFoundError,
    TransientIOError,
)


@pytest.fixture
async def api(service, response_store):
    app = create_app(service=service, responses=response_store)
    client = AssessmentClient(
        base_url="http://testserver",
        transport=httpx.ASGITransport(app=app),
        backoff=0,
    )
    yield client
    await client.aclose()


def mock_client(handler, max_retries=3):
    return AssessmentClient(
        base_url="http://testserver",
        transport=httpx.MockTransport(handler),
        max_retries=max_retries,
        backoff=0,
    )


async def test_start_status_advance_roundtrip(api):
    config = await api.fetch_config()
    assert config["sectionOrder"][0] == "A"

    started = await api.start()
    status = await api.status(started["userId"])
    assert status["sectionRemaining"] == 120

    moved = await api.advance(started["userId"])
    assert moved["questionIndex"] == 1


async def test_unknown_session_maps_to_not_found(api):
    with pytest.raises(SessionNotFoundError):
        await api.status("ghost")
    with pytest.raises(SessionNotFoundError):
        await api.advance("ghost")


async def test_completed_session_maps_to_invalid_state(api, service):
    started = await api.start()
    for _ in range(sum(s.question_count for s in service.catalog)):
        await api.advance(started["userId"])
    with pytest.raises(InvalidStateError):
        await api.advance(started["userId"])


async def test_submit_text_and_audio(api, response_store):
    await api.submit_response("u", "F", "F-1", "text", "word", 1200, False)
    ack = await api.submit_response("u", "B", "B-1", "audio", b"RIFF", 15000, True)

    assert ack["ok"] is True
    saved = response_store.all()
    assert saved[0]["responseData"] == "word"
    assert saved[1]["autoSubmitted"] is True
    assert (response_store.upload_dir / ack["stored"]).read_bytes() == b"RIFF"


async def test_server_errors_are_retried_then_transient():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    client = mock_client(handler, max_retries=3)
    with pytest.raises(TransientIOError):
        await client.status("u")
    assert len(calls) == 3
    await client.aclose()


async def test_transport_error_recovers_on_retry():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("down", request=request)
        return httpx.Response(200, json={"ok": True})

    client = mock_client(handler)
    assert await client.fetch_config() == {"ok": True}
    assert len(calls) == 2
    await client.aclose()


async def test_advance_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("slow", request=request)

    client = mock_client(handler, max_retries=5)
    with pytest.raises(TransientIOError):
        await client.advance("u")
    assert len(calls) == 1
    await client.aclose()
