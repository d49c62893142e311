import asyncio
import json

import httpx
import pytest

from models.bookmark import BookmarkSubmission, SubmitIntent
from services.pinboard_client import PinboardClient, RequestSpacer
from services.pinboard_errors import (
    ApiError,
    HttpStatusError,
    InvalidResponseError,
    NetworkError,
    RateLimitedError,
    classify_result_code,
)


CREDENTIAL = "alice:ABC123"
SUBMISSION = BookmarkSubmission(
    url="https://example.com/",
    title="Example",
    notes="notes",
    tags=("one", "two"),
    private=True,
    read_later=False,
    intent=SubmitIntent.CREATE,
)


class NoWaitSpacer(RequestSpacer):
    def __init__(self):
        super().__init__(0)


def _client(handler) -> PinboardClient:
    return PinboardClient(
        "https://api.test/v1",
        transport=httpx.MockTransport(handler),
        spacer=NoWaitSpacer(),
    )


def _submit(handler):
    async def _run():
        async with _client(handler) as client:
            await client.submit(CREDENTIAL, SUBMISSION)

    asyncio.run(_run())


def _submit_error(handler):
    with pytest.raises(Exception) as info:
        _submit(handler)
    return info.value


def test_submit_sends_expected_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"result_code": "done"})

    _submit(handler)

    assert seen["path"] == "/v1/posts/add"
    params = seen["params"]
    assert params["format"] == "json"
    assert params["auth_token"] == CREDENTIAL
    assert params["url"] == "https://example.com/"
    assert params["description"] == "Example"
    assert params["tags"] == "one two"
    assert params["replace"] == "no"
    assert params["shared"] == "no"
    assert params["toread"] == "no"


def test_done_is_case_insensitive():
    _submit(lambda request: httpx.Response(200, json={"result_code": "DONE"}))
    _submit(lambda request: httpx.Response(200, json={"code": "done"}))


def test_rate_limit_status_uses_retry_after_header():
    error = _submit_error(lambda request: httpx.Response(429, headers={"Retry-After": "120"}))
    assert isinstance(error, RateLimitedError)
    assert error.is_retryable() is True
    assert error.retry_after_secs() == 120


@pytest.mark.parametrize("header", [None, "0", "-5", "soon"])
def test_rate_limit_status_defaults_without_usable_header(header):
    headers = {"Retry-After": header} if header is not None else {}
    error = _submit_error(lambda request: httpx.Response(429, headers=headers))
    assert isinstance(error, RateLimitedError)
    assert error.retry_after_secs() == 30


@pytest.mark.parametrize(
    "status, retryable",
    [(500, True), (503, True), (408, True), (425, True), (400, False), (401, False), (404, False)],
)
def test_http_status_classification(status, retryable):
    error = _submit_error(lambda request: httpx.Response(status, text="nope"))
    assert isinstance(error, HttpStatusError)
    assert error.is_retryable() is retryable
    assert error.retry_after_secs() is None


def test_transport_failure_is_retryable_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    error = _submit_error(handler)
    assert isinstance(error, NetworkError)
    assert error.is_retryable() is True


def test_item_already_exists_is_terminal():
    error = _submit_error(lambda request: httpx.Response(200, json={"result_code": "item already exists"}))
    assert isinstance(error, ApiError)
    assert error.is_retryable() is False
    assert "item already exists" in error.message_for_user()


def test_missing_result_code_is_invalid_response():
    error = _submit_error(lambda request: httpx.Response(200, json={"posts": []}))
    assert isinstance(error, InvalidResponseError)
    assert error.is_retryable() is True


def test_bare_code_marker_in_non_json_body():
    body = '<?xml version="1.0"?>\n<result code="missing url" />'
    error = _submit_error(lambda request: httpx.Response(200, text=body))
    assert isinstance(error, ApiError)
    assert error.is_retryable() is False

    _submit(lambda request: httpx.Response(200, text='<result code="done" />'))


def test_unparseable_body_is_truncated():
    body = "<html>\n" + ("x" * 1000) + "\n</html>"
    error = _submit_error(lambda request: httpx.Response(200, text=body))
    assert isinstance(error, InvalidResponseError)
    assert error.is_retryable() is True
    message = error.message_for_user()
    assert len(message) <= 220
    assert "\n" not in message


@pytest.mark.parametrize(
    "code, expected_type, retryable",
    [
        ("rate limit exceeded", RateLimitedError, True),
        ("Too Many Requests", RateLimitedError, True),
        ("item already exists", ApiError, False),
        ("missing url", ApiError, False),
        ("unauthorized", ApiError, False),
        ("invalid url, something went wrong", ApiError, True),
        ("auth service temporarily unavailable", ApiError, True),
        ("something odd happened", ApiError, True),
    ],
)
def test_classify_result_code(code, expected_type, retryable):
    error = classify_result_code(code)
    assert isinstance(error, expected_type)
    assert error.is_retryable() is retryable


def test_lookups_parse_pinboard_shapes():
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("posts/get"):
            return httpx.Response(
                200,
                json={
                    "date": "2024-01-01T00:00:00Z",
                    "user": "alice",
                    "posts": [
                        {
                            "href": "https://example.com/",
                            "description": "Example",
                            "extended": "",
                            "tags": "python async",
                            "shared": "yes",
                            "toread": "no",
                            "time": "2024-01-01T00:00:00Z",
                        }
                    ],
                },
            )
        if path.endswith("posts/suggest"):
            return httpx.Response(200, json=[{"popular": ["web"]}, {"recommended": ["python", "dev"]}])
        if path.endswith("tags/get"):
            return httpx.Response(200, json={"rare": "1", "python": "12", "async": "12"})
        return httpx.Response(404)

    async def _run():
        async with _client(handler) as client:
            existing = await client.existing_record_for_url(CREDENTIAL, "https://example.com/")
            suggestions = await client.tag_suggestions_for_url(CREDENTIAL, "https://example.com/")
            tags = await client.known_tags(CREDENTIAL)
        return existing, suggestions, tags

    existing, suggestions, tags = asyncio.run(_run())
    assert existing is not None
    assert existing.tags == ("python", "async")
    assert existing.private is False
    assert suggestions.popular == ["web"]
    assert suggestions.recommended == ["python", "dev"]
    assert tags == ["async", "python", "rare"]


def test_lookup_without_posts_returns_none():
    async def _run():
        async with _client(lambda request: httpx.Response(200, json={"posts": []})) as client:
            return await client.existing_record_for_url(CREDENTIAL, "https://example.com/")

    assert asyncio.run(_run()) is None


def test_lookup_error_envelope_is_classified():
    async def _run():
        body = json.dumps({"result_code": "forbidden"})
        async with _client(lambda request: httpx.Response(200, text=body)) as client:
            await client.known_tags(CREDENTIAL)

    with pytest.raises(ApiError) as info:
        asyncio.run(_run())
    assert info.value.is_retryable() is False


def test_spacer_keeps_calls_apart():
    now = {"t": 100.0}
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)
        now["t"] += seconds

    spacer = RequestSpacer(3.0, clock=lambda: now["t"], sleep=fake_sleep)

    async def _run():
        await spacer.wait()
        now["t"] += 1.0
        await spacer.wait()
        now["t"] += 10.0
        await spacer.wait()

    asyncio.run(_run())
    assert slept == [pytest.approx(2.0)]


def test_spacer_serializes_concurrent_callers():
    now = {"t": 0.0}

    async def fake_sleep(seconds):
        await asyncio.sleep(0)

    spacer = RequestSpacer(3.0, clock=lambda: now["t"], sleep=fake_sleep)

    async def _run():
        return await asyncio.gather(*(spacer.wait() for _ in range(4)))

    delays = asyncio.run(_run())
    assert sorted(delays) == [0.0, 3.0, 6.0, 9.0]


def test_submit_follows_redirects():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("posts/add"):
            return httpx.Response(301, headers={"Location": "https://api2.test/v1/posts/add?format=json"})
        return httpx.Response(200, json={"result_code": "done"})

    _submit(handler)
