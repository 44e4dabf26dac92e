from unittest.mock import AsyncMock, MagicMock

import pytest

from relogin import MemoryTokenStore, RequestRecorder, RequestReplayer


def test_credential_header_is_substituted_when_set():
    store = MemoryTokenStore("tok", header_name="X-Token-Id")
    recorder = RequestRecorder(store)
    ctx = recorder.open("GET", "/api/x")

    assert recorder.set_header(ctx, "x-token-id", "stale") == "tok"
    assert recorder.set_header(ctx, "Accept", "application/json") == "application/json"
    assert ctx.headers == {"x-token-id": "tok", "Accept": "application/json"}


def test_last_header_write_wins():
    recorder = RequestRecorder(MemoryTokenStore("tok"))
    ctx = recorder.open("GET", "/api/x")
    recorder.set_header(ctx, "Accept", "text/html")
    recorder.set_header(ctx, "Accept", "application/json")
    assert ctx.headers == {"Accept": "application/json"}


def test_missing_token_sends_empty_credential():
    recorder = RequestRecorder(MemoryTokenStore(None))
    ctx = recorder.open("GET", "/api/x")
    assert recorder.set_header(ctx, "x-token-id", "stale") == ""


def test_scheme_prefixes_token():
    store = MemoryTokenStore("abc", header_name="Authorization", scheme="Bearer")
    recorder = RequestRecorder(store)
    ctx = recorder.open("GET", "/api/x")
    assert recorder.set_header(ctx, "Authorization", "whatever") == "Bearer abc"


def test_reopen_keeps_retry_count_and_resets_headers():
    recorder = RequestRecorder(MemoryTokenStore("tok"))
    ctx = recorder.open("POST", "/a", False, "user", "pw")
    recorder.set_header(ctx, "Accept", "*/*")
    ctx.retry_count = 2

    same = recorder.open("POST", "/a", False, "user", "pw", context=ctx)

    assert same is ctx
    assert ctx.headers == {}
    assert ctx.retry_count == 2  # noqa: PLR2004
    assert (ctx.method, ctx.url, ctx.async_, ctx.username, ctx.password) == (
        "POST",
        "/a",
        False,
        "user",
        "pw",
    )


@pytest.mark.asyncio
async def test_replay_round_trip_uses_current_token():
    store = MemoryTokenStore("new", header_name="Authorization")
    recorder = RequestRecorder(store)
    ctx = recorder.open("GET", "/api/x", True, None, None)
    # recorded while the old credential was current
    ctx.headers["Authorization"] = "Bearer old"

    transport = MagicMock()
    transport.dispatch = AsyncMock(return_value="response")
    replayer = RequestReplayer(recorder, max_retries=3)

    result = await replayer.replay(ctx, transport, "body")

    assert result == "response"
    transport.dispatch.assert_awaited_once_with(ctx, "body")
    assert (ctx.method, ctx.url, ctx.async_, ctx.username, ctx.password) == (
        "GET",
        "/api/x",
        True,
        None,
        None,
    )
    assert ctx.headers == {"Authorization": "new"}
    assert ctx.retry_count == 1


@pytest.mark.asyncio
async def test_replay_stops_at_max_retries():
    recorder = RequestRecorder(MemoryTokenStore("tok"))
    ctx = recorder.open("GET", "/api/x")
    transport = MagicMock()
    transport.dispatch = AsyncMock(return_value="response")
    replayer = RequestReplayer(recorder, max_retries=2)

    assert await replayer.replay(ctx, transport) == "response"
    assert await replayer.replay(ctx, transport) == "response"
    assert await replayer.replay(ctx, transport) is None
    assert transport.dispatch.await_count == 2  # noqa: PLR2004
    assert ctx.retry_count == 2  # noqa: PLR2004


def test_sync_replay_with_zero_retries_never_sends():
    recorder = RequestRecorder(MemoryTokenStore("tok"))
    ctx = recorder.open("GET", "/api/x")
    recorder.set_header(ctx, "x-token-id", "stale")
    transport = MagicMock()
    replayer = RequestReplayer(recorder, max_retries=0)

    assert replayer.replay_sync(ctx, transport) is None
    transport.dispatch.assert_not_called()
    # headers were still rebuilt from the store
    assert ctx.headers == {"x-token-id": "tok"}
