import contextlib
import functools
import inspect
from urllib.parse import urlsplit

import aiohttp
import httpx
from requests.auth import AuthBase
from requests.structures import CaseInsensitiveDict

from .interceptor import Interceptor


# ---------- httpx (async) ----------
class ReloginTransport(httpx.AsyncBaseTransport):
    """httpx.AsyncBaseTransport decorating an inner transport.

    Request bodies are buffered before the first send so a replay can resend them.
    """

    def __init__(self, interceptor: Interceptor, inner=None):
        self.interceptor = interceptor
        self._inner = inner if inner is not None else httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        url = request.url
        context = self.interceptor.open(
            request.method, str(url), True, url.username or None, url.password or None
        )
        for name, value in request.headers.multi_items():
            self.interceptor.set_request_header(context, name, value)
        return await self.interceptor.send(context, self, request)

    async def dispatch(self, context, original: httpx.Request) -> httpx.Response:
        request = httpx.Request(
            context.method,
            context.url,
            headers=list(context.headers.items()),
            stream=original.stream,
            extensions=original.extensions,
        )
        return await self._inner.handle_async_request(request)

    def content_type(self, response: httpx.Response):
        return response.headers.get("content-type")

    async def read_body(self, response: httpx.Response) -> bytes:
        return await response.aread()

    async def discard(self, response: httpx.Response) -> None:
        with contextlib.suppress(Exception):
            await response.aclose()

    async def aclose(self) -> None:
        await self._inner.aclose()


# ---------- httpx (sync) ----------
class SyncReloginTransport(httpx.BaseTransport):
    def __init__(self, interceptor: Interceptor, inner=None):
        self.interceptor = interceptor
        self._inner = inner if inner is not None else httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        request.read()
        url = request.url
        context = self.interceptor.open(
            request.method, str(url), False, url.username or None, url.password or None
        )
        for name, value in request.headers.multi_items():
            self.interceptor.set_request_header(context, name, value)
        return self.interceptor.send_sync(context, self, request)

    def dispatch(self, context, original: httpx.Request) -> httpx.Response:
        request = httpx.Request(
            context.method,
            context.url,
            headers=list(context.headers.items()),
            stream=original.stream,
            extensions=original.extensions,
        )
        return self._inner.handle_request(request)

    def content_type(self, response: httpx.Response):
        return response.headers.get("content-type")

    def read_body(self, response: httpx.Response) -> bytes:
        return response.read()

    def discard(self, response: httpx.Response) -> None:
        with contextlib.suppress(Exception):
            response.close()

    def close(self) -> None:
        self._inner.close()


def wrap_httpx(interceptor: Interceptor, client):
    """Swap an httpx client's transport for a relogin one around it.

    Supports both sync and async clients; a client without a transport is returned as-is.
    """
    transport = getattr(client, "_transport", None)
    if transport is None:
        return client
    if isinstance(transport, (ReloginTransport, SyncReloginTransport)):
        return client
    # some transports (MockTransport) implement both APIs; the client decides which is used
    if isinstance(client, httpx.AsyncClient):
        client._transport = ReloginTransport(interceptor, transport)
    else:
        client._transport = SyncReloginTransport(interceptor, transport)
    return client


# ---------- requests (sync) ----------
class _RequestsReplay:
    """Resends on the adapter that produced the original response, keeping its pool."""

    def __init__(self, connection, send_kwargs):
        self.connection = connection
        self.send_kwargs = send_kwargs

    def dispatch(self, context, original):
        req = original.copy()
        req.method = context.method
        req.url = context.url
        req.headers = CaseInsensitiveDict(context.headers)
        return self.connection.send(req, **self.send_kwargs)

    def content_type(self, response):
        return response.headers.get("Content-Type")

    def read_body(self, response) -> bytes:
        return response.content

    def discard(self, response) -> None:
        with contextlib.suppress(Exception):
            response.close()


class ReloginAuth(AuthBase):
    """requests auth hook: records the prepared request and replays it on auth failure.

    session.get(url, auth=interceptor.requests_auth())
    """

    def __init__(self, interceptor: Interceptor):
        self.interceptor = interceptor

    def __call__(self, r):
        context = self._record(r)
        r.headers.update(context.headers)
        r.register_hook("response", functools.partial(self._hook, context))
        return r

    def _record(self, r, context=None):
        parts = urlsplit(r.url)
        context = self.interceptor.open(
            r.method, r.url, False, parts.username, parts.password, context=context
        )
        for name, value in list(r.headers.items()):
            self.interceptor.set_request_header(context, name, value)
        return context

    def _hook(self, context, resp, *args, **kwargs):
        # Mocked responses may not carry the adapter; nothing to replay through then
        conn = getattr(resp, "connection", None)
        if conn is None:
            return resp
        # Redirect hops copy this hook; replay the hop that was actually sent
        sent = resp.request
        if sent is not None:
            self._record(sent, context)
        return self.interceptor.complete_sync(context, resp, _RequestsReplay(conn, kwargs), sent)


# ---------- aiohttp (async) ----------
class _AiohttpReplay:
    def __init__(self, handler):
        self.handler = handler

    async def dispatch(self, context, request):
        for name, value in context.headers.items():
            request.headers[name] = value
        return await self.handler(request)

    def content_type(self, response):
        return response.headers.get("Content-Type")

    async def read_body(self, response) -> bytes:
        return await response.read()

    async def discard(self, response) -> None:
        with contextlib.suppress(Exception):
            released = response.release()
            if inspect.isawaitable(released):
                await released


class ReloginMiddleware:
    """aiohttp client middleware (aiohttp >= 3.12).

    aiohttp.ClientSession(middlewares=(interceptor.aiohttp_middleware(),))
    """

    def __init__(self, interceptor: Interceptor):
        self.interceptor = interceptor

    async def __call__(
        self, request: aiohttp.ClientRequest, handler
    ) -> aiohttp.ClientResponse:
        url = request.url
        context = self.interceptor.open(
            request.method,
            str(url),
            True,
            getattr(url, "user", None),
            getattr(url, "password", None),
        )
        for name, value in list(request.headers.items()):
            self.interceptor.set_request_header(context, name, value)
        return await self.interceptor.send(context, _AiohttpReplay(handler), request)
