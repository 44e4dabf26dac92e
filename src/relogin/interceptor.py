import contextlib
import logging
from typing import Any, Protocol, Union

from .classifier import Outcome, ResponseClassifier, is_json_content_type
from .coordinator import AuthCoordinator, SyncAuthCoordinator
from .credentials import TokenStore
from .errors import ReauthenticationFailed, RetriesExhausted
from .recorder import RequestRecorder
from .replay import RequestReplayer
from .state import RequestContext
from .types import InterceptConfig, build_config
from .whitelist import WhitelistFilter


class Transport(Protocol):
    """What the interceptor needs from an async client: send a context, look at the result."""

    async def dispatch(self, context: RequestContext, *args) -> Any: ...

    def content_type(self, response) -> Union[str, None]: ...

    async def read_body(self, response) -> bytes: ...

    async def discard(self, response) -> None: ...


class SyncTransport(Protocol):
    def dispatch(self, context: RequestContext, *args) -> Any: ...

    def content_type(self, response) -> Union[str, None]: ...

    def read_body(self, response) -> bytes: ...

    def discard(self, response) -> None: ...


class Interceptor:
    """Sits in front of an HTTP transport and hides auth failures from its callers.

    - requests are recorded when opened (open / set_request_header)
    - completed responses are classified; whitelisted ones reset the coordinator
    - auth failures wait for the single shared login, then get replayed with the
      fresh token; replays are classified again until max_retries is reached

    Async clients share `coordinator`, blocking clients share `sync_coordinator`.
    Each gates its own login, so an app driving both kinds of client through one
    interceptor can see one login per kind at the same time. A whitelisted
    response resets both.

    Use the adapter factories to plug it into a client:
    - httpx: transport(inner) / sync_transport(inner) / wrap_httpx(client)
    - requests: requests_auth()
    - aiohttp: aiohttp_middleware()
    """

    def __init__(
        self,
        config: InterceptConfig,
        token_store: TokenStore,
        coordinator: Union[AuthCoordinator, None] = None,
        sync_coordinator: Union[SyncAuthCoordinator, None] = None,
    ):
        self.config = config
        self.token_store = token_store
        self.whitelist = WhitelistFilter(config.whitelist)
        self.recorder = RequestRecorder(token_store)
        self.classifier = ResponseClassifier(self.whitelist, config.intercept_codes)
        self.replayer = RequestReplayer(self.recorder, config.max_retries)
        self.coordinator = coordinator or AuthCoordinator(config.reauthenticate)
        self.sync_coordinator = sync_coordinator or SyncAuthCoordinator(config.reauthenticate)
        self._logger = logging.getLogger("relogin")

    # ------------------------ recording ------------------------
    def open(
        self,
        method: str,
        url: str,
        async_: bool = True,
        username: Union[str, None] = None,
        password: Union[str, None] = None,
        *,
        context: Union[RequestContext, None] = None,
    ) -> RequestContext:
        return self.recorder.open(method, url, async_, username, password, context=context)

    def set_request_header(self, context: RequestContext, name: str, value: str) -> str:
        return self.recorder.set_header(context, name, value)

    # ------------------------ async path ------------------------
    async def send(self, context: RequestContext, transport: Transport, *args) -> Any:
        response = await transport.dispatch(context, *args)
        return await self.complete(context, response, transport, *args)

    async def complete(self, context: RequestContext, response, transport: Transport, *args) -> Any:
        while True:
            content_type = transport.content_type(response)
            body = None
            if is_json_content_type(content_type):
                body = await transport.read_body(response)
            outcome = self.classifier.classify(context, content_type, body)
            if outcome is Outcome.BYPASS:
                self._reset_coordinators()
            if outcome is not Outcome.AUTH_FAILURE:
                return response

            logged_in = await self.coordinator.on_auth_failure(context)
            if not logged_in:
                return self._abandon(context, response, ReauthenticationFailed)
            replayed = await self.replayer.replay(context, transport, *args)
            if replayed is None:
                return self._abandon(context, response, RetriesExhausted)
            await transport.discard(response)
            response = replayed

    # ------------------------ sync path ------------------------
    def send_sync(self, context: RequestContext, transport: SyncTransport, *args) -> Any:
        response = transport.dispatch(context, *args)
        return self.complete_sync(context, response, transport, *args)

    def complete_sync(
        self, context: RequestContext, response, transport: SyncTransport, *args
    ) -> Any:
        while True:
            content_type = transport.content_type(response)
            body = None
            if is_json_content_type(content_type):
                body = transport.read_body(response)
            outcome = self.classifier.classify(context, content_type, body)
            if outcome is Outcome.BYPASS:
                self._reset_coordinators()
            if outcome is not Outcome.AUTH_FAILURE:
                return response

            logged_in = self.sync_coordinator.on_auth_failure(context).result()
            if not logged_in:
                return self._abandon(context, response, ReauthenticationFailed)
            replayed = self.replayer.replay_sync(context, transport, *args)
            if replayed is None:
                return self._abandon(context, response, RetriesExhausted)
            transport.discard(response)
            response = replayed

    def _reset_coordinators(self) -> None:
        self.coordinator.reset()
        self.sync_coordinator.reset()

    def _abandon(self, context: RequestContext, response, error_cls) -> Any:
        reason = "login failed" if error_cls is ReauthenticationFailed else "retries exhausted"
        with contextlib.suppress(Exception):
            self._logger.warning(f"giving up on {context.describe()}: {reason}")
        if self.config.on_abandon == "raise":
            raise error_cls(f"relogin: {reason} for {context.describe()}", context, response)
        return response

    # ------------------------ adapter factories ------------------------
    def transport(self, inner=None):
        from .adapters import ReloginTransport  # noqa: PLC0415

        return ReloginTransport(self, inner)

    def sync_transport(self, inner=None):
        from .adapters import SyncReloginTransport  # noqa: PLC0415

        return SyncReloginTransport(self, inner)

    def wrap_httpx(self, client):
        """Put the interceptor in front of an existing httpx client's transport."""
        from .adapters import wrap_httpx  # noqa: PLC0415

        return wrap_httpx(self, client)

    def requests_auth(self):
        from .adapters import ReloginAuth  # noqa: PLC0415

        return ReloginAuth(self)

    def aiohttp_middleware(self):
        from .adapters import ReloginMiddleware  # noqa: PLC0415

        return ReloginMiddleware(self)


def setup(
    config: Union[InterceptConfig, None] = None,
    *,
    token_store: TokenStore,
    log_level: Union[int, None] = None,
    **kwargs,
) -> Interceptor:
    """Create the process-wide Interceptor.

    Args:
        config (InterceptConfig | None, optional): base configuration
        token_store (TokenStore): where the current credential is read from
        log_level (int | None, optional): level for the "relogin" logger
        kwargs:
        - reauthenticate / on_confirm: callable starting the login flow
        - max_retries: int
        - intercept_codes: Iterable[int]
        - whitelist: Iterable of WhitelistEntry | (method, url) | mapping
        - on_abandon: "return" | "raise"
    """
    resolved = build_config(config, **kwargs)
    if log_level is not None:
        with contextlib.suppress(Exception):
            logging.getLogger("relogin").setLevel(log_level)
    return Interceptor(resolved, token_store)
