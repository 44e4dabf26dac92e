import asyncio
import concurrent.futures
import contextlib
import contextvars
import inspect
import logging
import threading
from typing import Union

from .state import CoordinatorState, RequestContext
from .types import Reauthenticate

# ---------- Common helpers ----------

# True while running inside a login flow (its task and children, or the leader thread)
_in_login: contextvars.ContextVar[bool] = contextvars.ContextVar("relogin_in_login", default=False)


def _login_succeeded(login: Union[asyncio.Future, concurrent.futures.Future]) -> bool:
    if login.cancelled():
        return False
    if login.exception() is not None:
        return False
    return bool(login.result())


class _CoordinatorBase:
    def __init__(self, reauthenticate: Reauthenticate):
        self._reauthenticate = reauthenticate
        self.state = CoordinatorState()
        self._logger = logging.getLogger("relogin")

    @property
    def login_in_flight(self) -> bool:
        return self.state.active_login is not None

    @property
    def pending(self) -> int:
        return len(self.state.waiters)

    def _settle(self, login) -> None:
        # Runs before any waiter is released: the next failure after this starts a new login.
        if self.state.active_login is not login:
            return
        released = self.state.clear()
        if _login_succeeded(login):
            self._logger.info(f"reauthentication succeeded; releasing {released} waiter(s)")
        else:
            err = None if login.cancelled() else login.exception()
            self._logger.warning(
                f"reauthentication failed ({err or 'declined'}); abandoning {released} waiter(s)"
            )

    def _inside_login(self, context: RequestContext) -> bool:
        # a request made by the login flow itself cannot wait for that login
        if not _in_login.get():
            return False
        self._logger.warning(
            f"auth failure on {context.describe()} during reauthentication; not waiting"
        )
        return True


# ---------- asyncio flavour (httpx.AsyncClient, aiohttp) ----------


class AuthCoordinator(_CoordinatorBase):
    """Single-flight gate around the host's reauthenticate capability.

    Any number of requests may fail auth at once; only the first one starts the
    login flow, everyone (including the first) gets a waiter future that resolves
    to True once the login succeeded, or False if it failed.

    State is reset as soon as the login settles, not once the replays finish, so a
    later unrelated failure can start a fresh login right away.
    """

    async def _login(self) -> bool:
        # the task runs in its own copy of the context
        _in_login.set(True)
        result = self._reauthenticate()
        if inspect.isawaitable(result):
            result = await result
        return result is not False

    def on_auth_failure(self, context: RequestContext) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        if self._inside_login(context):
            failed = loop.create_future()
            failed.set_result(False)
            return failed
        login = self.state.active_login
        if login is None:
            self._logger.info(f"auth failure on {context.describe()}; starting reauthentication")
            login = loop.create_task(self._login())
            login.add_done_callback(self._settle)
            self.state.active_login = login
        else:
            self._logger.debug(f"auth failure on {context.describe()}; waiting for login in flight")

        waiter = loop.create_future()
        self.state.waiters.append(waiter)
        login.add_done_callback(lambda fut: self._release(waiter, fut))
        return waiter

    def _release(self, waiter: asyncio.Future, login: asyncio.Future) -> None:
        # the caller may have been cancelled while waiting
        if waiter.done():
            return
        waiter.set_result(_login_succeeded(login))

    def reset(self) -> None:
        """Forget the login in flight and its waiters (whitelisted request completed).

        Waiters already chained to the detached login still settle with its outcome.
        """
        dropped = self.state.clear()
        if dropped:
            self._logger.info(
                f"coordinator reset by whitelisted request; detached {dropped} waiter(s)"
            )


# ---------- threading flavour (requests, httpx.Client) ----------


class SyncAuthCoordinator(_CoordinatorBase):
    """Same contract as AuthCoordinator for blocking clients.

    The first failing thread runs the login inline; the others block on their
    waiter until it settles.
    """

    def __init__(self, reauthenticate: Reauthenticate):
        super().__init__(reauthenticate)
        self._lock = threading.Lock()

    def _login(self) -> bool:
        token = _in_login.set(True)
        try:
            result = self._reauthenticate()
            if inspect.iscoroutine(result):
                result = asyncio.run(result)
            elif inspect.isawaitable(result):
                raise TypeError(
                    "sync clients need reauthenticate to return a coroutine or a value"
                )
        finally:
            _in_login.reset(token)
        return result is not False

    def on_auth_failure(self, context: RequestContext) -> concurrent.futures.Future:
        if self._inside_login(context):
            failed: concurrent.futures.Future = concurrent.futures.Future()
            failed.set_result(False)
            return failed
        with self._lock:
            login = self.state.active_login
            leader = login is None
            if leader:
                self._logger.info(
                    f"auth failure on {context.describe()}; starting reauthentication"
                )
                login = concurrent.futures.Future()
                login.add_done_callback(self._settle_locked)
                self.state.active_login = login
            else:
                self._logger.debug(
                    f"auth failure on {context.describe()}; waiting for login in flight"
                )
            waiter: concurrent.futures.Future = concurrent.futures.Future()
            self.state.waiters.append(waiter)
        login.add_done_callback(lambda fut: self._release(waiter, fut))

        if leader:
            try:
                login.set_result(self._login())
            except Exception as e:  # login errors are a failed login, not a client error
                login.set_exception(e)
        return waiter

    def _settle_locked(self, login: concurrent.futures.Future) -> None:
        with self._lock:
            self._settle(login)

    def _release(self, waiter: concurrent.futures.Future, login: concurrent.futures.Future) -> None:
        with contextlib.suppress(concurrent.futures.InvalidStateError):
            waiter.set_result(_login_succeeded(login))

    def reset(self) -> None:
        with self._lock:
            dropped = self.state.clear()
        if dropped:
            self._logger.info(
                f"coordinator reset by whitelisted request; detached {dropped} waiter(s)"
            )
