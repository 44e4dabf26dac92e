from typing import Any

from .state import RequestContext


class ReloginError(Exception):
    """Base class for requests that relogin gave up on."""

    def __init__(self, message: str, context: RequestContext, response: Any = None):
        super().__init__(message)
        self.context = context
        self.response = response


class ReauthenticationFailed(ReloginError):
    """The login flow errored or declined; the pending replay was dropped."""


class RetriesExhausted(ReloginError):
    """The request was already replayed max_retries times."""
