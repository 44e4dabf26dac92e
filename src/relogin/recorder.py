import logging
from typing import Union

from .credentials import TokenStore, credential_value
from .state import RequestContext


class RequestRecorder:
    """Remembers how each request was opened and which headers it set, so it can be rebuilt."""

    def __init__(self, token_store: TokenStore):
        self.token_store = token_store
        self._logger = logging.getLogger("relogin")

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
        if context is None:
            context = RequestContext(method, url, async_, username, password)
        else:
            # re-open: same request, fresh header set, retry count survives
            context.method = method
            context.url = url
            context.async_ = async_
            context.username = username
            context.password = password
            context.headers = {}
        self._logger.debug(f"recorded open {context.describe()} async={async_}")
        return context

    def set_header(self, context: RequestContext, name: str, value: str) -> str:
        """Record a header and return the value that must go on the wire.

        The credential header always carries the token that is current right now.
        """
        value = credential_value(self.token_store, name, value)
        context.headers[name] = value
        return value
