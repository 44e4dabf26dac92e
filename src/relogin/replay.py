import logging
from typing import Any

from .recorder import RequestRecorder
from .state import RequestContext


class RequestReplayer:
    """Rebuilds a recorded request with the current credential and sends it again."""

    def __init__(self, recorder: RequestRecorder, max_retries: int):
        self.recorder = recorder
        self.max_retries = max_retries
        self._logger = logging.getLogger("relogin")

    def _rebuild(self, context: RequestContext) -> bool:
        """Re-open the context and re-apply its headers; return whether a resend is allowed."""
        headers = dict(context.headers)
        self.recorder.open(
            context.method,
            context.url,
            context.async_,
            context.username,
            context.password,
            context=context,
        )
        for name, value in headers.items():
            self.recorder.set_header(context, name, value)

        if context.retry_count >= self.max_retries:
            self._logger.warning(
                f"not replaying {context.describe()}: already retried {context.retry_count} time(s)"
            )
            return False
        context.retry_count += 1
        self._logger.info(
            f"replaying {context.describe()} attempt={context.retry_count}/{self.max_retries}"
        )
        return True

    async def replay(self, context: RequestContext, transport, *send_args) -> Any:
        """Resend through an async transport; None means the retry budget is spent."""
        if not self._rebuild(context):
            return None
        return await transport.dispatch(context, *send_args)

    def replay_sync(self, context: RequestContext, transport, *send_args) -> Any:
        if not self._rebuild(context):
            return None
        return transport.dispatch(context, *send_args)
