from asyncio import Future as AsyncFuture
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Union


@dataclass
class RequestContext:
    method: str
    url: str
    async_: bool = True
    username: str | None = None
    password: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    retry_count: int = 0

    def describe(self) -> str:
        return f"{self.method.upper()} {self.url}"


@dataclass
class CoordinatorState:
    # Non-None exactly while a login flow is outstanding
    active_login: Union[AsyncFuture, Future, None] = None
    waiters: list = field(default_factory=list)

    def clear(self) -> int:
        """Drop the active login and waiters; return how many waiters were dropped."""
        dropped = len(self.waiters)
        self.active_login = None
        self.waiters.clear()
        return dropped
