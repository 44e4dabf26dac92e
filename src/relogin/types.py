from collections.abc import Awaitable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Callable, Literal, Union

# 401 in the JSON body; three replays per request
DEFAULT_MAX_RETRIES = 3
DEFAULT_INTERCEPT_CODES = frozenset({401})

Reauthenticate = Callable[[], Union[Awaitable[Union[bool, None]], bool, None]]


def _already_logged_in() -> bool:
    return True


@dataclass(frozen=True)
class WhitelistEntry:
    method: str
    url: str


@dataclass(frozen=True)
class InterceptConfig:
    reauthenticate: Reauthenticate = _already_logged_in
    max_retries: int = DEFAULT_MAX_RETRIES
    intercept_codes: frozenset[int] = DEFAULT_INTERCEPT_CODES
    whitelist: tuple[WhitelistEntry, ...] = field(default_factory=tuple)
    # What a caller gets once its replay is abandoned (login failed / retries used up)
    on_abandon: Literal["return", "raise"] = "return"

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.on_abandon not in ("return", "raise"):
            raise ValueError("on_abandon must be 'return' or 'raise'")


def coerce_whitelist(items: Union[Iterable[object], None]) -> tuple[WhitelistEntry, ...]:
    """Turn WhitelistEntry | (method, url) | {"method", "url"} items into WhitelistEntry."""
    if not items:
        return ()
    entries: list[WhitelistEntry] = []
    for item in items:
        if isinstance(item, WhitelistEntry):
            entries.append(item)
        elif isinstance(item, Mapping):
            entries.append(WhitelistEntry(method=str(item["method"]), url=str(item["url"])))
        elif isinstance(item, (tuple, list)) and len(item) == 2:  # noqa: PLR2004
            entries.append(WhitelistEntry(method=str(item[0]), url=str(item[1])))
        else:
            raise TypeError(f"whitelist item must be a WhitelistEntry, pair or mapping: {item!r}")
    return tuple(entries)


def build_config(config: Union[InterceptConfig, None] = None, **kwargs) -> InterceptConfig:
    """Resolve keyword options on top of an optional InterceptConfig.

    Keywords:
    - reauthenticate (alias on_confirm): callable starting the login flow
    - max_retries: int
    - intercept_codes: Iterable[int]
    - whitelist: Iterable of WhitelistEntry | (method, url) | mapping
    - on_abandon: "return" | "raise"
    """
    base = config or InterceptConfig()
    reauthenticate = kwargs.get("reauthenticate", kwargs.get("on_confirm", base.reauthenticate))
    codes = kwargs.get("intercept_codes")
    whitelist = kwargs.get("whitelist")
    return InterceptConfig(
        reauthenticate=reauthenticate,
        max_retries=int(kwargs.get("max_retries", base.max_retries)),
        intercept_codes=(
            frozenset(int(c) for c in codes) if codes is not None else base.intercept_codes
        ),
        whitelist=coerce_whitelist(whitelist) if whitelist is not None else base.whitelist,
        on_abandon=kwargs.get("on_abandon", base.on_abandon),
    )
