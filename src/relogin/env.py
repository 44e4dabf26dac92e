import os
from typing import Union

from .types import InterceptConfig, WhitelistEntry, build_config


def _parse_env_file(env_path: str) -> dict[str, str]:
    """Parse a simple .env file into a dict without modifying os.environ.

    Supports basic KEY=VALUE pairs, ignoring comments and blank lines.
    Surrounding single/double quotes are stripped if present.
    """
    values: dict[str, str] = {}
    try:
        with open(env_path) as f:
            for raw_line in f:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    continue
                key, val = line.split("=", 1)
                key = key.strip()
                val = val.strip().strip('"').strip("'")
                if key:
                    values[key] = val
    except FileNotFoundError:
        # A missing file simply contributes nothing
        pass
    return values


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_whitelist(value: str) -> list[WhitelistEntry]:
    entries = []
    for item in _split(value):
        method, _, url = item.partition(" ")
        if not url.strip():
            raise ValueError(f"whitelist item must look like 'METHOD URL', got {item!r}")
        entries.append(WhitelistEntry(method=method, url=url.strip()))
    return entries


def load_config_from_env(
    prefix: str = "RELOGIN_",
    env_path: Union[str, None] = None,
    **overrides,
) -> InterceptConfig:
    """Build an InterceptConfig from environment variables.

    Recognised variables (after the prefix):
    - MAX_RETRIES: int
    - INTERCEPT_CODES: comma separated ints, e.g. "401,403"
    - WHITELIST: comma separated "METHOD URL" pairs, e.g. "post /auth/logout, get /ping"
    - ON_ABANDON: "return" | "raise"

    If 'env_path' is provided, variables from the .env file are used to augment
    lookups (without mutating the process environment). Values in the actual
    environment take precedence over the file. Keyword overrides win over both;
    the reauthenticate callable can only be passed that way.
    """
    file_env = _parse_env_file(env_path) if env_path else {}
    env_map: dict[str, str] = {**file_env, **os.environ}

    options: dict[str, object] = {}
    max_retries = env_map.get(f"{prefix}MAX_RETRIES")
    if max_retries:
        options["max_retries"] = int(max_retries)
    codes = env_map.get(f"{prefix}INTERCEPT_CODES")
    if codes:
        options["intercept_codes"] = [int(c) for c in _split(codes)]
    whitelist = env_map.get(f"{prefix}WHITELIST")
    if whitelist:
        options["whitelist"] = _parse_whitelist(whitelist)
    on_abandon = env_map.get(f"{prefix}ON_ABANDON")
    if on_abandon:
        options["on_abandon"] = on_abandon.strip().lower()

    options.update(overrides)
    return build_config(**options)
