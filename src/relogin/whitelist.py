from collections.abc import Iterable
from urllib.parse import urlsplit

from .types import WhitelistEntry


def _relative_form(url: str) -> str | None:
    parts = urlsplit(url)
    if not (parts.scheme or parts.netloc):
        return None
    return f"{parts.path}?{parts.query}" if parts.query else parts.path


class WhitelistFilter:
    """Requests exempt from auth interception, e.g. the logout endpoint."""

    def __init__(self, entries: Iterable[WhitelistEntry]):
        self.entries = tuple(entries)

    def is_exempt(self, method: str, url: str) -> bool:
        method = method.lower()
        relative = None
        for entry in self.entries:
            if entry.method.lower() != method:
                continue
            if entry.url == url:
                return True
            # "/logout" entries still match the absolute URLs transports record
            if entry.url.startswith("/"):
                if relative is None:
                    relative = _relative_form(url) or ""
                if entry.url == relative:
                    return True
        return False
