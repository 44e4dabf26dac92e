from typing import Protocol, Union, runtime_checkable

DEFAULT_TOKEN_HEADER = "x-token-id"


@runtime_checkable
class TokenStore(Protocol):
    """Where the current credential lives; owned by the host application."""

    def get_token(self) -> Union[str, None]: ...

    def get_token_header_name(self) -> str: ...


class MemoryTokenStore:
    """In-process TokenStore. The login flow calls set_token() with the fresh credential."""

    def __init__(
        self,
        token: Union[str, None] = None,
        header_name: str = DEFAULT_TOKEN_HEADER,
        scheme: str = "",
    ):
        self._token = token
        self.header_name = header_name
        self.scheme = scheme

    def get_token(self) -> Union[str, None]:
        if self._token is None:
            return None
        return f"{self.scheme} {self._token}".strip()

    def set_token(self, token: Union[str, None]) -> None:
        self._token = token

    def get_token_header_name(self) -> str:
        return self.header_name


def is_token_header(store: TokenStore, name: str) -> bool:
    header = store.get_token_header_name() or DEFAULT_TOKEN_HEADER
    return name.lower() == header.lower()


def credential_value(store: TokenStore, name: str, value: str) -> str:
    """Value to put on the wire for header `name`: the current token for the credential header."""
    if is_token_header(store, name):
        return store.get_token() or ""
    return value
