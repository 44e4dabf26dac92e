from .adapters import ReloginAuth, ReloginMiddleware, ReloginTransport, SyncReloginTransport
from .classifier import Outcome, ResponseClassifier
from .coordinator import AuthCoordinator, SyncAuthCoordinator
from .credentials import DEFAULT_TOKEN_HEADER, MemoryTokenStore, TokenStore
from .env import load_config_from_env
from .errors import ReauthenticationFailed, ReloginError, RetriesExhausted
from .interceptor import Interceptor, SyncTransport, Transport, setup
from .recorder import RequestRecorder
from .replay import RequestReplayer
from .state import CoordinatorState, RequestContext
from .types import InterceptConfig, WhitelistEntry
from .whitelist import WhitelistFilter

__all__ = [
    "InterceptConfig",
    "WhitelistEntry",
    "RequestContext",
    "CoordinatorState",
    "TokenStore",
    "MemoryTokenStore",
    "DEFAULT_TOKEN_HEADER",
    "RequestRecorder",
    "WhitelistFilter",
    "Outcome",
    "ResponseClassifier",
    "AuthCoordinator",
    "SyncAuthCoordinator",
    "RequestReplayer",
    "Interceptor",
    "Transport",
    "SyncTransport",
    "setup",
    "ReloginTransport",
    "SyncReloginTransport",
    "ReloginAuth",
    "ReloginMiddleware",
    "ReloginError",
    "ReauthenticationFailed",
    "RetriesExhausted",
    "load_config_from_env",
]
