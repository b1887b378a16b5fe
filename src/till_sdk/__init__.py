from .auth_store import AuthStore, MemoryAuthStore
from .cancellation import CancelToken
from .cash_counts import DEFAULT_DENOMINATIONS, cash_counts_total, parse_cash_counts
from .clients.till_client import TillClient
from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    ApiError,
    AuthError,
    NotFoundError,
    TillAlreadyOpenError,
    TillError,
    TillNotOpenError,
    TillStateError,
    TillSyncError,
    TillValidationError,
    TransportError,
    ValidationError,
)
from .expected_amount import expected_till_amount
from .http_client import HttpClient
from .local_store import TillSessionRepository
from .models import (
    ActiveTillCheck,
    BackendTillSession,
    CashOrder,
    CloseTillRequest,
    CloseTillResult,
    OpenTillRequest,
    OpenTillResult,
    TillSession,
    TillSessionLookup,
    UserContext,
)
from .session import ApiSession
from .shift import ShiftCloseSummary, ShiftService
from .till_manager import SyncReport, TillSessionManager

__version__ = "0.1.0"

__all__ = [
    "ActiveTillCheck",
    "ApiError",
    "ApiSession",
    "AuthError",
    "AuthStore",
    "BackendTillSession",
    "CancelToken",
    "CashOrder",
    "ClientConfig",
    "CloseTillRequest",
    "CloseTillResult",
    "ConfigError",
    "DEFAULT_DENOMINATIONS",
    "HttpClient",
    "MemoryAuthStore",
    "NotFoundError",
    "OpenTillRequest",
    "OpenTillResult",
    "ShiftCloseSummary",
    "ShiftService",
    "SyncReport",
    "TillAlreadyOpenError",
    "TillClient",
    "TillError",
    "TillNotOpenError",
    "TillSession",
    "TillSessionLookup",
    "TillSessionManager",
    "TillSessionRepository",
    "TillStateError",
    "TillSyncError",
    "TillValidationError",
    "TransportError",
    "UserContext",
    "ValidationError",
    "cash_counts_total",
    "expected_till_amount",
    "load_config",
    "parse_cash_counts",
]
