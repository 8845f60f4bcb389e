"""
Wallet and Settlement Ledger for Peer-Wagered Matches

This package provides:
- Match creation with staked rosters
- Idempotent settlement of match outcomes into player balances
- Debt clearing for losers who pay outside the system
- Admin balance overrides with an audit trail
- Notifications emitted as side effects of ledger events
"""

from .errors import (
    LedgerServiceError,
    AuthorizationError,
    AuthenticationError,
    UserNotFoundError,
    DuplicateUserError,
    LedgerValidationError,
    StorageUnavailableError,
)
from .models import (
    UserRole,
    Team,
    MatchStatus,
    TransactionType,
    SettlementOutcome,
    PaymentClearOutcome,
    User,
    Match,
    MatchPlayer,
    Transaction,
    Notification,
    SettlementResult,
    PaymentClearResult,
)
from .notifications import NotificationDispatcher
from .registry import MatchRegistry
from .service import LedgerService
from .storage import InMemoryStorage
from .users import UserDirectory

__all__ = [
    "LedgerServiceError",
    "AuthorizationError",
    "AuthenticationError",
    "UserNotFoundError",
    "DuplicateUserError",
    "LedgerValidationError",
    "StorageUnavailableError",
    "UserRole",
    "Team",
    "MatchStatus",
    "TransactionType",
    "SettlementOutcome",
    "PaymentClearOutcome",
    "User",
    "Match",
    "MatchPlayer",
    "Transaction",
    "Notification",
    "SettlementResult",
    "PaymentClearResult",
    "NotificationDispatcher",
    "MatchRegistry",
    "LedgerService",
    "InMemoryStorage",
    "UserDirectory",
]
