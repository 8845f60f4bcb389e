import logging
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from .config import Settings
from .errors import (
    AuthenticationError,
    AuthorizationError,
    DuplicateUserError,
    LedgerValidationError,
    UserNotFoundError,
)
from .models import User, UserRole
from .notifications import NotificationDispatcher
from .storage import InMemoryStorage


logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Z_]+$")
EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+-]+@gmail\.(com|in)$")
PIN_PATTERN = re.compile(r"^\d{6}$")

# Balance is owned by the ledger; everything else on the row is editable.
EDITABLE_FIELDS = {"username", "email", "pin", "role", "is_blocked", "is_deleted", "can_create_match"}


def normalize_username(username: str) -> str:
    return username.strip().upper()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_pin(pin: str) -> str:
    if not PIN_PATTERN.match(pin or ""):
        raise LedgerValidationError("PIN must be exactly 6 digits")
    return pin


class UserDirectory:
    def __init__(
        self,
        storage: InMemoryStorage,
        notifications: Optional[NotificationDispatcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.storage = storage
        self.notifications = notifications or NotificationDispatcher(storage)
        self.settings = settings or Settings()

    def list_users(self, include_deleted: bool = False) -> list[User]:
        users = [User(**u) for u in self.storage.list_users()]
        if not include_deleted:
            users = [u for u in users if not u.is_deleted]
        return sorted(users, key=lambda u: u.created_at)

    def get_user(self, user_id: UUID) -> Optional[User]:
        row = self.storage.get_user(user_id)
        return User(**row) if row else None

    def create_user(
        self,
        username: str,
        email: str,
        pin: Optional[str] = None,
        role: UserRole = UserRole.PLAYER,
        starting_balance: Decimal = Decimal("0.00"),
        can_create_match: bool = False,
    ) -> User:
        username = normalize_username(username)
        email = normalize_email(email)
        pin = validate_pin(pin or self.settings.default_pin)
        if not USERNAME_PATTERN.match(username):
            raise LedgerValidationError("Username must be UPPERCASE letters and underscores only")
        if not EMAIL_PATTERN.match(email):
            raise LedgerValidationError("Email must be a @gmail.com or @gmail.in address")
        self._ensure_unique(username=username, email=email)

        starting_balance = Decimal(str(starting_balance))
        user_data = {
            "id": uuid4(),
            "username": username,
            "email": email,
            "pin": pin,
            "role": UserRole(role),
            "balance": starting_balance,
            "starting_balance": starting_balance,
            "is_blocked": False,
            "is_deleted": False,
            "can_create_match": can_create_match,
            "total_matches_paid": 0,
            "created_at": datetime.now(timezone.utc),
        }
        user = User(**self.storage.insert_user(user_data))
        logger.info("Created %s user %s", user.role.value, user.username)
        return user

    def set_user_fields(self, user_id: UUID, **fields) -> None:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise LedgerValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
        if not self.storage.get_user(user_id):
            raise UserNotFoundError(f"User {user_id} not found")

        updates = {k: v for k, v in fields.items() if v is not None}
        if "username" in updates:
            updates["username"] = normalize_username(updates["username"])
            if not USERNAME_PATTERN.match(updates["username"]):
                raise LedgerValidationError("Username must be UPPERCASE letters and underscores only")
            self._ensure_unique(exclude=user_id, username=updates["username"])
        if "email" in updates:
            updates["email"] = normalize_email(updates["email"])
            if not EMAIL_PATTERN.match(updates["email"]):
                raise LedgerValidationError("Email must be a @gmail.com or @gmail.in address")
            self._ensure_unique(exclude=user_id, email=updates["email"])
        if "pin" in updates:
            validate_pin(updates["pin"])
        if "role" in updates:
            updates["role"] = UserRole(updates["role"])

        if not self.storage.update_user(user_id, updates):
            raise UserNotFoundError(f"User {user_id} not found")

    def soft_delete_user(self, user_id: UUID) -> None:
        if not self.storage.update_user(user_id, {"is_deleted": True}):
            raise UserNotFoundError(f"User {user_id} not found")
        logger.info("Soft-deleted user %s", user_id)

    def login(self, email: str, pin: str) -> User:
        row = self.storage.find_user(email=normalize_email(email), pin=pin)
        if not row:
            raise AuthenticationError("Invalid credentials")
        user = User(**row)
        if user.is_deleted:
            raise AuthorizationError("Account has been deleted")
        if user.is_blocked:
            raise AuthorizationError("Account is blocked")
        return user

    def reset_pin(self, admin_id: UUID, user_id: UUID, new_pin: str) -> None:
        admin = self.get_user(admin_id)
        if not admin or not admin.is_admin:
            raise AuthorizationError(f"User {admin_id} cannot reset PINs")
        validate_pin(new_pin)
        if not self.storage.update_user(user_id, {"pin": new_pin}):
            raise UserNotFoundError(f"User {user_id} not found")
        self.notifications.add_notification(
            user_id, "Security Alert: High Command has reconfigured your security PIN.",
        )

    def _ensure_unique(self, exclude: Optional[UUID] = None, **criteria) -> None:
        for field_name, value in criteria.items():
            existing = self.storage.find_user(**{field_name: value})
            if existing and existing["id"] != exclude:
                raise DuplicateUserError(f"A user with {field_name} {value!r} already exists")
