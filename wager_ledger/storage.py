"""
In-memory persistent store.

Every public method is one atomic unit, the equivalent of a single-row
write or a single statement against a database. Rows go in and come out as
snake_case dicts and are copied at the boundary, so callers never hold a
live reference into a table.
"""

import threading
from copy import deepcopy
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from .errors import UserNotFoundError
from .models import MatchStatus, Team


ADMIN_ID = UUID("00000000-0000-0000-0000-00000000a001")
PLAYER_ONE_ID = UUID("550e8400-e29b-41d4-a716-446655440000")
STORM_RIDER_ID = UUID("660e8400-e29b-41d4-a716-446655440001")


class InMemoryStorage:
    def __init__(self, seed_demo_data: bool = True):
        self._lock = threading.RLock()
        self.users: dict[UUID, dict] = {}
        self.matches: dict[UUID, dict] = {}
        self.transactions: dict[UUID, dict] = {}
        self.notifications: dict[UUID, dict] = {}
        if seed_demo_data:
            self._seed_data()

    def _seed_data(self):
        now = datetime.now(timezone.utc)
        seed = [
            (ADMIN_ID, "ADMIN", "admin@gmail.com", "444488", "ADMIN", Decimal("0.00"), True, 0),
            (PLAYER_ONE_ID, "PLAYER_ONE", "player1@gmail.com", "123456", "PLAYER", Decimal("500.00"), False, 10),
            (STORM_RIDER_ID, "STORM_RIDER", "storm@gmail.com", "111111", "PLAYER", Decimal("-200.00"), True, 5),
        ]
        for user_id, username, email, pin, role, balance, can_create, paid in seed:
            self.users[user_id] = {
                "id": user_id, "username": username, "email": email, "pin": pin,
                "role": role, "balance": balance, "starting_balance": balance,
                "is_blocked": False, "is_deleted": False,
                "can_create_match": can_create, "total_matches_paid": paid,
                "created_at": now,
            }

    # users

    def insert_user(self, row: dict) -> dict:
        with self._lock:
            self.users[row["id"]] = deepcopy(row)
            return deepcopy(row)

    def get_user(self, user_id: UUID) -> Optional[dict]:
        with self._lock:
            row = self.users.get(user_id)
            return deepcopy(row) if row else None

    def find_user(self, **criteria) -> Optional[dict]:
        with self._lock:
            for row in self.users.values():
                if all(row.get(k) == v for k, v in criteria.items()):
                    return deepcopy(row)
            return None

    def list_users(self) -> list[dict]:
        with self._lock:
            return [deepcopy(row) for row in self.users.values()]

    def update_user(self, user_id: UUID, fields: dict) -> bool:
        with self._lock:
            row = self.users.get(user_id)
            if row is None:
                return False
            row.update(deepcopy(fields))
            return True

    # matches

    def insert_match(self, row: dict) -> dict:
        with self._lock:
            self.matches[row["id"]] = deepcopy(row)
            return deepcopy(row)

    def get_match(self, match_id: UUID) -> Optional[dict]:
        with self._lock:
            row = self.matches.get(match_id)
            return deepcopy(row) if row else None

    def list_matches(self) -> list[dict]:
        with self._lock:
            return [deepcopy(row) for row in self.matches.values()]

    def claim_match_settlement(self, match_id: UUID, winning_team: Team) -> Optional[dict]:
        """Compare-and-set UNDECIDED -> SETTLED. Returns the claimed row, or None if not claimable."""
        with self._lock:
            row = self.matches.get(match_id)
            if row is None or row["status"] != MatchStatus.UNDECIDED:
                return None
            row["status"] = MatchStatus.SETTLED
            row["winning_team"] = winning_team
            return deepcopy(row)

    def mark_roster_paid(self, match_id: UUID, team: Team, user_id: UUID) -> Optional[dict]:
        """Flip ``paid`` on the first unpaid roster entry for ``user_id``. Returns that entry or None."""
        with self._lock:
            row = self.matches.get(match_id)
            if row is None:
                return None
            roster = row["team_a"] if team == Team.A else row["team_b"]
            for player in roster:
                if player["user_id"] == user_id and not player["paid"]:
                    player["paid"] = True
                    return deepcopy(player)
            return None

    # ledger

    def apply_ledger_entry(self, entry: dict, increment_matches_paid: bool = False) -> dict:
        """Move the user's balance and append the transaction as one unit."""
        with self._lock:
            user = self.users.get(entry["user_id"])
            if user is None:
                raise UserNotFoundError(f"User {entry['user_id']} not found")
            new_balance = user["balance"] + entry["amount"]
            stored = deepcopy(entry)
            stored["balance_after"] = new_balance
            user["balance"] = new_balance
            if increment_matches_paid:
                user["total_matches_paid"] += 1
            self.transactions[stored["id"]] = stored
            return deepcopy(stored)

    def list_transactions(self, user_id: Optional[UUID] = None, match_id: Optional[UUID] = None) -> list[dict]:
        with self._lock:
            return [
                deepcopy(row) for row in self.transactions.values()
                if (user_id is None or row["user_id"] == user_id)
                and (match_id is None or row["match_id"] == match_id)
            ]

    # notifications

    def insert_notification(self, row: dict) -> dict:
        with self._lock:
            self.notifications[row["id"]] = deepcopy(row)
            return deepcopy(row)

    def list_notifications(self, user_id: UUID) -> list[dict]:
        with self._lock:
            return [deepcopy(row) for row in self.notifications.values() if row["user_id"] == user_id]

    def mark_notifications_read(self, user_id: UUID) -> int:
        with self._lock:
            flipped = 0
            for row in self.notifications.values():
                if row["user_id"] == user_id and not row["is_read"]:
                    row["is_read"] = True
                    flipped += 1
            return flipped


def newest_first(rows: list[dict]) -> list[dict]:
    # Ties on created_at fall back to reverse insertion order.
    return sorted(reversed(rows), key=lambda r: r["created_at"], reverse=True)
