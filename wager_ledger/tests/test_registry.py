"""
Unit Tests for the Match Registry

Tests cover:
1. Creation permissions
2. Placeholder names
3. Assignment notifications
4. Listing views
"""

import pytest
from decimal import Decimal

from wager_ledger.errors import AuthorizationError
from wager_ledger.models import MatchPlayer, MatchStatus, MatchView, Team, UserRole
from wager_ledger.notifications import NotificationDispatcher
from wager_ledger.registry import MatchRegistry
from wager_ledger.service import LedgerService
from wager_ledger.storage import InMemoryStorage
from wager_ledger.users import UserDirectory


def build():
    storage = InMemoryStorage(seed_demo_data=False)
    notifications = NotificationDispatcher(storage)
    users = UserDirectory(storage, notifications)
    registry = MatchRegistry(storage, notifications)
    ledger = LedgerService(storage, notifications)
    admin = users.create_user("ADMIN", "admin@gmail.com", "444488", role=UserRole.ADMIN)
    alice = users.create_user("ALICE", "alice@gmail.com", "111111")
    bob = users.create_user("BOB", "bob@gmail.com", "222222")
    return storage, users, registry, ledger, admin, alice, bob


def stake(user, amount):
    return MatchPlayer(user_id=user.id, username=user.username, bet_amount=Decimal(amount))


class TestCreateMatch:
    """Tests for match creation."""

    def test_admin_creates_match(self):
        storage, users, registry, ledger, admin, alice, bob = build()

        match = registry.create_match("DERBY", [stake(alice, "100")], [stake(bob, "100")], admin.id)

        assert match.name == "DERBY"
        assert match.status == MatchStatus.UNDECIDED
        assert match.winning_team is None
        assert match.created_by == admin.id
        assert match.team_a[0].user_id == alice.id
        assert match.total_stake() == Decimal("200")
        assert registry.get_match(match.id) == match

    def test_player_without_permission_is_rejected(self):
        """Scenario: no match persisted and no notifications sent."""
        storage, users, registry, ledger, admin, alice, bob = build()

        with pytest.raises(AuthorizationError):
            registry.create_match("ROGUE", [stake(alice, "10")], [stake(bob, "10")], alice.id)

        assert registry.list_matches() == []
        assert storage.notifications == {}

    def test_player_with_permission_can_create(self):
        storage, users, registry, ledger, admin, alice, bob = build()
        users.set_user_fields(alice.id, can_create_match=True)

        match = registry.create_match("PICKUP", [stake(alice, "10")], [stake(bob, "10")], alice.id)

        assert match.created_by == alice.id

    def test_blocked_creator_is_rejected(self):
        storage, users, registry, ledger, admin, alice, bob = build()
        users.set_user_fields(alice.id, can_create_match=True, is_blocked=True)

        with pytest.raises(AuthorizationError):
            registry.create_match("BLOCKED", [stake(alice, "10")], [stake(bob, "10")], alice.id)

    def test_blank_name_gets_placeholder(self):
        storage, users, registry, ledger, admin, alice, bob = build()

        match = registry.create_match("   ", [stake(alice, "10")], [stake(bob, "10")], admin.id)

        assert match.name.startswith("ENGAGEMENT_")
        assert match.name[len("ENGAGEMENT_"):].isdigit()

    def test_name_is_trimmed(self):
        storage, users, registry, ledger, admin, alice, bob = build()

        match = registry.create_match("  CUP FINAL ", [stake(alice, "10")], [stake(bob, "10")], admin.id)

        assert match.name == "CUP FINAL"

    def test_assignment_notification_per_participant(self):
        storage, users, registry, ledger, admin, alice, bob = build()

        registry.create_match("DERBY", [stake(alice, "100")], [stake(bob, "75")], admin.id)

        alice_msgs = [n.message for n in ledger.notifications.list_notifications(alice.id)]
        bob_msgs = [n.message for n in ledger.notifications.list_notifications(bob.id)]
        assert len(alice_msgs) == 1 and "DERBY" in alice_msgs[0] and "100" in alice_msgs[0]
        assert len(bob_msgs) == 1 and "75" in bob_msgs[0]
        assert ledger.notifications.list_notifications(admin.id) == []

    def test_rosters_taken_as_given(self):
        """Duplicate players and odd stakes are not rejected; paid starts False."""
        storage, users, registry, ledger, admin, alice, bob = build()
        flagged = MatchPlayer(user_id=bob.id, username=bob.username, bet_amount=Decimal("5"), paid=True)

        match = registry.create_match(
            "LENIENT",
            [stake(alice, "0"), {"user_id": bob.id, "username": "BOB", "bet_amount": "20"}],
            [flagged],
            admin.id,
        )

        assert len(match.team_a) == 2
        assert match.team_a[1].bet_amount == Decimal("20")
        assert match.team_b[0].paid is False


class TestListMatches:
    """Tests for listing and filtered views."""

    def test_newest_first(self):
        storage, users, registry, ledger, admin, alice, bob = build()
        first = registry.create_match("FIRST", [stake(alice, "1")], [stake(bob, "1")], admin.id)
        second = registry.create_match("SECOND", [stake(alice, "1")], [stake(bob, "1")], admin.id)

        assert [m.id for m in registry.list_matches()] == [second.id, first.id]

    def test_undecided_and_pending_views(self):
        storage, users, registry, ledger, admin, alice, bob = build()
        open_match = registry.create_match("OPEN", [stake(alice, "1")], [stake(bob, "1")], admin.id)
        owing = registry.create_match("OWING", [stake(alice, "1")], [stake(bob, "1")], admin.id)
        cleared = registry.create_match("CLEARED", [stake(alice, "1")], [stake(bob, "1")], admin.id)
        ledger.settle_match(owing.id, Team.A)
        ledger.settle_match(cleared.id, Team.A)
        ledger.mark_loser_as_paid(cleared.id, bob.id)

        assert [m.id for m in registry.list_matches(MatchView.UNDECIDED)] == [open_match.id]
        assert [m.id for m in registry.list_matches(MatchView.PENDING)] == [owing.id]
        assert len(registry.list_matches(MatchView.ALL)) == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
