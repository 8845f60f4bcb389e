import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from .config import Settings
from .errors import UserNotFoundError
from .models import (
    BalanceReconciliation,
    Match,
    MatchPlayer,
    ParticipantResult,
    PaymentClearOutcome,
    PaymentClearResult,
    SettlementOutcome,
    SettlementResult,
    Team,
    Transaction,
    TransactionType,
    User,
)
from .notifications import NotificationDispatcher, format_money
from .storage import InMemoryStorage, newest_first


logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(
        self,
        storage: Optional[InMemoryStorage] = None,
        notifications: Optional[NotificationDispatcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.storage = storage or InMemoryStorage()
        self.notifications = notifications or NotificationDispatcher(self.storage)
        self.settings = settings or Settings()

    def settle_match(self, match_id: UUID, winning_team: Team) -> SettlementResult:
        """
        Declare a winner and pay out every participant exactly once.

        The status claim happens before any payout, so a repeated or
        concurrent call sees the match as settled and does nothing. Each
        participant is then processed on its own; a failure for one is
        logged and reported in the result without stopping the rest.
        """
        winning_team = Team(winning_team)
        if self.storage.get_match(match_id) is None:
            logger.warning("Settlement requested for unknown match %s", match_id)
            return SettlementResult(match_id=match_id, outcome=SettlementOutcome.NOT_FOUND)

        claimed = self.storage.claim_match_settlement(match_id, winning_team)
        if claimed is None:
            logger.warning("Match %s already settled; ignoring winner %s", match_id, winning_team.value)
            return SettlementResult(match_id=match_id, outcome=SettlementOutcome.ALREADY_SETTLED)

        match = Match(**claimed)
        results = []
        for player in match.winners():
            results.append(self._settle_participant(match, player, winning_team, won=True))
        for player in match.losers():
            results.append(self._settle_participant(match, player, winning_team.opponent(), won=False))

        failed = sum(1 for r in results if not r.success)
        logger.info(
            "Settled match %s: team %s won, %d participants, %d failed",
            match.id, winning_team.value, len(results), failed,
        )
        return SettlementResult(
            match_id=match.id,
            outcome=SettlementOutcome.SETTLED,
            winning_team=winning_team,
            participants=results,
        )

    def _settle_participant(self, match: Match, player: MatchPlayer, team: Team, won: bool) -> ParticipantResult:
        amount = player.bet_amount if won else -player.bet_amount
        money = format_money(player.bet_amount, self.settings.currency_symbol)
        if won:
            description = f"Combat Victory: {match.name}"
            message = f"VICTORY: Your squad dominated {match.name}. {money} credited to grid."
        else:
            description = f"Combat Defeat: {match.name}"
            message = f"DEFEAT: Your squad was neutralized in {match.name}. {money} debited from grid."

        try:
            entry = self._apply(
                player.user_id,
                amount,
                TransactionType.WIN if won else TransactionType.LOSS,
                description,
                match_id=match.id,
            )
        except Exception as e:
            logger.exception("Settlement of match %s failed for user %s", match.id, player.user_id)
            return ParticipantResult(user_id=player.user_id, team=team, amount=amount, success=False, error=str(e))

        self.notifications.add_notification(player.user_id, message)
        return ParticipantResult(
            user_id=player.user_id, team=team, amount=amount, success=True, transaction_id=entry.id,
        )

    def mark_loser_as_paid(self, match_id: UUID, user_id: UUID) -> PaymentClearResult:
        """
        Clear a loser's debt that was paid outside the system.

        The stake is credited back, so LOSS followed by PAYMENT_CLEAR nets to
        zero for that player and match. Any unmet precondition is a no-op
        reported through the outcome.
        """
        row = self.storage.get_match(match_id)
        if row is None:
            return self._clear_noop(match_id, user_id, PaymentClearOutcome.NOT_FOUND)

        match = Match(**row)
        if not match.is_settled:
            return self._clear_noop(match_id, user_id, PaymentClearOutcome.NOT_SETTLED)

        entries = [p for p in match.losers() if p.user_id == user_id]
        if not entries:
            return self._clear_noop(match_id, user_id, PaymentClearOutcome.NOT_A_LOSER)

        losing_team = match.winning_team.opponent()
        player_row = self.storage.mark_roster_paid(match_id, losing_team, user_id)
        if player_row is None:
            return self._clear_noop(match_id, user_id, PaymentClearOutcome.ALREADY_PAID)

        stake = MatchPlayer(**player_row).bet_amount
        result = PaymentClearResult(
            match_id=match_id, user_id=user_id, outcome=PaymentClearOutcome.CLEARED, amount=stake,
        )
        try:
            entry = self._apply(
                user_id,
                stake,
                TransactionType.PAYMENT_CLEAR,
                f"Debt Settled: {match.name}",
                match_id=match_id,
                increment_matches_paid=True,
            )
            result.ledger_applied = True
            result.transaction_id = entry.id
        except UserNotFoundError:
            logger.exception("Debt for match %s marked paid but user %s is missing", match_id, user_id)

        self.notifications.add_notification(
            user_id, f"Grid Clear: Your debt for {match.name} has been processed by High Command.",
        )
        logger.info("Cleared debt of %s for user %s on match %s", stake, user_id, match_id)
        return result

    def _clear_noop(self, match_id: UUID, user_id: UUID, outcome: PaymentClearOutcome) -> PaymentClearResult:
        logger.warning("Payment clear for user %s on match %s ignored: %s", user_id, match_id, outcome.value)
        return PaymentClearResult(match_id=match_id, user_id=user_id, outcome=outcome)

    def admin_adjust_balance(self, admin_id: UUID, target_user_id: UUID, amount: Decimal, reason: str) -> Transaction:
        target = self.storage.get_user(target_user_id)
        if not target or target["is_deleted"]:
            raise UserNotFoundError(f"User {target_user_id} not found")

        amount = Decimal(str(amount))
        entry = self._apply(
            target_user_id,
            amount,
            TransactionType.ADMIN_ADJUST,
            f"[ADMIN OVERRIDE] {reason}",
            performed_by=admin_id,
        )
        verb = "credited" if amount >= 0 else "debited"
        self.notifications.add_notification(
            target_user_id,
            f"Financial Protocol: Command has {verb} {format_money(abs(amount), self.settings.currency_symbol)} "
            f"to your grid wallet. Reason: {reason}",
        )
        logger.info("Admin %s adjusted balance of %s by %s", admin_id, target_user_id, amount)
        return entry

    def list_transactions(self, user_id: UUID) -> list[Transaction]:
        return [Transaction(**t) for t in newest_first(self.storage.list_transactions(user_id=user_id))]

    def list_all_transactions(self) -> list[Transaction]:
        return [Transaction(**t) for t in newest_first(self.storage.list_transactions())]

    def match_ledger(self, match_id: UUID) -> list[Transaction]:
        return [Transaction(**t) for t in newest_first(self.storage.list_transactions(match_id=match_id))]

    def reconcile(self, user_id: UUID) -> BalanceReconciliation:
        row = self.storage.get_user(user_id)
        if not row:
            raise UserNotFoundError(f"User {user_id} not found")
        user = User(**row)
        entries = self.storage.list_transactions(user_id=user_id)
        ledger_total = sum((e["amount"] for e in entries), Decimal("0"))
        return BalanceReconciliation(
            user_id=user_id,
            stored_balance=user.balance,
            starting_balance=user.starting_balance,
            ledger_total=ledger_total,
            derived_balance=user.starting_balance + ledger_total,
            total_entries=len(entries),
        )

    def _apply(
        self,
        user_id: UUID,
        amount: Decimal,
        entry_type: TransactionType,
        description: str,
        match_id: Optional[UUID] = None,
        performed_by: Optional[UUID] = None,
        increment_matches_paid: bool = False,
    ) -> Transaction:
        entry_data = {
            "id": uuid4(),
            "user_id": user_id,
            "amount": amount,
            "type": entry_type,
            "description": description,
            "match_id": match_id,
            "balance_after": None,
            "performed_by": performed_by,
            "created_at": datetime.now(timezone.utc),
        }
        return Transaction(**self.storage.apply_ledger_entry(entry_data, increment_matches_paid))
