import logging
import time
from datetime import datetime, timezone
from typing import Iterable, Optional, Union
from uuid import UUID, uuid4

from .config import Settings
from .errors import AuthorizationError
from .models import Match, MatchPlayer, MatchStatus, MatchView, User
from .notifications import NotificationDispatcher, format_money
from .storage import InMemoryStorage, newest_first


logger = logging.getLogger(__name__)

PlayerInput = Union[MatchPlayer, dict]


class MatchRegistry:
    def __init__(
        self,
        storage: InMemoryStorage,
        notifications: Optional[NotificationDispatcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.storage = storage
        self.notifications = notifications or NotificationDispatcher(storage)
        self.settings = settings or Settings()

    def create_match(
        self,
        name: str,
        team_a: Iterable[PlayerInput],
        team_b: Iterable[PlayerInput],
        creator_id: UUID,
    ) -> Match:
        creator_row = self.storage.get_user(creator_id)
        if not creator_row or not User(**creator_row).can_open_matches():
            raise AuthorizationError(f"User {creator_id} is not cleared to create matches")

        roster_a = self._roster(team_a)
        roster_b = self._roster(team_b)
        final_name = (name or "").strip() or f"ENGAGEMENT_{int(time.time() * 1000)}"

        match_data = {
            "id": uuid4(),
            "name": final_name,
            "team_a": roster_a,
            "team_b": roster_b,
            "status": MatchStatus.UNDECIDED,
            "winning_team": None,
            "created_by": creator_id,
            "created_at": datetime.now(timezone.utc),
        }
        match = Match(**self.storage.insert_match(match_data))
        logger.info("Created match %s (%s) with %d participants", match.id, final_name, len(roster_a) + len(roster_b))

        for player in roster_a + roster_b:
            self.notifications.add_notification(
                player["user_id"],
                f"New Combat Assignment: You have been deployed to {final_name}. "
                f"Stakes: {format_money(player['bet_amount'], self.settings.currency_symbol)}.",
            )
        return match

    def get_match(self, match_id: UUID) -> Optional[Match]:
        row = self.storage.get_match(match_id)
        return Match(**row) if row else None

    def list_matches(self, view: MatchView = MatchView.ALL) -> list[Match]:
        matches = [Match(**m) for m in newest_first(self.storage.list_matches())]
        if view == MatchView.UNDECIDED:
            return [m for m in matches if not m.is_settled]
        if view == MatchView.PENDING:
            return [m for m in matches if m.has_unpaid_losers()]
        return matches

    @staticmethod
    def _roster(players: Iterable[PlayerInput]) -> list[dict]:
        # Stakes and duplicate entries are taken as given; paid always starts False.
        roster = []
        for p in players:
            player = p if isinstance(p, MatchPlayer) else MatchPlayer.model_validate(p)
            roster.append({**player.model_dump(), "paid": False})
        return roster
