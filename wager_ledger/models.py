from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel


# Rows are stored snake_case; JSON leaves the service camelCase.
MODEL_CONFIG = ConfigDict(from_attributes=True, populate_by_name=True, alias_generator=to_camel)


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    PLAYER = "PLAYER"


class Team(str, Enum):
    A = "A"
    B = "B"

    def opponent(self) -> "Team":
        return Team.B if self is Team.A else Team.A


class MatchStatus(str, Enum):
    UNDECIDED = "UNDECIDED"
    SETTLED = "SETTLED"


class MatchView(str, Enum):
    ALL = "ALL"
    UNDECIDED = "UNDECIDED"
    PENDING = "PENDING"


class TransactionType(str, Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    ADMIN_ADJUST = "ADMIN_ADJUST"
    PAYMENT_CLEAR = "PAYMENT_CLEAR"


class SettlementOutcome(str, Enum):
    SETTLED = "SETTLED"
    ALREADY_SETTLED = "ALREADY_SETTLED"
    NOT_FOUND = "NOT_FOUND"


class PaymentClearOutcome(str, Enum):
    CLEARED = "CLEARED"
    NOT_FOUND = "NOT_FOUND"
    NOT_SETTLED = "NOT_SETTLED"
    NOT_A_LOSER = "NOT_A_LOSER"
    ALREADY_PAID = "ALREADY_PAID"


class UserPublic(BaseModel):
    id: UUID
    username: str
    email: str
    role: UserRole = UserRole.PLAYER
    balance: Decimal = Decimal("0.00")
    starting_balance: Decimal = Decimal("0.00")
    is_blocked: bool = False
    is_deleted: bool = False
    can_create_match: bool = False
    total_matches_paid: int = 0
    created_at: datetime

    model_config = MODEL_CONFIG

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_open_matches(self) -> bool:
        if self.is_blocked or self.is_deleted:
            return False
        return self.is_admin or self.can_create_match


class User(UserPublic):
    pin: str = Field(..., repr=False)


class MatchPlayer(BaseModel):
    user_id: UUID
    username: str
    bet_amount: Decimal
    paid: bool = False

    model_config = MODEL_CONFIG


class Match(BaseModel):
    id: UUID
    name: str
    team_a: list[MatchPlayer] = Field(default_factory=list)
    team_b: list[MatchPlayer] = Field(default_factory=list)
    status: MatchStatus = MatchStatus.UNDECIDED
    winning_team: Optional[Team] = None
    created_by: Optional[UUID] = None
    created_at: datetime

    model_config = MODEL_CONFIG

    @property
    def is_settled(self) -> bool:
        return self.status == MatchStatus.SETTLED

    def roster(self, team: Team) -> list[MatchPlayer]:
        return self.team_a if team == Team.A else self.team_b

    def winners(self) -> list[MatchPlayer]:
        if self.winning_team is None:
            return []
        return self.roster(self.winning_team)

    def losers(self) -> list[MatchPlayer]:
        if self.winning_team is None:
            return []
        return self.roster(self.winning_team.opponent())

    def total_stake(self) -> Decimal:
        return sum((p.bet_amount for p in self.team_a + self.team_b), Decimal("0"))

    def has_unpaid_losers(self) -> bool:
        return self.is_settled and any(not p.paid for p in self.losers())


class Transaction(BaseModel):
    id: UUID
    user_id: UUID
    amount: Decimal
    type: TransactionType
    description: str
    match_id: Optional[UUID] = None
    balance_after: Optional[Decimal] = None
    performed_by: Optional[UUID] = None
    created_at: datetime

    model_config = MODEL_CONFIG


class Notification(BaseModel):
    id: UUID
    user_id: UUID
    message: str
    is_read: bool = False
    created_at: datetime

    model_config = MODEL_CONFIG


class ParticipantResult(BaseModel):
    user_id: UUID
    team: Team
    amount: Decimal
    success: bool
    transaction_id: Optional[UUID] = None
    error: Optional[str] = None

    model_config = MODEL_CONFIG


class SettlementResult(BaseModel):
    match_id: UUID
    outcome: SettlementOutcome
    winning_team: Optional[Team] = None
    participants: list[ParticipantResult] = Field(default_factory=list)

    model_config = MODEL_CONFIG

    def failed(self) -> list[ParticipantResult]:
        return [p for p in self.participants if not p.success]


class PaymentClearResult(BaseModel):
    match_id: UUID
    user_id: UUID
    outcome: PaymentClearOutcome
    amount: Optional[Decimal] = None
    ledger_applied: bool = False
    transaction_id: Optional[UUID] = None

    model_config = MODEL_CONFIG


class BalanceReconciliation(BaseModel):
    user_id: UUID
    stored_balance: Decimal
    starting_balance: Decimal
    ledger_total: Decimal
    derived_balance: Decimal
    total_entries: int

    model_config = MODEL_CONFIG

    @property
    def is_consistent(self) -> bool:
        return self.stored_balance == self.derived_balance


# Request bodies

class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    pin: Optional[str] = None
    role: UserRole = UserRole.PLAYER
    starting_balance: Decimal = Decimal("0.00")
    can_create_match: bool = False

    model_config = MODEL_CONFIG


class UpdateUserRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    pin: Optional[str] = None
    role: Optional[UserRole] = None
    is_blocked: Optional[bool] = None
    is_deleted: Optional[bool] = None
    can_create_match: Optional[bool] = None

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="forbid")


class AdjustBalanceRequest(BaseModel):
    admin_id: UUID
    amount: Decimal
    reason: str = Field(..., description="Shown to the user in the adjustment notification")

    model_config = MODEL_CONFIG


class ResetPinRequest(BaseModel):
    admin_id: UUID
    new_pin: str

    model_config = MODEL_CONFIG


class LoginRequest(BaseModel):
    email: str
    pin: str

    model_config = MODEL_CONFIG


class CreateMatchRequest(BaseModel):
    name: str = ""
    team_a: list[MatchPlayer]
    team_b: list[MatchPlayer]
    creator_id: UUID

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, json_schema_extra={
        "example": {
            "name": "DERBY",
            "teamA": [{"userId": "550e8400-e29b-41d4-a716-446655440000", "username": "ALICE", "betAmount": 100}],
            "teamB": [{"userId": "660e8400-e29b-41d4-a716-446655440001", "username": "BOB", "betAmount": 100}],
            "creatorId": "00000000-0000-0000-0000-00000000a001",
        }
    })


class SettleMatchRequest(BaseModel):
    winning_team: Team

    model_config = MODEL_CONFIG


class ReadReceipt(BaseModel):
    user_id: UUID
    marked_read: int

    model_config = MODEL_CONFIG
