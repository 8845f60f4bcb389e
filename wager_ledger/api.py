from typing import Optional
from uuid import UUID
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, configure_logging
from .errors import (
    LedgerServiceError, AuthorizationError, AuthenticationError, UserNotFoundError,
    DuplicateUserError, LedgerValidationError, StorageUnavailableError,
)
from .models import (
    AdjustBalanceRequest, BalanceReconciliation, CreateMatchRequest, CreateUserRequest,
    LoginRequest, Match, MatchView, Notification, PaymentClearOutcome, PaymentClearResult,
    ReadReceipt, ResetPinRequest, SettleMatchRequest, SettlementOutcome, SettlementResult,
    Transaction, UpdateUserRequest, UserPublic,
)
from .notifications import NotificationDispatcher
from .registry import MatchRegistry
from .service import LedgerService
from .storage import InMemoryStorage
from .users import UserDirectory


ERROR_STATUS = {
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    UserNotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateUserError: status.HTTP_409_CONFLICT,
    LedgerValidationError: status.HTTP_400_BAD_REQUEST,
    StorageUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def create_app(
    storage: Optional[InMemoryStorage] = None,
    settings: Optional[Settings] = None,
    root_path: str = "",
) -> FastAPI:
    settings = settings or Settings()
    storage = storage or InMemoryStorage(seed_demo_data=settings.seed_demo_data)
    notifications = NotificationDispatcher(storage)
    users = UserDirectory(storage, notifications, settings)
    registry = MatchRegistry(storage, notifications, settings)
    ledger_service = LedgerService(storage, notifications, settings)

    app = FastAPI(
        title="Wager Ledger API",
        description="Wallet and settlement ledger for peer-wagered matches",
        version="1.0.0",
        root_path=root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerServiceError)
    async def ledger_error_handler(request: Request, exc: LedgerServiceError):
        code = next(
            (c for cls, c in ERROR_STATUS.items() if isinstance(exc, cls)),
            status.HTTP_400_BAD_REQUEST,
        )
        return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "wager-ledger"}

    @app.get("/config", tags=["System"])
    def client_config():
        return {
            "notificationPollSeconds": settings.notification_poll_seconds,
            "currencySymbol": settings.currency_symbol,
        }

    @app.post("/auth/login", response_model=UserPublic, tags=["Users"])
    def login(request: LoginRequest):
        return users.login(request.email, request.pin)

    @app.get("/users", response_model=list[UserPublic], tags=["Users"])
    def list_users(include_deleted: bool = False):
        return users.list_users(include_deleted)

    @app.post("/users", response_model=UserPublic, status_code=status.HTTP_201_CREATED, tags=["Users"])
    def create_user(request: CreateUserRequest):
        return users.create_user(
            request.username, request.email, request.pin, request.role,
            request.starting_balance, request.can_create_match,
        )

    @app.get("/users/{user_id}", response_model=UserPublic, tags=["Users"])
    def get_user(user_id: UUID):
        user = users.get_user(user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found")
        return user

    @app.patch("/users/{user_id}", response_model=UserPublic, tags=["Users"])
    def update_user(user_id: UUID, request: UpdateUserRequest):
        users.set_user_fields(user_id, **request.model_dump(exclude_unset=True))
        return users.get_user(user_id)

    @app.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Users"])
    def delete_user(user_id: UUID):
        users.soft_delete_user(user_id)

    @app.post("/users/{user_id}/balance-adjustments", response_model=Transaction, tags=["Ledger"])
    def adjust_balance(user_id: UUID, request: AdjustBalanceRequest):
        return ledger_service.admin_adjust_balance(request.admin_id, user_id, request.amount, request.reason)

    @app.post("/users/{user_id}/pin-reset", status_code=status.HTTP_204_NO_CONTENT, tags=["Users"])
    def reset_pin(user_id: UUID, request: ResetPinRequest):
        users.reset_pin(request.admin_id, user_id, request.new_pin)

    @app.get("/users/{user_id}/transactions", response_model=list[Transaction], tags=["Ledger"])
    def list_user_transactions(user_id: UUID):
        return ledger_service.list_transactions(user_id)

    @app.get("/users/{user_id}/reconciliation", response_model=BalanceReconciliation, tags=["Ledger"])
    def reconcile(user_id: UUID):
        return ledger_service.reconcile(user_id)

    @app.get("/users/{user_id}/notifications", response_model=list[Notification], tags=["Notifications"])
    def list_notifications(user_id: UUID):
        return notifications.list_notifications(user_id)

    @app.post("/users/{user_id}/notifications/read", response_model=ReadReceipt, tags=["Notifications"])
    def mark_notifications_read(user_id: UUID):
        return ReadReceipt(user_id=user_id, marked_read=notifications.mark_all_notifications_read(user_id))

    @app.get("/transactions", response_model=list[Transaction], tags=["Ledger"])
    def list_all_transactions():
        return ledger_service.list_all_transactions()

    @app.get("/matches", response_model=list[Match], tags=["Matches"])
    def list_matches(view: MatchView = MatchView.ALL):
        return registry.list_matches(view)

    @app.post("/matches", response_model=Match, status_code=status.HTTP_201_CREATED, tags=["Matches"])
    def create_match(request: CreateMatchRequest):
        return registry.create_match(request.name, request.team_a, request.team_b, request.creator_id)

    @app.get("/matches/{match_id}", response_model=Match, tags=["Matches"])
    def get_match(match_id: UUID):
        match = registry.get_match(match_id)
        if not match:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Match {match_id} not found")
        return match

    @app.post("/matches/{match_id}/settle", response_model=SettlementResult, tags=["Ledger"])
    def settle_match(match_id: UUID, request: SettleMatchRequest):
        result = ledger_service.settle_match(match_id, request.winning_team)
        if result.outcome == SettlementOutcome.NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Match {match_id} not found")
        return result

    @app.post("/matches/{match_id}/losers/{user_id}/paid", response_model=PaymentClearResult, tags=["Ledger"])
    def mark_loser_paid(match_id: UUID, user_id: UUID):
        result = ledger_service.mark_loser_as_paid(match_id, user_id)
        if result.outcome == PaymentClearOutcome.NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Match {match_id} not found")
        return result

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
