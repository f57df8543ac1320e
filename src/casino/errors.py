"""Domain errors surfaced to API callers.

Each error carries an HTTP status, a stable machine-readable code and a short
message that is safe to show to players. Raw storage error text stays in the
exception chain and the logs.
"""

from __future__ import annotations


class CasinoError(Exception):
    """Base class for domain errors mapped to JSON responses."""

    status_code: int = 400
    code: str = "CASINO_ERROR"
    message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message

    @property
    def retry_after(self) -> int | None:
        return None

    def payload(self) -> dict[str, object]:
        """JSON body for the error response."""
        return {"detail": self.message, "error": self.code}


class InsufficientFunds(CasinoError):
    """Applying the delta would drive the balance below zero."""

    status_code = 400
    code = "INSUFFICIENT_BALANCE"
    message = "Insufficient chip balance for this operation"

    def __init__(self, current_balance: int, delta: int) -> None:
        super().__init__()
        self.current_balance = current_balance
        self.delta = delta

    def payload(self) -> dict[str, object]:
        return {**super().payload(), "current_balance": self.current_balance}


class BalanceConflict(CasinoError):
    """The stored balance no longer matches the caller's expected balance."""

    status_code = 409
    code = "BALANCE_MISMATCH"
    message = "Balance has changed. Please refresh and try again."

    def __init__(self, current_balance: int, expected_balance: int) -> None:
        super().__init__()
        self.current_balance = current_balance
        self.expected_balance = expected_balance

    def payload(self) -> dict[str, object]:
        return {**super().payload(), "current_balance": self.current_balance}


class LedgerContention(CasinoError):
    """Conflict retries were exhausted."""

    status_code = 503
    code = "LEDGER_CONTENTION"
    message = "Your balance is busy right now. Please try again shortly."

    def __init__(self, attempts: int, retry_after: int) -> None:
        super().__init__()
        self.attempts = attempts
        self._retry_after = retry_after

    @property
    def retry_after(self) -> int | None:
        return self._retry_after


class UpdateThrottled(CasinoError):
    """Chip updates arrive faster than the per-user minimum interval."""

    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Please wait {retry_after} second(s) before updating chips again")
        self._retry_after = retry_after

    @property
    def retry_after(self) -> int | None:
        return self._retry_after


class DeltaExceedsLimit(CasinoError):
    """The requested delta is outside the per-game win/loss caps."""

    status_code = 400
    code = "DELTA_EXCEEDS_LIMIT"

    def __init__(self, game_type: str, limit: int, *, is_win: bool) -> None:
        kind = "Win" if is_win else "Loss"
        super().__init__(f"{kind} amount exceeds maximum allowed for {game_type} ({limit})")
        self.game_type = game_type
        self.limit = limit


class AccountNotFound(CasinoError):
    """No chip account exists for the user."""

    status_code = 404
    code = "ACCOUNT_NOT_FOUND"
    message = "Account not found"

    def __init__(self, user_id: str) -> None:
        super().__init__()
        self.user_id = user_id


class StorageUnavailable(CasinoError):
    """The backing store could not complete the operation."""

    status_code = 503
    code = "STORAGE_UNAVAILABLE"
    message = "Service temporarily unavailable. Please try again."

    def __init__(self, operation: str) -> None:
        super().__init__()
        self.operation = operation

    def __str__(self) -> str:
        return f"storage operation failed: {self.operation}"
