"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Profile
  3xxx: Auction
  4xxx: Bid
  5xxx: Notification
  9xxx: System

Expected bid rejections (not found, not active, self bid, below minimum)
are NOT exceptions; the bid validator returns them as typed results.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/Profile ---

class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid email or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


# --- 3xxx: Auction ---

class AuctionNotFoundError(AppError):
    def __init__(self, auction_id: str) -> None:
        super().__init__(3001, f"Auction not found: {auction_id}", 404)


class AuctionNotCancellableError(AppError):
    def __init__(self, auction_id: str, status: str) -> None:
        super().__init__(
            3002, f"Auction {auction_id} in status {status} cannot be cancelled", 422
        )


class NotAuctionOwnerError(AppError):
    def __init__(self, auction_id: str) -> None:
        super().__init__(3003, f"Only the seller may modify auction {auction_id}", 403)


# --- 5xxx: Notification ---

class NotificationNotFoundError(AppError):
    def __init__(self, notification_id: str) -> None:
        super().__init__(5001, f"Notification not found: {notification_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class LedgerInvariantError(AppError):
    """A commit would break the auction's leader invariants.

    Unreachable while bid submission is serialized per auction; if raised,
    the transaction is rolled back and nothing is accepted.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Ledger invariant violated: {detail}", 500)
