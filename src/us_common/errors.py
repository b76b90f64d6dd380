"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Identity/Authorization
  2xxx: User
  3xxx: Card
  9xxx: System

NotFound / Conflict / Unauthenticated / Forbidden are expected outcomes:
they are surfaced verbatim to the caller and never logged as unexpected.
"""

from typing import Any


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


# --- 1xxx: Identity/Authorization ---

class UnauthenticatedError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Authentication required", 401)


class ForbiddenError(AppError):
    def __init__(self, operation: str) -> None:
        super().__init__(1002, f"Access denied for operation {operation}", 403)


# --- 2xxx: User ---

class UserNotFoundError(AppError):
    def __init__(self, key: int | str) -> None:
        super().__init__(2001, f"User not found: {key}", 404)


class EmailExistsError(AppError):
    def __init__(self, email: str) -> None:
        super().__init__(2002, f"Email already exists: {email}", 409)


# --- 3xxx: Card ---

class CardNotFoundError(AppError):
    def __init__(self, card_id: int) -> None:
        super().__init__(3001, f"Card not found: {card_id}", 404)


class CardNumberExistsError(AppError):
    def __init__(self, number: str) -> None:
        super().__init__(3002, f"Card number already exists: {number}", 409)


class CardLimitExceededError(AppError):
    def __init__(self, user_id: int, limit: int) -> None:
        super().__init__(
            3003, f"User {user_id} already owns the maximum of {limit} cards", 409
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ValidationFailedError(AppError):
    def __init__(self, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(9003, "Validation failed", 422)
        self.errors = errors or []
