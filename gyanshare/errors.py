"""
Domain errors. Services raise these; main.py maps them to JSON responses
with the status_code below. Nothing here is retried automatically.
"""
from fastapi import status


class GyanError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Request failed."

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "detail": self.detail}


class InsufficientPoints(GyanError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"You need {required} Gyan Points but have {available} "
            f"({required - available} short)."
        )

    def to_dict(self) -> dict:
        return {**super().to_dict(), "required": self.required, "available": self.available}


class InvalidFile(GyanError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid file")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "validation_errors": self.errors}


class InvalidInput(GyanError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "Invalid input."


class NotAuthenticated(GyanError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not authenticated"


class NotAuthorized(GyanError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "You are not allowed to perform this action."


class NotFound(GyanError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class VoteRateExceeded(GyanError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Too many votes in a short time. Please slow down."


class UploadLimitReached(GyanError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Daily upload limit reached. Please try again tomorrow."


class AlreadyResolved(GyanError):
    status_code = status.HTTP_409_CONFLICT
    detail = "This item has already been resolved."


class InvalidTransition(GyanError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from {current} to {target}.")


class StorageFailure(GyanError):
    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "File storage temporarily unavailable. Please try again later."


class BackendFailure(GyanError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Service temporarily unavailable. Please try again later."


class VotingClosed(GyanError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Voting is only open while a fulfillment is in community review."
