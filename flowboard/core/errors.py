"""Error taxonomy shared by the workspace and invitation flows.

Every error carries a human-readable message and the HTTP status the API
renders it with as ``{"error": message}``.
"""

from __future__ import annotations

from fastapi import status


class FlowBoardError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "unknown"
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(FlowBoardError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "unauthenticated"
    default_message = "Not authenticated"


class Forbidden(FlowBoardError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "forbidden"
    default_message = "Not allowed"


class NotFound(FlowBoardError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"
    default_message = "Not found"


class Conflict(FlowBoardError):
    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"
    default_message = "Already exists"


class Expired(FlowBoardError):
    status_code = status.HTTP_410_GONE
    kind = "expired"
    default_message = "This invitation has expired"


class EmailMismatch(FlowBoardError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "email_mismatch"
    default_message = "Invitation email mismatch"


class DeliveryFailure(FlowBoardError):
    status_code = status.HTTP_502_BAD_GATEWAY
    kind = "delivery_failure"
    default_message = "Failed to send email"


class Unknown(FlowBoardError):
    pass


class ValidationFailed(FlowBoardError):
    status_code = 422
    kind = "invalid"
    default_message = "Invalid request"
