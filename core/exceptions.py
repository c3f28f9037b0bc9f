"""Application errors rendered into the JSON envelope by the handlers in main.py."""
from typing import Optional

from starlette import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"
    code: Optional[str] = None

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class BadRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class InvalidAction(BadRequest):
    default_message = "Invalid action"
    code = "INVALID_ACTION"


class DuplicateInteraction(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "You have already swiped on this pet"
    code = "DUPLICATE_INTERACTION"


class ServerError(AppError):
    pass
