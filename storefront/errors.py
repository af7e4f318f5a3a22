"""Error types raised by the data-access layer and the catalogue gateway.

Every error carries the HTTP status it maps to and a client-safe message;
``main.py`` renders them as ``{"success": false, "message": ...}``.
"""
from fastapi import status


class StorefrontError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request data"


class InsufficientBalance(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Insufficient balance"


class Unauthenticated(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidCredentials(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Incorrect password."


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class EmptyCatalogue(NotFound):
    default_message = "The menu is currently empty."


class Conflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class UpstreamUnavailable(StorefrontError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service error."


class UpstreamTimeout(StorefrontError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_message = "External API took too long to respond."


class ClientDisconnected(StorefrontError):
    # nginx's non-standard "client closed request"; nobody is left to read it
    status_code = 499
    default_message = "Client closed request."
