"""
Recuerdos Client — Error Taxonomy
==================================

Every failure of RecuerdosClient is a ClientApiError whose `kind` tells the
presentation layer what happened and whose `message` can be shown as is.

    ┌──────────────────────────┬───────────────┐
    │ condition                │ kind          │
    ├──────────────────────────┼───────────────┤
    │ 404                      │ not_found     │
    │ 400 / 422                │ invalid_input │
    │ 401 / 403                │ unauthorized  │
    │ 408 / 504 / timeout      │ timeout       │
    │ 429, other 4xx           │ unknown (own  │
    │                          │ message)      │
    │ other 5xx                │ server_error  │
    │ no connection, anything  │ unknown       │
    │ else                     │               │
    └──────────────────────────┴───────────────┘
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


DEFAULT_MESSAGES = {
    ErrorKind.NOT_FOUND: "That memory could not be found.",
    ErrorKind.INVALID_INPUT: "Some of the information is invalid. Please review it and try again.",
    ErrorKind.UNAUTHORIZED: "You are not allowed to do that. Please sign in again.",
    ErrorKind.TIMEOUT: "The server took too long to respond. Please try again.",
    ErrorKind.SERVER_ERROR: "The server is having trouble right now. Please try again later.",
    ErrorKind.UNKNOWN: "Could not reach the server. Check your connection and try again.",
}


# Statuses whose kind alone would show a misleading message
STATUS_MESSAGES = {
    429: "Too many requests. Please wait a moment and try again.",
}

CLIENT_ERROR_MESSAGE = "The server could not process this request. Please try again."


def message_for_status(status_code: int) -> Optional[str]:
    if status_code in STATUS_MESSAGES:
        return STATUS_MESSAGES[status_code]
    if kind_for_status(status_code) is ErrorKind.UNKNOWN and 400 <= status_code < 500:
        return CLIENT_ERROR_MESSAGE
    return None


def kind_for_status(status_code: int) -> ErrorKind:
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code in (400, 422):
        return ErrorKind.INVALID_INPUT
    if status_code in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status_code in (408, 504):
        return ErrorKind.TIMEOUT
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.UNKNOWN


class ClientApiError(Exception):
    """
    Raised by every RecuerdosClient call that does not succeed.

    Attributes:
        kind:         ErrorKind of the failure
        message:      Text suitable for direct display
        status_code:  HTTP status when a response arrived, else None
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        self.status_code = status_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"ClientApiError(kind={self.kind.value!r}, status_code={self.status_code!r}, message={self.message!r})"
