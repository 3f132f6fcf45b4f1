"""
Error taxonomy for lobby operations.

Every failure a client can cause is raised as a LobbyError subclass. The
``code`` is a stable machine-readable string so HTTP handlers and websocket
replies can report it without parsing the message text.
"""

from __future__ import annotations

NOT_FOUND = "not_found"
FORBIDDEN = "forbidden"
CONFLICT = "conflict"
INVALID_ARGUMENT = "invalid_argument"
BUSY = "busy"


class LobbyError(Exception):
    code = "lobby_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LobbyError):
    code = NOT_FOUND
    status_code = 404


class ForbiddenError(LobbyError):
    code = FORBIDDEN
    status_code = 403


class ConflictError(LobbyError):
    code = CONFLICT
    status_code = 409


class InvalidArgumentError(LobbyError):
    code = INVALID_ARGUMENT
    status_code = 400


class BusyError(LobbyError):
    code = BUSY
    status_code = 503
