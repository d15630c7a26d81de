# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application errors.

Everything here is per-request and recoverable except ``ConfigError``,
which is raised while the process starts.
"""

from __future__ import annotations


class GatehouseError(Exception):
    """Base class for errors raised by gatehouse."""


class ConfigError(GatehouseError):
    pass


class FormValidationError(GatehouseError):
    """Submitted form failed validation. ``message`` describes the first failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidCredentials(GatehouseError):
    message = "User and password not found"

    def __init__(self) -> None:
        super().__init__(self.message)


class SignupFailed(GatehouseError):
    """User could not be inserted.

    ``cause`` is ``"conflict"`` or ``"unavailable"``; it is only logged, the
    message shown to the client never depends on it.
    """

    message = "User already exists or invalid input"

    def __init__(self, cause: str) -> None:
        super().__init__(self.message)
        self.cause = cause


class DirectoryError(GatehouseError):
    """A write to the user directory was rejected by the database."""


class DuplicateEmail(DirectoryError):
    pass


class StoreUnavailable(GatehouseError):
    """The database could not be reached."""


class UserNotFound(GatehouseError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"No user with id {user_id!r}")
        self.user_id = user_id
