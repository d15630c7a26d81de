# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Signup, login, logout and role changes.

Each operation is a coroutine that either returns its outcome or raises one
of the errors in ``gatehouse.errors``; route handlers turn those into
responses.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from loguru import logger
from starlette.concurrency import run_in_threadpool

from gatehouse.auth.forms import LoginForm, SignupForm, parse_form
from gatehouse.auth.passwords import hash_password, verify_password
from gatehouse.auth.session import SessionRecord, SessionStore
from gatehouse.auth.users import UserDirectory, UserRecord
from gatehouse.errors import DirectoryError, DuplicateEmail, InvalidCredentials, SignupFailed, StoreUnavailable

# Verified against when the email is unknown so both failure paths cost a hash check.
_DUMMY_HASH = hash_password("gatehouse-not-a-password")


class AccountService:
    def __init__(self, directory: UserDirectory, sessions: SessionStore) -> None:
        self.directory = directory
        self.sessions = sessions

    async def signup(self, data: Mapping[str, Any], *, previous_token: Optional[str] = None) -> SessionRecord:
        form = parse_form(SignupForm, data)
        digest = await run_in_threadpool(hash_password, form.password)
        try:
            user = await self.directory.create(name=form.name, email=str(form.email), password_hash=digest)
        except DuplicateEmail:
            logger.info("Signup rejected: email already registered")
            raise SignupFailed("conflict") from None
        except DirectoryError as exc:
            logger.info("Signup rejected by directory: {}", exc)
            raise SignupFailed("conflict") from None
        except StoreUnavailable as exc:
            logger.error("Signup failed, user directory unavailable: {}", exc)
            raise SignupFailed("unavailable") from None
        logger.info("User {} signed up", user.id)
        return await self._start_session(user, previous_token)

    async def login(self, data: Mapping[str, Any], *, previous_token: Optional[str] = None) -> SessionRecord:
        form = parse_form(LoginForm, data)
        user = await self.directory.get_by_email(str(form.email))
        digest = user.password_hash if user else _DUMMY_HASH
        ok = await run_in_threadpool(verify_password, digest, form.password)
        if not user or not ok:
            logger.info("Failed login for {}", form.email)
            raise InvalidCredentials()
        logger.info("User {} logged in", user.id)
        return await self._start_session(user, previous_token)

    async def logout(self, token: Optional[str]) -> None:
        if token and await self.sessions.destroy(token):
            logger.info("Session ended")

    async def set_role(self, user_id: str, role: str, *, actor: Optional[SessionRecord] = None) -> UserRecord:
        user = await self.directory.set_role(user_id, role)
        logger.info("User {} set role of {} to {}", actor.user_id if actor else "-", user.id, role)
        return user

    async def promote(self, user_id: str, *, actor: Optional[SessionRecord] = None) -> UserRecord:
        return await self.set_role(user_id, "admin", actor=actor)

    async def demote(self, user_id: str, *, actor: Optional[SessionRecord] = None) -> UserRecord:
        return await self.set_role(user_id, "user", actor=actor)

    async def _start_session(self, user: UserRecord, previous_token: Optional[str]) -> SessionRecord:
        if previous_token:
            await self.sessions.destroy(previous_token)
        return await self.sessions.create(user)
