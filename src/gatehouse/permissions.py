# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from gatehouse.auth.session import SessionRecord, load_session

LOGIN_URL = "/login"


async def load_session_from_request(request: Request) -> Optional[SessionRecord]:
    services = request.app.state.services
    raw = request.cookies.get(services.settings.cookie_name, "")
    return await load_session(services.sessions, services.signer, raw)


def current_session_optional(request: Request) -> Optional[SessionRecord]:
    sess = getattr(request.state, "session", None)
    if sess is not None and sess.is_authenticated:
        return sess
    return None


def require_user(request: Request) -> SessionRecord:
    sess = current_session_optional(request)
    if sess:
        return sess
    raise HTTPException(status_code=303, headers={"Location": LOGIN_URL})


def require_role(role: str):
    def _dep(request: Request) -> SessionRecord:
        # anonymous visitors are sent to login, never told "forbidden"
        sess = require_user(request)
        if sess.user_role != role:
            raise HTTPException(status_code=403, detail=f"{role.capitalize()}s only.")
        return sess

    return _dep
