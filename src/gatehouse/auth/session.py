# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from bson import ObjectId
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer
from mongoengine.errors import NotUniqueError
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

from gatehouse.auth.users import UserRecord
from gatehouse.config import DEFAULT_SESSION_TTL_SECONDS
from gatehouse.errors import StoreUnavailable
from gatehouse.infra.db import SessionDocument, utcnow

SESSION_SALT = "gatehouse.session.v1"


@dataclass(frozen=True)
class SessionRecord:
    token: str
    user_id: str
    user_name: str
    user_role: str
    expires_at: datetime

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


class CookieSigner:
    """Signs the opaque session token carried by the cookie."""

    def __init__(self, secret: str, *, max_age: int = DEFAULT_SESSION_TTL_SECONDS) -> None:
        if not secret:
            raise RuntimeError("Missing session secret")
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=SESSION_SALT)
        self.max_age = max_age

    def sign(self, token: str) -> str:
        return self._serializer.dumps({"t": token})

    def unsign(self, value: str) -> Optional[str]:
        if not value:
            return None
        try:
            data = self._serializer.loads(value, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        t = str((data or {}).get("t") or "").strip() if isinstance(data, dict) else ""
        return t or None


def _to_record(doc: SessionDocument) -> SessionRecord:
    return SessionRecord(
        token=doc.token,
        user_id=str(doc.user_id),
        user_name=doc.user_name,
        user_role=doc.user_role,
        expires_at=doc.expires_at,
    )


class SessionStore:
    """Server-side sessions in the ``sessions`` collection.

    A TTL index purges records past ``expires_at``; reads also ignore them
    because the TTL monitor only runs periodically.
    """

    def __init__(self, ttl: int = DEFAULT_SESSION_TTL_SECONDS) -> None:
        self.ttl = ttl

    async def create(self, user: UserRecord) -> SessionRecord:
        return await run_in_threadpool(self._create, user)

    async def load(self, token: str) -> Optional[SessionRecord]:
        return await run_in_threadpool(self._load, token)

    async def destroy(self, token: str) -> bool:
        return await run_in_threadpool(self._destroy, token)

    async def purge_expired(self) -> int:
        return await run_in_threadpool(self._purge_expired)

    def _create(self, user: UserRecord) -> SessionRecord:
        doc = SessionDocument(
            token=secrets.token_urlsafe(32),
            user_id=ObjectId(user.id),
            user_name=user.name,
            user_role=user.role,
            expires_at=utcnow() + timedelta(seconds=self.ttl),
        )
        try:
            doc.save(force_insert=True)
        except NotUniqueError:
            # token collision; draw again
            return self._create(user)
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return _to_record(doc)

    def _load(self, token: str) -> Optional[SessionRecord]:
        if not token:
            return None
        try:
            doc = SessionDocument.objects(token=token, expires_at__gt=utcnow()).first()
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return _to_record(doc) if doc else None

    def _destroy(self, token: str) -> bool:
        if not token:
            return False
        try:
            return SessionDocument.objects(token=token).delete() > 0
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def _purge_expired(self) -> int:
        try:
            return SessionDocument.objects(expires_at__lte=utcnow()).delete()
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc


async def load_session(store: SessionStore, signer: CookieSigner, cookie_value: str) -> Optional[SessionRecord]:
    """Resolve a raw cookie value to its live session, or None when anonymous."""
    token = signer.unsign(cookie_value)
    if not token:
        return None
    return await store.load(token)
