# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from loguru import logger
from mongoengine.errors import NotUniqueError, OperationError, ValidationError
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

from gatehouse.errors import DirectoryError, DuplicateEmail, StoreUnavailable, UserNotFound
from gatehouse.infra.db import UserDocument


@dataclass(frozen=True)
class UserRecord:
    id: str
    name: str
    email: str
    role: str
    password_hash: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _to_record(doc: UserDocument) -> UserRecord:
    return UserRecord(
        id=str(doc.id),
        name=doc.name,
        email=doc.email,
        role=(doc.role or "user").lower(),
        password_hash=doc.password_hash or "",
    )


def _object_id(user_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(str(user_id))
    except (InvalidId, TypeError):
        return None


class UserDirectory:
    """Users stored in the ``users`` collection, keyed by unique email.

    Every method is awaitable; the blocking driver calls run in the
    threadpool. Database outages surface as ``StoreUnavailable``.
    """

    async def create(self, *, name: str, email: str, password_hash: str, role: str = "user") -> UserRecord:
        return await run_in_threadpool(self._create, name, email, password_hash, role)

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        return await run_in_threadpool(self._get_by_email, email)

    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        return await run_in_threadpool(self._get_by_id, user_id)

    async def set_role(self, user_id: str, role: str) -> UserRecord:
        return await run_in_threadpool(self._set_role, user_id, role)

    async def list_all(self) -> List[UserRecord]:
        return await run_in_threadpool(self._list_all)

    # ------------------ blocking implementations ------------------

    def _create(self, name: str, email: str, password_hash: str, role: str) -> UserRecord:
        doc = UserDocument(name=name, email=email, password_hash=password_hash, role=role)
        try:
            doc.save(force_insert=True)
        except NotUniqueError as exc:
            raise DuplicateEmail(str(exc)) from exc
        except (ValidationError, OperationError) as exc:
            raise DirectoryError(str(exc)) from exc
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return _to_record(doc)

    def _get_by_email(self, email: str) -> Optional[UserRecord]:
        e = (email or "").strip().lower()
        if not e:
            return None
        try:
            doc = UserDocument.objects(email=e).first()
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return _to_record(doc) if doc else None

    def _get_by_id(self, user_id: str) -> Optional[UserRecord]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        try:
            doc = UserDocument.objects(id=oid).first()
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return _to_record(doc) if doc else None

    def _set_role(self, user_id: str, role: str) -> UserRecord:
        if role not in ("user", "admin"):
            raise ValueError(f"Unknown role {role!r}")
        oid = _object_id(user_id)
        if oid is None:
            raise UserNotFound(user_id)
        try:
            doc = UserDocument.objects(id=oid).modify(new=True, set__role=role)
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        if doc is None:
            raise UserNotFound(user_id)
        logger.debug("Role of user {} is now {}", user_id, role)
        return _to_record(doc)

    def _list_all(self) -> List[UserRecord]:
        try:
            return [_to_record(d) for d in UserDocument.objects.order_by("created_at", "id")]
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
