# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from datetime import datetime, timezone

import mongoengine
from mongoengine import (
    DateTimeField,
    Document,
    EmailField,
    ObjectIdField,
    StringField,
)
from pymongo.errors import PyMongoError

from gatehouse.config import Settings

ROLES = ("user", "admin")


def utcnow() -> datetime:
    # Mongo stores naive UTC with millisecond precision.
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class UserDocument(Document):
    name = StringField(required=True, min_length=1)
    email = EmailField(required=True, unique=True)
    password_hash = StringField(required=True)
    role = StringField(required=True, choices=ROLES, default="user")
    created_at = DateTimeField(default=utcnow)

    meta = {"collection": "users"}


class SessionDocument(Document):
    token = StringField(required=True, unique=True)
    user_id = ObjectIdField(required=True)
    user_name = StringField(required=True)
    user_role = StringField(required=True, choices=ROLES)
    expires_at = DateTimeField(required=True)
    created_at = DateTimeField(default=utcnow)

    meta = {
        "collection": "sessions",
        "indexes": [
            {"fields": ["expires_at"], "expireAfterSeconds": 0},
            "user_id",
        ],
    }


def connect(settings: Settings, **kwargs):
    """Open the process-wide connection. Extra kwargs go to the Mongo client."""
    kwargs.setdefault("serverSelectionTimeoutMS", settings.mongo_timeout_ms)
    kwargs.setdefault("tz_aware", False)
    return mongoengine.connect(host=settings.mongo_uri, **kwargs)


def disconnect() -> None:
    mongoengine.disconnect()


def ping() -> bool:
    try:
        mongoengine.get_db().command("ping")
        return True
    except PyMongoError:
        return False
