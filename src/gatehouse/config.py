# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import quote_plus

from dotenv import load_dotenv

from gatehouse.errors import ConfigError

DEFAULT_SESSION_TTL_SECONDS = 3600  # 1 hour


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "y"}


def _mongo_uri() -> str:
    uri = os.getenv("MONGODB_URI", "").strip()
    if uri:
        return uri
    host = os.getenv("MONGODB_HOST", "").strip()
    if not host:
        return "mongodb://localhost:27017/gatehouse"
    user = quote_plus(os.getenv("MONGODB_USER", ""))
    password = quote_plus(os.getenv("MONGODB_PASSWORD", ""))
    database = os.getenv("MONGODB_DATABASE", "gatehouse")
    return f"mongodb+srv://{user}:{password}@{host}/{database}?retryWrites=true&w=majority"


@dataclass(frozen=True)
class Settings:
    mongo_uri: str
    mongo_timeout_ms: int
    session_secret: str
    session_ttl: int = DEFAULT_SESSION_TTL_SECONDS
    cookie_name: str = "gatehouse_session"
    cookie_secure: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        secret = os.getenv("GATEHOUSE_SESSION_SECRET") or os.getenv("SESSION_SECRET")
        if not secret:
            raise ConfigError("Missing GATEHOUSE_SESSION_SECRET (or SESSION_SECRET) in environment")
        try:
            return cls(
                mongo_uri=_mongo_uri(),
                mongo_timeout_ms=int(os.getenv("GATEHOUSE_MONGO_TIMEOUT_MS", "5000")),
                session_secret=secret,
                session_ttl=int(os.getenv("GATEHOUSE_SESSION_TTL", str(DEFAULT_SESSION_TTL_SECONDS))),
                cookie_name=os.getenv("GATEHOUSE_COOKIE_NAME", "gatehouse_session"),
                cookie_secure=_env_flag("GATEHOUSE_COOKIE_SECURE"),
                host=os.getenv("GATEHOUSE_HOST", "0.0.0.0"),
                port=int(os.getenv("PORT", "3000")),
                log_level=os.getenv("GATEHOUSE_LOG_LEVEL", "INFO").upper(),
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric setting: {exc}") from exc

    def cookie_settings(self) -> dict:
        return {
            "max_age": self.session_ttl,
            "httponly": True,
            "samesite": "lax",
            "secure": self.cookie_secure,
        }
