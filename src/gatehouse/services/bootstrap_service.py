# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Seed users from a YAML file.

Expected layout::

    users:
      ada@example.com:
        name: Ada
        role: admin
        password: change-me

Existing emails keep their password; only their role is brought in line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import yaml
from loguru import logger
from starlette.concurrency import run_in_threadpool

from gatehouse.auth.passwords import hash_password
from gatehouse.auth.users import UserDirectory
from gatehouse.errors import DuplicateEmail


@dataclass
class SeedResult:
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def load_seed_file(path: Path) -> Dict[str, dict]:
    if not path.exists():
        return {}
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    users = (raw.get("users") or {}) if isinstance(raw, dict) else {}
    out: Dict[str, dict] = {}
    for email, udata in users.items():
        if not isinstance(udata, dict):
            continue
        e = str(email).strip().lower()
        if not e:
            continue
        out[e] = udata
    return out


async def seed_users(directory: UserDirectory, path: Path) -> SeedResult:
    result = SeedResult()
    for email, udata in load_seed_file(path).items():
        role = str(udata.get("role") or "user").strip().lower()
        if role not in ("user", "admin"):
            logger.warning("Seed entry {} has unknown role {!r}; skipped", email, role)
            result.skipped.append(email)
            continue
        existing = await directory.get_by_email(email)
        if existing:
            if existing.role != role:
                await directory.set_role(existing.id, role)
                result.updated.append(email)
            else:
                result.skipped.append(email)
            continue
        password = str(udata.get("password") or "")
        name = str(udata.get("name") or email.split("@")[0]).strip()
        if not password:
            logger.warning("Seed entry {} has no password; skipped", email)
            result.skipped.append(email)
            continue
        digest = await run_in_threadpool(hash_password, password)
        try:
            await directory.create(name=name, email=email, password_hash=digest, role=role)
        except DuplicateEmail:
            result.skipped.append(email)
            continue
        result.created.append(email)
    logger.info(
        "Seeded users: {} created, {} updated, {} skipped",
        len(result.created),
        len(result.updated),
        len(result.skipped),
    )
    return result
