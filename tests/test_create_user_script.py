import argparse
import importlib.util
from datetime import timedelta
from pathlib import Path

import pytest

from gatehouse.auth.session import SessionStore
from gatehouse.auth.users import UserDirectory
from gatehouse.infra.db import SessionDocument, utcnow

pytestmark = pytest.mark.anyio

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "create_user.py"


@pytest.fixture()
def script():
    spec = importlib.util.spec_from_file_location("create_user_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


async def test_purge_sessions_flag_deletes_expired_sessions(mongo, script, monkeypatch, capsys):
    ada = await UserDirectory().create(name="Ada", email="a@x.com", password_hash="digest")
    await SessionStore(ttl=60).create(ada)
    later = utcnow() + timedelta(minutes=2)
    monkeypatch.setattr("gatehouse.auth.session.utcnow", lambda: later)

    await script._run(argparse.Namespace(purge_sessions=True, seed=None))

    assert capsys.readouterr().out.strip() == "purged=1"
    assert SessionDocument.objects.count() == 0


async def test_seed_flag_creates_users(mongo, script, tmp_path, capsys):
    seed = tmp_path / "users.yml"
    seed.write_text("users:\n  root@example.com:\n    role: admin\n    password: pw\n", encoding="utf-8")

    await script._run(argparse.Namespace(purge_sessions=False, seed=str(seed)))

    assert "created=1" in capsys.readouterr().out
    assert (await UserDirectory().get_by_email("root@example.com")).role == "admin"
