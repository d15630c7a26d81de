import pytest

from gatehouse.auth.passwords import verify_password
from gatehouse.auth.users import UserDirectory
from gatehouse.services.bootstrap_service import load_seed_file, seed_users

pytestmark = pytest.mark.anyio

SEED = """
version: 1
users:
  Root@Example.com:
    name: Root
    role: admin
    password: s3cret
  plain@example.com:
    password: pw
  nopass@example.com:
    role: user
  weird@example.com:
    role: superuser
    password: pw
"""


@pytest.fixture()
def seed_file(tmp_path):
    p = tmp_path / "users.yml"
    p.write_text(SEED, encoding="utf-8")
    return p


def test_load_seed_file_normalises_emails(seed_file, tmp_path):
    users = load_seed_file(seed_file)
    assert "root@example.com" in users
    assert load_seed_file(tmp_path / "missing.yml") == {}


async def test_seed_creates_missing_users(mongo, seed_file):
    directory = UserDirectory()
    result = await seed_users(directory, seed_file)
    assert sorted(result.created) == ["plain@example.com", "root@example.com"]
    assert sorted(result.skipped) == ["nopass@example.com", "weird@example.com"]

    root = await directory.get_by_email("root@example.com")
    assert root.role == "admin"
    assert verify_password(root.password_hash, "s3cret")
    plain = await directory.get_by_email("plain@example.com")
    assert plain.role == "user"
    assert plain.name == "plain"


async def test_seed_updates_role_of_existing_users(mongo, seed_file):
    directory = UserDirectory()
    await directory.create(name="Root", email="root@example.com", password_hash="old")
    result = await seed_users(directory, seed_file)
    assert result.updated == ["root@example.com"]
    root = await directory.get_by_email("root@example.com")
    assert root.role == "admin"
    # password untouched
    assert root.password_hash == "old"

    again = await seed_users(directory, seed_file)
    assert again.created == [] and again.updated == []
