from datetime import date

import pytest

from medaccess.app.core import result as r
from medaccess.app.models import UserType
from medaccess.app.security import crypto, hashing
from medaccess.app.services.user_service import RELATIONS


@pytest.mark.asyncio
async def test_create_hashes_password_and_builds_encryption_profile(users):
    created = await users.create(email="Jane@Example.com ", password="pa55word!", phone="+33612345678")
    assert created.success

    found = await users.find_by_email("jane@example.com", include=RELATIONS)
    user = found.data
    assert user.email == "jane@example.com"
    assert user.type == UserType.CLIENT
    assert user.verified is False
    assert hashing.compare("pa55word!", user.password)

    master = crypto.decrypt(user.encryption_profile.user_key, "pa55word!")
    assert crypto.decrypt(user.encryption_profile.recovery_key, created.data.passphrase) == master
    assert user.admin is None


@pytest.mark.asyncio
async def test_duplicate_email(users):
    assert (await users.create(email="a@b.io", password="pa55word!")).success
    second = await users.create(email="A@b.io", password="other-pass")
    assert not second.success
    assert second.kind == r.DUPLICATE_EMAIL


@pytest.mark.asyncio
async def test_admin_gets_admin_record_and_may_be_preverified(users):
    created = await users.create(email="boss@b.io", password="pa55word!", type=UserType.ADMIN, verified=True)
    user = (await users.find_by_id(created.data.user.id, include=RELATIONS)).data
    assert user.admin is not None
    assert user.verified is True


@pytest.mark.asyncio
async def test_clients_cannot_be_preverified(users):
    created = await users.create(email="c@b.io", password="pa55word!", verified=True)
    assert created.data.user.verified is False


@pytest.mark.asyncio
async def test_unknown_user(users):
    assert (await users.find_by_id("missing")).kind == r.USER_NOT_FOUND
    assert (await users.update_by_id("missing", completed=True)).kind == r.USER_NOT_FOUND


@pytest.mark.asyncio
async def test_create_profile_marks_user_completed(users):
    user = (await users.create(email="p@b.io", password="pa55word!")).data.user
    payload = {
        "first_name": "Jane",
        "last_name": "Doe",
        "birth_date": date(1990, 5, 1),
        "birth_place": "Lyon",
        "address": "1 rue de la Paix",
    }

    created = await users.create_profile(user, payload)
    assert created.success
    assert (await users.find_by_id(user.id)).data.completed is True

    again = await users.create_profile(user, payload)
    assert again.kind == r.PROFILE_ALREADY_EXISTS


@pytest.mark.asyncio
async def test_profile_not_found(users):
    user = (await users.create(email="np@b.io", password="pa55word!")).data.user
    assert (await users.find_profile_by_user_id(user.id)).kind == r.PROFILE_NOT_FOUND


@pytest.mark.asyncio
async def test_sanitize_strips_internal_fields(users):
    created = await users.create(email="s@b.io", password="pa55word!", phone="+33612345678")
    user = (await users.find_by_id(created.data.user.id, include=RELATIONS)).data

    data = users.sanitize(user)

    for hidden in ("password", "verified", "verificationToken", "lastVerificationRequest",
                   "status", "type", "deletedAt", "refreshTokens"):
        assert hidden not in data
    assert data["email"] == "s@b.io"
    assert data["phone"] == "+33612345678"
    # null relation dropped
    assert "profile" not in data

    profile = data["encryptionProfile"]
    assert set(profile) == {"userKey"}
    assert bytes.fromhex(profile["userKey"]) == user.encryption_profile.user_key


@pytest.mark.asyncio
async def test_sanitize_skips_unloaded_relations(users):
    created = await users.create(email="u@b.io", password="pa55word!")
    user = (await users.find_by_id(created.data.user.id)).data
    assert "encryptionProfile" not in users.sanitize(user)
