from datetime import timedelta

import pytest

from medaccess.app.core import result as r
from medaccess.app.core.dates import utcnow
from medaccess.app.services.user_service import UserService
from medaccess.app.services.verification_service import VerificationService, create_numeric_code
from tests.conftest import make_settings


async def _user(users):
    return (await users.create(email="v@b.io", password="pa55word!", phone="+33612345678")).data.user


def test_numeric_code():
    code = create_numeric_code(6)
    assert len(code) == 6 and code.isdigit()


@pytest.mark.asyncio
async def test_request_then_confirm(verification, users, sender):
    user = await _user(users)

    assert (await verification.request_code(user)).success
    body, target = sender.sent[-1]
    assert target == "+33612345678"
    assert body.startswith("Your verification code is ")
    assert user.verification_token and user.verification_token != sender.last_code()

    confirmed = await verification.confirm_code(user, sender.last_code())
    assert confirmed.success

    stored = (await users.find_by_id(user.id)).data
    assert stored.verified is True
    assert stored.verification_token is None
    assert stored.last_verification_request is None

    # Terminal state
    assert (await verification.request_code(user)).kind == r.ALREADY_VERIFIED
    assert (await verification.confirm_code(user, "123456")).kind == r.ALREADY_VERIFIED


@pytest.mark.asyncio
async def test_confirm_errors(verification, users, sender):
    user = await _user(users)

    assert (await verification.confirm_code(user, "")).kind == r.MISSING_CODE
    assert (await verification.confirm_code(user, "123456")).kind == r.NO_PENDING_CODE

    await verification.request_code(user)
    wrong = "000000" if sender.last_code() != "000000" else "111111"
    assert (await verification.confirm_code(user, wrong)).kind == r.INVALID_CODE
    assert user.verified is False


@pytest.mark.asyncio
async def test_code_expires_after_five_minutes(verification, users, sender):
    user = await _user(users)
    await verification.request_code(user)

    user.last_verification_request = utcnow() - timedelta(minutes=5, seconds=1)

    assert (await verification.confirm_code(user, sender.last_code())).kind == r.CODE_EXPIRED


@pytest.mark.asyncio
async def test_no_throttle_outside_production(verification, users, sender):
    user = await _user(users)
    assert (await verification.request_code(user)).success
    assert (await verification.request_code(user)).success
    assert len(sender.sent) == 2


@pytest.mark.asyncio
async def test_throttle_in_production(db, sender):
    settings = make_settings(ENVIRONMENT="production")
    users = UserService(db, settings)
    verification = VerificationService(users, sender, settings)
    user = await _user(users)

    assert (await verification.request_code(user)).success
    assert (await verification.request_code(user)).kind == r.TOO_MANY_REQUESTS
    assert len(sender.sent) == 1

    user.last_verification_request = utcnow() - timedelta(seconds=61)
    await users.update_by_id(user.id, last_verification_request=user.last_verification_request)
    assert (await verification.request_code(user)).success


@pytest.mark.asyncio
async def test_throttle_holds_with_stale_user_copy(db, sender):
    settings = make_settings(ENVIRONMENT="production")
    users = UserService(db, settings)
    verification = VerificationService(users, sender, settings)
    user = await _user(users)
    assert (await verification.request_code(user)).success

    # A concurrent request that read the user before the first write
    user.last_verification_request = None
    assert (await verification.request_code(user)).kind == r.TOO_MANY_REQUESTS


@pytest.mark.asyncio
async def test_send_failure_keeps_stored_code(verification, users, sender):
    user = await _user(users)
    sender.fail = True

    result = await verification.request_code(user)

    assert result.kind == r.MESSAGE_NOT_SENT
    stored = (await users.find_by_id(user.id)).data
    assert stored.verification_token is not None
    assert stored.last_verification_request is not None
