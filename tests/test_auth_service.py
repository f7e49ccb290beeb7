from datetime import timedelta

import jwt
import pytest

from app.bot.services.auth import AuthService, TokenIssuer, hash_secret, is_valid_phone, normalize_phone
from app.exceptions import BusinessValidationError, InvalidInputError, UserNotFoundError
from conftest import PHONE, TEST_BCRYPT_ROUNDS, FakeAttemptCounter, RecordingSmsSender, create_customer
from config.settings import config
from infrastructure.database.models import utcnow
from infrastructure.database.repositories import OtpRepository, UserRepository

SECRET = "test-secret"


@pytest.fixture
def tokens():
    return TokenIssuer(secret=SECRET)


@pytest.fixture
def auth(session, attempts, sms, tokens):
    return AuthService(session, attempts, sms_sender=sms, tokens=tokens, bcrypt_rounds=TEST_BCRYPT_ROUNDS)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("998901234567", "+998901234567"),
        ("+998 (90) 123-45-67", "+998901234567"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("phone", ["+79001234567", "+99890123456", "", "+9989012345678"])
def test_invalid_phones(phone):
    assert not is_valid_phone(phone)


async def test_request_and_verify_otp(auth, sms):
    otp_id = await auth.request_otp(PHONE)

    assert sms.messages[-1][0] == PHONE
    assert len(sms.last_code) == config.otp_length
    assert await auth.verify_otp(PHONE, sms.last_code, otp_id)


async def test_code_is_stored_hashed(session, auth, sms):
    otp_id = await auth.request_otp(PHONE)
    otp = await OtpRepository(session).get_by_id(otp_id)

    assert otp.code_hash != sms.last_code


async def test_code_can_be_used_once(auth, sms):
    otp_id = await auth.request_otp(PHONE)
    code = sms.last_code

    assert await auth.verify_otp(PHONE, code, otp_id)
    assert not await auth.verify_otp(PHONE, code, otp_id)


async def test_wrong_code_or_phone_is_rejected(auth, sms):
    otp_id = await auth.request_otp(PHONE)
    wrong = "000000" if sms.last_code != "000000" else "111111"

    assert not await auth.verify_otp(PHONE, wrong, otp_id)
    assert not await auth.verify_otp("+998907654321", sms.last_code, otp_id)
    assert not await auth.verify_otp(PHONE, sms.last_code, otp_id + 100)


async def test_expired_code_is_rejected(session, auth, sms):
    otp_id = await auth.request_otp(PHONE)
    otp = await OtpRepository(session).get_by_id(otp_id)
    otp.expires_at = utcnow() - timedelta(seconds=1)
    await session.commit()

    assert not await auth.verify_otp(PHONE, sms.last_code, otp_id)


async def test_invalid_phone_is_not_sent(auth, sms):
    with pytest.raises(InvalidInputError):
        await auth.request_otp("+79001234567")
    assert sms.messages == []


async def test_too_many_requests(session, tokens):
    attempts = FakeAttemptCounter()
    attempts.counts[PHONE] = config.otp_max_attempts
    auth = AuthService(session, attempts, sms_sender=RecordingSmsSender(), tokens=tokens,
                       bcrypt_rounds=TEST_BCRYPT_ROUNDS)

    with pytest.raises(BusinessValidationError):
        await auth.request_otp(PHONE)


async def test_otp_login_creates_user_and_issues_tokens(session, auth, sms, tokens):
    otp_id = await auth.request_otp(PHONE)

    response = await auth.otp_login(PHONE, sms.last_code, otp_id)

    user = await UserRepository(session).get_by_phone(PHONE)
    payload = tokens.decode(response.access_token)
    assert payload["userId"] == user.id
    assert payload["sub"] == str(user.id)
    assert payload["role"] == "customer"
    assert payload["tokenType"] == "access"


async def test_otp_login_with_wrong_code(auth, sms):
    otp_id = await auth.request_otp(PHONE)
    wrong = "000000" if sms.last_code != "000000" else "111111"

    with pytest.raises(InvalidInputError):
        await auth.otp_login(PHONE, wrong, otp_id)


async def test_password_login_and_refresh(session, auth, tokens):
    user = await create_customer(session)
    user.password_hash = hash_secret("s3cret", TEST_BCRYPT_ROUNDS)
    await session.commit()

    pair = await auth.login(PHONE, "s3cret")
    refreshed = await auth.refresh(pair.refresh_token)

    assert tokens.decode(refreshed.access_token)["userId"] == user.id

    with pytest.raises(InvalidInputError):
        await auth.login(PHONE, "wrong")
    with pytest.raises(UserNotFoundError):
        await auth.login("+998907654321", "s3cret")


async def test_access_token_cannot_be_used_as_refresh(session, auth):
    user = await create_customer(session)
    pair = auth.tokens.issue(user)

    with pytest.raises(InvalidInputError):
        await auth.refresh(pair.access_token)


def test_token_signed_with_other_secret_is_rejected(tokens):
    forged = jwt.encode({"userId": 1, "tokenType": "access"}, "other", algorithm="HS256")

    with pytest.raises(jwt.InvalidTokenError):
        tokens.decode(forged)
