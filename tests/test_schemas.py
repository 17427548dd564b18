from datetime import date

import pytest
from pydantic import ValidationError

from medaccess.app.schemas.user import SigninRequest, SignupRequest, minimal_adult_birth_date


def _signup(**overrides):
    body = {"email": "Jane.Doe@Example.com", "password": "pa55word!", "confirmPassword": "pa55word!"}
    body.update(overrides)
    return SignupRequest(**body)


def test_email_is_lowercased():
    assert _signup().email == "jane.doe@example.com"


@pytest.mark.parametrize("email", ["not-an-email", "jane@", "@example.com", "jane doe@example.com"])
def test_invalid_emails_are_rejected(email):
    with pytest.raises(ValidationError):
        _signup(email=email)


def test_signin_email_is_validated():
    with pytest.raises(ValidationError):
        SigninRequest(email="nobody", password="whatever")


def test_phone_spaces_are_removed():
    assert _signup(phone="+33 6 12 34 56 78").phone == "+33612345678"


def test_passwords_must_match():
    with pytest.raises(ValidationError):
        _signup(confirmPassword="something-else")


def test_minimal_adult_birth_date_on_leap_day():
    assert minimal_adult_birth_date(date(2024, 2, 29)) == date(2006, 2, 28)
    assert minimal_adult_birth_date(date(2024, 6, 1)) == date(2006, 6, 1)
