from datetime import timedelta

from dealer_portal.core.security import (
    create_access_token,
    get_password_hash,
    sign_cookie_value,
    unsign_cookie_value,
    verify_password,
    verify_token,
)


def test_password_hashing():
    hashed = get_password_hash("s3cret")

    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)


def test_access_token_round_trip():
    token = create_access_token("user-1", additional_claims={"role": "super_admin"})

    assert verify_token(token) == "user-1"
    assert verify_token(token, token_type="refresh") is None


def test_expired_access_token_is_rejected():
    token = create_access_token("user-1", expires_delta=timedelta(seconds=-5))

    assert verify_token(token) is None


def test_signed_cookie_is_bound_to_its_key():
    signed = sign_cookie_value("impersonation-marker", "42")

    assert unsign_cookie_value("impersonation-marker", signed) == "42"
    assert unsign_cookie_value("client-session", signed) is None


def test_access_token_is_not_a_cookie_value():
    token = create_access_token("42")

    assert unsign_cookie_value("impersonation-marker", token) is None


def test_expired_cookie_value_is_rejected():
    signed = sign_cookie_value("client-session", "{}", max_age=-5)

    assert unsign_cookie_value("client-session", signed) is None


def test_tampered_cookie_value_is_rejected():
    header, _, signature = sign_cookie_value("impersonation-marker", "42").split(".")
    other_payload = sign_cookie_value("impersonation-marker", "7").split(".")[1]
    forged = ".".join([header, other_payload, signature])

    assert unsign_cookie_value("impersonation-marker", forged) is None
