"""Tests for the signup, login and password reset flows."""

from __future__ import annotations

from datetime import timedelta

import bcrypt
import jwt
import pytest
from pymongo.errors import PyMongoError

from trackify.errors import (
    AlreadyUsedError,
    AuthError,
    ConfigError,
    ConflictError,
    DeliveryError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    SamePasswordError,
    ValidationError,
)
from trackify.models import FORGOT_PASSWORD_ACTION
from trackify.services import user_service, verification_service
from trackify.utils.auth import decode_session_token, utcnow


def _issue_code(auth_service, mongo_db, email="ann@x.com"):
    ticket = auth_service.request_password_reset(email)
    stored = mongo_db.verification_codes.find_one({"token": ticket.token})
    return ticket, stored


def test_signup_stores_only_a_bcrypt_hash(auth_service, mongo_db):
    grant = auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")

    stored = mongo_db.users.find_one({"email": "ann@x.com"})
    assert stored["password"] != "Secr3t!"
    assert "Secr3t!" not in str(stored)
    assert bcrypt.checkpw(b"Secr3t!", stored["password"].encode("utf-8"))
    assert stored["isActive"] is True

    public = grant.user.to_public()
    assert "password" not in public
    assert public == {"id": str(stored["_id"]), "firstname": "Ann", "lastname": "Lee", "email": "ann@x.com"}


def test_signup_issues_one_hour_session(auth_service, settings):
    grant = auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")

    claims = decode_session_token(settings, grant.token)
    assert claims["sub"] == grant.user.id
    assert claims["email"] == "ann@x.com"
    assert claims["exp"] - claims["iat"] == 3600


def test_signup_rejects_duplicate_email(auth_service):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")

    with pytest.raises(ConflictError):
        auth_service.signup("Other", "Person", "ann@x.com", "different")


def test_signup_requires_every_field(auth_service):
    with pytest.raises(ValidationError):
        auth_service.signup("Ann", "", "ann@x.com", "Secr3t!")


def test_login_returns_same_subject_as_signup(auth_service, settings):
    signed_up = auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    logged_in = auth_service.login("ann@x.com", "Secr3t!")

    assert decode_session_token(settings, logged_in.token)["sub"] == signed_up.user.id


def test_login_errors_do_not_reveal_which_field_was_wrong(auth_service):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")

    with pytest.raises(AuthError) as unknown_email:
        auth_service.login("nobody@x.com", "Secr3t!")
    with pytest.raises(AuthError) as wrong_password:
        auth_service.login("ann@x.com", "wrong-password")

    assert unknown_email.value.to_dict() == wrong_password.value.to_dict()


def test_login_rejects_inactive_account(auth_service, mongo_db):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    mongo_db.users.update_one({"email": "ann@x.com"}, {"$set": {"isActive": False}})

    with pytest.raises(ForbiddenError):
        auth_service.login("ann@x.com", "Secr3t!")
    # A wrong password on an inactive account still looks like bad credentials.
    with pytest.raises(AuthError):
        auth_service.login("ann@x.com", "wrong-password")


def test_request_password_reset_stores_code_and_sends_email(auth_service, gateway, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")

    ticket, stored = _issue_code(auth_service, mongo_db)

    assert len(ticket.token) == 46
    int(ticket.token, 16)
    assert 100000 <= stored["code"] <= 999999
    assert stored["action"] == FORGOT_PASSWORD_ACTION
    assert stored["duration"] == 10
    assert stored["is_used"] is False
    assert stored["is_expired"] is False
    remaining = stored["expiring_date"] - utcnow()
    assert timedelta(minutes=9) < remaining <= timedelta(minutes=10)

    assert len(gateway.sent) == 1
    sent = gateway.sent[0]
    assert sent["email"] == "ann@x.com"
    assert sent["code"] == stored["code"]
    assert sent["template_id"] == "template_forgot"
    assert ticket.token in sent["link"]


def test_request_password_reset_unknown_email(auth_service, email_config):
    with pytest.raises(NotFoundError):
        auth_service.request_password_reset("nobody@x.com")


def test_request_password_reset_without_email_config(auth_service):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")

    with pytest.raises(ConfigError):
        auth_service.request_password_reset("ann@x.com")


def test_request_password_reset_without_template(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    mongo_db.email_templates.delete_many({})

    with pytest.raises(ConfigError):
        auth_service.request_password_reset("ann@x.com")


def test_request_password_reset_delivery_failure(auth_service, gateway, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    gateway.succeed = False

    with pytest.raises(DeliveryError):
        auth_service.request_password_reset("ann@x.com")


def test_verify_code_succeeds_once(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    ticket, stored = _issue_code(auth_service, mongo_db)

    assert auth_service.verify_code(stored["code"], ticket.token, "ann@x.com") is True

    consumed = mongo_db.verification_codes.find_one({"token": ticket.token})
    assert consumed["is_used"] is True
    assert consumed["is_expired"] is True

    with pytest.raises(AlreadyUsedError):
        auth_service.verify_code(stored["code"], ticket.token, "ann@x.com")


def test_verify_code_rejects_expired_code(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    ticket, stored = _issue_code(auth_service, mongo_db)
    mongo_db.verification_codes.update_one(
        {"token": ticket.token},
        {"$set": {"expiring_date": utcnow() - timedelta(seconds=1)}},
    )

    with pytest.raises(ExpiredError):
        auth_service.verify_code(stored["code"], ticket.token, "ann@x.com")

    untouched = mongo_db.verification_codes.find_one({"token": ticket.token})
    assert untouched["is_used"] is False


def test_verify_code_rejects_flagged_expired_code(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    ticket, stored = _issue_code(auth_service, mongo_db)
    mongo_db.verification_codes.update_one({"token": ticket.token}, {"$set": {"is_expired": True}})

    with pytest.raises(ExpiredError):
        auth_service.verify_code(stored["code"], ticket.token, "ann@x.com")


def test_verify_code_wrong_code_or_email(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    ticket, stored = _issue_code(auth_service, mongo_db)
    wrong_code = 100000 if stored["code"] != 100000 else 100001

    with pytest.raises(NotFoundError):
        auth_service.verify_code(wrong_code, ticket.token, "ann@x.com")
    with pytest.raises(NotFoundError):
        auth_service.verify_code(stored["code"], ticket.token, "someone-else@x.com")


@pytest.mark.parametrize("code, token", [("abc", "token"), (True, "token"), (123456, 42), (123456, "")])
def test_verify_code_validates_types(auth_service, code, token):
    with pytest.raises(ValidationError):
        auth_service.verify_code(code, token, "ann@x.com")


def test_verify_code_loses_race_to_concurrent_consumer(auth_service, mongo_db, email_config, monkeypatch):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    ticket, stored = _issue_code(auth_service, mongo_db)

    real_consume = verification_service.consume_code

    def consume_after_rival(record_id, now=None):
        # Another request consumes the code between our read and our update.
        assert real_consume(record_id) is not None
        return real_consume(record_id, now)

    monkeypatch.setattr(verification_service, "consume_code", consume_after_rival)

    with pytest.raises(AlreadyUsedError):
        auth_service.verify_code(stored["code"], ticket.token, "ann@x.com")


def _verified_token(auth_service, mongo_db):
    ticket, stored = _issue_code(auth_service, mongo_db)
    auth_service.verify_code(stored["code"], ticket.token, "ann@x.com")
    return ticket.token


def test_reset_password_with_verified_token(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    token = _verified_token(auth_service, mongo_db)

    auth_service.reset_password("ann@x.com", token, "N3wPassword!")

    assert auth_service.login("ann@x.com", "N3wPassword!").user.email == "ann@x.com"
    with pytest.raises(AuthError):
        auth_service.login("ann@x.com", "Secr3t!")


def test_reset_password_rejects_same_password(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    token = _verified_token(auth_service, mongo_db)

    with pytest.raises(SamePasswordError):
        auth_service.reset_password("ann@x.com", token, "Secr3t!")

    # The rejected attempt does not burn the token.
    auth_service.reset_password("ann@x.com", token, "N3wPassword!")


def test_reset_password_requires_verification(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    ticket, _ = _issue_code(auth_service, mongo_db)

    with pytest.raises(ValidationError) as excinfo:
        auth_service.reset_password("ann@x.com", ticket.token, "N3wPassword!")
    assert excinfo.value.error == "invalid_reset_token"


def test_reset_password_token_is_single_use(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    token = _verified_token(auth_service, mongo_db)
    auth_service.reset_password("ann@x.com", token, "N3wPassword!")

    with pytest.raises(ValidationError):
        auth_service.reset_password("ann@x.com", token, "An0therOne!")


def test_reset_password_failed_write_keeps_token_usable(auth_service, mongo_db, email_config, monkeypatch):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    token = _verified_token(auth_service, mongo_db)
    real_set_password = user_service.set_password

    def failing_set_password(*args, **kwargs):
        raise PyMongoError("write failed")

    monkeypatch.setattr(user_service, "set_password", failing_set_password)
    with pytest.raises(PyMongoError):
        auth_service.reset_password("ann@x.com", token, "N3wPassword!")

    assert mongo_db.verification_codes.find_one({"token": token})["reset_at"] is None
    auth_service.login("ann@x.com", "Secr3t!")

    monkeypatch.setattr(user_service, "set_password", real_set_password)
    auth_service.reset_password("ann@x.com", token, "N3wPassword!")
    assert auth_service.login("ann@x.com", "N3wPassword!").user.email == "ann@x.com"


def test_reset_password_token_bound_to_email(auth_service, mongo_db, email_config):
    auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    auth_service.signup("Bob", "Ray", "bob@x.com", "B0bpass!")
    token = _verified_token(auth_service, mongo_db)

    with pytest.raises(ValidationError):
        auth_service.reset_password("bob@x.com", token, "Hijacked1!")


def test_reset_password_unknown_user(auth_service):
    with pytest.raises(NotFoundError):
        auth_service.reset_password("nobody@x.com", "token", "N3wPassword!")


def test_cleanup_expired_codes(auth_service, mongo_db):
    user = user_service.create_user("Ann", "Lee", "ann@x.com", "Secr3t!", rounds=4)
    verification_service.save_verification_code(111111, "a" * 46, FORGOT_PASSWORD_ACTION, 10, email=user.email)
    verification_service.save_verification_code(222222, "b" * 46, FORGOT_PASSWORD_ACTION, 10, email=user.email)
    verification_service.save_verification_code(333333, "c" * 46, FORGOT_PASSWORD_ACTION, 10, email=user.email)
    mongo_db.verification_codes.update_one(
        {"code": 111111}, {"$set": {"expiring_date": utcnow() - timedelta(minutes=1)}}
    )
    mongo_db.verification_codes.update_one(
        {"code": 222222}, {"$set": {"expiring_date": utcnow() - timedelta(days=45), "is_expired": True}}
    )

    result = auth_service.cleanup_expired_codes(retention_days=30)

    assert result == {"codes_expired": 1, "codes_deleted": 1}
    assert mongo_db.verification_codes.find_one({"code": 111111})["is_expired"] is True
    assert mongo_db.verification_codes.count_documents({"code": 222222}) == 0
    assert mongo_db.verification_codes.find_one({"code": 333333})["is_expired"] is False


def test_session_token_signed_with_other_secret_is_rejected(auth_service, settings):
    grant = auth_service.signup("Ann", "Lee", "ann@x.com", "Secr3t!")
    forged = jwt.encode({"sub": grant.user.id, "exp": 9999999999}, "not-the-secret", algorithm="HS256")

    with pytest.raises(jwt.InvalidSignatureError):
        decode_session_token(settings, forged)
