"""Signup, login and password reset flows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from pymongo.errors import PyMongoError

from trackify.config import Settings
from trackify.errors import (
    AlreadyUsedError,
    AuthError,
    ConfigError,
    DeliveryError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    SamePasswordError,
    ValidationError,
)
from trackify.models import FORGOT_PASSWORD_ACTION, User, VerificationCode
from trackify.services import user_service, verification_service
from trackify.services.email_service import EmailJSGateway, get_active_config, get_template
from trackify.utils.auth import (
    CODE_MAX,
    CODE_MIN,
    create_session_token,
    generate_code,
    generate_token,
    utcnow,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials."


@dataclass
class SessionGrant:
    """A signed session token together with the user it was issued for."""

    token: str
    expires_at: int
    user: User

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "expiresAt": self.expires_at * 1000,
            "user": self.user.to_public(),
        }


@dataclass
class PasswordResetTicket:
    token: str
    expiring_date: datetime


class AuthService:
    """Orchestrates the credential store, the code store and the email gateway."""

    def __init__(self, settings: Settings, email_gateway: Optional[EmailJSGateway] = None) -> None:
        self.settings = settings
        self.email_gateway = email_gateway or EmailJSGateway(settings)

    def _grant(self, user: User) -> SessionGrant:
        token, expires_at = create_session_token(self.settings, user.id, user.email)
        return SessionGrant(token=token, expires_at=expires_at, user=user)

    def signup(self, firstname: str, lastname: str, email: str, password: str) -> SessionGrant:
        if not all([firstname, lastname, email, password]):
            raise ValidationError("All required fields must be provided.")

        user = user_service.create_user(
            firstname,
            lastname,
            email,
            password,
            rounds=self.settings.bcrypt_rounds,
        )
        logger.info("Registered user %s", user.id)
        return self._grant(user)

    def login(self, email: str, password: str) -> SessionGrant:
        if not email or not password:
            raise ValidationError("Email and password are required.")

        user = user_service.get_user_by_email(email)
        # Unknown email and wrong password must be indistinguishable.
        if user is None or not verify_password(password, user.password_hash):
            raise AuthError(INVALID_CREDENTIALS)
        if not user.is_active:
            raise ForbiddenError("Account is inactive.", error="account_inactive")

        return self._grant(user)

    def request_password_reset(self, email: str) -> PasswordResetTicket:
        """
        Issue a code/token pair for ``email`` and deliver the code by email.

        Returns:
            The token and its expiry; the code itself only travels by email.
        """
        user = user_service.get_user_by_email(email)
        if user is None:
            raise NotFoundError("No user found with this email.", error="user_not_found")

        record = verification_service.save_verification_code(
            generate_code(),
            generate_token(),
            FORGOT_PASSWORD_ACTION,
            self.settings.code_ttl_minutes,
            email=user.email,
            user_id=user.id,
        )

        config = get_active_config()
        if config is None:
            raise ConfigError("Email configuration missing.")
        template = get_template(FORGOT_PASSWORD_ACTION)
        if template is None:
            raise ConfigError("Email template missing.", error="email_template_missing")

        sent = self.email_gateway.send_verification_email(user.email, record.code, record.token, config, template)
        if not sent:
            raise DeliveryError("Email cannot be sent. Please try again.")

        logger.info("Password reset code issued for user %s", user.id)
        return PasswordResetTicket(token=record.token, expiring_date=record.expiring_date)

    def verify_code(self, code: Any, token: Any, email: Optional[str] = None) -> bool:
        """Consume a forgot-password code. A code/token pair succeeds at most once."""
        if isinstance(code, bool) or not isinstance(code, int) or not isinstance(token, str) or not token:
            raise ValidationError("Code (number) and token (string) are required.")

        # Codes outside the issued range cannot match and do not fit a BSON int64.
        if not CODE_MIN <= code < CODE_MAX:
            raise NotFoundError("Invalid or wrong code.", error="invalid_code")

        record = verification_service.find_code(code, token, FORGOT_PASSWORD_ACTION)
        if record is None or (email and record.email and record.email != email):
            raise NotFoundError("Invalid or wrong code.", error="invalid_code")

        self._ensure_consumable(record)
        if verification_service.consume_code(record.id) is None:
            # Lost a race with another consumer, or the code lapsed meanwhile.
            latest = verification_service.find_code(code, token, FORGOT_PASSWORD_ACTION) or record
            self._ensure_consumable(latest, now=utcnow())
            raise AlreadyUsedError("Code has already been used.")
        return True

    @staticmethod
    def _ensure_consumable(record: VerificationCode, now: Optional[datetime] = None) -> None:
        if record.is_used:
            raise AlreadyUsedError("Code has already been used.")
        if record.has_lapsed(now):
            raise ExpiredError("Code has expired.")

    def reset_password(self, email: str, token: str, new_password: str) -> User:
        """
        Replace the password of ``email`` using a token that passed ``verify_code``.

        The token must belong to this email, must have been verified and must
        not have authorized a reset before.
        """
        if not email or not token or not new_password:
            raise ValidationError("Email, token and new password are required.")

        user = user_service.get_user_by_email(email)
        if user is None:
            raise NotFoundError("User not found.", error="user_not_found")

        record = verification_service.find_by_token(token, FORGOT_PASSWORD_ACTION)
        if record is None or record.email != user.email or not record.is_used or record.reset_at is not None:
            raise ValidationError("Reset token is invalid or has not been verified.", error="invalid_reset_token")

        if verify_password(new_password, user.password_hash):
            raise SamePasswordError("New password cannot be the same as the old password.")

        if verification_service.claim_for_reset(token, FORGOT_PASSWORD_ACTION, user.email) is None:
            raise ValidationError("Reset token is invalid or has not been verified.", error="invalid_reset_token")

        try:
            user_service.set_password(user.id, new_password, rounds=self.settings.bcrypt_rounds)
        except PyMongoError:
            # The token stays usable when the new hash was never stored.
            verification_service.release_reset_claim(token, FORGOT_PASSWORD_ACTION)
            raise

        logger.info("Password reset for user %s", user.id)
        return user

    def cleanup_expired_codes(self, retention_days: int = 30) -> Dict[str, int]:
        """Flag lapsed codes as expired and drop ones past the retention window."""
        return {
            "codes_expired": verification_service.expire_stale_codes(),
            "codes_deleted": verification_service.delete_old_codes(retention_days),
        }
