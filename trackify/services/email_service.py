"""EmailJS delivery and the provider configuration stored alongside it."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from trackify import database
from trackify.config import Settings
from trackify.models import AuditFields, EmailConfig, EmailTemplate

logger = logging.getLogger(__name__)


def get_active_config() -> Optional[EmailConfig]:
    """Return the active EmailJS account configuration, if one is stored."""
    document = database.get_collection(database.EMAIL_CONFIGS).find_one({"is_active": {"$ne": False}})
    return EmailConfig.from_document(document) if document else None


def get_template(action: str) -> Optional[EmailTemplate]:
    document = database.get_collection(database.EMAIL_TEMPLATES).find_one({"action": action})
    return EmailTemplate.from_document(document) if document else None


def save_config(service_id: str, public_key: str, private_key: str) -> None:
    """Store an EmailJS configuration and make it the only active one."""
    collection = database.get_collection(database.EMAIL_CONFIGS)
    collection.update_many({}, {"$set": {"is_active": False}})
    collection.insert_one(
        {
            "service_id": service_id,
            "public_key": public_key,
            "private_key": private_key,
            "is_active": True,
            **AuditFields().to_document(),
        }
    )


def save_template(action: str, template_id: str) -> None:
    """Bind an EmailJS template to an action, replacing any previous binding."""
    database.get_collection(database.EMAIL_TEMPLATES).update_one(
        {"action": action},
        {
            "$set": {"template_id": template_id},
            "$setOnInsert": AuditFields().to_document(),
        },
        upsert=True,
    )


class EmailJSGateway:
    """Sends templated emails through the EmailJS REST API."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    def verification_link(self, token: str) -> str:
        return f"{self.settings.verify_link_base}?{urlencode({'token': token})}"

    def send_verification_email(
        self,
        email: str,
        code: int,
        token: str,
        config: EmailConfig,
        template: EmailTemplate,
    ) -> bool:
        """Send the code and confirmation link to ``email``. Returns False on any failure."""
        if not all([config.service_id, config.public_key, config.private_key, template.template_id]):
            logger.error("EmailJS configuration is incomplete")
            return False

        payload: Dict[str, Any] = {
            "service_id": config.service_id,
            "template_id": template.template_id,
            "user_id": config.public_key,
            "accessToken": config.private_key,
            "template_params": {
                "email": email,
                "code": code,
                "link": self.verification_link(token),
            },
        }

        try:
            response = self.session.post(
                self.settings.emailjs_api_url,
                json=payload,
                timeout=self.settings.email_timeout_seconds,
            )
        except requests.exceptions.RequestException as exc:
            logger.error("EmailJS request failed: %s", exc)
            return False

        if not response.ok:
            logger.error("EmailJS error %s: %s", response.status_code, response.text)
            return False

        logger.info("Verification email sent for template %s", template.template_id)
        return True
