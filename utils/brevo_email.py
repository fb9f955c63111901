from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import requests

from config import Settings

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"
OTP_SUBJECT = "BGMI Tournament OTP"


class DispatchStatus(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DispatchOutcome:
    status: DispatchStatus
    reason: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status is DispatchStatus.DELIVERED


DELIVERED = DispatchOutcome(DispatchStatus.DELIVERED)
SKIPPED = DispatchOutcome(DispatchStatus.SKIPPED)


def failed(reason: str) -> DispatchOutcome:
    return DispatchOutcome(DispatchStatus.FAILED, reason)


class OtpDispatcher(Protocol):
    def send(self, to_email: str, code: str, *, valid_minutes: int) -> DispatchOutcome: ...


class NullDispatcher:
    """Used when outbound mail is switched off."""

    def send(self, to_email: str, code: str, *, valid_minutes: int) -> DispatchOutcome:
        return SKIPPED


def _otp_html(code: str, valid_minutes: int) -> str:
    return f"""
    <div style="font-family:Arial,sans-serif">
      <h2>BGMI Tournament Verification</h2>
      <p>Your OTP is:</p>
      <h1 style="font-size:48px;color:#ff4444;letter-spacing:2px">{code}</h1>
      <p>Valid for {valid_minutes} minutes only.</p>
    </div>
    """


class BrevoDispatcher:
    """
    Sends OTP emails through the Brevo Transactional Email API.

    Needs BREVO_API_KEY and a sender address (BREVO_FROM or EMAIL_FROM/SMTP_FROM).
    Without them every send is skipped. Errors never escape send(); they come
    back as a failed outcome so the caller can fall back.
    """

    def __init__(self, settings: Settings, *, http: Optional[requests.Session] = None):
        self.api_key = settings.brevo_api_key
        self.from_email = settings.brevo_from
        self.sender_name = settings.mail_sender_name
        self.timeout = (settings.mail_connect_timeout_seconds, settings.mail_timeout_seconds)
        self.http = http or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.from_email)

    def send(self, to_email: str, code: str, *, valid_minutes: int) -> DispatchOutcome:
        if not self.configured:
            logger.info("Brevo is not configured; skipping OTP email to %s", to_email)
            return SKIPPED

        payload = {
            "sender": {"email": self.from_email, "name": self.sender_name},
            "to": [{"email": to_email}],
            "subject": OTP_SUBJECT,
            "htmlContent": _otp_html(code, valid_minutes),
            "textContent": f"Your BGMI Tournament OTP is {code}. Valid for {valid_minutes} minutes.",
        }
        try:
            resp = self.http.post(
                BREVO_SEND_URL,
                headers={
                    "accept": "application/json",
                    "api-key": self.api_key,
                    "content-type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("OTP email to %s failed: %s", to_email, exc)
            return failed(str(exc))

        if resp.status_code >= 300:
            reason = f"Brevo send failed ({resp.status_code}): {resp.text}"
            logger.warning("OTP email to %s failed: %s", to_email, reason)
            return failed(reason)

        logger.info("OTP email sent to %s", to_email)
        return DELIVERED


def build_dispatcher(settings: Settings) -> OtpDispatcher:
    if not settings.mail_enabled:
        return NullDispatcher()
    return BrevoDispatcher(settings)
