"""
OTP registration and login flow.

    request_otp -> (code by email, or echoed back) -> verify_and_register -> token
    login -> token
    token -> authenticate -> account id -> get_profile

There is no per-email state beyond the outstanding OTP record itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from config import Settings
from errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidInput,
    InvalidOrExpiredOTP,
    UserExists,
    UserNotFound,
)
from models import Account
from utils.accounts import AccountRepository
from utils.brevo_email import OtpDispatcher
from utils.otp_ledger import OtpLedger
from utils.otp_utils import normalize_email
from utils.passwords import hash_password, verify_password
from utils.tokens import TokenSigner

logger = logging.getLogger(__name__)


@dataclass
class OtpRequestResult:
    message: str
    otp: Optional[str] = None


@dataclass
class AuthResult:
    account: Account
    token: str


class AuthService:
    def __init__(
        self,
        *,
        settings: Settings,
        accounts: AccountRepository,
        otps: OtpLedger,
        dispatcher: OtpDispatcher,
        tokens: TokenSigner,
    ):
        self.settings = settings
        self.accounts = accounts
        self.otps = otps
        self.dispatcher = dispatcher
        self.tokens = tokens

    def request_otp(self, email: Optional[str]) -> OtpRequestResult:
        """
        Issue a code for email and try to mail it.

        The code is stored before dispatch, so a failed or skipped email never
        cancels it. In that case the code is returned to the caller when
        otp_disclosure_enabled is set.
        """
        email = normalize_email(email)
        if not email:
            raise InvalidInput("Email required")

        record = self.otps.issue(email)
        logger.debug("Issued OTP for %s", email)

        outcome = self.dispatcher.send(email, record.code, valid_minutes=self.settings.otp_exp_minutes)
        if outcome.delivered:
            return OtpRequestResult(message="Check your email for OTP!")

        logger.warning("OTP email for %s not delivered (%s: %s)", email, outcome.status.value, outcome.reason)
        if self.settings.otp_disclosure_enabled:
            return OtpRequestResult(
                message=f"Email delivery failed! Use this OTP: {record.code}",
                otp=record.code,
            )
        return OtpRequestResult(message="OTP issued but email delivery is unavailable")

    def verify_and_register(
        self,
        name: Optional[str],
        email: Optional[str],
        credential: Optional[str],
        code: Optional[str],
    ) -> AuthResult:
        name = (name or "").strip()
        email = normalize_email(email)
        code = (code or "").strip()
        if not name or not email or not credential or not code:
            raise InvalidInput("Missing fields")

        if not self.otps.consume(email, code):
            raise InvalidOrExpiredOTP()

        if self.accounts.find_by_email(email):
            raise UserExists()

        try:
            account = self.accounts.create(
                name=name,
                email=email,
                credential_secret=hash_password(credential),
            )
        except DuplicateEmail:
            raise UserExists()

        logger.info("Registered %s as %s", email, account.profile_id)
        return AuthResult(account=account, token=self.tokens.issue(account.id))

    def login(self, email: Optional[str], credential: Optional[str]) -> AuthResult:
        email = normalize_email(email)
        account = self.accounts.find_by_email(email) if email else None
        if not account or not credential or not verify_password(credential, account.credential_secret):
            logger.info("Failed login for %s", email or "<empty>")
            raise InvalidCredentials()
        return AuthResult(account=account, token=self.tokens.issue(account.id))

    def authenticate(self, token: Optional[str]) -> str:
        return self.tokens.verify(token)

    def get_profile(self, account_id: str) -> dict:
        account = self.accounts.find_by_id(account_id)
        if not account:
            raise UserNotFound()
        return account.public_profile()

    def list_accounts(self) -> List[dict]:
        return [a.to_dict() for a in self.accounts.list()]

    def delete_account(self, account_id: str) -> None:
        if self.accounts.delete(account_id):
            logger.info("Deleted account %s", account_id)
