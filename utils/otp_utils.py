"""
Small helpers shared by the OTP ledgers and the auth service.
"""

from __future__ import annotations

import secrets
from typing import Optional

OTP_MIN = 100000
OTP_MAX = 999999


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def generate_otp_code() -> str:
    # Uniform over 100000..999999.
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))
