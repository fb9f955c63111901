from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String

from database import Base


def _new_account_id() -> str:
    return uuid.uuid4().hex


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(32), primary_key=True, default=_new_account_id)

    # Public identifier shown to players, e.g. "BGMI-7QX2A".
    profile_id = Column(String(16), unique=True, index=True, nullable=False)

    name = Column(String, nullable=False)

    # Always stored trimmed and lowercased.
    email = Column(String, unique=True, index=True, nullable=False)

    # bcrypt hash of the registration password.
    credential_secret = Column(String, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def public_profile(self) -> dict:
        return {
            "profile_id": self.profile_id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
        }

    def to_dict(self) -> dict:
        return {"id": self.id, **self.public_profile()}


class OtpRecord(Base):
    __tablename__ = "otp_records"

    # One live code per email; issuing again replaces the row.
    email = Column(String, primary_key=True)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
