"""
Outstanding one-time codes, at most one per email.

SqlOtpLedger is the default store. RedisOtpLedger is used instead when
REDIS_URL is configured; Redis expires the keys on its own.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import OtpRecord
from utils.otp_utils import generate_otp_code

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _now() -> datetime:
    return datetime.utcnow()


class OtpLedger(Protocol):
    def issue(self, email: str) -> OtpRecord: ...

    def consume(self, email: str, code: str) -> bool: ...

    def purge_expired(self) -> int: ...


class SqlOtpLedger:
    def __init__(self, db: Session, *, ttl_seconds: int, clock: Clock = _now):
        self.db = db
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, email: str) -> OtpRecord:
        """Replace any outstanding code for email with a fresh one."""
        # A concurrent issue for the same email can win the insert; retry so
        # the latest caller still ends up with a live code.
        for attempt in range(3):
            record = OtpRecord(
                email=email,
                code=generate_otp_code(),
                expires_at=self._clock() + timedelta(seconds=self.ttl_seconds),
            )
            try:
                self.db.query(OtpRecord).filter(OtpRecord.email == email).delete()
                self.db.add(record)
                self.db.commit()
                return record
            except IntegrityError:
                self.db.rollback()
                logger.debug("OTP replace raced for %s (attempt %d)", email, attempt + 1)
            except Exception:
                self.db.rollback()
                raise
        raise RuntimeError(f"Could not issue OTP for {email}")

    def consume(self, email: str, code: str) -> bool:
        """Delete the record if code matches and is unexpired; report whether it did."""
        try:
            deleted = (
                self.db.query(OtpRecord)
                .filter(
                    OtpRecord.email == email,
                    OtpRecord.code == code,
                    OtpRecord.expires_at > self._clock(),
                )
                .delete()
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return deleted == 1

    def purge_expired(self) -> int:
        try:
            deleted = (
                self.db.query(OtpRecord)
                .filter(OtpRecord.expires_at <= self._clock())
                .delete()
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return int(deleted or 0)


# Compare-and-delete in one round trip so a code can only be used once.
_CONSUME_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisOtpLedger:
    def __init__(self, client, *, ttl_seconds: int, clock: Clock = _now):
        self.r = client
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._consume = client.register_script(_CONSUME_SCRIPT)

    @staticmethod
    def _key(email: str) -> str:
        return f"otp:{email}"

    def issue(self, email: str) -> OtpRecord:
        code = generate_otp_code()
        expires_at = self._clock() + timedelta(seconds=self.ttl_seconds)
        self.r.set(self._key(email), code, ex=self.ttl_seconds)
        return OtpRecord(email=email, code=code, expires_at=expires_at)

    def consume(self, email: str, code: str) -> bool:
        return bool(self._consume(keys=[self._key(email)], args=[code]))

    def purge_expired(self) -> int:
        return 0
