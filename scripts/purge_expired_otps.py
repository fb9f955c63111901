import os
import sys

# Add repository root to path so we can import models/db
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import load_settings  # noqa: E402
from database import SessionLocal, create_db_engine, init_db  # noqa: E402
from utils.otp_ledger import SqlOtpLedger  # noqa: E402


def purge_expired_otps() -> int:
    """
    Delete OTP records whose window has passed.

    Expired codes never verify anyway; this only keeps the table small.
    Redis-backed deployments don't need it (keys carry a TTL).
    """
    settings = load_settings()
    init_db(create_db_engine(settings.database_url))
    db = SessionLocal()
    try:
        ledger = SqlOtpLedger(db, ttl_seconds=settings.otp_exp_minutes * 60)
        deleted = ledger.purge_expired()
    finally:
        db.close()
    print(f"Purged {deleted} expired OTP records")
    return deleted


if __name__ == "__main__":
    purge_expired_otps()
