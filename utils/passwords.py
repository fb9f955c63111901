from __future__ import annotations

import base64
import hashlib

import bcrypt


def _bcrypt_bytes(password: str) -> bytes:
    # bcrypt ignores everything past 72 bytes; a sha256 digest (44 base64
    # chars) keeps every character of the password significant.
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_bcrypt_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_bcrypt_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False
