from __future__ import annotations

import secrets
import string
from typing import AbstractSet

PROFILE_ID_PREFIX = "BGMI-"
PROFILE_ID_ALPHABET = string.ascii_uppercase + string.digits
PROFILE_ID_LENGTH = 5


def generate_profile_id(existing_ids: AbstractSet[str]) -> str:
    """
    Returns a fresh "BGMI-XXXXX" id that is not in existing_ids.

    The whole draw is repeated on collision; with 36**5 combinations this
    almost never loops, but it must never hand out a taken id.
    """
    while True:
        code = "".join(secrets.choice(PROFILE_ID_ALPHABET) for _ in range(PROFILE_ID_LENGTH))
        candidate = f"{PROFILE_ID_PREFIX}{code}"
        if candidate not in existing_ids:
            return candidate
