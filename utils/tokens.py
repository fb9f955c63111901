from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from config import Settings
from errors import InvalidToken, NoToken


class TokenSigner:
    """Issues and checks the bearer tokens handed out at login/registration."""

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_alg
        self.lifetime = timedelta(minutes=settings.jwt_exp_min)

    def issue(self, account_id: str, *, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(account_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self.lifetime).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> str:
        """Return the account id inside token, or raise NoToken/InvalidToken."""
        if not token:
            raise NoToken()
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            raise InvalidToken()
        sub = payload.get("sub")
        if not sub:
            raise InvalidToken()
        return str(sub)
