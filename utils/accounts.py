from __future__ import annotations

import logging
from typing import Callable, List, Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import DuplicateEmail
from models import Account
from utils.otp_utils import normalize_email
from utils.profile_ids import generate_profile_id

logger = logging.getLogger(__name__)


class AccountRepository:
    """Registered accounts, looked up by normalized email or internal id."""

    def __init__(self, db: Session, *, profile_id_generator: Callable[[Set[str]], str] = generate_profile_id):
        self.db = db
        self._generate_profile_id = profile_id_generator

    def find_by_email(self, email: str) -> Optional[Account]:
        return self.db.query(Account).filter(Account.email == normalize_email(email)).first()

    def find_by_id(self, account_id: str) -> Optional[Account]:
        return self.db.get(Account, account_id)

    def list(self) -> List[Account]:
        return self.db.query(Account).order_by(Account.created_at.asc()).all()

    def existing_profile_ids(self) -> Set[str]:
        return {row[0] for row in self.db.query(Account.profile_id).all()}

    def create(self, *, name: str, email: str, credential_secret: str) -> Account:
        """
        Insert a new account with a generated profile id.

        Email and profile_id are UNIQUE in the table, so the database settles
        races: a clash on email raises DuplicateEmail, a clash on profile_id
        draws a new id and tries again.
        """
        email = normalize_email(email)
        if self.find_by_email(email):
            raise DuplicateEmail(email)

        while True:
            account = Account(
                profile_id=self._generate_profile_id(self.existing_profile_ids()),
                name=name,
                email=email,
                credential_secret=credential_secret,
            )
            self.db.add(account)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if self.find_by_email(email):
                    raise DuplicateEmail(email)
                logger.info("Profile id %s was taken concurrently; regenerating", account.profile_id)
                continue
            except Exception:
                self.db.rollback()
                raise
            return account

    def delete(self, account_id: str) -> bool:
        try:
            deleted = self.db.query(Account).filter(Account.id == account_id).delete()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return deleted == 1
