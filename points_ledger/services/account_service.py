"""
Account service — looks up and lazily opens student point accounts.

Accounts are created on a student's first earned transaction. Spending
or adjusting against a student with no account is an error: there is
nothing to spend from.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from points_ledger.exceptions import AccountNotFound, ValidationError
from points_ledger.models.account import Account

logger = logging.getLogger(__name__)


class AccountService:

    def __init__(self, db: Session):
        self.db = db

    def find(self, student_id: str) -> Account | None:
        return self.db.execute(
            select(Account).where(Account.student_id == student_id)
        ).scalar_one_or_none()

    def get_account(self, student_id: str) -> Account:
        """Get a student's account, raising AccountNotFound if missing."""
        account = self.find(student_id)
        if not account:
            raise AccountNotFound(student_id)
        return account

    def create_account(self, student_id: str) -> Account:
        """Explicitly open an account. Raises if one already exists."""
        if self.find(student_id):
            raise ValidationError(
                f"Point account already exists for student '{student_id}'"
            )
        return self._open(student_id)

    def get_or_create(self, student_id: str) -> Account:
        """
        Return the student's account, opening an empty one if needed.

        Two sessions racing to open the same account will collide on
        the unique student_id; the loser sees an IntegrityError at
        flush and the engine replays its unit of work.
        """
        return self.find(student_id) or self._open(student_id)

    def _open(self, student_id: str) -> Account:
        account = Account(
            student_id=student_id,
            current_balance=0,
            total_earned=0,
            total_spent=0,
            level=1,
        )
        self.db.add(account)
        self.db.flush()
        logger.info("Opened point account for student %s", student_id)
        return account
