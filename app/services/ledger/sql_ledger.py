"""SQLAlchemy-backed ledger."""
import logging
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.accounts.models import Account
from app.services.ledger.base import Ledger
from app.services.persistence.accounts import AccountPersistenceService
from app.services.persistence.transactions import TransactionPersistenceService
from app.services.transactions.models import (
    SavedTransaction,
    TransactionCreate,
    TransactionType,
)

logger = logging.getLogger(__name__)


class SqlLedger(Ledger):
    """Ledger for a single user stored in the application database.

    Database errors are logged and reported as a falsy result so a failing
    store never breaks an active call or chat.
    """

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id
        self.accounts = AccountPersistenceService(db)
        self.transactions = TransactionPersistenceService(db)

    async def list_accounts(self) -> List[Account]:
        rows = await self.accounts.ensure_default_account(self.user_id)
        return [Account.model_validate(row) for row in rows]

    async def save_transaction(
        self, transaction: TransactionCreate
    ) -> Optional[SavedTransaction]:
        try:
            row = await self.transactions.create_transaction(self.user_id, transaction)
        except SQLAlchemyError as e:
            logger.error(
                f"[LEDGER] Failed to save transaction for user {self.user_id}: "
                f"{type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            await self.db.rollback()
            return None

        logger.info(
            f"[LEDGER] Saved {row.type} {row.amount} ({row.category}) - id: {row.id}"
        )
        return SavedTransaction(
            id=row.id,
            type=TransactionType(row.type),
            amount=Decimal(row.amount),
            category=row.category,
            description=row.description or "",
            transaction_date=row.transaction_date,
            account_id=row.account_id,
        )

    async def adjust_balance(
        self, account_id: str, amount: Decimal, is_credit: bool
    ) -> bool:
        try:
            account = await self.accounts.update_balance(
                self.user_id, account_id, amount, is_addition=is_credit
            )
        except SQLAlchemyError as e:
            logger.error(
                f"[LEDGER] Failed to update balance of {account_id}: "
                f"{type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            await self.db.rollback()
            return False
        if account is None:
            logger.warning(f"[LEDGER] Account {account_id} not found for balance update")
            return False
        return True
