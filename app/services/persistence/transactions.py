"""Transaction persistence service."""
import uuid
from datetime import date
from typing import List
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Transaction
from app.services.transactions.models import TransactionCreate


class TransactionPersistenceService:
    """Service for persisting transaction data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_transaction(
        self, user_id: str, data: TransactionCreate
    ) -> Transaction:
        """Create a new transaction record."""
        transaction = Transaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            account_id=data.account_id,
            type=data.type.value,
            amount=data.amount,
            category=data.category,
            description=data.description,
            transaction_date=data.transaction_date or date.today(),
        )
        self.db.add(transaction)
        await self.db.commit()
        await self.db.refresh(transaction)
        return transaction

    async def list_transactions(self, user_id: str, limit: int = 100) -> List[Transaction]:
        """Most recent transactions first."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(desc(Transaction.transaction_date), desc(Transaction.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())
