"""Account persistence service."""
import uuid
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Account

DEFAULT_CASH_ACCOUNT_NAME = "Cash"


class AccountPersistenceService:
    """Service for persisting account data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_accounts(self, user_id: str) -> List[Account]:
        """List a user's accounts, default first, then by creation time."""
        result = await self.db.execute(
            select(Account)
            .where(Account.user_id == user_id)
            .order_by(Account.is_default.desc(), Account.created_at.asc())
        )
        return list(result.scalars().all())

    async def ensure_default_account(self, user_id: str) -> List[Account]:
        """List accounts, creating a default cash account if the user has none."""
        accounts = await self.list_accounts(user_id)
        if accounts:
            return accounts

        account = Account(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=DEFAULT_CASH_ACCOUNT_NAME,
            type="cash",
            icon="💵",
            color="#10B981",
            balance=Decimal("0"),
            is_default=True,
        )
        self.db.add(account)
        await self.db.commit()
        await self.db.refresh(account)
        return [account]

    async def get_account(self, user_id: str, account_id: str) -> Optional[Account]:
        """Get one of the user's accounts by ID."""
        result = await self.db.execute(
            select(Account).where(
                Account.id == account_id, Account.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def update_balance(
        self, user_id: str, account_id: str, amount: Decimal, is_addition: bool
    ) -> Optional[Account]:
        """Add to or deduct from an account balance."""
        account = await self.get_account(user_id, account_id)
        if account:
            current = Decimal(account.balance or 0)
            account.balance = current + amount if is_addition else current - amount
            await self.db.commit()
            await self.db.refresh(account)
        return account
