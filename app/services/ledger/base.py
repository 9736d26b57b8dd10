"""Ledger interface used by the call and chat flows."""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from app.services.accounts.models import Account
from app.services.transactions.models import SavedTransaction, TransactionCreate


class Ledger(ABC):
    """Abstract store of one user's accounts and transactions."""

    @abstractmethod
    async def list_accounts(self) -> List[Account]:
        """Get the user's accounts."""
        pass

    @abstractmethod
    async def save_transaction(
        self, transaction: TransactionCreate
    ) -> Optional[SavedTransaction]:
        """Record a transaction. Returns None when it could not be saved."""
        pass

    @abstractmethod
    async def adjust_balance(
        self, account_id: str, amount: Decimal, is_credit: bool
    ) -> bool:
        """Add (credit) or deduct an amount from an account balance."""
        pass
