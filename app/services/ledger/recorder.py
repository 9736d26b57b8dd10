"""Book a parsed transaction against the right account."""
import logging
from typing import Callable, Optional, Sequence

from app.services.accounts.models import Account
from app.services.accounts.resolver import resolve_account
from app.services.ledger.base import Ledger
from app.services.transactions.models import (
    ParsedTransactionRequest,
    SavedTransaction,
    TransactionCreate,
    TransactionType,
)

logger = logging.getLogger(__name__)


def build_transaction(
    request: ParsedTransactionRequest, account: Optional[Account]
) -> TransactionCreate:
    """Ledger payload for a complete request."""
    return TransactionCreate(
        type=request.type,
        amount=request.amount,
        category=request.category,
        description=request.description,
        transaction_date=request.transaction_date,
        account_id=account.id if account else None,
    )


async def record_transaction(
    ledger: Ledger,
    accounts: Sequence[Account],
    request: ParsedTransactionRequest,
    is_live: Callable[[], bool] = lambda: True,
) -> Optional[SavedTransaction]:
    """Save a transaction and move its amount on the resolved account.

    `is_live` is checked before each side effect; once it reports False no
    further ledger call is made.
    """
    if not request.is_complete:
        raise ValueError("cannot record a clarification request")

    account = resolve_account(accounts, request.account_name)
    if not is_live():
        return None
    saved = await ledger.save_transaction(build_transaction(request, account))
    if not saved:
        return None

    if account is not None and is_live():
        is_credit = request.type == TransactionType.INCOME
        adjusted = await ledger.adjust_balance(account.id, request.amount, is_credit)
        if not adjusted:
            logger.warning(f"[RECORDER] Balance of account {account.id} was not updated")
    return saved
