"""Transaction models shared by the call and chat flows."""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, model_validator


class TransactionType(str, Enum):
    """Direction of a transaction."""

    INCOME = "income"
    EXPENSE = "expense"

    def __str__(self) -> str:
        return self.value


EXPENSE_CATEGORIES: Dict[str, str] = {
    "food": "food",
    "transport": "transport",
    "shopping": "shopping",
    "bills": "bills",
    "health": "health",
    "entertainment": "entertainment",
    "education": "education",
    "others": "other expenses",
}

INCOME_CATEGORIES: Dict[str, str] = {
    "salary": "salary",
    "business": "business",
    "investment": "investment",
    "freelance": "freelance work",
    "gift": "gift",
    "others": "other income",
}

FALLBACK_CATEGORY = "others"


def categories_for(transaction_type: TransactionType) -> Dict[str, str]:
    """Return the category id -> spoken label map for a transaction type."""
    if transaction_type == TransactionType.INCOME:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


def category_label(transaction_type: TransactionType, category: str) -> str:
    """Spoken label for a category, falling back to the raw id."""
    return categories_for(transaction_type).get(category, category)


def format_amount(amount: Decimal) -> str:
    """Render an amount without a trailing '.00' for whole numbers."""
    if amount == amount.to_integral_value():
        return str(int(amount))
    return f"{amount.quantize(Decimal('0.01'))}"


class ParsedTransactionRequest(BaseModel):
    """Structured reading of one utterance.

    Either complete (type, amount and category present) or a request for
    clarification carrying a question, never both and never neither.
    """

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    description: str = ""
    transaction_date: Optional[date] = None
    account_name: Optional[str] = None
    needs_clarification: bool = False
    clarification_question: Optional[str] = None

    @model_validator(mode="after")
    def check_complete_or_clarifying(self) -> "ParsedTransactionRequest":
        complete = (
            self.type is not None
            and self.amount is not None
            and self.amount > 0
            and bool(self.category)
        )
        if self.needs_clarification:
            if not self.clarification_question:
                raise ValueError("clarification requires a question")
            if complete:
                raise ValueError("a clarification request carries no transaction")
        elif not complete:
            raise ValueError("transaction requires type, positive amount and category")
        return self

    @property
    def is_complete(self) -> bool:
        return not self.needs_clarification

    def effective_date(self) -> date:
        """Transaction date, defaulting to today."""
        return self.transaction_date or date.today()


class TransactionCreate(BaseModel):
    """Payload handed to the ledger."""

    type: TransactionType
    amount: Decimal
    category: str
    description: str = ""
    transaction_date: Optional[date] = None
    account_id: Optional[str] = None


class SavedTransaction(TransactionCreate):
    """Transaction as recorded by the ledger."""

    id: str
