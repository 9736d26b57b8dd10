"""Account models."""
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict


class AccountType(str, Enum):
    """Kinds of money accounts."""

    CASH = "cash"
    BANK = "bank"
    CARD = "card"
    MOBILE_BANKING = "mobile_banking"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value


class Account(BaseModel):
    """A caller-owned account transactions can be booked against."""

    id: str
    name: str
    type: AccountType = AccountType.OTHER
    balance: Decimal = Decimal("0")
    is_default: bool = False

    model_config = ConfigDict(from_attributes=True)
