"""Map a spoken or typed account hint onto one of the caller's accounts."""
import logging
from typing import Optional, Sequence

from app.services.accounts.models import Account, AccountType

logger = logging.getLogger(__name__)

# Aliases people use for each account type (English, Bangla, transliterated)
CASH_KEYWORDS = [
    "cash",
    "hand cash",
    "nogod",
    "নগদ",
    "haate",
    "হাতে",
]

MOBILE_BANKING_KEYWORDS = [
    "mobile banking",
    "bkash",
    "bikash",
    "বিকাশ",
    "nagad",
    "rocket",
    "রকেট",
    "upay",
    "mfs",
]


def _matches_keyword(hint: str, keywords: Sequence[str]) -> bool:
    return any(keyword in hint for keyword in keywords)


def find_account_by_name(
    accounts: Sequence[Account], hint: Optional[str]
) -> Optional[Account]:
    """Find an account whose name contains the hint or is contained in it.

    Falls back to the alias keyword sets for cash and mobile banking accounts.
    Returns None when nothing matches.
    """
    if not hint or not hint.strip() or not accounts:
        return None

    hint_lower = hint.strip().lower()
    for account in accounts:
        name_lower = account.name.strip().lower()
        if not name_lower:
            continue
        if hint_lower in name_lower or name_lower in hint_lower:
            return account

    for account_type, keywords in (
        (AccountType.MOBILE_BANKING, MOBILE_BANKING_KEYWORDS),
        (AccountType.CASH, CASH_KEYWORDS),
    ):
        if _matches_keyword(hint_lower, keywords):
            for account in accounts:
                if account.type == account_type:
                    return account
    return None


def get_default_account(accounts: Sequence[Account]) -> Optional[Account]:
    """Default-flagged account, else the first cash account, else the first one."""
    for account in accounts:
        if account.is_default:
            return account
    for account in accounts:
        if account.type == AccountType.CASH:
            return account
    return accounts[0] if accounts else None


def resolve_account(
    accounts: Sequence[Account], hint: Optional[str]
) -> Optional[Account]:
    """Resolve a hint to exactly one account when any account exists."""
    account = find_account_by_name(accounts, hint)
    if account is None:
        account = get_default_account(accounts)
        if hint:
            logger.info(
                f"[ACCOUNTS] No account matched '{hint}', using "
                f"{account.name if account else 'none'}"
            )
    return account
