"""Unit tests for account hint resolution."""
from app.services.accounts.models import Account, AccountType
from app.services.accounts.resolver import (
    find_account_by_name,
    get_default_account,
    resolve_account,
)


class TestFindAccountByName:
    """Test name and alias matching."""

    def test_blank_hint_matches_nothing(self, accounts):
        assert find_account_by_name(accounts, None) is None
        assert find_account_by_name(accounts, "") is None
        assert find_account_by_name(accounts, "   ") is None

    def test_case_insensitive_substring_of_name(self, accounts):
        assert find_account_by_name(accounts, "BKASH").id == "bkash-1"
        assert find_account_by_name(accounts, "city").id == "bank-1"

    def test_name_contained_in_hint(self, accounts):
        assert find_account_by_name(accounts, "my bkash wallet").id == "bkash-1"

    def test_mobile_banking_alias(self):
        accounts = [
            Account(id="cash-1", name="Cash", type=AccountType.CASH, is_default=True),
            Account(id="mfs-1", name="Phone wallet", type=AccountType.MOBILE_BANKING),
        ]
        assert find_account_by_name(accounts, "nagad").id == "mfs-1"
        assert find_account_by_name(accounts, "বিকাশ").id == "mfs-1"

    def test_cash_alias(self):
        accounts = [
            Account(id="bank-1", name="City Bank", type=AccountType.BANK),
            Account(id="wallet-1", name="Wallet", type=AccountType.CASH),
        ]
        assert find_account_by_name(accounts, "hand cash").id == "wallet-1"
        assert find_account_by_name(accounts, "নগদ").id == "wallet-1"

    def test_alias_without_matching_type(self):
        accounts = [Account(id="bank-1", name="City Bank", type=AccountType.BANK)]
        assert find_account_by_name(accounts, "rocket") is None

    def test_unknown_hint(self, accounts):
        assert find_account_by_name(accounts, "credit union") is None


class TestDefaultAccount:
    """Test default account selection."""

    def test_prefers_default_flag(self, accounts):
        assert get_default_account(accounts).id == "cash-1"

    def test_falls_back_to_cash(self):
        accounts = [
            Account(id="bank-1", name="City Bank", type=AccountType.BANK),
            Account(id="cash-1", name="Cash", type=AccountType.CASH),
        ]
        assert get_default_account(accounts).id == "cash-1"

    def test_falls_back_to_first(self):
        accounts = [
            Account(id="bank-1", name="City Bank", type=AccountType.BANK),
            Account(id="card-1", name="Visa", type=AccountType.CARD),
        ]
        assert get_default_account(accounts).id == "bank-1"

    def test_no_accounts(self):
        assert get_default_account([]) is None


class TestResolveAccount:
    """Test the combined resolution."""

    def test_matched_hint(self, accounts):
        assert resolve_account(accounts, "bkash").id == "bkash-1"

    def test_unmatched_hint_uses_default(self, accounts):
        assert resolve_account(accounts, "credit union").id == "cash-1"

    def test_no_hint_uses_default(self, accounts):
        assert resolve_account(accounts, None).id == "cash-1"

    def test_always_resolves_when_accounts_exist(self, accounts):
        for hint in (None, "", "cash", "bank", "card", "xyz", "বিকাশ"):
            assert resolve_account(accounts, hint) is not None

    def test_deterministic(self, accounts):
        first = resolve_account(accounts, "rocket")
        for _ in range(3):
            assert resolve_account(accounts, "rocket") == first
