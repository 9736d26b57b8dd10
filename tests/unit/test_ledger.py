"""Unit tests for the SQL ledger and transaction recording."""
from datetime import date
from decimal import Decimal

import pytest

from app.db.models import Account as AccountRow
from app.services.accounts.models import AccountType
from app.services.ledger.recorder import build_transaction, record_transaction
from app.services.ledger.sql_ledger import SqlLedger
from app.services.persistence.accounts import AccountPersistenceService
from app.services.persistence.transactions import TransactionPersistenceService
from app.services.transactions.models import (
    ParsedTransactionRequest,
    TransactionCreate,
    TransactionType,
)


def expense(amount="500", category="transport", account_name=None, **fields):
    return ParsedTransactionRequest(
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        category=category,
        account_name=account_name,
        **fields,
    )


class TestSqlLedger:
    """Test the database-backed ledger."""

    @pytest.mark.asyncio
    async def test_creates_default_cash_account(self, test_db):
        ledger = SqlLedger(test_db, "user-1")

        accounts = await ledger.list_accounts()

        assert len(accounts) == 1
        assert accounts[0].name == "Cash"
        assert accounts[0].type == AccountType.CASH
        assert accounts[0].is_default
        assert accounts[0].balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_default_account_created_once(self, test_db):
        ledger = SqlLedger(test_db, "user-1")

        first = await ledger.list_accounts()
        second = await ledger.list_accounts()

        assert [a.id for a in first] == [a.id for a in second]

    @pytest.mark.asyncio
    async def test_accounts_are_scoped_to_user(self, test_db):
        await SqlLedger(test_db, "user-1").list_accounts()
        await SqlLedger(test_db, "user-2").list_accounts()

        rows = await AccountPersistenceService(test_db).list_accounts("user-1")
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_lists_default_first(self, test_db):
        test_db.add(AccountRow(id="bank-1", user_id="user-1", name="City Bank", type="bank"))
        test_db.add(
            AccountRow(id="cash-1", user_id="user-1", name="Cash", type="cash", is_default=True)
        )
        await test_db.commit()

        accounts = await SqlLedger(test_db, "user-1").list_accounts()

        assert [a.id for a in accounts] == ["cash-1", "bank-1"]

    @pytest.mark.asyncio
    async def test_save_transaction_defaults_date(self, test_db):
        ledger = SqlLedger(test_db, "user-1")

        saved = await ledger.save_transaction(
            TransactionCreate(
                type=TransactionType.EXPENSE,
                amount=Decimal("150"),
                category="food",
                description="lunch",
            )
        )

        assert saved is not None
        assert saved.id
        assert saved.amount == Decimal("150")
        assert saved.transaction_date == date.today()

        rows = await TransactionPersistenceService(test_db).list_transactions("user-1")
        assert [row.id for row in rows] == [saved.id]

    @pytest.mark.asyncio
    async def test_adjust_balance(self, test_db):
        ledger = SqlLedger(test_db, "user-1")
        cash = (await ledger.list_accounts())[0]

        assert await ledger.adjust_balance(cash.id, Decimal("1000"), is_credit=True)
        assert await ledger.adjust_balance(cash.id, Decimal("250.50"), is_credit=False)

        row = await AccountPersistenceService(test_db).get_account("user-1", cash.id)
        assert Decimal(row.balance) == Decimal("749.50")

    @pytest.mark.asyncio
    async def test_adjust_unknown_account(self, test_db):
        ledger = SqlLedger(test_db, "user-1")
        assert await ledger.adjust_balance("missing", Decimal("10"), is_credit=True) is False

    @pytest.mark.asyncio
    async def test_adjust_other_users_account(self, test_db):
        cash = (await SqlLedger(test_db, "user-1").list_accounts())[0]
        other = SqlLedger(test_db, "user-2")
        assert await other.adjust_balance(cash.id, Decimal("10"), is_credit=True) is False


class TestRecordTransaction:
    """Test booking parsed requests against accounts."""

    def test_build_transaction(self, accounts):
        request = expense(description="rickshaw fare", transaction_date=date(2026, 10, 1))
        payload = build_transaction(request, accounts[1])

        assert payload.account_id == "bkash-1"
        assert payload.transaction_date == date(2026, 10, 1)
        assert payload.description == "rickshaw fare"

    @pytest.mark.asyncio
    async def test_records_against_hinted_account(self, fake_ledger, accounts):
        saved = await record_transaction(fake_ledger, accounts, expense(account_name="bKash"))

        assert saved.account_id == "bkash-1"
        assert fake_ledger.adjustments == [("bkash-1", Decimal("500"), False)]

    @pytest.mark.asyncio
    async def test_income_is_credited(self, fake_ledger, accounts):
        request = ParsedTransactionRequest(
            type=TransactionType.INCOME, amount=Decimal("25000"), category="salary"
        )
        await record_transaction(fake_ledger, accounts, request)

        assert fake_ledger.adjustments == [("cash-1", Decimal("25000"), True)]

    @pytest.mark.asyncio
    async def test_without_accounts_skips_balance(self, make_ledger):
        ledger = make_ledger(accounts=[])
        saved = await record_transaction(ledger, [], expense())

        assert saved.account_id is None
        assert ledger.adjustments == []

    @pytest.mark.asyncio
    async def test_not_live_makes_no_ledger_call(self, fake_ledger, accounts):
        saved = await record_transaction(
            fake_ledger, accounts, expense(), is_live=lambda: False
        )

        assert saved is None
        assert fake_ledger.saved == []

    @pytest.mark.asyncio
    async def test_rejects_clarification_request(self, fake_ledger, accounts):
        request = ParsedTransactionRequest(
            needs_clarification=True, clarification_question="How much?"
        )
        with pytest.raises(ValueError):
            await record_transaction(fake_ledger, accounts, request)

    @pytest.mark.asyncio
    async def test_end_to_end_with_sql_ledger(self, test_db):
        ledger = SqlLedger(test_db, "user-1")
        accounts = await ledger.list_accounts()

        saved = await record_transaction(ledger, accounts, expense())

        assert saved.account_id == accounts[0].id
        refreshed = await ledger.list_accounts()
        assert refreshed[0].balance == Decimal("-500")
