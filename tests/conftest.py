"""Shared test fixtures and configuration."""
import asyncio
import os
from decimal import Decimal
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("LLM_API_KEY", "test-llm-key")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CURRENCY_NAME", "taka")

from app.main import app
from app.db.database import Base
from app.services.accounts.models import Account, AccountType
from app.services.dialogue.extractor import TransactionExtractor
from app.services.ledger.base import Ledger
from app.services.speech.capture import CaptureOutcome, CaptureResult, SpeechCapture
from app.services.speech.playback import SpeechPlayback
from app.services.transactions.models import SavedTransaction, TransactionCreate


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_db(test_db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def test_client():
    """Create FastAPI test client; tests install their own overrides."""
    client = TestClient(app)

    yield client

    # Clear overrides
    app.dependency_overrides.clear()


# Fakes for the call and chat collaborators


class FakeExtractor(TransactionExtractor):
    """Returns canned model replies; optionally blocks on a gate or raises."""

    def __init__(
        self,
        replies: Optional[List[str]] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.replies = list(replies or [])
        self.error = error
        self.gate = gate
        self.calls: List[str] = []

    async def extract(self, text: str) -> str:
        self.calls.append(text)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


class FakeLedger(Ledger):
    """In-memory ledger recording every call made to it."""

    def __init__(
        self,
        accounts: Optional[List[Account]] = None,
        fail_save: bool = False,
        gate: Optional[asyncio.Event] = None,
    ):
        self.accounts = list(accounts or [])
        self.fail_save = fail_save
        self.gate = gate
        self.saved: List[SavedTransaction] = []
        self.adjustments = []

    async def list_accounts(self) -> List[Account]:
        return list(self.accounts)

    async def save_transaction(self, transaction: TransactionCreate) -> Optional[SavedTransaction]:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_save:
            return None
        saved = SavedTransaction(id=f"txn-{len(self.saved) + 1}", **transaction.model_dump())
        self.saved.append(saved)
        return saved

    async def adjust_balance(self, account_id: str, amount: Decimal, is_credit: bool) -> bool:
        self.adjustments.append((account_id, amount, is_credit))
        return True


class FakeSpeechCapture(SpeechCapture):
    """Capture driven by the test: each cycle waits for a pushed result.

    `abort_delay` keeps an aborted cycle holding the microphone for a while
    before it reports ABORTED. `state_probe` is sampled whenever a cycle starts.
    """

    def __init__(self, abort_delay: float = 0.0, state_probe=None):
        self.results: asyncio.Queue = asyncio.Queue()
        self.abort_delay = abort_delay
        self.state_probe = state_probe
        self.calls = 0
        self.aborts = 0
        self.active_count = 0
        self.max_active = 0
        self.started_in: List = []
        self._aborted = False
        self._pending: Optional[asyncio.Future] = None

    @property
    def active(self) -> bool:
        return self.active_count > 0

    def push(self, outcome: CaptureOutcome, transcript: str = "") -> None:
        self.results.put_nowait(CaptureResult(outcome=outcome, transcript=transcript))

    async def capture(self, on_interim=None) -> CaptureResult:
        self.calls += 1
        self.active_count += 1
        self.max_active = max(self.max_active, self.active_count)
        if self.state_probe is not None:
            self.started_in.append(self.state_probe())
        self._aborted = False
        self._pending = asyncio.ensure_future(self.results.get())
        try:
            result = await self._pending
        except asyncio.CancelledError:
            if self._aborted:
                if self.abort_delay:
                    await asyncio.sleep(self.abort_delay)
                return CaptureResult(outcome=CaptureOutcome.ABORTED)
            raise
        finally:
            self._pending = None
            self.active_count -= 1
        if result.transcript and on_interim is not None:
            on_interim(result.transcript)
        return result

    def abort(self) -> None:
        self.aborts += 1
        self._aborted = True
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()


class FakeSpeechPlayback(SpeechPlayback):
    """Records spoken text; with `hold` set, speaking lasts until stop()."""

    def __init__(
        self,
        capture: Optional[FakeSpeechCapture] = None,
        hold: bool = False,
        state_probe=None,
    ):
        self.capture = capture
        self.hold = hold
        self.state_probe = state_probe
        self.started_in: List = []
        self.spoken: List[str] = []
        self.stops = 0
        self.overlaps = 0
        self._release = asyncio.Event()

    async def speak(self, text: str) -> None:
        if self.capture is not None and self.capture.active:
            self.overlaps += 1
        if self.state_probe is not None:
            self.started_in.append(self.state_probe())
        self.spoken.append(text)
        if self.hold:
            self._release.clear()
            await self._release.wait()

    def stop(self) -> None:
        self.stops += 1
        self._release.set()


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition was not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds (fails the test after a timeout)."""
    return _wait_until


@pytest.fixture
def accounts():
    """A cash default account plus bKash and bank accounts."""
    return [
        Account(id="cash-1", name="Cash", type=AccountType.CASH, is_default=True),
        Account(id="bkash-1", name="bKash", type=AccountType.MOBILE_BANKING),
        Account(id="bank-1", name="City Bank", type=AccountType.BANK),
    ]


@pytest.fixture
def fake_ledger(accounts):
    return FakeLedger(accounts=accounts)


@pytest.fixture
def fake_capture():
    return FakeSpeechCapture()


@pytest.fixture
def fake_playback(fake_capture):
    return FakeSpeechPlayback(capture=fake_capture)


@pytest.fixture
def expense_reply():
    """Model reply for '500 tk rickshaw'."""
    return (
        '{"type":"expense","amount":500,"category":"transport",'
        '"description":"rickshaw fare","transaction_date":null,"account_name":null}'
    )


@pytest.fixture
def make_extractor():
    """Factory for canned-reply extractors."""
    return FakeExtractor


@pytest.fixture
def make_capture():
    """Factory for test-driven captures."""
    return FakeSpeechCapture


@pytest.fixture
def make_ledger():
    """Factory for in-memory ledgers."""
    return FakeLedger


@pytest.fixture
def make_playback():
    """Factory for recording playbacks."""
    return FakeSpeechPlayback
