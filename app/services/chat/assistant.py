"""Text chat assistant that records transactions from free-form messages."""
import inspect
import logging
import re
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel

from app.services.accounts.models import Account
from app.services.chat import constants
from app.services.chat.client import ChatClient, ChatServiceError
from app.services.ledger.base import Ledger
from app.services.ledger.recorder import record_transaction
from app.services.transactions.models import ParsedTransactionRequest, SavedTransaction
from app.services.transactions.reply_parser import extract_json_object, interpret_reply

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[!.?,।]+")


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatReply(BaseModel):
    """What the assistant shows for one user message."""

    text: str
    saved: Optional[SavedTransaction] = None
    pending: Optional[ParsedTransactionRequest] = None
    error: bool = False


def _answer(text: str) -> Optional[bool]:
    """True for yes, False for no, None for anything else."""
    word = _PUNCTUATION.sub("", text).strip().lower()
    if word in constants.YES_WORDS:
        return True
    if word in constants.NO_WORDS:
        return False
    return None


class ChatAssistant:
    """Keeps one chat conversation and books the transactions it finds.

    A reply flagged `confirm` is held as pending until the user answers yes
    or no; any other message drops it and is handled as a new request.
    """

    def __init__(
        self,
        client: ChatClient,
        ledger: Ledger,
        accounts: Optional[List[Account]] = None,
    ):
        self.client = client
        self.ledger = ledger
        self.accounts = accounts
        self.history: List[ChatMessage] = []
        self.pending: Optional[ParsedTransactionRequest] = None

    async def send(
        self, text: str, on_delta: Optional[Callable[[str], Any]] = None
    ) -> ChatReply:
        text = text.strip()
        if not text:
            return ChatReply(text=constants.NOT_UNDERSTOOD)

        if self.pending is not None:
            request = self.pending
            answer = _answer(text)
            if answer is not None:
                self.pending = None
                self.history.append(ChatMessage(role="user", content=text))
                if answer:
                    reply = await self._record(request)
                else:
                    reply = ChatReply(text=constants.CANCELLED)
                self.history.append(ChatMessage(role="assistant", content=reply.text))
                return reply
            logger.info("[CHAT] Pending confirmation dropped by a new message")
            self.pending = None

        self.history.append(ChatMessage(role="user", content=text))
        try:
            raw = await self._stream_reply(on_delta)
        except ChatServiceError as e:
            logger.error(f"[CHAT] Chat service failed: {e.message}")
            self.history.pop()
            return ChatReply(text=e.message, error=True)

        self.history.append(ChatMessage(role="assistant", content=raw))
        return await self._interpret(raw)

    async def _stream_reply(self, on_delta: Optional[Callable[[str], Any]]) -> str:
        messages: List[Dict[str, str]] = [m.model_dump() for m in self.history]
        parts: List[str] = []
        async for delta in self.client.stream(messages):
            parts.append(delta)
            if on_delta is not None:
                result = on_delta(delta)
                if inspect.isawaitable(result):
                    await result
        return "".join(parts)

    async def _interpret(self, raw: str) -> ChatReply:
        data = extract_json_object(raw)
        if data is None:
            # Plain-text answer from the model, shown as is
            return ChatReply(text=raw.strip() or constants.NOT_UNDERSTOOD)

        request = interpret_reply(data)
        if request is None:
            return ChatReply(text=constants.NOT_UNDERSTOOD)
        if request.needs_clarification:
            return ChatReply(text=request.clarification_question)

        if data.get("confirm"):
            self.pending = request
            question = data.get("question")
            if not isinstance(question, str) or not question.strip():
                question = constants.confirmation_question(
                    request.amount, request.type, request.category
                )
            return ChatReply(text=question.strip(), pending=request)

        return await self._record(request)

    async def _record(self, request: ParsedTransactionRequest) -> ChatReply:
        if self.accounts is None:
            self.accounts = await self.ledger.list_accounts()
        saved = await record_transaction(self.ledger, self.accounts, request)
        if not saved:
            return ChatReply(text=constants.SAVE_FAILED, error=True)
        logger.info(f"[CHAT] Recorded {saved.type} {saved.amount} ({saved.category})")
        return ChatReply(text=constants.saved_message(saved), saved=saved)
