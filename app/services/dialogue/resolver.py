"""Dialogue resolver: transcript (+ clarification context) -> next move."""
import logging
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel

from app.services.dialogue.constants import (
    INCOMPLETE_REPLY,
    LANGUAGE_REMINDER,
    NOT_UNDERSTOOD,
    SERVICE_ERROR,
)
from app.services.dialogue.extractor import ExtractionError, TransactionExtractor
from app.services.dialogue.prompt import compose_clarified_input
from app.services.transactions.models import ParsedTransactionRequest
from app.services.transactions.reply_parser import extract_json_object, interpret_reply

logger = logging.getLogger(__name__)


class ResolutionOutcome(str, Enum):
    """How a turn was classified."""

    CLARIFY = "clarify"
    RESOLVED = "resolved"
    UNRESOLVABLE = "unresolvable"
    LANGUAGE_REMINDER = "language_reminder"

    def __str__(self) -> str:
        return self.value


class Resolution(BaseModel):
    """Result of resolving one transcript.

    `reply` is what to speak (empty for RESOLVED, where the confirmation is
    produced after saving). `next_context` is the clarification context the
    session should carry into its next turn.
    """

    outcome: ResolutionOutcome
    reply: str = ""
    request: Optional[ParsedTransactionRequest] = None
    next_context: Optional[str] = None


class DialogueResolver:
    """Translates transcripts into transactions or follow-up questions."""

    def __init__(self, extractor: TransactionExtractor):
        self.extractor = extractor

    async def resolve(
        self, transcript: str, prior_context: Optional[str] = None
    ) -> Resolution:
        transcript = (transcript or "").strip()
        if not transcript:
            return Resolution(
                outcome=ResolutionOutcome.UNRESOLVABLE,
                reply=NOT_UNDERSTOOD,
                next_context=None,
            )

        if not transcript.isascii():
            logger.info(f"[RESOLVER] Non-English transcript, asking to repeat: '{transcript[:100]}'")
            return Resolution(
                outcome=ResolutionOutcome.LANGUAGE_REMINDER,
                reply=LANGUAGE_REMINDER,
                next_context=prior_context,
            )

        request_text = (
            compose_clarified_input(prior_context, transcript)
            if prior_context
            else transcript
        )
        logger.info(f"[RESOLVER] Resolving: '{request_text[:200]}'")

        try:
            raw_reply = await self.extractor.extract(request_text)
        except (ExtractionError, httpx.HTTPError) as e:
            logger.error(
                f"[RESOLVER] Extraction failed: {type(e).__name__}: {str(e)}"
            )
            return Resolution(
                outcome=ResolutionOutcome.UNRESOLVABLE,
                reply=SERVICE_ERROR,
                next_context=None,
            )

        data = extract_json_object(raw_reply)
        if data is None:
            logger.warning(f"[RESOLVER] No JSON in reply: '{(raw_reply or '')[:200]}'")
            return Resolution(
                outcome=ResolutionOutcome.UNRESOLVABLE,
                reply=NOT_UNDERSTOOD,
                next_context=None,
            )

        request = interpret_reply(data)
        if request is None:
            return Resolution(
                outcome=ResolutionOutcome.UNRESOLVABLE,
                reply=INCOMPLETE_REPLY,
                next_context=None,
            )

        if request.needs_clarification:
            logger.info(f"[RESOLVER] Clarification needed: '{request.clarification_question}'")
            return Resolution(
                outcome=ResolutionOutcome.CLARIFY,
                reply=request.clarification_question or "",
                request=request,
                next_context=prior_context or transcript,
            )

        logger.info(
            f"[RESOLVER] Resolved {request.type} {request.amount} ({request.category})"
        )
        return Resolution(
            outcome=ResolutionOutcome.RESOLVED,
            request=request,
            next_context=None,
        )
