"""Interpret the JSON replies of the transaction extraction model.

Replies are probed field by field rather than schema-validated: the model
sometimes wraps its JSON in prose, quotes numbers, or invents categories.
"""
import json
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from app.services.transactions.models import (
    FALLBACK_CATEGORY,
    ParsedTransactionRequest,
    TransactionType,
    categories_for,
)

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[^{}]*\}")


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the first flat JSON object embedded in text, if any."""
    if not text:
        return None
    match = _JSON_OBJECT.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning(f"[REPLY PARSER] Malformed JSON in reply: {match.group(0)[:200]}")
        return None
    return data if isinstance(data, dict) else None


def _coerce_amount(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    try:
        amount = Decimal(value.replace(",", "").strip())
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def _coerce_type(value: Any) -> Optional[TransactionType]:
    if not isinstance(value, str):
        return None
    try:
        return TransactionType(value.strip().lower())
    except ValueError:
        return None


def _coerce_date(value: Any) -> Optional[date]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _coerce_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def interpret_reply(data: Optional[Dict[str, Any]]) -> Optional[ParsedTransactionRequest]:
    """Classify a reply object.

    Returns a clarification request, a complete transaction, or None when the
    reply carries neither in a usable form.
    """
    if not data:
        return None

    question = _coerce_text(data.get("question"))
    if data.get("unclear") and question:
        return ParsedTransactionRequest(
            needs_clarification=True, clarification_question=question
        )

    transaction_type = _coerce_type(data.get("type"))
    amount = _coerce_amount(data.get("amount"))
    category = _coerce_text(data.get("category"))
    if transaction_type is None or amount is None or category is None:
        logger.info(f"[REPLY PARSER] Incomplete transaction in reply: {data}")
        return None

    category = category.lower()
    if category not in categories_for(transaction_type):
        logger.warning(
            f"[REPLY PARSER] Unknown {transaction_type} category '{category}', "
            f"using '{FALLBACK_CATEGORY}'"
        )
        category = FALLBACK_CATEGORY

    return ParsedTransactionRequest(
        type=transaction_type,
        amount=amount,
        category=category,
        description=_coerce_text(data.get("description")) or "",
        transaction_date=_coerce_date(data.get("transaction_date")),
        account_name=_coerce_text(data.get("account_name")),
    )


def parse_transaction_reply(text: Optional[str]) -> Optional[ParsedTransactionRequest]:
    """Extract and classify the JSON object in a raw model reply."""
    return interpret_reply(extract_json_object(text))
