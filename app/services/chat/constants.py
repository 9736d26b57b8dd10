"""Chat replies and confirmation vocabulary."""
from app.core.config import settings
from app.services.transactions.models import (
    SavedTransaction,
    TransactionType,
    category_label,
    format_amount,
)

WELCOME = (
    f"Hi! I'm {settings.assistant_name}. Tell me about a transaction, "
    "for example \"500 tk lunch\" or \"got 25000 salary\"."
)

NOT_UNDERSTOOD = (
    "Sorry, I couldn't find a transaction in that. Try something like "
    "\"spent 500 on food\" or \"received 25000 salary\"."
)

SAVE_FAILED = "Sorry, I couldn't save that transaction. Please try again."

CANCELLED = "Okay, I won't add it."

# Answers accepted for a pending confirmation (romanised and Bangla)
YES_WORDS = frozenset(
    {"yes", "y", "yeah", "yep", "ok", "okay", "sure", "confirm", "ha", "haa", "haan", "hya", "ji", "jee", "হ্যাঁ", "হা", "জি", "ঠিক আছে"}
)
NO_WORDS = frozenset({"no", "n", "nope", "nah", "cancel", "na", "naa", "না", "বাতিল"})


def confirmation_question(amount, transaction_type: TransactionType, category: str) -> str:
    kind = "income" if transaction_type == TransactionType.INCOME else "expense"
    return (
        f"Do you want to add {format_amount(amount)} {settings.currency_name} "
        f"as {category_label(transaction_type, category)} {kind}?"
    )


def saved_message(saved: SavedTransaction) -> str:
    kind = "Income" if saved.type == TransactionType.INCOME else "Expense"
    return (
        f"Transaction recorded! {kind}: {format_amount(saved.amount)} "
        f"{settings.currency_name}, category: {category_label(saved.type, saved.category)}. "
        "Anything else to add?"
    )
