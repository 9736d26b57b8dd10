"""Spoken lines and status texts for voice calls."""
from app.core.config import settings
from app.services.transactions.models import (
    SavedTransaction,
    category_label,
    format_amount,
)

GREETING = (
    f"Hello! I'm {settings.assistant_name}. "
    "What would you like to add? Tell me the amount and what it was for."
)

SAVE_FAILED = "Sorry, I couldn't save that. Please say it again."

# Status line texts
STATUS_RINGING = "Ringing..."
STATUS_CONNECTED = "Connected"
STATUS_LISTENING = "Listening... go ahead"
STATUS_PROCESSING = "Understanding..."
STATUS_SAVING = "Saving..."
STATUS_SPEAKING = f"{settings.assistant_name} is speaking..."
STATUS_MUTED = "Muted"
STATUS_NO_SPEECH = "Didn't catch that, please say it again"
STATUS_RECOGNITION_ERROR = "Couldn't hear you, please try again"
STATUS_ENDED = "Call ended"


def confirmation_message(saved: SavedTransaction) -> str:
    """Spoken confirmation for a saved transaction."""
    amount = format_amount(saved.amount)
    label = category_label(saved.type, saved.category)
    return (
        f"Saved! {amount} {settings.currency_name} for {label}. "
        "Anything else to add?"
    )
