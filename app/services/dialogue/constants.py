"""Spoken replies produced by the dialogue resolver."""

# Input contained non-English characters
LANGUAGE_REMINDER = (
    "Please say it again in English. Tell me the amount and what it was for."
)

# Reply was JSON but missing the amount, type or category
INCOMPLETE_REPLY = "Please say it again. How much was it, and what was it for?"

# Reply had no usable JSON at all
NOT_UNDERSTOOD = "Sorry, I didn't understand that. Please say it again."

# Extraction backend failed
SERVICE_ERROR = "Sorry, something went wrong on my side. Please say it again."
