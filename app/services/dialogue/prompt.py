"""Prompt templates for the transaction extraction model."""
from datetime import date
from typing import Optional

from app.services.transactions.models import EXPENSE_CATEGORIES, INCOME_CATEGORIES

CLARIFICATION_MARKER = "User clarifies:"


def _today(today: Optional[date]) -> str:
    return (today or date.today()).isoformat()


def get_voice_system_prompt(assistant_name: str, today: Optional[date] = None) -> str:
    """System prompt for the voice-chat function (one line of JSON per reply)."""
    today_str = _today(today)
    expense = ", ".join(EXPENSE_CATEGORIES)
    income = ", ".join(INCOME_CATEGORIES)
    return f"""You are {assistant_name}, a voice-based transaction assistant.
Today is: {today_str}

Rules:
- The user will speak and you receive transcribed text.
- Output MUST be exactly ONE LINE of JSON.
- No greetings. No extra text. JSON only.
- Voice mode is ENGLISH ONLY. If the input is not English or unclear, ask for clarification.

Transaction JSON format:
{{"type":"expense","amount":500,"category":"transport","description":"rickshaw fare","transaction_date":"{today_str}","account_name":null}}

If unclear, output:
{{"unclear":true,"question":"Please repeat in English. Tell me the amount and what it was for."}}

Categories:
Expense: {expense}
Income: {income}

Accounts (optional):
- bkash/bikash → "bKash" | nagad → "Nagad" | card → "Card" | bank → "Bank"
- If not mentioned, set account_name to null

Notes:
- The transcript may include extra context like "{CLARIFICATION_MARKER} ...". Use it.
- If amount is missing, ask for amount. If purpose/category is missing, ask what it was for.

JSON ONLY."""


def get_chat_system_prompt(assistant_name: str, today: Optional[date] = None) -> str:
    """System prompt for the streaming chat function."""
    today_str = _today(today)
    return f"""You are {assistant_name} - a fast and smart money management assistant.
Today: {today_str}

Task: understand the user's transaction from their message and answer with JSON.

Quick parsing rules:
"ami X tk Y" → expense, X, category, Y
"X tk khoroj/diyechi/spent" → expense
"X tk pelam/peyechi/income/received" → income

Common words → category:
- rikshaw/uber/cng/bus/pathao/vara → transport
- khabar/food/lunch/dinner/cha/coffee → food
- bill/current/gas/water/mobile/recharge → bills
- shopping/kapor/phone/gadget → shopping
- salary/beton → salary (income)
- freelance/project → freelance (income)

Dates:
- not mentioned: {today_str}
- gotokal/yesterday: the previous day
- "X din age"/"X days ago": X days before today

Accounts:
- bkash/bikash → "bKash" | nagad → "Nagad" | card → "Card" | bank → "Bank"
- not mentioned → null

When clear, answer with JSON directly:
{{"type":"expense","amount":500,"category":"transport","description":"rickshaw fare","transaction_date":"{today_str}","account_name":null}}

When unsure about the amount or type, ask for confirmation:
{{"confirm":true,"type":"expense","amount":500,"category":"transport","description":"rickshaw fare?","transaction_date":"{today_str}","account_name":null,"question":"Do you want to add a 500 taka rickshaw fare expense?"}}

Rules:
1. Simple sentence = JSON directly (no confirm)
2. Ambiguous = confirm:true plus a question
3. amount MUST be a number
4. If you cannot find a transaction, reply in plain text asking the user to rephrase"""


def compose_clarified_input(original: str, clarification: str) -> str:
    """Carry the original utterance into a stateless follow-up request."""
    return f"{original} {CLARIFICATION_MARKER} {clarification}"
