import re
from datetime import date
from typing import Any, Dict, Optional

from dialogue import Reply, Transition
from events import Message
from states import BotState, validate_draft
from telegram_client import cancel_keyboard, confirm_keyboard

HOURS_RE = re.compile(r"(\d+(\.\d+)?)")
INT_RE = re.compile(r"^[0-9]+$")

YEAR_PROMPT = "📅 Enter Year (e.g. 2025):"
MONTH_PROMPT = "📅 Enter Month (1-12):"
DAY_PROMPT = "📅 Enter Day (1-31):"
PHOTO_PROMPT = "📸 Send a Photo with your total Hours in the caption (or just a text like 'Maths 2.5 hours'):"
RESEND_PROMPT = "🔄 Send again:"
NO_HOURS = "⚠️ No hours found. Try 'Maths 2.5 hours'"

def extract_hours(text: str) -> float:
    m = HOURS_RE.search(text or "")
    return float(m.group(1)) if m else 0.0

def format_hours(hours: float) -> str:
    return f"{float(hours):g}"

def study_date_string(draft: Dict[str, Any]) -> str:
    return f"{draft['year']}-{draft['month']}-{draft['day']}"

def parse_int(text: str, lo: int, hi: int) -> Optional[int]:
    text = (text or "").strip()
    if not INT_RE.match(text):
        return None
    value = int(text)
    if value < lo or value > hi:
        return None
    return value

def today_draft(today: date) -> Dict[str, Any]:
    return {"year": today.year, "month": today.month, "day": today.day}

def confirm_text(draft: Dict[str, Any]) -> str:
    return (
        "📝 Confirm?\n"
        f"Date: {study_date_string(draft)}\n"
        f"Hours: {format_hours(draft['hours'])}\n"
        f"Note: {draft['subject']}"
    )

def ask_for_photo(chat_id: int, draft: Dict[str, Any], prompt: str = PHOTO_PROMPT) -> Transition:
    return Transition(
        state=BotState.AWAITING_SUBMISSION,
        draft=validate_draft(BotState.AWAITING_SUBMISSION, draft),
        replies=[Reply(chat_id, prompt, cancel_keyboard())],
    )

def handle_year(user, msg: Message) -> Transition:
    year = parse_int(msg.text, 1000, 9999)
    if year is None:
        return Transition.stay(Reply(user.chat_id, "⚠️ Invalid Year. " + YEAR_PROMPT, cancel_keyboard()))
    return Transition(
        state=BotState.AWAITING_MONTH,
        draft=validate_draft(BotState.AWAITING_MONTH, {"year": year}),
        replies=[Reply(user.chat_id, MONTH_PROMPT, cancel_keyboard())],
    )

def handle_month(user, msg: Message, draft: Dict[str, Any]) -> Transition:
    month = parse_int(msg.text, 1, 12)
    if month is None:
        return Transition.stay(Reply(user.chat_id, "⚠️ Invalid Month. " + MONTH_PROMPT, cancel_keyboard()))
    return Transition(
        state=BotState.AWAITING_DATE,
        draft=validate_draft(BotState.AWAITING_DATE, {**draft, "month": month}),
        replies=[Reply(user.chat_id, DAY_PROMPT, cancel_keyboard())],
    )

def handle_day(user, msg: Message, draft: Dict[str, Any]) -> Transition:
    day = parse_int(msg.text, 1, 31)
    if day is not None:
        try:
            date(draft["year"], draft["month"], day)
        except ValueError:
            day = None
    if day is None:
        return Transition.stay(Reply(user.chat_id, "⚠️ Invalid Day. " + DAY_PROMPT, cancel_keyboard()))
    return ask_for_photo(user.chat_id, {**draft, "day": day})

def handle_entry(user, msg: Message, draft: Dict[str, Any], allow_edit: bool = True) -> Transition:
    body = msg.body or ""
    hours = extract_hours(body)
    if hours == 0:
        return Transition.stay(Reply(user.chat_id, NO_HOURS, cancel_keyboard()))

    new_draft = {**draft, "hours": hours, "subject": body}
    if msg.photo_id:
        new_draft["photo_id"] = msg.photo_id
    else:
        new_draft.pop("photo_id", None)
    new_draft = validate_draft(BotState.CONFIRM_SUBMISSION, new_draft)

    return Transition(
        state=BotState.CONFIRM_SUBMISSION,
        draft=new_draft,
        replies=[Reply(user.chat_id, confirm_text(new_draft), confirm_keyboard(allow_edit))],
    )
