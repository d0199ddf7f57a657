import hmac
import requests
from typing import Any, Dict, List, Optional, Tuple, Union
from config import TELEGRAM_BOT_TOKEN

ChatId = Union[int, str]

def tg_api(method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    if not TELEGRAM_BOT_TOKEN:
        raise RuntimeError("Missing TELEGRAM_BOT_TOKEN")
    url = f"https://api.telegram.org/bot{TELEGRAM_BOT_TOKEN}/{method}"
    r = requests.post(url, json=payload, timeout=25)
    r.raise_for_status()
    data = r.json()
    if not data.get("ok"):
        raise RuntimeError(f"Telegram API error: {data}")
    return data

def send_message(chat_id: ChatId, text: str, reply_markup: Optional[Dict[str, Any]] = None) -> int:
    payload: Dict[str, Any] = {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }
    if reply_markup is not None:
        payload["reply_markup"] = reply_markup
    res = tg_api("sendMessage", payload)
    return int((res.get("result") or {}).get("message_id"))

def send_photo(chat_id: ChatId, photo: str, caption: str = "", reply_markup: Optional[Dict[str, Any]] = None) -> int:
    """``photo`` is a Telegram file_id or an http(s) URL."""
    payload: Dict[str, Any] = {"chat_id": chat_id, "photo": photo}
    if caption:
        payload["caption"] = caption
    if reply_markup is not None:
        payload["reply_markup"] = reply_markup
    res = tg_api("sendPhoto", payload)
    return int((res.get("result") or {}).get("message_id"))

def answer_callback_query(callback_query_id: str) -> None:
    tg_api("answerCallbackQuery", {"callback_query_id": callback_query_id})

def delete_message(chat_id: int, message_id: int) -> None:
    tg_api("deleteMessage", {"chat_id": chat_id, "message_id": message_id})

def set_webhook(url: str, secret_token: str = "") -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "url": url,
        "drop_pending_updates": True,
        "allowed_updates": ["message", "callback_query"],
    }
    if secret_token:
        payload["secret_token"] = secret_token
    return tg_api("setWebhook", payload)

def inline_kb(rows: List[List[Tuple[str, str]]]) -> Dict[str, Any]:
    return {
        "inline_keyboard": [
            [{"text": text, "callback_data": data} for (text, data) in row]
            for row in rows
        ]
    }

def home_menu_keyboard() -> Dict[str, Any]:
    return inline_kb([
        [("👤 My profile", "profile")],
        [("🏆 Top 10", "leaderboard")],
        [("📸 Today submission", "submit_today")],
        [("📅 Old date submission", "submit_old")],
    ])

def home_keyboard() -> Dict[str, Any]:
    return inline_kb([[("🏠 Home", "home")]])

def cancel_keyboard() -> Dict[str, Any]:
    return inline_kb([[("✖️ Cancel", "cancel")]])

def confirm_keyboard(allow_edit: bool = True) -> Dict[str, Any]:
    rows = []
    if allow_edit:
        rows.append([("✏️ Edit", "edit_submission")])
    rows.append([("✅ Submit", "confirm_submit")])
    rows.append([("✖️ Cancel", "cancel")])
    return inline_kb(rows)

def profile_keyboard(line_chart: bool = True) -> Dict[str, Any]:
    rows = []
    if line_chart:
        rows.append([("📈 Line Chart", "line_chart")])
    rows.append([("🏠 Home", "home")])
    return inline_kb(rows)

def safe_compare(a: str, b: str) -> bool:
    return hmac.compare_digest(a or "", b or "")
