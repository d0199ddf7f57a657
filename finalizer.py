import logging
from typing import Any, Dict, Optional

import psycopg

import config
import db
import telegram_client
from submission import format_hours, study_date_string

log = logging.getLogger("study-log-bot")

class SubmissionError(Exception):
    """The study log could not be written; the draft is still in place."""

def build_log(chat_id: int, draft: Dict[str, Any]) -> db.StudyLog:
    return db.StudyLog(
        chat_id=chat_id,
        duration=float(draft["hours"]),
        subject=draft["subject"],
        study_date=study_date_string(draft),
    )

def broadcast_caption(user, draft: Dict[str, Any]) -> str:
    return (
        "📅 Update\n"
        f"👤 {user.real_name or '-'}\n"
        f"🗓 {study_date_string(draft)}\n"
        f"⏱ {format_hours(draft['hours'])} hrs\n"
        f"📝 {draft.get('subject') or '-'}"
    )

def broadcast(user, draft: Dict[str, Any]) -> None:
    target = config.broadcast_target()
    if target is None:
        return
    caption = broadcast_caption(user, draft)
    try:
        if draft.get("photo_id"):
            telegram_client.send_photo(target, draft["photo_id"], caption)
        else:
            telegram_client.send_message(target, caption)
    except Exception as e:
        log.warning(f"Broadcast to {target} failed for chat {user.chat_id}: {e}")

def finalize(user, draft: Dict[str, Any]) -> Optional[db.StudyLog]:
    """Turn a confirmed draft into a study log.

    Returns the written log, or None when the user had already moved on
    (duplicate or concurrent confirmation). Raises SubmissionError when the
    store rejects the write.
    """
    entry = build_log(user.chat_id, draft)
    try:
        written = db.finalize_submission(user.chat_id, user.version, entry)
    except psycopg.Error as e:
        raise SubmissionError(str(e)) from e
    if not written:
        return None
    broadcast(user, draft)
    return entry
