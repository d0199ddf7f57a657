import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import psycopg

import config
import db
import finalizer
import telegram_client
from admin import format_registry
from dialogue import (
    CompleteRegistration,
    CreateUser,
    FinalizeSubmission,
    Reply,
    ShowLeaderboard,
    ShowLineChart,
    ShowProfile,
    ShowRegistry,
    Transition,
)
from engine import transition
from events import Callback, InboundEvent, parse_update
from stats import fill_days, format_leaderboard, format_profile, line_chart_url, since_for
from telegram_client import home_keyboard, profile_keyboard

log = logging.getLogger("study-log-bot")

GENERIC_ERROR = "❌ Sorry, something went wrong. Please try again."
SAVE_ERROR = "❌ Error saving data. Press Submit to try again."
READ_ERROR = "❌ Database Error"

def local_today() -> date:
    return datetime.now(config.tz()).date()

def send(reply: Reply) -> None:
    try:
        if reply.photo:
            telegram_client.send_photo(reply.chat_id, reply.photo, reply.text, reply.reply_markup)
        else:
            telegram_client.send_message(reply.chat_id, reply.text, reply.reply_markup)
    except Exception as e:
        log.warning(f"Send to {reply.chat_id} failed: {e}")

def send_all(replies: List[Reply]) -> None:
    for r in replies:
        send(r)

def acknowledge(cb: Callback) -> None:
    if not cb.callback_id:
        return
    try:
        telegram_client.answer_callback_query(cb.callback_id)
    except Exception as e:
        log.warning(f"answerCallbackQuery failed for chat {cb.chat_id}: {e}")

def render(chat_id: int, effect, today: date) -> List[Reply]:
    if isinstance(effect, ShowProfile):
        rank = db.get_rank(chat_id)
        return [Reply(chat_id, format_profile(rank), profile_keyboard(effect.line_chart))]

    if isinstance(effect, ShowLeaderboard):
        rows = db.top_ranks(effect.limit)
        return [Reply(chat_id, format_leaderboard(rows), home_keyboard())]

    if isinstance(effect, ShowLineChart):
        rows = db.daily_hours(chat_id, since_for(today, effect.days))
        labels, values = fill_days(rows, today, effect.days)
        return [
            Reply(chat_id, f"📈 Progress (last {effect.days} days)", photo=line_chart_url(labels, values)),
            Reply(chat_id, "Back to menu?", home_keyboard()),
        ]

    if isinstance(effect, ShowRegistry):
        return [Reply(chat_id, format_registry(db.all_ranks()))]

    return []

def persist(user, t: Transition, chat_id: int) -> bool:
    """Write the transition. False means it lost a race and must not be announced."""
    effect = t.effect

    if isinstance(effect, CreateUser):
        if not db.create_user(chat_id):
            log.info(f"chat {chat_id}: already created by a concurrent update")
            return False
        return True

    if isinstance(effect, CompleteRegistration):
        if not db.complete_registration(chat_id, user.version, effect.real_name, effect.username, effect.password):
            log.info(f"chat {chat_id}: registration already completed or state moved")
            return False
        if effect.message_id is not None:
            # the password should not linger in the chat history
            try:
                telegram_client.delete_message(chat_id, effect.message_id)
            except Exception as e:
                log.warning(f"Could not delete password message in chat {chat_id}: {e}")
        return True

    if t.moves:
        if not db.save_state(chat_id, user.version, t.state, t.draft):
            log.info(f"chat {chat_id}: stale update ignored (version {user.version})")
            return False
    return True

def process_event(event: InboundEvent, today: Optional[date] = None) -> Optional[Transition]:
    today = today or local_today()
    chat_id = event.chat_id

    try:
        user = db.get_user(chat_id)
    except psycopg.Error as e:
        log.error(f"chat {chat_id}: could not load user: {e}")
        send(Reply(chat_id, GENERIC_ERROR))
        return None

    t = transition(
        user,
        event,
        today=today,
        admin_ids=config.ADMIN_IDS,
        features=config.FEATURES,
    )

    if isinstance(t.effect, FinalizeSubmission):
        try:
            written = finalizer.finalize(user, t.effect.draft)
        except finalizer.SubmissionError as e:
            log.error(f"chat {chat_id}: study log not saved: {e}")
            send(Reply(chat_id, SAVE_ERROR))
            return t
        if written is None:
            log.info(f"chat {chat_id}: confirmation already handled")
            return t
        send_all(t.replies)
        return t

    try:
        if not persist(user, t, chat_id):
            return t
        extra = render(chat_id, t.effect, today)
    except psycopg.Error as e:
        log.error(f"chat {chat_id}: store error: {e}")
        send(Reply(chat_id, READ_ERROR if t.state is None else GENERIC_ERROR))
        return t

    send_all(t.replies + extra)
    return t

def handle_update(update: Dict[str, Any]) -> Optional[Transition]:
    event = parse_update(update)
    if event is None:
        return None
    if isinstance(event, Callback):
        acknowledge(event)
    return process_event(event)
