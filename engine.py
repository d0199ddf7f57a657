from datetime import date
from typing import AbstractSet, Optional

from config import Features, LEADERBOARD_SIZE, CHART_DAYS
from dialogue import (
    FinalizeSubmission,
    Reply,
    ShowLeaderboard,
    ShowLineChart,
    ShowProfile,
    ShowRegistry,
    Transition,
)
from events import Callback, InboundEvent, Message
from registration import handle_registration, reprompt, start_registration
from states import BotState, DraftError, Phase, is_valid_draft, validate_draft
from submission import (
    RESEND_PROMPT,
    YEAR_PROMPT,
    ask_for_photo,
    handle_day,
    handle_entry,
    handle_month,
    handle_year,
    today_draft,
)
from telegram_client import (
    cancel_keyboard,
    confirm_keyboard,
    home_keyboard,
    home_menu_keyboard,
)

ADMIN_REGISTRY_COMMAND = "/users"

HOME_TEXT = "🏠 Home Menu"

def go_home(chat_id: int, text: str = HOME_TEXT) -> Transition:
    return Transition(
        state=BotState.HOME,
        draft={},
        replies=[Reply(chat_id, text, home_menu_keyboard())],
    )

def transition(
    user,
    event: InboundEvent,
    *,
    today: date,
    admin_ids: AbstractSet[int] = frozenset(),
    features: Optional[Features] = None,
) -> Transition:
    features = features or Features()

    if isinstance(event, Message):
        # admin dump runs before anything else and never touches the dialogue
        if event.command == ADMIN_REGISTRY_COMMAND and event.chat_id in admin_ids:
            return Transition.stay(effect=ShowRegistry())
        if user is None:
            return start_registration(event.chat_id, create=True)
        if user.state.phase is Phase.REGISTRATION:
            return handle_registration(user, event)
        return handle_message(user, event, features)

    if user is None:
        return start_registration(event.chat_id, create=True)
    if user.state.phase is Phase.REGISTRATION:
        # stale buttons must not skip a registration step
        return reprompt(user)
    return handle_callback(user, event, today, features)

def handle_message(user, msg: Message, features: Features) -> Transition:
    chat_id = user.chat_id
    command = msg.command

    if command == "/start":
        return go_home(chat_id)
    if command == "/cancel":
        return go_home(chat_id)

    try:
        draft = validate_draft(user.state, user.temp_data)
    except DraftError:
        return go_home(chat_id, "⚠️ That step expired. " + HOME_TEXT)

    if user.state == BotState.AWAITING_YEAR:
        return handle_year(user, msg)
    if user.state == BotState.AWAITING_MONTH:
        return handle_month(user, msg, draft)
    if user.state == BotState.AWAITING_DATE:
        return handle_day(user, msg, draft)
    if user.state == BotState.AWAITING_SUBMISSION:
        return handle_entry(user, msg, draft, allow_edit=features.edit_submission)
    if user.state == BotState.CONFIRM_SUBMISSION:
        return Transition.stay(Reply(
            chat_id,
            "Please confirm or cancel using the buttons below.",
            confirm_keyboard(features.edit_submission),
        ))

    return Transition.stay(Reply(chat_id, "Use the menu buttons 🙂", home_menu_keyboard()))

def nothing_to_submit(user) -> Transition:
    if user.state == BotState.AWAITING_SUBMISSION and is_valid_draft(user.state, user.temp_data):
        # an old confirmation button; keep the entry being edited
        return Transition.stay(Reply(user.chat_id, "⚠️ Send your updated entry first. " + RESEND_PROMPT, cancel_keyboard()))
    return go_home(user.chat_id, "⚠️ Nothing to submit. " + HOME_TEXT)

def handle_callback(user, cb: Callback, today: date, features: Features) -> Transition:
    chat_id = user.chat_id
    data = cb.data

    if data in ("home", "cancel"):
        return go_home(chat_id)

    if data == "profile":
        return Transition.stay(effect=ShowProfile(line_chart=features.line_chart))

    if data == "leaderboard":
        return Transition.stay(effect=ShowLeaderboard(limit=LEADERBOARD_SIZE))

    if data == "line_chart" and features.line_chart:
        return Transition.stay(effect=ShowLineChart(days=CHART_DAYS))

    if data == "submit_today":
        return ask_for_photo(chat_id, today_draft(today))

    if data == "submit_old":
        return Transition(
            state=BotState.AWAITING_YEAR,
            draft={},
            replies=[Reply(chat_id, YEAR_PROMPT, cancel_keyboard())],
        )

    if data == "confirm_submit":
        if user.state != BotState.CONFIRM_SUBMISSION or not is_valid_draft(user.state, user.temp_data):
            return nothing_to_submit(user)
        return Transition(
            state=BotState.HOME,
            draft={},
            replies=[Reply(chat_id, "✅ Submitted!", home_keyboard())],
            effect=FinalizeSubmission(draft=validate_draft(user.state, user.temp_data)),
        )

    if data == "edit_submission" and features.edit_submission:
        if user.state != BotState.CONFIRM_SUBMISSION or not is_valid_draft(user.state, user.temp_data):
            return nothing_to_submit(user)
        return ask_for_photo(chat_id, dict(user.temp_data), prompt=RESEND_PROMPT)

    return Transition.stay(Reply(chat_id, "That button is no longer available.", home_keyboard()))
