from dialogue import CompleteRegistration, CreateUser, Reply, Transition
from events import Message
from states import BotState, DraftError, validate_draft
from telegram_client import home_menu_keyboard

WELCOME = "👋 Welcome!\n\nTo start, please enter your Full Name:"

def registration_prompt(state: BotState, name_hint: str = "") -> str:
    if state == BotState.REG_USERNAME and name_hint:
        return f"👤 Nice to meet you, {name_hint}!\n\nNow, enter a Username:"
    return {
        BotState.REG_NAME: WELCOME,
        BotState.REG_USERNAME: "👤 Now, enter a Username:",
        BotState.REG_PASSWORD: "🔐 Security\n\nPlease create a Password:",
    }.get(state, "Registration step error.")

def start_registration(chat_id: int, create: bool = False) -> Transition:
    return Transition(
        state=BotState.REG_NAME,
        draft={},
        replies=[Reply(chat_id, WELCOME)],
        effect=CreateUser() if create else None,
    )

def reprompt(user) -> Transition:
    name = (user.temp_data or {}).get("real_name", "")
    return Transition.stay(Reply(user.chat_id, registration_prompt(user.state, name_hint=name)))

def handle_registration(user, msg: Message) -> Transition:
    chat_id = user.chat_id
    text = (msg.text or "").strip()

    if text == "/start":
        return start_registration(chat_id)

    if not text:
        return reprompt(user)

    try:
        draft = validate_draft(user.state, user.temp_data)
    except DraftError:
        # draft no longer matches the step; start over rather than guess
        return start_registration(chat_id)

    if user.state == BotState.REG_NAME:
        return Transition(
            state=BotState.REG_USERNAME,
            draft=validate_draft(BotState.REG_USERNAME, {**draft, "real_name": text}),
            replies=[Reply(chat_id, registration_prompt(BotState.REG_USERNAME, name_hint=text))],
        )

    if user.state == BotState.REG_USERNAME:
        username = text.lstrip("@").strip()
        if not username:
            return reprompt(user)
        return Transition(
            state=BotState.REG_PASSWORD,
            draft=validate_draft(BotState.REG_PASSWORD, {**draft, "custom_username": username}),
            replies=[Reply(chat_id, registration_prompt(BotState.REG_PASSWORD))],
        )

    if user.state == BotState.REG_PASSWORD:
        return Transition(
            state=BotState.HOME,
            draft={},
            replies=[Reply(chat_id, "✅ Registration Complete!", home_menu_keyboard())],
            effect=CompleteRegistration(
                real_name=draft["real_name"],
                username=draft["custom_username"],
                password=text,
                message_id=msg.message_id,
            ),
        )

    return start_registration(chat_id)
