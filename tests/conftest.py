"""Shared test fixtures.

Sets fake environment variables before any project import, and provides an
in-memory stand-in for the ``db`` module functions plus a recording fake of
the Telegram transport.
"""

import os

# Patch env vars BEFORE any project imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("DATABASE_URL", "postgresql://fake/fake")
os.environ.setdefault("ADMIN_ID", "999")
os.environ.setdefault("TIMEZONE", "UTC")

import copy
from datetime import date, datetime, timezone

import psycopg
import pytest
from werkzeug.security import generate_password_hash

import db
import telegram_client
from states import BotState

ADMIN_CHAT = 999
ALICE = 101


class FakeStore:
    """Dict-backed version of the persistence functions in ``db``."""

    def __init__(self):
        self.users = {}
        self.logs = []
        self.processed = set()
        self.fail_finalize = False
        self.fail_reads = False

    # users

    def add_user(self, chat_id, state=BotState.HOME, temp_data=None, real_name=None, username=None, registered=True):
        self.users[chat_id] = {
            "chat_id": chat_id,
            "real_name": real_name,
            "username": username,
            "password_hash": None,
            "bot_state": state.value,
            "temp_data": dict(temp_data or {}),
            "version": 0,
            "registered_at": datetime.now(timezone.utc) if registered else None,
        }
        return self.get_user(chat_id)

    def get_user(self, chat_id):
        if self.fail_reads:
            raise psycopg.OperationalError("connection refused")
        row = self.users.get(chat_id)
        return db.row_to_user(copy.deepcopy(row)) if row else None

    def state_of(self, chat_id):
        return BotState(self.users[chat_id]["bot_state"])

    def draft_of(self, chat_id):
        return self.users[chat_id]["temp_data"]

    def create_user(self, chat_id):
        if chat_id in self.users:
            return False
        self.add_user(chat_id, state=BotState.REG_NAME, registered=False)
        return True

    def save_state(self, chat_id, version, state, temp_data):
        row = self.users.get(chat_id)
        if row is None or row["version"] != version:
            return False
        row.update(bot_state=state.value, temp_data=copy.deepcopy(temp_data), version=version + 1)
        return True

    def complete_registration(self, chat_id, version, real_name, username, password):
        row = self.users.get(chat_id)
        if row is None or row["version"] != version or row["bot_state"] != BotState.REG_PASSWORD.value:
            return False
        row.update(
            real_name=real_name,
            username=username,
            password_hash=generate_password_hash(password),
            bot_state=BotState.HOME.value,
            temp_data={},
            version=version + 1,
            registered_at=row["registered_at"] or datetime.now(timezone.utc),
        )
        return True

    def finalize_submission(self, chat_id, version, log):
        if self.fail_finalize:
            raise psycopg.OperationalError("disk full")
        row = self.users.get(chat_id)
        if (
            row is None
            or row["version"] != version
            or row["bot_state"] != BotState.CONFIRM_SUBMISSION.value
        ):
            return False
        row.update(bot_state=BotState.HOME.value, temp_data={}, version=version + 1)
        self.logs.append(log)
        return True

    # ranks

    def _ranks(self):
        rows = []
        for u in self.users.values():
            if u["registered_at"] is None:
                continue
            total = sum(l.duration for l in self.logs if l.chat_id == u["chat_id"])
            rows.append({
                "chat_id": u["chat_id"],
                "real_name": u["real_name"],
                "username": u["username"],
                "total_hours": float(total),
            })
        rows.sort(key=lambda r: (-r["total_hours"], r["real_name"] or ""))
        return rows

    def get_rank(self, chat_id):
        if self.fail_reads:
            raise psycopg.OperationalError("connection refused")
        for r in self._ranks():
            if r["chat_id"] == chat_id:
                return r
        return None

    def top_ranks(self, limit=10):
        if self.fail_reads:
            raise psycopg.OperationalError("connection refused")
        return self._ranks()[:limit]

    def all_ranks(self):
        if self.fail_reads:
            raise psycopg.OperationalError("connection refused")
        return self._ranks()

    def daily_hours(self, chat_id, since):
        totals = {}
        for l in self.logs:
            if l.chat_id != chat_id:
                continue
            y, m, d = (int(x) for x in l.study_date.split("-"))
            day = date(y, m, d)
            if day >= since:
                totals[day] = totals.get(day, 0.0) + l.duration
        return [{"study_date": d, "hours": h} for d, h in sorted(totals.items())]

    # updates

    def mark_update_processed(self, update_id):
        if update_id in self.processed:
            return False
        self.processed.add(update_id)
        return True

    def forget_update(self, update_id):
        self.processed.discard(update_id)

    def init_db(self):
        pass


STORE_FUNCS = (
    "get_user",
    "create_user",
    "save_state",
    "complete_registration",
    "finalize_submission",
    "get_rank",
    "top_ranks",
    "all_ranks",
    "daily_hours",
    "mark_update_processed",
    "forget_update",
    "init_db",
)


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    for name in STORE_FUNCS:
        monkeypatch.setattr(db, name, getattr(fake, name))
    return fake


class Outbox:
    """Records everything sent through ``telegram_client``."""

    def __init__(self):
        self.messages = []
        self.photos = []
        self.acks = []
        self.deleted = []
        self.fail_for = set()

    def send_message(self, chat_id, text, reply_markup=None):
        if chat_id in self.fail_for:
            raise RuntimeError("Telegram API error: blocked")
        self.messages.append({"chat_id": chat_id, "text": text, "reply_markup": reply_markup})
        return len(self.messages)

    def send_photo(self, chat_id, photo, caption="", reply_markup=None):
        if chat_id in self.fail_for:
            raise RuntimeError("Telegram API error: blocked")
        self.photos.append({"chat_id": chat_id, "photo": photo, "caption": caption, "reply_markup": reply_markup})
        return len(self.photos)

    def answer_callback_query(self, callback_query_id):
        self.acks.append(callback_query_id)

    def delete_message(self, chat_id, message_id):
        self.deleted.append((chat_id, message_id))

    def texts_for(self, chat_id):
        return [m["text"] for m in self.messages if m["chat_id"] == chat_id]

    def last_text(self, chat_id):
        texts = self.texts_for(chat_id)
        return texts[-1] if texts else None

    def last_markup(self, chat_id):
        for m in reversed(self.messages):
            if m["chat_id"] == chat_id:
                return m["reply_markup"]
        return None


@pytest.fixture
def outbox(monkeypatch):
    box = Outbox()
    for name in ("send_message", "send_photo", "answer_callback_query", "delete_message"):
        monkeypatch.setattr(telegram_client, name, getattr(box, name))
    return box


def callback_data(markup):
    return [btn["callback_data"] for row in (markup or {}).get("inline_keyboard", []) for btn in row]


_next_update = [1000]


def _update_id():
    _next_update[0] += 1
    return _next_update[0]


def text_update(chat_id, text, message_id=1):
    return {
        "update_id": _update_id(),
        "message": {
            "message_id": message_id,
            "from": {"id": chat_id, "is_bot": False},
            "chat": {"id": chat_id, "type": "private"},
            "text": text,
        },
    }


def photo_update(chat_id, caption=None, file_ids=("small", "medium", "large"), message_id=1):
    msg = {
        "message_id": message_id,
        "from": {"id": chat_id, "is_bot": False},
        "chat": {"id": chat_id, "type": "private"},
        "photo": [{"file_id": f, "width": 90 * (i + 1)} for i, f in enumerate(file_ids)],
    }
    if caption is not None:
        msg["caption"] = caption
    return {"update_id": _update_id(), "message": msg}


def callback_update(chat_id, data, callback_id="cb-1"):
    return {
        "update_id": _update_id(),
        "callback_query": {
            "id": callback_id,
            "from": {"id": chat_id, "is_bot": False},
            "message": {"message_id": 5, "chat": {"id": chat_id, "type": "private"}},
            "data": data,
        },
    }
