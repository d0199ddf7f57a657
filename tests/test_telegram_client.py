"""Tests for telegram_client: Bot API calls and keyboards."""

import pytest

import telegram_client
from telegram_client import (
    confirm_keyboard,
    home_menu_keyboard,
    inline_kb,
    profile_keyboard,
    safe_compare,
)


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


@pytest.fixture
def posts(monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append({"url": url, "json": json})
        return FakeResponse({"ok": True, "result": {"message_id": 11}})

    monkeypatch.setattr(telegram_client.requests, "post", fake_post)
    return calls


class TestApi:
    def test_send_message(self, posts):
        mid = telegram_client.send_message(1, "hi", reply_markup={"inline_keyboard": []})
        assert mid == 11
        assert posts[0]["url"].endswith("/sendMessage")
        assert posts[0]["json"]["chat_id"] == 1
        assert posts[0]["json"]["reply_markup"] == {"inline_keyboard": []}

    def test_send_photo(self, posts):
        telegram_client.send_photo("@chan", "file-1", "caption")
        assert posts[0]["url"].endswith("/sendPhoto")
        assert posts[0]["json"] == {"chat_id": "@chan", "photo": "file-1", "caption": "caption"}

    def test_answer_callback(self, posts):
        telegram_client.answer_callback_query("cb-1")
        assert posts[0]["json"] == {"callback_query_id": "cb-1"}

    def test_api_error_raises(self, monkeypatch):
        monkeypatch.setattr(
            telegram_client.requests,
            "post",
            lambda url, json=None, timeout=None: FakeResponse({"ok": False, "description": "blocked"}),
        )
        with pytest.raises(RuntimeError):
            telegram_client.send_message(1, "hi")

    def test_set_webhook(self, posts):
        telegram_client.set_webhook("https://x/webhook", "sec")
        body = posts[0]["json"]
        assert body["url"] == "https://x/webhook"
        assert body["secret_token"] == "sec"
        assert body["allowed_updates"] == ["message", "callback_query"]


class TestKeyboards:
    def test_inline_kb(self):
        assert inline_kb([[("A", "a"), ("B", "b")]]) == {
            "inline_keyboard": [[{"text": "A", "callback_data": "a"}, {"text": "B", "callback_data": "b"}]]
        }

    def test_home_menu(self):
        data = [b["callback_data"] for row in home_menu_keyboard()["inline_keyboard"] for b in row]
        assert data == ["profile", "leaderboard", "submit_today", "submit_old"]

    def test_confirm_without_edit(self):
        data = [b["callback_data"] for row in confirm_keyboard(False)["inline_keyboard"] for b in row]
        assert data == ["confirm_submit", "cancel"]

    def test_profile_without_chart(self):
        data = [b["callback_data"] for row in profile_keyboard(False)["inline_keyboard"] for b in row]
        assert data == ["home"]


def test_safe_compare():
    assert safe_compare("a", "a")
    assert not safe_compare("a", "b")
    assert not safe_compare("a", None)
