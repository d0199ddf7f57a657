from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

@dataclass(frozen=True)
class Message:
    chat_id: int
    text: str = ""
    caption: Optional[str] = None
    photo_id: Optional[str] = None
    message_id: Optional[int] = None

    @property
    def body(self) -> str:
        # captioned photos carry the hours in the caption
        return self.caption or self.text

    @property
    def command(self) -> str:
        return self.text.strip()

@dataclass(frozen=True)
class Callback:
    chat_id: int
    data: str
    callback_id: str = ""

InboundEvent = Union[Message, Callback]

def extract_message(update: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return update.get("message")

def extract_callback(update: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return update.get("callback_query")

def largest_photo_id(msg: Dict[str, Any]) -> Optional[str]:
    sizes = msg.get("photo") or []
    if not sizes:
        return None
    return sizes[-1].get("file_id")

def parse_update(update: Dict[str, Any]) -> Optional[InboundEvent]:
    cb = extract_callback(update)
    if cb:
        if (cb.get("from") or {}).get("is_bot"):
            return None
        chat = ((cb.get("message") or {}).get("chat")) or {}
        chat_id = chat.get("id") or (cb.get("from") or {}).get("id")
        if chat_id is None:
            return None
        return Callback(
            chat_id=int(chat_id),
            data=(cb.get("data") or "").strip(),
            callback_id=str(cb.get("id") or ""),
        )

    msg = extract_message(update)
    if not msg:
        return None
    if (msg.get("from") or {}).get("is_bot"):
        return None
    chat_id = (msg.get("chat") or {}).get("id")
    if chat_id is None:
        return None
    return Message(
        chat_id=int(chat_id),
        text=msg.get("text") or "",
        caption=msg.get("caption"),
        photo_id=largest_photo_id(msg),
        message_id=msg.get("message_id"),
    )
