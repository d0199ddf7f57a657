import os
import json
from dataclasses import dataclass
from typing import Set
from zoneinfo import ZoneInfo

TELEGRAM_BOT_TOKEN = (os.environ.get("TELEGRAM_BOT_TOKEN") or "").strip()
WEBHOOK_BASE_URL = (os.environ.get("WEBHOOK_BASE_URL") or os.environ.get("RENDER_EXTERNAL_URL") or "").strip()
SETUP_TOKEN = (os.environ.get("SETUP_TOKEN") or "").strip()
TELEGRAM_WEBHOOK_SECRET = (os.environ.get("TELEGRAM_WEBHOOK_SECRET") or "").strip()

DATABASE_URL = (os.environ.get("DATABASE_URL") or "").strip()
TIMEZONE_NAME = (os.environ.get("TIMEZONE") or "UTC").strip()

# Admin: "123" (also accepts "123,456" OR "[123,456]")
ADMIN_ID_RAW = (os.environ.get("ADMIN_ID") or "").strip()

# Broadcast channel for finished submissions: "-100123..." or "@channel"
CHANNEL_ID = (os.environ.get("CHANNEL_ID") or "").strip()

QUICKCHART_URL = (os.environ.get("QUICKCHART_URL") or "https://quickchart.io/chart").strip()

# Rules
LEADERBOARD_SIZE = 10
CHART_DAYS = 7

def env_flag(name: str, default: bool = True) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw not in ("0", "false", "no", "off")

@dataclass(frozen=True)
class Features:
    line_chart: bool = True
    edit_submission: bool = True

FEATURES = Features(
    line_chart=env_flag("ENABLE_LINE_CHART"),
    edit_submission=env_flag("ENABLE_EDIT_SUBMISSION"),
)

def parse_admin_ids(raw: str) -> Set[int]:
    raw = (raw or "").strip()
    out: Set[int] = set()
    if not raw:
        return out

    # JSON list
    if raw.startswith("[") and raw.endswith("]"):
        try:
            arr = json.loads(raw)
            for x in arr:
                out.add(int(x))
            return out
        except (ValueError, TypeError):
            out.clear()

    # Comma-separated
    for part in raw.strip("[]").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            out.add(int(part))
        except ValueError:
            continue
    return out

ADMIN_IDS = parse_admin_ids(ADMIN_ID_RAW)

def broadcast_target():
    """Numeric channel ids go out as ints, @usernames as-is."""
    if not CHANNEL_ID:
        return None
    try:
        return int(CHANNEL_ID)
    except ValueError:
        return CHANNEL_ID

def tz():
    return ZoneInfo(TIMEZONE_NAME)
