import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from werkzeug.security import generate_password_hash

from config import DATABASE_URL
from states import BotState, INITIAL_STATE

def db():
    if not DATABASE_URL:
        raise RuntimeError("Missing DATABASE_URL")
    return psycopg.connect(DATABASE_URL, row_factory=dict_row)

STATE_VALUES = ", ".join(f"'{s.value}'" for s in BotState)

def init_db() -> None:
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute(f"""
            CREATE TABLE IF NOT EXISTS users (
              chat_id BIGINT PRIMARY KEY,
              real_name TEXT,
              username TEXT,
              password_hash TEXT,
              bot_state TEXT NOT NULL DEFAULT '{INITIAL_STATE.value}'
                CHECK (bot_state IN ({STATE_VALUES})),
              temp_data JSONB NOT NULL DEFAULT '{{}}'::jsonb,
              version INTEGER NOT NULL DEFAULT 0,
              registered_at TIMESTAMPTZ,
              created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """)

            cur.execute("""
            CREATE TABLE IF NOT EXISTS study_logs (
              id SERIAL PRIMARY KEY,
              chat_id BIGINT NOT NULL REFERENCES users(chat_id),
              duration DOUBLE PRECISION NOT NULL CHECK (duration > 0),
              subject TEXT,
              study_date DATE NOT NULL,
              created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """)

            # dedup telegram updates
            cur.execute("""
            CREATE TABLE IF NOT EXISTS processed_updates (
              update_id BIGINT PRIMARY KEY,
              processed_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """)

            # safe migrations
            cur.execute("ALTER TABLE users ADD COLUMN IF NOT EXISTS version INTEGER NOT NULL DEFAULT 0;")
            cur.execute("ALTER TABLE users ADD COLUMN IF NOT EXISTS registered_at TIMESTAMPTZ;")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_study_logs_chat_date ON study_logs(chat_id, study_date);")

            cur.execute("""
            CREATE OR REPLACE VIEW user_ranks AS
            SELECT u.chat_id, u.real_name, u.username,
                   COALESCE(SUM(l.duration), 0)::float AS total_hours
            FROM users u
            LEFT JOIN study_logs l ON l.chat_id = u.chat_id
            WHERE u.registered_at IS NOT NULL
            GROUP BY u.chat_id, u.real_name, u.username
            ORDER BY total_hours DESC, u.real_name;
            """)

        conn.commit()

def mark_update_processed(update_id: int) -> bool:
    """
    Returns True if newly inserted (process it),
    False if already processed (skip).
    """
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO processed_updates(update_id) VALUES (%s) ON CONFLICT DO NOTHING RETURNING update_id",
                (update_id,),
            )
            row = cur.fetchone()
        conn.commit()
    return row is not None

def forget_update(update_id: int) -> None:
    # lets Telegram's redelivery through after a failed attempt
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM processed_updates WHERE update_id=%s", (update_id,))
        conn.commit()

@dataclass
class User:
    chat_id: int
    state: BotState
    temp_data: Dict[str, Any] = field(default_factory=dict)
    version: int = 0
    real_name: Optional[str] = None
    username: Optional[str] = None
    password_hash: Optional[str] = field(default=None, repr=False)
    registered_at: Optional[datetime] = None

@dataclass(frozen=True)
class StudyLog:
    chat_id: int
    duration: float
    subject: str
    study_date: str  # "YYYY-M-D", cast to DATE by postgres

def row_to_user(row: Dict[str, Any]) -> User:
    return User(
        chat_id=int(row["chat_id"]),
        state=BotState(row.get("bot_state") or INITIAL_STATE.value),
        temp_data=dict(row.get("temp_data") or {}),
        version=int(row.get("version") or 0),
        real_name=row.get("real_name"),
        username=row.get("username"),
        password_hash=row.get("password_hash"),
        registered_at=row.get("registered_at"),
    )

def get_user(chat_id: int) -> Optional[User]:
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE chat_id=%s", (chat_id,))
            row = cur.fetchone()
    return row_to_user(row) if row else None

def create_user(chat_id: int) -> bool:
    """False when the row already exists (a concurrent first contact won)."""
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO users (chat_id, bot_state, temp_data)
                VALUES (%s, %s, %s)
                ON CONFLICT (chat_id) DO NOTHING
                RETURNING chat_id
                """,
                (chat_id, INITIAL_STATE.value, Jsonb({})),
            )
            row = cur.fetchone()
        conn.commit()
    return row is not None

def save_state(chat_id: int, version: int, state: BotState, temp_data: Dict[str, Any]) -> bool:
    """Compare-and-swap on ``version``; False means someone else moved the user first."""
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE users
                SET bot_state=%s, temp_data=%s, version=version + 1
                WHERE chat_id=%s AND version=%s
                RETURNING version
                """,
                (state.value, Jsonb(temp_data), chat_id, version),
            )
            row = cur.fetchone()
        conn.commit()
    return row is not None

def complete_registration(chat_id: int, version: int, real_name: str, username: str, password: str) -> bool:
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE users
                SET real_name=%s,
                    username=%s,
                    password_hash=%s,
                    bot_state=%s,
                    temp_data='{}'::jsonb,
                    version=version + 1,
                    registered_at=COALESCE(registered_at, now())
                WHERE chat_id=%s AND version=%s AND bot_state=%s
                RETURNING version
                """,
                (
                    real_name,
                    username,
                    generate_password_hash(password),
                    BotState.HOME.value,
                    chat_id,
                    version,
                    BotState.REG_PASSWORD.value,
                ),
            )
            row = cur.fetchone()
        conn.commit()
    return row is not None

def finalize_submission(chat_id: int, version: int, log: StudyLog) -> bool:
    """Move the user back HOME and append the log in one transaction.

    Nothing is written when the user is no longer at the version/state the
    confirmation was computed against.
    """
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE users
                SET bot_state=%s, temp_data='{}'::jsonb, version=version + 1
                WHERE chat_id=%s AND version=%s AND bot_state=%s
                RETURNING version
                """,
                (BotState.HOME.value, chat_id, version, BotState.CONFIRM_SUBMISSION.value),
            )
            if cur.fetchone() is None:
                conn.rollback()
                return False
            cur.execute(
                "INSERT INTO study_logs (chat_id, duration, subject, study_date) VALUES (%s,%s,%s,%s::date)",
                (log.chat_id, log.duration, log.subject, log.study_date),
            )
        conn.commit()
    return True

def get_rank(chat_id: int) -> Optional[Dict[str, Any]]:
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM user_ranks WHERE chat_id=%s", (chat_id,))
            return cur.fetchone()

def top_ranks(limit: int = 10) -> List[Dict[str, Any]]:
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM user_ranks LIMIT %s", (limit,))
            return list(cur.fetchall())

def all_ranks() -> List[Dict[str, Any]]:
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM user_ranks")
            return list(cur.fetchall())

def daily_hours(chat_id: int, since: date) -> List[Dict[str, Any]]:
    with db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT study_date, SUM(duration)::float AS hours
                FROM study_logs
                WHERE chat_id=%s AND study_date >= %s
                GROUP BY study_date
                ORDER BY study_date
                """,
                (chat_id, since),
            )
            return list(cur.fetchall())
