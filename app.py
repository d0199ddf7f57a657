import uuid
import logging
from typing import Any, Dict

from flask import Flask, request, abort, jsonify

import db
import handlers
from config import SETUP_TOKEN, TELEGRAM_WEBHOOK_SECRET, WEBHOOK_BASE_URL
from telegram_client import safe_compare, set_webhook

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger("study-log-bot")

app = Flask(__name__)

LIVENESS = {"status": "Study Bot is Active!"}

def verify_webhook_secret() -> None:
    if not TELEGRAM_WEBHOOK_SECRET:
        return
    got = request.headers.get("X-Telegram-Bot-Api-Secret-Token", "")
    if not safe_compare(got, TELEGRAM_WEBHOOK_SECRET):
        abort(401)

_db_inited = False

@app.before_request
def _ensure_db():
    global _db_inited
    if _db_inited or request.endpoint != "webhook":
        return
    db.init_db()
    _db_inited = True
    log.info("DB initialized")

# -----------------------------
# Routes
# -----------------------------
@app.get("/")
def root():
    return jsonify(LIVENESS)

@app.get("/health")
def health():
    return jsonify({"ok": True})

@app.get("/webhook")
def webhook_liveness():
    return jsonify(LIVENESS)

@app.post("/setup")
def setup_webhook():
    token = (request.args.get("token") or request.headers.get("X-Setup-Token") or "").strip()
    if not SETUP_TOKEN or not safe_compare(token, SETUP_TOKEN):
        abort(401)
    if not WEBHOOK_BASE_URL:
        return jsonify({"ok": False, "error": "WEBHOOK_BASE_URL is not set"}), 400

    webhook_url = WEBHOOK_BASE_URL.rstrip("/") + "/webhook"
    res = set_webhook(webhook_url, TELEGRAM_WEBHOOK_SECRET)
    return jsonify({"ok": True, "webhook_url": webhook_url, "telegram": res})

@app.post("/webhook")
def webhook():
    verify_webhook_secret()
    req_id = str(uuid.uuid4())
    update: Dict[str, Any] = request.get_json(force=True, silent=True) or {}
    update_id = update.get("update_id")

    try:
        if update_id is not None and not db.mark_update_processed(int(update_id)):
            log.info(f"[{req_id}] duplicate update {update_id} skipped")
            return jsonify({"ok": True})
        handlers.handle_update(update)
    except Exception as e:
        log.exception(f"[{req_id}] update {update_id} failed: {e}")
        if update_id is not None:
            try:
                db.forget_update(int(update_id))
            except Exception as e2:
                log.warning(f"[{req_id}] could not release update {update_id}: {e2}")
        return jsonify({"ok": False, "req": req_id}), 500

    return jsonify({"ok": True})
