from enum import Enum
from typing import Any, Dict, Optional, Tuple

class Phase(str, Enum):
    REGISTRATION = "registration"
    MAIN = "main"

class BotState(str, Enum):
    REG_NAME = "REG_NAME"
    REG_USERNAME = "REG_USERNAME"
    REG_PASSWORD = "REG_PASSWORD"
    HOME = "HOME"
    AWAITING_YEAR = "AWAITING_YEAR"
    AWAITING_MONTH = "AWAITING_MONTH"
    AWAITING_DATE = "AWAITING_DATE"
    AWAITING_SUBMISSION = "AWAITING_SUBMISSION"
    CONFIRM_SUBMISSION = "CONFIRM_SUBMISSION"

    @property
    def phase(self) -> Phase:
        return PHASES[self]

PHASES = {
    BotState.REG_NAME: Phase.REGISTRATION,
    BotState.REG_USERNAME: Phase.REGISTRATION,
    BotState.REG_PASSWORD: Phase.REGISTRATION,
    BotState.HOME: Phase.MAIN,
    BotState.AWAITING_YEAR: Phase.MAIN,
    BotState.AWAITING_MONTH: Phase.MAIN,
    BotState.AWAITING_DATE: Phase.MAIN,
    BotState.AWAITING_SUBMISSION: Phase.MAIN,
    BotState.CONFIRM_SUBMISSION: Phase.MAIN,
}

INITIAL_STATE = BotState.REG_NAME

class DraftError(ValueError):
    pass

# field -> (type, required)
FieldSpec = Dict[str, Tuple[type, bool]]

_DATE: FieldSpec = {"year": (int, True), "month": (int, True), "day": (int, True)}

DRAFT_FIELDS: Dict[BotState, FieldSpec] = {
    BotState.REG_NAME: {},
    BotState.REG_USERNAME: {"real_name": (str, True)},
    BotState.REG_PASSWORD: {"real_name": (str, True), "custom_username": (str, True)},
    BotState.HOME: {},
    BotState.AWAITING_YEAR: {},
    BotState.AWAITING_MONTH: {"year": (int, True)},
    BotState.AWAITING_DATE: {"year": (int, True), "month": (int, True)},
    # hours/subject/photo_id survive here when a submission is sent back for editing
    BotState.AWAITING_SUBMISSION: {
        **_DATE,
        "hours": (float, False),
        "subject": (str, False),
        "photo_id": (str, False),
    },
    BotState.CONFIRM_SUBMISSION: {
        **_DATE,
        "hours": (float, True),
        "subject": (str, True),
        "photo_id": (str, False),
    },
}

def _coerce(name: str, kind: type, value: Any) -> Any:
    if isinstance(value, bool):
        raise DraftError(f"{name} must be {kind.__name__}, got bool")
    if kind is float and isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, kind):
        raise DraftError(f"{name} must be {kind.__name__}, got {type(value).__name__}")
    return value

def validate_draft(state: BotState, draft: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return ``draft`` normalized for ``state`` or raise DraftError.

    ``None`` values are treated as absent and dropped.
    """
    fields = DRAFT_FIELDS[state]
    given = {k: v for k, v in (draft or {}).items() if v is not None}

    unknown = sorted(set(given) - set(fields))
    if unknown:
        raise DraftError(f"{state.value} draft does not allow: {', '.join(unknown)}")

    out: Dict[str, Any] = {}
    for name, (kind, required) in fields.items():
        if name not in given:
            if required:
                raise DraftError(f"{state.value} draft is missing {name}")
            continue
        out[name] = _coerce(name, kind, given[name])
    return out

def is_valid_draft(state: BotState, draft: Optional[Dict[str, Any]]) -> bool:
    try:
        validate_draft(state, draft)
    except DraftError:
        return False
    return True
