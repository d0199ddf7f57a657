from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from states import BotState

@dataclass(frozen=True)
class Reply:
    chat_id: Union[int, str]
    text: str
    reply_markup: Optional[Dict[str, Any]] = None
    photo: Optional[str] = None

@dataclass(frozen=True)
class CreateUser:
    pass

@dataclass(frozen=True)
class CompleteRegistration:
    real_name: str
    username: str
    password: str = field(repr=False)
    message_id: Optional[int] = None

@dataclass(frozen=True)
class FinalizeSubmission:
    draft: Dict[str, Any]

@dataclass(frozen=True)
class ShowProfile:
    line_chart: bool = True

@dataclass(frozen=True)
class ShowLeaderboard:
    limit: int = 10

@dataclass(frozen=True)
class ShowLineChart:
    days: int = 7

@dataclass(frozen=True)
class ShowRegistry:
    pass

Effect = Union[
    CreateUser,
    CompleteRegistration,
    FinalizeSubmission,
    ShowProfile,
    ShowLeaderboard,
    ShowLineChart,
    ShowRegistry,
]

@dataclass
class Transition:
    # None leaves the persisted state and draft untouched
    state: Optional[BotState]
    draft: Dict[str, Any] = field(default_factory=dict)
    replies: List[Reply] = field(default_factory=list)
    effect: Optional[Effect] = None

    @classmethod
    def stay(cls, *replies: Reply, effect: Optional[Effect] = None) -> "Transition":
        return cls(state=None, draft={}, replies=list(replies), effect=effect)

    @property
    def moves(self) -> bool:
        return self.state is not None
