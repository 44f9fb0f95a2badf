from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LogKind(str, Enum):
    EVENT = "event"
    BATTLE = "battle"
    SYSTEM = "system"
    RUMOR = "rumor"
    QUEST = "quest"
    MARKET = "market"


@dataclass
class LogEntry:
    message: str
    kind: str = LogKind.EVENT.value
    id: int = 0


def entry(message: str, kind: LogKind | str = LogKind.EVENT) -> LogEntry:
    value = kind.value if isinstance(kind, LogKind) else str(kind)
    return LogEntry(message=str(message), kind=value)
