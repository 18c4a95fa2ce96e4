from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(slots=True, frozen=True)
class ChannelBinding:
    profile_id: int
    discord_user_id: int
    vocab_channel_id: int
    reading_channel_id: int
    guild_id: int | None = None

    def kind_of(self, channel_id: int) -> str | None:
        if int(channel_id) == self.vocab_channel_id:
            return "vocab"
        if int(channel_id) == self.reading_channel_id:
            return "reading"
        return None


@dataclass(slots=True, frozen=True)
class VocabAction:
    term: str
    source: str | None = None
    page: str | None = None


@dataclass(slots=True, frozen=True)
class ReadingAction:
    note: str
    source: str | None = None


Action = Union[VocabAction, ReadingAction]


@dataclass(slots=True, frozen=True)
class RecordActions:
    actions: tuple[Action, ...]
    log_message: str = ""


@dataclass(slots=True, frozen=True)
class ReviewRequest:
    pass


@dataclass(slots=True, frozen=True)
class PlainReply:
    text: str


@dataclass(slots=True, frozen=True)
class Unrecognized:
    reason: str
    raw: str = ""


Intent = Union[RecordActions, ReviewRequest, PlainReply, Unrecognized]


@dataclass(slots=True)
class RecordOutcome:
    fragments: list[str] = field(default_factory=list)
    failures: int = 0

    @property
    def reply(self) -> str:
        return "\n\n".join(f for f in self.fragments if f)

    @property
    def all_ok(self) -> bool:
        return self.failures == 0 and bool(self.fragments)
