from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Action(str, Enum):
    """Action tags the classifier is prompted to emit."""
    GET_EVENTS = "getEvents"
    MAKE_EVENT = "makeEvent"
    UPDATE_EVENT = "updtEvent"
    DELETE_EVENT = "delEvents"
    MESSAGE = "message"
    NONE = "None"

    @classmethod
    def parse(cls, tag: str) -> Optional["Action"]:
        """Map a raw tag to an Action, or None if the tag is not recognized."""
        try:
            return cls(tag)
        except ValueError:
            return _ACTION_ALIASES.get(tag)


# Spellings the model sometimes produces instead of the prompted tags
_ACTION_ALIASES = {
    "updateEvent": Action.UPDATE_EVENT,
    "deleteEvent": Action.DELETE_EVENT,
    "delEvent": Action.DELETE_EVENT,
}


class _LLMModel(BaseModel):
    """LLM output: nulls become empty strings."""

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class SubIntent(_LLMModel):
    action: str = ""
    event_title: str = ""
    event_date: str = ""
    event_time: str = ""
    event_description: str = ""
    event_location: str = ""

    @property
    def kind(self) -> Optional[Action]:
        return Action.parse(self.action)


class Intent(_LLMModel):
    action: str = ""
    message: str = ""
    event_id: str = ""
    event_title: str = ""
    event_date: str = ""
    event_time: str = ""
    event_description: str = ""
    event_location: str = ""
    # For complex requests the model can ask for several steps
    actions: list[SubIntent] = Field(default_factory=list)

    @field_validator("actions", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return [] if value in (None, "") else value

    @property
    def kind(self) -> Optional[Action]:
        return Action.parse(self.action)

    def plan(self) -> "Plan":
        """Resolve single vs. batch once: a non-empty actions list wins."""
        if self.actions:
            return BatchPlan(message=self.message, steps=list(self.actions))
        return SinglePlan(intent=self)


@dataclass
class SinglePlan:
    intent: Intent


@dataclass
class BatchPlan:
    message: str
    steps: list[SubIntent]


Plan = Union[SinglePlan, BatchPlan]


class Interaction(BaseModel):
    """One persisted exchange with a user."""
    model_config = ConfigDict(frozen=True)

    user_id: int
    timestamp: datetime
    user_message: str
    ai_response: str
    action: str = ""

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class CalendarEvent(BaseModel):
    id: str
    title: str = ""
    description: str = ""
    start: datetime
    end: datetime
    location: str = ""
