from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Literal, Mapping, Union

from pydantic import BaseModel, Field

ChatRole = Literal["user", "assistant"]


class ChatMessage(BaseModel):
    role: ChatRole
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)


@dataclass(frozen=True)
class CapabilityInvocation:
    """A request by the model to run a declared capability."""

    name: str
    args: Mapping[str, Any] = field(default_factory=dict)
    id: str = ""


@dataclass(frozen=True)
class UserTurn:
    text: str


@dataclass(frozen=True)
class AssistantTurn:
    text: str


@dataclass(frozen=True)
class ToolInvocationTurn:
    """Synthetic turn: the model asked for `invocation` (never shown to the user)."""

    invocation: CapabilityInvocation


@dataclass(frozen=True)
class ToolResultTurn:
    """Synthetic turn: the result text for `invocation` (never shown to the user)."""

    invocation: CapabilityInvocation
    result: str


Turn = Union[UserTurn, AssistantTurn, ToolInvocationTurn, ToolResultTurn]


def history_to_turns(history: List[ChatMessage]) -> List[Turn]:
    turns: List[Turn] = []
    for m in history:
        if m.role == "assistant":
            turns.append(AssistantTurn(text=m.content))
        else:
            turns.append(UserTurn(text=m.content))
    return turns
