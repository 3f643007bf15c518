"""
Streaming model transport.

This module is the only place that talks to the hosted model. Callers describe a request
with domain turns (see `factchat.chat.types`) and receive `ModelChunk`s in arrival order:
each chunk carries text and/or capability invocations.

Key behaviors:
- Turns are converted to LangChain messages; assistant turns become the provider's own
  model turns (AIMessage), synthetic tool bookkeeping becomes AIMessage.tool_calls + ToolMessage.
- Tools are bound only when the request declares them.
- Tool-call chunks are gathered until the call is complete, then emitted as one chunk.
- Setup failures and mid-stream exceptions are raised as `GenerationError`.

Usage:
    transport = get_transport_from_env()
    async for chunk in transport.astream(request):
        if chunk.invocations:
            ...
        else:
            print(chunk.text, end="", flush=True)
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, List, Optional, Protocol, Sequence

from factchat.chat.tools import CapabilityDeclaration
from factchat.chat.types import (
    AssistantTurn,
    CapabilityInvocation,
    ToolInvocationTurn,
    ToolResultTurn,
    Turn,
    UserTurn,
)
from factchat.llm.client import GenerationError, _classify_error, _env_bool, _load_config, get_chat_model
from factchat.llm.tracing import build_invoke_config

logger = logging.getLogger(__name__)

MOCK_TEXT = "LLM_MOCK enabled: no external call was made."


@dataclass(frozen=True)
class ModelChunk:
    """Single unit of streamed model output."""

    text: str = ""
    invocations: List[CapabilityInvocation] = field(default_factory=list)


@dataclass(frozen=True)
class GenerationRequest:
    system_instruction: str
    turns: Sequence[Turn]
    tools: Sequence[CapabilityDeclaration] = ()
    run_name: str = "chat"


class ModelTransport(Protocol):
    def astream(self, request: GenerationRequest) -> AsyncIterator[ModelChunk]: ...


def _to_messages(request: GenerationRequest) -> List[Any]:
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

    messages: List[Any] = [SystemMessage(content=request.system_instruction)]
    for turn in request.turns:
        if isinstance(turn, UserTurn):
            messages.append(HumanMessage(content=turn.text))
        elif isinstance(turn, AssistantTurn):
            messages.append(AIMessage(content=turn.text))
        elif isinstance(turn, ToolInvocationTurn):
            inv = turn.invocation
            messages.append(
                AIMessage(
                    content="",
                    tool_calls=[{"name": inv.name, "args": dict(inv.args), "id": inv.id, "type": "tool_call"}],
                )
            )
        elif isinstance(turn, ToolResultTurn):
            inv = turn.invocation
            messages.append(ToolMessage(content=turn.result, tool_call_id=inv.id, name=inv.name))
        else:
            raise TypeError(f"unsupported turn: {type(turn).__name__}")
    return messages


def _chunk_text(chunk: Any) -> str:
    content = getattr(chunk, "content", None)
    if isinstance(content, str):
        return content
    text = ""
    if isinstance(content, list):
        # Anthropic (and some Gemini versions) return a list of content blocks
        for block in content:
            if isinstance(block, str):
                text += block
            elif isinstance(block, dict) and block.get("type") == "text":
                text += str(block.get("text", ""))
            elif hasattr(block, "text"):
                text += str(block.text)
    return text


def _invocations(gathered: Any) -> List[CapabilityInvocation]:
    out: List[CapabilityInvocation] = []
    for tc in getattr(gathered, "tool_calls", None) or []:
        name = str(tc.get("name") or "")
        args = tc.get("args") if isinstance(tc.get("args"), dict) else {}
        call_id = str(tc.get("id") or "") or f"call_{uuid.uuid4().hex[:12]}"
        out.append(CapabilityInvocation(name=name, args=args, id=call_id))
    # Calls whose arguments failed to parse are malformed; keep their names so callers can log them.
    for tc in getattr(gathered, "invalid_tool_calls", None) or []:
        out.append(CapabilityInvocation(name=str(tc.get("name") or ""), args={}, id=str(tc.get("id") or "")))
    return out


class LangChainTransport:
    """Streams from a LangChain chat model (ChatVertexAI / ChatAnthropic)."""

    def __init__(self, llm_factory: Optional[Callable[[], Any]] = None) -> None:
        self._llm_factory = llm_factory or get_chat_model

    async def astream(self, request: GenerationRequest) -> AsyncIterator[ModelChunk]:
        llm = self._llm_factory()
        model = _load_config().model
        cfg = build_invoke_config(kind="chat", run_name=request.run_name, metadata={"model": model})

        pending = None
        try:
            runnable = llm.bind_tools([t.to_function_schema() for t in request.tools]) if request.tools else llm
            async for chunk in runnable.astream(_to_messages(request), config=cfg or None):
                text = _chunk_text(chunk)
                if getattr(chunk, "tool_call_chunks", None):
                    pending = chunk if pending is None else pending + chunk
                    if text:
                        yield ModelChunk(text=text)
                    continue
                if pending is not None:
                    yield ModelChunk(invocations=_invocations(pending))
                    pending = None
                if text:
                    yield ModelChunk(text=text)
            if pending is not None:
                yield ModelChunk(invocations=_invocations(pending))
        except (GenerationError, asyncio.CancelledError):
            raise
        except Exception as e:
            code = _classify_error(e, model=model)
            logger.warning("Model stream failed (%s, run=%s): %s", code, request.run_name, str(e)[:200])
            raise GenerationError(code, str(e)) from e


class MockTransport:
    """Deterministic stub used when LLM_MOCK=1."""

    def __init__(self, text: str = MOCK_TEXT) -> None:
        self.text = text

    async def astream(self, request: GenerationRequest) -> AsyncIterator[ModelChunk]:
        yield ModelChunk(text=self.text)


def get_transport_from_env() -> ModelTransport:
    if _env_bool("LLM_MOCK", False):
        return MockTransport()
    return LangChainTransport()
