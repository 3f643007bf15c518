"""
Conversation orchestrator.

Turns a chat history into one logical text stream, with at most one hidden
fact-check round:

1. Stream the primary answer with the `fact_check` tool declared.
2. Forward text chunks as they arrive.
3. On the first actionable `fact_check` invocation: close the primary stream,
   run the fact-check sub-call, then stream a continuation request (history + the
   invocation + its result, no tools) and forward its text as the rest of the answer.

States: STREAMING_PRIMARY -> FACT_CHECKING -> STREAMING_CONTINUATION -> DONE,
or STREAMING_PRIMARY -> DONE. A failed fact-check ends the turn (DONE) with no
continuation and nothing further emitted.

Errors from the primary or continuation stream propagate as `GenerationError`;
text already emitted stands.
"""

from __future__ import annotations

import contextlib
import inspect
import logging
from enum import Enum
from typing import Any, AsyncGenerator, AsyncIterator, Callable, List, Optional, Sequence

from factchat.chat.fact_check import FactChecker
from factchat.chat.prompts import PromptSource, system_prompt_source
from factchat.chat.tools import FACT_CHECK_TOOL, fact_check_query, first_actionable
from factchat.chat.types import (
    CapabilityInvocation,
    ChatMessage,
    ToolInvocationTurn,
    ToolResultTurn,
    Turn,
    history_to_turns,
)
from factchat.llm.client_streaming import GenerationRequest, ModelChunk, ModelTransport, get_transport_from_env

logger = logging.getLogger(__name__)


class ChatState(str, Enum):
    STREAMING_PRIMARY = "streaming_primary"
    FACT_CHECKING = "fact_checking"
    STREAMING_CONTINUATION = "streaming_continuation"
    DONE = "done"


def _enter(state: ChatState) -> None:
    logger.debug("chat state -> %s", state.value)


async def _aclose(stream: AsyncIterator[ModelChunk]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


class ConversationOrchestrator:
    def __init__(
        self,
        transport: ModelTransport,
        *,
        system_prompt: Optional[PromptSource] = None,
        fact_checker: Optional[FactChecker] = None,
    ) -> None:
        self.transport = transport
        # Resolved once per instance; a new orchestrator picks up prompt file edits.
        self.system_prompt = (system_prompt or system_prompt_source()).get()
        self.fact_checker = fact_checker or FactChecker(transport)

    async def astream_chat(self, history: Sequence[ChatMessage]) -> AsyncGenerator[str, None]:
        """
        Yield the answer's text fragments in order.

        Raises GenerationError if the primary or continuation stream fails.
        """
        turns = history_to_turns(list(history))
        _enter(ChatState.STREAMING_PRIMARY)
        primary = self.transport.astream(
            GenerationRequest(
                system_instruction=self.system_prompt,
                turns=turns,
                tools=[FACT_CHECK_TOOL],
                run_name="chat.primary",
            )
        )
        inv: Optional[CapabilityInvocation] = None
        try:
            async for chunk in primary:
                if chunk.invocations:
                    inv = first_actionable(chunk.invocations)
                    if inv is None:
                        names = [i.name or "<unnamed>" for i in chunk.invocations]
                        logger.debug("Ignoring non-actionable invocations: %s", names)
                        continue
                    if len(chunk.invocations) > 1:
                        dropped = len(chunk.invocations) - 1
                        logger.debug("Only the first fact_check invocation runs; %d dropped", dropped)
                    break

                if chunk.text:
                    yield chunk.text
        finally:
            await _aclose(primary)

        if inv is not None:
            query = fact_check_query(inv) or ""
            logger.info("fact_check invoked: %s", query[:200])
            _enter(ChatState.FACT_CHECKING)
            result, err = await self.fact_checker.run(query)
            if err:
                logger.warning("fact_check abandoned (%s); ending turn without continuation", err)
                _enter(ChatState.DONE)
                return
            follow_up: List[Turn] = turns + [
                ToolInvocationTurn(invocation=inv),
                ToolResultTurn(invocation=inv, result=result or ""),
            ]
            _enter(ChatState.STREAMING_CONTINUATION)
            continuation = self.transport.astream(
                GenerationRequest(
                    system_instruction=self.system_prompt,
                    turns=follow_up,
                    run_name="chat.continuation",
                )
            )
            try:
                async for chunk in continuation:
                    if chunk.text:
                        yield chunk.text
            finally:
                await _aclose(continuation)

        _enter(ChatState.DONE)

    async def stream_chat(self, history: Sequence[ChatMessage], on_chunk: Callable[[str], Any]) -> None:
        """
        Push each text fragment to `on_chunk` in order.

        `on_chunk` may return an awaitable; it is awaited before the next fragment.
        """
        async with contextlib.aclosing(self.astream_chat(history)) as stream:
            async for text in stream:
                res = on_chunk(text)
                if inspect.isawaitable(res):
                    await res


def build_orchestrator(transport: Optional[ModelTransport] = None) -> ConversationOrchestrator:
    """Orchestrator wired from env (fresh chat prompt, process-wide fact-check prompt)."""
    return ConversationOrchestrator(transport or get_transport_from_env())
