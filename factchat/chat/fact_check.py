"""
Fact-check sub-call.

A single-shot streaming request with its own system prompt and no tools. The streamed
text is accumulated and returned whole; the caller never sees the stream.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from factchat.chat.prompts import PromptSource, fact_check_prompt_source
from factchat.chat.types import UserTurn
from factchat.llm.client import GenerationError
from factchat.llm.client_streaming import GenerationRequest, ModelTransport

logger = logging.getLogger(__name__)

EMPTY_RESULT = "Fact-check completed but no response generated"
UNAVAILABLE_PREFIX = "Fact-check unavailable: "


class FactChecker:
    def __init__(self, transport: ModelTransport, prompt: Optional[PromptSource] = None) -> None:
        self.transport = transport
        self.prompt = prompt or fact_check_prompt_source()

    async def run(self, query: str) -> Tuple[Optional[str], Optional[str]]:
        """
        Run the sub-call.

        Returns: (text, err_code). Exactly one is non-None. An empty successful
        stream yields the fixed EMPTY_RESULT text, never "".
        """
        request = GenerationRequest(
            system_instruction=self.prompt.get(),
            turns=[UserTurn(text=query)],
            run_name="chat.fact_check",
        )
        parts = []
        try:
            async for chunk in self.transport.astream(request):
                if chunk.text:
                    parts.append(chunk.text)
        except GenerationError as e:
            logger.warning("Fact-check failed (%s) for query=%r", e.code, query[:120])
            return None, e.code
        except Exception as e:
            logger.exception("Fact-check raised unhandled exception")
            return None, f"fact_check_exception:{type(e).__name__}:{str(e)[:200]}"
        return "".join(parts) or EMPTY_RESULT, None

    async def fact_check(self, query: str) -> str:
        """Answer `query`; never raises. Failures become a readable placeholder."""
        text, err = await self.run(query)
        if err:
            return UNAVAILABLE_PREFIX + err
        return text or EMPTY_RESULT
