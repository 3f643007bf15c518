from __future__ import annotations

import pytest

from factchat.chat.fact_check import EMPTY_RESULT, FactChecker
from factchat.chat.prompts import DEFAULT_FACT_CHECK_PROMPT, ReadOncePrompt
from factchat.chat.types import UserTurn
from factchat.llm.client import GenerationError
from factchat.llm.client_streaming import ModelChunk


@pytest.mark.asyncio
async def test_fact_check_concatenates_stream(scripted) -> None:
    transport = scripted([ModelChunk(text="Sources "), ModelChunk(text="confirm "), ModelChunk(text="1850.")])
    checker = FactChecker(transport)

    assert await checker.fact_check("event X date") == "Sources confirm 1850."


@pytest.mark.asyncio
async def test_fact_check_request_shape(scripted) -> None:
    transport = scripted([ModelChunk(text="ok")])
    checker = FactChecker(transport)

    await checker.fact_check("is the sky blue?")

    (req,) = transport.requests
    assert req.system_instruction == DEFAULT_FACT_CHECK_PROMPT
    assert list(req.turns) == [UserTurn(text="is the sky blue?")]
    assert list(req.tools) == []
    assert req.run_name == "chat.fact_check"


@pytest.mark.asyncio
async def test_empty_stream_yields_placeholder(scripted) -> None:
    checker = FactChecker(scripted([ModelChunk(text="")]))

    text, err = await checker.run("q")
    assert err is None
    assert text == EMPTY_RESULT


@pytest.mark.asyncio
async def test_transport_failure_becomes_placeholder(scripted) -> None:
    checker = FactChecker(scripted([GenerationError("timeout")]))

    assert await checker.fact_check("q") == "Fact-check unavailable: timeout"


@pytest.mark.asyncio
async def test_run_reports_error_code(scripted) -> None:
    checker = FactChecker(scripted([ModelChunk(text="half"), GenerationError("rate_limited")]))

    text, err = await checker.run("q")
    assert text is None
    assert err == "rate_limited"


@pytest.mark.asyncio
async def test_unexpected_exception_never_escapes(scripted) -> None:
    checker = FactChecker(scripted([RuntimeError("boom")]))

    out = await checker.fact_check("q")
    assert out.startswith("Fact-check unavailable: fact_check_exception:RuntimeError")


@pytest.mark.asyncio
async def test_fact_check_prompt_is_read_once(scripted, tmp_path) -> None:
    path = tmp_path / "fc.txt"
    path.write_text("  verify carefully \n", encoding="utf-8")
    transport = scripted([ModelChunk(text="a")], [ModelChunk(text="b")])
    checker = FactChecker(transport, ReadOncePrompt(path, "default"))

    await checker.fact_check("one")
    path.write_text("changed", encoding="utf-8")
    await checker.fact_check("two")

    assert [r.system_instruction for r in transport.requests] == ["verify carefully", "verify carefully"]
