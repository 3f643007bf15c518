"""
Pytest config.

Local imports like `import factchat` rely on the repo root being on sys.path when the
project is not installed. We pin that here so tests can always import the local package.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, AsyncIterator, List, Sequence, Tuple

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


class ScriptedTransport:
    """
    Replays one scripted response per `astream` call, in call order.

    A script item is either a ModelChunk (yielded) or an exception (raised at that point).
    Every request is recorded in `requests`; `events` logs ("open"/"closed", run_name)
    as each stream starts and finishes.
    """

    def __init__(self, *responses: Sequence[Any]) -> None:
        self.responses: List[Sequence[Any]] = list(responses)
        self.requests: List[Any] = []
        self.events: List[Tuple[str, str]] = []

    @property
    def closed(self) -> List[str]:
        return [name for kind, name in self.events if kind == "closed"]

    async def astream(self, request: Any) -> AsyncIterator[Any]:
        self.requests.append(request)
        self.events.append(("open", request.run_name))
        script = self.responses.pop(0) if self.responses else []
        try:
            for item in script:
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self.events.append(("closed", request.run_name))


@pytest.fixture
def scripted():
    return ScriptedTransport


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """
    Point prompt files at an empty temp dir (built-in defaults apply), clear the
    read-once fact-check prompt cache, and make sure no test talks to a real provider
    or tracing backend by accident.
    """
    monkeypatch.setenv("PROMPTS_DIR", str(tmp_path / "prompts"))
    for name in (
        "SYSTEM_PROMPT_FILE",
        "FACT_CHECK_PROMPT_FILE",
        "LLM_MOCK",
        "LANGSMITH_TRACING",
        "LANGCHAIN_TRACING_V2",
        "LANGSMITH_TRACE_EXCLUDE",
    ):
        monkeypatch.delenv(name, raising=False)

    from factchat.chat.prompts import fact_check_prompt_source

    fact_check_prompt_source.cache_clear()
    yield
    fact_check_prompt_source.cache_clear()
