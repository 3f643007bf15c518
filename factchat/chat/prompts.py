"""
System prompt sources.

Two loading strategies:
- ReloadingPrompt: re-reads its file on every `get()` (the chat prompt, picked up per orchestrator).
- ReadOncePrompt: reads its file on first `get()` and keeps it for the process lifetime (the fact-check prompt).

Paths come from env:
- PROMPTS_DIR (default: "config", relative to the working directory)
- SYSTEM_PROMPT_FILE (default: $PROMPTS_DIR/system-prompt.txt)
- FACT_CHECK_PROMPT_FILE (default: $PROMPTS_DIR/fact-check-system-prompt.txt)
"""

from __future__ import annotations

import logging
import os
import threading
from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant with access to fact-checking capabilities."
DEFAULT_FACT_CHECK_PROMPT = (
    "You are a fact-checking assistant. Verify claims and provide accurate information with sources."
)


class PromptSource(Protocol):
    def get(self) -> str: ...


def _prompts_dir() -> Path:
    return Path((os.getenv("PROMPTS_DIR") or "").strip() or "config")


def system_prompt_path() -> Path:
    raw = (os.getenv("SYSTEM_PROMPT_FILE") or "").strip()
    return Path(raw) if raw else _prompts_dir() / "system-prompt.txt"


def fact_check_prompt_path() -> Path:
    raw = (os.getenv("FACT_CHECK_PROMPT_FILE") or "").strip()
    return Path(raw) if raw else _prompts_dir() / "fact-check-system-prompt.txt"


def _read_prompt(path: Path, default: str) -> str:
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as e:
        logger.error("Failed to read prompt from %s: %s", path, e)
        return default


class ReloadingPrompt:
    """Reads the file on every call."""

    def __init__(self, path: Path, default: str) -> None:
        self.path = path
        self.default = default

    def get(self) -> str:
        return _read_prompt(self.path, self.default)


class ReadOncePrompt:
    """Reads the file once; later calls return the cached text."""

    def __init__(self, path: Path, default: str) -> None:
        self.path = path
        self.default = default
        self._text: Optional[str] = None
        self._lock = threading.Lock()

    def get(self) -> str:
        if self._text is None:
            with self._lock:
                if self._text is None:
                    self._text = _read_prompt(self.path, self.default)
        return self._text


def system_prompt_source() -> ReloadingPrompt:
    return ReloadingPrompt(system_prompt_path(), DEFAULT_SYSTEM_PROMPT)


@lru_cache(maxsize=1)
def fact_check_prompt_source() -> ReadOncePrompt:
    """Process-wide fact-check prompt (read once)."""
    return ReadOncePrompt(fact_check_prompt_path(), DEFAULT_FACT_CHECK_PROMPT)
