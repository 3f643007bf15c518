"""
Optional LangSmith tracing for the chat model calls.

Each model call is one run: `chat.primary`, `chat.fact_check`, `chat.continuation`.

Env:
  LANGSMITH_TRACING / LANGCHAIN_TRACING_V2  enable (also needs LANGSMITH_API_KEY or LANGCHAIN_API_KEY)
  LANGSMITH_PROJECT                          project name (default "factchat")
  LANGSMITH_TAGS                             comma-separated tags
  LANGSMITH_RUN_NAME_PREFIX                  prepended to every run name
  LANGSMITH_TRACE_EXCLUDE                    comma-separated run names; "chat.*" matches by prefix
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from factchat.llm.client import _env_bool

logger = logging.getLogger(__name__)


def _env_list(name: str) -> List[str]:
    return [x.strip() for x in (os.getenv(name) or "").split(",") if x.strip()]


def _api_key() -> Optional[str]:
    return (os.getenv("LANGSMITH_API_KEY") or os.getenv("LANGCHAIN_API_KEY") or "").strip() or None


def should_trace_run_name(name: str) -> bool:
    n = (name or "").strip()
    for pat in _env_list("LANGSMITH_TRACE_EXCLUDE"):
        if n and (n.startswith(pat[:-1]) if pat.endswith("*") else n == pat):
            return False
    return True


def tracing_enabled() -> bool:
    if not (_env_bool("LANGSMITH_TRACING") or _env_bool("LANGCHAIN_TRACING_V2")):
        return False
    if _api_key() is None:
        logger.warning("LangSmith tracing requested without LANGSMITH_API_KEY; tracing disabled")
        return False
    return True


def build_langsmith_callbacks() -> List[Any]:
    """LangChainTracer for the configured project, or [] if langsmith can't be loaded."""
    try:
        from langchain_core.tracers.langchain import LangChainTracer  # type: ignore[import-not-found]
        from langsmith import Client  # type: ignore[import-not-found]
    except ImportError as e:
        logger.warning("LangSmith tracing enabled but dependencies unavailable: %s", e)
        return []

    project = (os.getenv("LANGSMITH_PROJECT") or "").strip() or "factchat"
    return [LangChainTracer(project_name=project, client=Client(api_key=_api_key()))]


def build_invoke_config(*, kind: str, run_name: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    RunnableConfig for one model call.

    Returns {} when tracing is off or `run_name` is excluded, so callers can pass `cfg or None`.
    """
    if not tracing_enabled() or not should_trace_run_name(run_name):
        return {}

    cfg: Dict[str, Any] = {
        "metadata": {**(metadata or {}), "kind": kind},
        "run_name": (os.getenv("LANGSMITH_RUN_NAME_PREFIX") or "").strip() + run_name,
    }
    callbacks = build_langsmith_callbacks()
    if callbacks:
        cfg["callbacks"] = callbacks
    tags = _env_list("LANGSMITH_TAGS")
    if tags:
        cfg["tags"] = tags
    return cfg
