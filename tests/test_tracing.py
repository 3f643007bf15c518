from __future__ import annotations

from factchat.llm import tracing


def test_tracing_disabled_by_default() -> None:
    assert tracing.tracing_enabled() is False
    assert tracing.build_invoke_config(kind="chat", run_name="chat.primary") == {}


def test_tracing_requires_api_key(monkeypatch) -> None:
    monkeypatch.setenv("LANGSMITH_TRACING", "true")
    monkeypatch.delenv("LANGSMITH_API_KEY", raising=False)
    monkeypatch.delenv("LANGCHAIN_API_KEY", raising=False)

    assert tracing.tracing_enabled() is False


def test_exclude_patterns(monkeypatch) -> None:
    monkeypatch.setenv("LANGSMITH_TRACE_EXCLUDE", "chat.fact_check, debug.*")

    assert tracing.should_trace_run_name("chat.primary") is True
    assert tracing.should_trace_run_name("chat.fact_check") is False
    assert tracing.should_trace_run_name("debug.anything") is False


def test_invoke_config_when_enabled(monkeypatch) -> None:
    monkeypatch.setenv("LANGSMITH_TRACING", "1")
    monkeypatch.setenv("LANGSMITH_API_KEY", "ls-test")
    monkeypatch.setenv("LANGSMITH_RUN_NAME_PREFIX", "dev:")
    monkeypatch.setenv("LANGSMITH_TAGS", "a, b")
    monkeypatch.setattr(tracing, "build_langsmith_callbacks", lambda: [])

    cfg = tracing.build_invoke_config(kind="chat", run_name="chat.primary", metadata={"model": "m"})

    assert cfg["run_name"] == "dev:chat.primary"
    assert cfg["metadata"] == {"model": "m", "kind": "chat"}
    assert cfg["tags"] == ["a", "b"]
    assert "callbacks" not in cfg


def test_excluded_run_gets_no_config(monkeypatch) -> None:
    monkeypatch.setenv("LANGSMITH_TRACING", "1")
    monkeypatch.setenv("LANGSMITH_API_KEY", "ls-test")
    monkeypatch.setenv("LANGSMITH_TRACE_EXCLUDE", "chat.*")

    assert tracing.build_invoke_config(kind="chat", run_name="chat.continuation") == {}


def test_legacy_langchain_env_enables_tracing(monkeypatch) -> None:
    monkeypatch.setenv("LANGCHAIN_TRACING_V2", "yes")
    monkeypatch.delenv("LANGSMITH_API_KEY", raising=False)
    monkeypatch.setenv("LANGCHAIN_API_KEY", "lc-test")

    assert tracing.tracing_enabled() is True
