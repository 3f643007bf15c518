"""
Provider-agnostic chat model setup.

Goals:
- Provide a single, uniform way to build a streaming chat model for any provider.
- Classify provider failures into stable error codes.
- Surface setup and transport failures as `GenerationError` (callers decide what to recover).

Env (core):
- LLM_PROVIDER: which provider to use (default: "vertexai")
  - vertexai: Gemini via Vertex AI using `langchain_google_vertexai`
  - anthropic: Claude via Anthropic API using `langchain_anthropic`
- LLM_MOCK=1: use a deterministic stub transport (no external calls)
- LLM_TIMEOUT_SECONDS: HTTP timeout for LLM requests (default: 180, range: 5-300)

Vertex requirements:
- GOOGLE_CLOUD_PROJECT (required)
- GOOGLE_CLOUD_LOCATION (required)
- Application Default Credentials (ADC) must be available (e.g. Workload Identity, or GOOGLE_APPLICATION_CREDENTIALS)

Anthropic requirements:
- ANTHROPIC_API_KEY (required)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional, Tuple


class GenerationError(Exception):
    """A model call could not be established or failed mid-stream."""

    def __init__(self, code: str, message: Optional[str] = None) -> None:
        self.code = code
        super().__init__(message or code)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def _provider() -> str:
    return (os.getenv("LLM_PROVIDER") or "").strip().lower() or "vertexai"


@dataclass(frozen=True)
class LLMConfig:
    model: str
    temperature: float
    max_output_tokens: int
    timeout: int = 120


def _load_config() -> LLMConfig:
    model = (os.getenv("LLM_MODEL") or "").strip() or "gemini-2.5-flash"
    try:
        temperature = float((os.getenv("LLM_TEMPERATURE") or "").strip() or "0.2")
    except Exception:
        temperature = 0.2
    try:
        max_output_tokens = int((os.getenv("LLM_MAX_OUTPUT_TOKENS") or "").strip() or "4096")
    except Exception:
        max_output_tokens = 4096
    try:
        timeout = int((os.getenv("LLM_TIMEOUT_SECONDS") or "").strip() or "180")
    except Exception:
        timeout = 180

    # Keep bounds sane
    temperature = max(0.0, min(temperature, 1.0))
    max_output_tokens = max(64, min(max_output_tokens, 8192))
    timeout = max(5, min(timeout, 300))

    return LLMConfig(
        model=model,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        timeout=timeout,
    )


def _vertex_project_location_required() -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Return (project, location, err_code). Exactly one of (project/location) may be None only if err_code is set.
    """
    project = (os.getenv("GOOGLE_CLOUD_PROJECT") or "").strip() or None
    location = (os.getenv("GOOGLE_CLOUD_LOCATION") or "").strip() or None
    if not project:
        return None, None, "missing_gcp_project"
    if not location:
        return None, None, "missing_gcp_location"
    return project, location, None


def _classify_error(e: Exception, *, model: str) -> str:
    msg = str(e or "").replace("\n", " ").strip()
    up = msg.upper()

    # Timeouts first; HTTP status codes before generic keywords to avoid false matches
    if isinstance(e, TimeoutError):
        return "timeout"
    if "408" in msg:
        return "timeout"
    if "504" in msg:
        return "gateway_timeout"
    if "DEADLINE_EXCEEDED" in up or "DEADLINE EXCEEDED" in up:
        return "deadline_exceeded"
    if "TIMEOUT" in up or "TIMED OUT" in up:
        return "timeout"

    # Common patterns (work across providers)
    if "PERMISSION_DENIED" in up or "403" in msg:
        return "permission_denied"
    if "UNAUTHENTICATED" in up or "401" in msg:
        return "unauthenticated"
    if "404" in msg or "NOT FOUND" in up:
        return f"model_not_found:{model}"
    if "RATE" in up and "LIMIT" in up:
        return "rate_limited"
    if "MAX_TOKENS" in up or "MAX TOKENS" in up or "CONTEXT LENGTH" in up:
        return "max_tokens_truncated"

    # Anthropic-specific patterns
    if "429" in msg or "OVERLOADED" in up:
        return "rate_limited"
    if "API_KEY" in up and ("INVALID" in up or "MISSING" in up):
        return "unauthenticated"

    return f"llm_error:{type(e).__name__}"


def _get_llm_instance(provider: str, cfg: LLMConfig) -> Tuple[Any, Optional[str]]:
    """
    Factory function that returns the appropriate LangChain chat model.

    Returns: (llm_instance, error_code). Exactly one is None.
    """
    if provider in ("vertexai", "vertex", "gcp_vertexai"):
        project, location, err = _vertex_project_location_required()
        if err:
            return None, err

        # Preflight ADC so we return stable error codes
        try:
            import google.auth  # type: ignore[import-not-found]
        except Exception:
            return None, "adc_import_failed"
        try:
            google.auth.default(scopes=["https://www.googleapis.com/auth/cloud-platform"])
        except Exception:
            return None, "missing_adc_credentials"

        try:
            from langchain_google_vertexai import ChatVertexAI  # type: ignore[import-not-found]
        except Exception:
            return None, "sdk_import_failed:langchain_google_vertexai"

        llm = ChatVertexAI(
            model=cfg.model,
            temperature=cfg.temperature,
            max_output_tokens=cfg.max_output_tokens,
            project=str(project),
            location=str(location),
            timeout=cfg.timeout,
        )
        return llm, None

    elif provider == "anthropic":
        api_key = os.getenv("ANTHROPIC_API_KEY", "").strip()
        if not api_key:
            return None, "missing_api_key"

        try:
            from langchain_anthropic import ChatAnthropic  # type: ignore[import-not-found]
        except Exception:
            return None, "sdk_import_failed:langchain_anthropic"

        llm = ChatAnthropic(
            model=cfg.model,
            temperature=cfg.temperature,
            max_tokens=cfg.max_output_tokens,
            anthropic_api_key=api_key,
            timeout=cfg.timeout,
        )
        return llm, None

    else:
        return None, "provider_not_configured"


def get_chat_model() -> Any:
    """
    Build the configured chat model.

    Raises GenerationError with the setup error code when the provider cannot be configured.
    """
    provider = _provider()
    cfg = _load_config()
    llm, err = _get_llm_instance(provider, cfg)
    if err:
        raise GenerationError(err, f"LLM initialization failed: {err}")
    return llm
