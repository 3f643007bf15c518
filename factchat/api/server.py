"""
Chat HTTP server.

POST /api/chat with `{"messages": [{"role": "user" | "assistant", "content": str}, ...]}`
streams the assistant's answer as a plain-text chunked body. Once streaming has begun the
status code can no longer change, so failures append a visible error sentence instead.
"""

from __future__ import annotations

import contextlib
import logging
import os
import time
from typing import Any, AsyncGenerator, Dict, List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from factchat.chat.orchestrator import build_orchestrator
from factchat.chat.types import ChatMessage, ChatRequest

logger = logging.getLogger(__name__)

ERROR_MARKER = "\n\nError: Failed to generate response"

app = FastAPI(title="factchat")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming HTTP requests."""
    start_time = time.time()
    logger.debug("%s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        process_time = time.time() - start_time
        logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
        raise


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


async def _chat_body(messages: List[ChatMessage]) -> AsyncGenerator[str, None]:
    try:
        orchestrator = build_orchestrator()
        async with contextlib.aclosing(orchestrator.astream_chat(messages)) as stream:
            async for text in stream:
                yield text
    except Exception:
        logger.exception("Chat API error")
        yield ERROR_MARKER


@app.api_route("/api/chat", methods=["GET", "PUT", "PATCH", "DELETE", "POST"])
async def chat(request: Request):
    """Streaming chat endpoint (chunked text/plain)."""
    if request.method != "POST":
        return JSONResponse(status_code=405, content={"error": "Method not allowed"}, headers={"Allow": "POST"})

    try:
        raw = await request.json()
    except Exception:
        raw = None
    messages = raw.get("messages") if isinstance(raw, dict) else None
    if not isinstance(messages, list):
        return JSONResponse(status_code=400, content={"error": "Messages array is required"})

    try:
        req = ChatRequest(messages=messages)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        where = ".".join(str(x) for x in first.get("loc", ()))
        detail = f"Invalid message: {where} {first.get('msg', '')}".strip()
        return JSONResponse(status_code=400, content={"error": detail})

    return StreamingResponse(
        _chat_body(req.messages),
        media_type="text/plain; charset=utf-8",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    import uvicorn

    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    logger.info("Starting chat server on %s:%d (log_level=%s)", host, port, log_level)
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level)
