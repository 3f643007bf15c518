"""Streaming chat with a hidden fact-check tool.

This package provides:
- the conversation orchestrator (primary stream, fact-check round, continuation stream)
- the fact-check sub-call
- chat message/turn types and the `fact_check` tool declaration
"""
