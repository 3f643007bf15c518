"""The single capability the chat model may call: `fact_check`."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from factchat.chat.types import CapabilityInvocation

FACT_CHECK = "fact_check"


@dataclass(frozen=True)
class CapabilityParameter:
    name: str
    description: str
    type: str = "string"
    required: bool = True


@dataclass(frozen=True)
class CapabilityDeclaration:
    name: str
    description: str
    parameters: List[CapabilityParameter] = field(default_factory=list)

    def to_function_schema(self) -> Dict[str, Any]:
        """OpenAI-style function schema (accepted by LangChain `bind_tools` for every provider)."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {p.name: {"type": p.type, "description": p.description} for p in self.parameters},
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }


FACT_CHECK_TOOL = CapabilityDeclaration(
    name=FACT_CHECK,
    description="Fact-check claims and statements for accuracy using specialized fact-checking analysis",
    parameters=[CapabilityParameter(name="query", description="The claim or statement to fact-check")],
)


def fact_check_query(inv: CapabilityInvocation) -> Optional[str]:
    """
    Return the query of an actionable `fact_check` invocation.

    Unknown capability names and missing/blank/non-string queries return None.
    """
    if inv.name != FACT_CHECK:
        return None
    q = (inv.args or {}).get("query")
    if not isinstance(q, str) or not q.strip():
        return None
    return q


def first_actionable(invocations: Iterable[CapabilityInvocation]) -> Optional[CapabilityInvocation]:
    for inv in invocations:
        if fact_check_query(inv) is not None:
            return inv
    return None
