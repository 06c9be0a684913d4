from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Union

from mcp.types import TextContent

from core.tool_errors import ToolError


@dataclass(frozen=True)
class TextBlock:
    text: str
    type: str = "text"


@dataclass(frozen=True)
class ToolResult:
    """
    Uniform envelope for every tool outcome.

    Exactly one text block per result; failures are distinguished by ``is_error``
    locally and only by their text on the wire.
    """

    content: List[TextBlock] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def ok(cls, text: str) -> "ToolResult":
        return cls(content=[TextBlock(text=text)])

    @classmethod
    def fail(cls, error: Union[ToolError, str]) -> "ToolResult":
        text = error.describe() if isinstance(error, ToolError) else f"execution_error: {error}"
        return cls(content=[TextBlock(text=text)], is_error=True)

    @property
    def text(self) -> str:
        return self.content[0].text if self.content else ""

    def to_content(self) -> List[TextContent]:
        return [TextContent(type="text", text=block.text) for block in self.content]


@dataclass(frozen=True)
class InvocationRequest:
    id: Any
    tool_name: str
    raw_params: Any = None


@dataclass(frozen=True)
class InvocationResponse:
    id: Any
    result: ToolResult
