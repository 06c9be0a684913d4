from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from core.schema import FieldSpec, input_schema
from core.tool_errors import DuplicateToolError

if TYPE_CHECKING:
    from core.context import ToolContext
    from core.results import ToolResult

Handler = Callable[[Dict[str, Any], "ToolContext"], Awaitable["ToolResult"]]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    fields: Tuple[FieldSpec, ...]
    handler: Handler

    def input_schema(self) -> Dict[str, Any]:
        return input_schema(self.fields)


class ToolRegistry:
    """
    Name -> ToolDefinition mapping, filled once at startup.

    Registration order is preserved for capability advertisement. Nothing mutates
    the registry after startup, so lookups need no locking.
    """

    def __init__(self, definitions: Iterable[ToolDefinition] = ()) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: ToolDefinition) -> None:
        if definition.name in self._tools:
            raise DuplicateToolError(definition.name)
        self._tools[definition.name] = definition

    def lookup(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def list(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
