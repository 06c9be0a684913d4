"""Every tool the server exposes, in advertisement order."""

from core.registry import ToolRegistry
from tools import (
    database,
    env_file,
    files,
    flutter,
    git,
    laravel,
    mail,
    network,
    node,
    system,
    templates,
    version,
)

TOOL_MODULES = (
    system,
    flutter,
    laravel,
    node,
    git,
    version,
    network,
    database,
    mail,
    templates,
    files,
    env_file,
)


def build_registry() -> ToolRegistry:
    registry = ToolRegistry()
    for module in TOOL_MODULES:
        for definition in module.TOOLS:
            registry.register(definition)
    return registry
