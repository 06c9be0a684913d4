"""Error types shared by the dispatcher and tool handlers.

Every failure a tool can report falls into one of three kinds: ``not_found``,
``validation_error`` or ``execution_error``. The ``message`` is always a non-empty,
human readable string; ``cause`` is kept for logging only.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ToolError(Exception):
    kind = "execution_error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        safe_message = message.strip() if isinstance(message, str) else ""
        if not safe_message:
            safe_message = "Unknown tool error"
        super().__init__(safe_message)
        self.message = safe_message
        self.code = code
        self.details = details or {}
        self.cause = cause

    def describe(self) -> str:
        """Text shown to the caller, e.g. ``validation_error: missing_field:name``."""
        return f"{self.kind}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "kind": self.kind,
            "code": self.code,
            "details": self.details,
        }

    def to_log_dict(self) -> Dict[str, Any]:
        payload = self.to_dict()
        if self.cause is not None:
            payload["cause"] = repr(self.cause)
        return payload

    def __str__(self) -> str:
        return f"{self.message} (code={self.code})" if self.code else self.message


class NotFoundError(ToolError):
    kind = "not_found"


class ValidationError(ToolError):
    """Raised by the schema validator; ``message`` equals ``code``."""

    kind = "validation_error"

    def __init__(self, code: str, field: str, **kwargs: Any) -> None:
        super().__init__(f"{code}:{field}", code=code, **kwargs)
        self.field = field


class ExecutionError(ToolError):
    kind = "execution_error"

    def __init__(
        self,
        message: str,
        *,
        exit_code: Optional[int] = None,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.exit_code = exit_code
        self.status_code = status_code

    def describe(self) -> str:
        text = super().describe()
        if self.exit_code is not None:
            text += f" (exit code {self.exit_code})"
        elif self.status_code is not None:
            text += f" (status {self.status_code})"
        return text


class DuplicateToolError(ToolError):
    def __init__(self, name: str) -> None:
        super().__init__(f"duplicate_name:{name}", code="duplicate_name")
        self.name = name


def precondition_failed(code: str, target: str) -> ExecutionError:
    """Named precondition failure such as ``file_not_found: /tmp/x``."""
    return ExecutionError(f"{code}: {target}", code=code, details={"target": target})
