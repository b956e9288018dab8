"""Typed failures of a layout cycle.

Every failure of a cycle is one of these; none are retried because the same
description would reproduce the same failure.
"""

from typing import Iterable, Optional


class LayoutError(Exception):
    """Base class for layout cycle failures."""


class SerializationError(LayoutError):
    """Raised when an element cannot be represented in the layout description."""

    def __init__(self, element_id: Optional[str], reason: str):
        self.element_id = element_id
        self.reason = reason
        super().__init__(f"Cannot serialize element {element_id!r}: {reason}")


class EngineError(LayoutError):
    """Raised when the layout engine rejects a description or fails to run."""

    def __init__(
        self,
        engine: str,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.engine = engine
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip()
        if len(detail) > 240:
            detail = detail[:240] + "..."
        text = f"{engine} layout failed: {message}"
        if detail:
            text += f" ({detail})"
        super().__init__(text)


class ConsistencyError(LayoutError):
    """Raised when declared nodes have no matching shape in the rendered output."""

    def __init__(self, missing: Iterable[str], message: Optional[str] = None):
        self.missing = sorted(missing)
        if message is None:
            message = f"No rendered shape for node(s): {', '.join(self.missing)}"
        super().__init__(message)
