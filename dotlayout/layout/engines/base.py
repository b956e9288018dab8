"""Base layout engine protocol.

Defines the interface that all layout engines must implement, and the
result type an engine returns instead of raising.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from dotlayout.layout.errors import EngineError


@dataclass(frozen=True)
class RenderResult:
    """Outcome of one engine invocation.

    Exactly one of ``output`` (the rendered SVG) and ``error`` is set.
    """
    output: Optional[str] = None
    error: Optional[EngineError] = None

    def __post_init__(self):
        if (self.output is None) == (self.error is None):
            raise ValueError("RenderResult needs exactly one of output or error")

    @classmethod
    def success(cls, output: str) -> "RenderResult":
        return cls(output=output)

    @classmethod
    def failure(cls, error: EngineError) -> "RenderResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Return the rendered output or raise the carried EngineError."""
        if self.error is not None:
            raise self.error
        return self.output


class LayoutEngine(ABC):
    """Abstract base class for layout engines.

    Layout engines turn a textual layout description into a rendered
    vector document carrying one positioned shape per declared node.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine name (e.g., 'graphviz')."""
        ...

    @abstractmethod
    async def render(self, description: str) -> RenderResult:
        """Render a layout description to SVG.

        Implementations report failures through ``RenderResult.failure``
        rather than raising.

        Args:
            description: DOT source

        Returns:
            RenderResult with the SVG text or an EngineError
        """
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if engine is available (dependencies installed).

        Returns:
            True if engine can be used
        """
        ...
