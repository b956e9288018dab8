"""Positions produced by a layout cycle.

This module provides schemas for the output of one layout cycle:
- Node positions (x, y display coordinates)
- Bounding box of the positioned nodes
- The cycle result handed back to callers

Layout results are transient: they describe the positions applied to the
rendering surface by one cycle and are never persisted.

Coordinate convention:
    Display coordinates, origin top-left, y grows downwards. After
    normalization the topmost node sits at ``vertical_offset``.
"""

import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from dotlayout.config.settings import LayoutSettings

logger = logging.getLogger(__name__)


class NodePosition(BaseModel):
    """Position of a single node in display space.

    Attributes:
        x: Horizontal coordinate
        y: Vertical coordinate
    """

    model_config = {"frozen": True}

    x: float = Field(..., description="Horizontal coordinate")
    y: float = Field(..., description="Vertical coordinate")

    def to_list(self) -> List[float]:
        return [self.x, self.y]


class BoundingBox(BaseModel):
    """Bounding box of a set of node positions.

    Attributes:
        min_x: Minimum x coordinate
        max_x: Maximum x coordinate
        min_y: Minimum y coordinate
        max_y: Maximum y coordinate
    """

    min_x: float = Field(..., description="Minimum x coordinate")
    max_x: float = Field(..., description="Maximum x coordinate")
    min_y: float = Field(..., description="Minimum y coordinate")
    max_y: float = Field(..., description="Maximum y coordinate")

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Tuple[float, float]:
        return (
            (self.min_x + self.max_x) / 2,
            (self.min_y + self.max_y) / 2
        )

    @classmethod
    def from_positions(cls, positions: Dict[str, NodePosition]) -> "BoundingBox":
        """Compute bounding box from node positions.

        Args:
            positions: Dictionary of node_id -> NodePosition

        Returns:
            BoundingBox encompassing all positions

        Raises:
            ValueError: If positions is empty
        """
        if not positions:
            raise ValueError("Cannot compute bounding box from empty positions")

        x_coords = [pos.x for pos in positions.values()]
        y_coords = [pos.y for pos in positions.values()]

        return cls(
            min_x=min(x_coords),
            max_x=max(x_coords),
            min_y=min(y_coords),
            max_y=max(y_coords)
        )


class LayoutResult(BaseModel):
    """Outcome of one successful layout cycle.

    Attributes:
        algorithm: Name of the layout that produced the positions
        engine: Name of the engine that rendered the description
        positions: Final display positions keyed by node id
        min_y: Minimum scaled engine y used for vertical normalization
        settings: Tunables in effect for the cycle
        bounding_box: Bounding box of ``positions`` (auto-computed, None when empty)
    """

    algorithm: str = Field(default="dot", description="Layout name")
    engine: str = Field(..., description="Engine that rendered the description")
    positions: Dict[str, NodePosition] = Field(
        ..., description="Node positions keyed by node ID"
    )
    min_y: float = Field(..., description="Minimum y before normalization")
    settings: LayoutSettings = Field(default_factory=LayoutSettings)
    bounding_box: Optional[BoundingBox] = Field(
        default=None, description="Overall bounding box (auto-computed if not provided)"
    )

    def model_post_init(self, __context) -> None:
        """Compute bounding box if not provided."""
        if self.bounding_box is None and self.positions:
            object.__setattr__(
                self, "bounding_box", BoundingBox.from_positions(self.positions)
            )
