"""Named layout registry.

Layouts register themselves under a name so that rendering surfaces can
create them from an options mapping, e.g. ``surface.layout({"name": "dot"})``.
The ``dot`` layout registers itself when ``dotlayout.layout.adapter`` is
imported.
"""

import logging
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)

# Layout name -> factory taking the layout options
LAYOUTS: Dict[str, Callable[..., Any]] = {}


def register_layout(name: str, factory: Callable[..., Any]) -> None:
    """Register a layout factory under ``name`` (replacing any previous one)."""
    if name in LAYOUTS and LAYOUTS[name] is not factory:
        logger.warning(f"Replacing registered layout '{name}'")
    LAYOUTS[name] = factory


def get_layout(name: str) -> Callable[..., Any]:
    """Get a layout factory by name.

    Raises:
        ValueError: If no layout is registered under ``name``
    """
    if name not in LAYOUTS:
        raise ValueError(f"Unknown layout: {name}. Available: {sorted(LAYOUTS)}")
    return LAYOUTS[name]
