"""Layout engines registry.

Available engines:
- graphviz: Graphviz dot via subprocess (hierarchical, cluster-aware)
"""

from dotlayout.layout.engines.base import LayoutEngine, RenderResult
from dotlayout.layout.engines.graphviz import GraphvizEngine

# Engine registry
ENGINES = {
    "graphviz": GraphvizEngine,
}


def get_engine(name: str) -> type:
    """Get layout engine class by name.

    Args:
        name: Engine name ('graphviz')

    Returns:
        Layout engine class

    Raises:
        ValueError: If engine not found
    """
    if name not in ENGINES:
        raise ValueError(f"Unknown layout engine: {name}. Available: {list(ENGINES.keys())}")
    return ENGINES[name]


__all__ = [
    "LayoutEngine",
    "RenderResult",
    "GraphvizEngine",
    "ENGINES",
    "get_engine",
]
