"""Rendering surface boundary.

The layout adapter never owns the graph it lays out. It talks to a
rendering surface that can:
- enumerate the nodes, edges and parent groupings of a selection
- compute a layout size hint for a node (label metrics live here)
- apply computed positions to the nodes of a selection

NetworkXSurface implements the boundary on top of a networkx DiGraph, with
positions stored as a ``position`` node attribute. Compound parents
(clusters) are never positioned directly; their position is the center of
their children's bounding box, as interactive canvases treat them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Hashable, Iterable, Mapping, Optional, Sequence

import networkx as nx

from dotlayout.layout.registry import get_layout
from dotlayout.models.graph_elements import GraphNode, Selection, SizeHint
from dotlayout.models.layout_metadata import BoundingBox, NodePosition

logger = logging.getLogger(__name__)

PositionFn = Callable[[GraphNode], NodePosition]

DEFAULT_LAYOUT = "dot"


class RenderingSurface(ABC):
    """Abstract base class for surfaces that display a laid out graph."""

    @abstractmethod
    def selection(self) -> Selection:
        """All elements currently on the surface."""
        ...

    @abstractmethod
    def layout_dimensions(self, node: GraphNode, options: Dict[str, Any]) -> SizeHint:
        """Size the layout should reserve for ``node``.

        Args:
            node: Node being serialized
            options: Layout options (e.g. ``include_labels``)

        Returns:
            SizeHint in surface pixels
        """
        ...

    @abstractmethod
    def layout_positions(
        self,
        nodes: Sequence[GraphNode],
        position_fn: PositionFn,
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Move every node in ``nodes`` to ``position_fn(node)``."""
        ...

    def layout(self, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Any:
        """Create a named layout bound to this surface.

        Args:
            options: Layout options; ``name`` picks the layout (default "dot")
                and ``eles`` the selection (default: everything on the surface)
            **kwargs: Merged over ``options``

        Returns:
            The layout instance; call ``run()`` on it

        Raises:
            ValueError: If the layout name is not registered
        """
        opts = dict(options or {})
        opts.update(kwargs)
        name = opts.pop("name", DEFAULT_LAYOUT)
        if opts.get("eles") is None:
            opts["eles"] = self.selection()
        opts["surface"] = self
        return get_layout(name)(opts)


class NetworkXSurface(RenderingSurface):
    """Rendering surface backed by a networkx DiGraph.

    Node attributes used:
        parent: Enclosing cluster node id
        label: Display text, sized with fixed per-character metrics
        width/height: Explicit size in pixels (wins over label metrics)
        position: Set by layouts (NodePosition)

    Graph keys need not be strings: selections carry ``str(key)`` and the
    surface maps those ids back to the graph's own keys.

    Example:
        graph = nx.DiGraph()
        graph.add_node("A", label="start")
        graph.add_node("B", label="end")
        graph.add_edge("A", "B")

        surface = NetworkXSurface(graph)
        await surface.layout().run()
        surface.position("A")
    """

    def __init__(
        self,
        graph: Optional[nx.DiGraph] = None,
        char_width: float = 7.0,
        line_height: float = 14.0,
        padding: float = 10.0,
        min_size: float = 30.0,
    ):
        """Initialize the surface.

        Args:
            graph: Graph to display (empty DiGraph if None); MultiDiGraph keeps parallel edges
            char_width: Estimated label width per character in pixels
            line_height: Estimated label line height in pixels
            padding: Space around the label on every side
            min_size: Smallest width/height of any node
        """
        self.graph = graph if graph is not None else nx.DiGraph()
        self.char_width = char_width
        self.line_height = line_height
        self.padding = padding
        self.min_size = min_size
        # Selection ids are str(graph key); maps them back to the graph's own keys
        self._keys: Dict[str, Hashable] = {}

    @classmethod
    def from_elements(cls, elements: Any, **kwargs: Any) -> "NetworkXSurface":
        """Build a surface from cytoscape-style element JSON.

        The graph is a MultiDiGraph keyed by edge id, so parallel edges
        between the same two nodes stay separate.
        """
        selection = Selection.from_elements(elements)
        graph = nx.MultiDiGraph()
        for node in selection.nodes:
            graph.add_node(node.id, parent=node.parent, label=node.label, **node.data)
        for edge in selection.edges:
            graph.add_edge(edge.source, edge.target, key=edge.id, id=edge.id, label=edge.label)
        return cls(graph, **kwargs)

    def _graph_key(self, node_id: Hashable) -> Optional[Hashable]:
        """Graph node for a selection id, or None if it is not on the surface."""
        if node_id in self.graph:
            return node_id
        key = self._keys.get(node_id)
        if key is None or key not in self.graph:
            self._keys = {str(n): n for n in self.graph.nodes}
            key = self._keys.get(node_id)
        return key

    def selection(self) -> Selection:
        self._keys = {str(n): n for n in self.graph.nodes}
        return Selection.from_networkx(self.graph)

    def layout_dimensions(self, node: GraphNode, options: Dict[str, Any]) -> SizeHint:
        key = self._graph_key(node.id)
        attrs = self.graph.nodes[key] if key is not None else {}
        if attrs.get("width") is not None and attrs.get("height") is not None:
            return SizeHint(width=attrs["width"], height=attrs["height"])

        if not options.get("include_labels", True):
            return SizeHint(width=self.min_size, height=self.min_size)

        label = node.label if node.label is not None else attrs.get("label")
        lines = str(label).split("\n") if label else [""]
        width = max(len(line) for line in lines) * self.char_width + 2 * self.padding
        height = len(lines) * self.line_height + 2 * self.padding
        return SizeHint(
            width=max(width, self.min_size),
            height=max(height, self.min_size),
        )

    def layout_positions(
        self,
        nodes: Sequence[GraphNode],
        position_fn: PositionFn,
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Compute everything first so a failing position_fn leaves the graph untouched
        positions = {node.id: position_fn(node) for node in nodes}

        keys = {node_id: self._graph_key(node_id) for node_id in positions}
        unknown = [node_id for node_id, key in keys.items() if key is None]
        if unknown:
            raise KeyError(f"Nodes not on this surface: {unknown}")

        for node_id, position in positions.items():
            self.graph.nodes[keys[node_id]]["position"] = position
        logger.debug(f"Applied {len(positions)} positions")

    def _children(self, key: Hashable) -> Iterable[Hashable]:
        name = str(key)
        return [
            n for n, attrs in self.graph.nodes(data=True)
            if attrs.get("parent") is not None and str(attrs["parent"]) == name
        ]

    def position(self, node_id: Hashable) -> Optional[NodePosition]:
        """Position of a node; clusters report the center of their children.

        Args:
            node_id: Graph key or its string form (as used in selections)

        Returns:
            NodePosition, or None if neither the node nor its children are positioned

        Raises:
            KeyError: If the node is not on this surface
        """
        key = self._graph_key(node_id)
        if key is None:
            raise KeyError(node_id)

        position = self.graph.nodes[key].get("position")
        if position is not None:
            return position

        child_positions = {}
        for child in self._children(key):
            child_position = self.position(child)
            if child_position is not None:
                child_positions[str(child)] = child_position
        if not child_positions:
            return None

        x, y = BoundingBox.from_positions(child_positions).center
        return NodePosition(x=x, y=y)

    def positions(self) -> Dict[str, NodePosition]:
        """Positions of every node that has one (clusters derived), keyed by selection id."""
        result = {}
        for key in self.graph.nodes:
            position = self.position(key)
            if position is not None:
                result[str(key)] = position
        return result
