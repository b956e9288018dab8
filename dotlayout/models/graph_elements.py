"""Graph elements handed to a layout cycle.

A Selection is the set of nodes and edges laid out in one cycle. Nodes may
name a parent, which turns that parent into a cluster. Size hints are not
part of the selection; the rendering surface computes them because it owns
the label metrics.

Input formats:
    - Direct construction from GraphNode/GraphEdge lists
    - networkx.DiGraph with ``parent``/``label`` node attributes
    - Cytoscape-style element JSON as served by the analysis backend:
      ``{"group": "nodes", "data": {"id": ..., "parent": ..., "str": ...}}``
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import networkx as nx
from pydantic import BaseModel, Field, PrivateAttr, model_validator

logger = logging.getLogger(__name__)

# Label keys accepted in element JSON, in priority order
LABEL_KEYS = ("label", "str")


class SizeHint(BaseModel):
    """Layout-only size of a node in display pixels."""

    width: float = Field(..., gt=0, allow_inf_nan=False, description="Width in pixels")
    height: float = Field(..., gt=0, allow_inf_nan=False, description="Height in pixels")


class GraphNode(BaseModel):
    """A node of the source graph.

    Attributes:
        id: Unique node identifier
        parent: Identifier of the enclosing cluster node, if any
        label: Display text (used for size estimation only)
        data: Remaining element data, carried through untouched
    """

    id: str = Field(..., description="Unique node identifier")
    parent: Optional[str] = Field(default=None, description="Enclosing cluster id")
    label: Optional[str] = Field(default=None, description="Display text")
    data: Dict[str, Any] = Field(default_factory=dict, description="Extra element data")


class GraphEdge(BaseModel):
    """A directed edge between two nodes of the selection."""

    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    id: Optional[str] = Field(default=None, description="Edge identifier")
    label: Optional[str] = Field(default=None, description="Display text")


class Selection(BaseModel):
    """Nodes and edges to lay out in one cycle.

    Node order is preserved and drives statement order in the layout
    description. A parent that is not part of the selection is ignored,
    so its children are laid out as top-level nodes.
    """

    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    _by_id: Dict[str, GraphNode] = PrivateAttr(default_factory=dict)
    _children: Dict[str, List[GraphNode]] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def validate_references(self) -> "Selection":
        """Check id uniqueness, edge endpoints and parent cycles."""
        by_id: Dict[str, GraphNode] = {}
        for node in self.nodes:
            if node.id in by_id:
                raise ValueError(f"Duplicate node id: {node.id!r}")
            by_id[node.id] = node

        for edge in self.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in by_id:
                    raise ValueError(
                        f"Edge {edge.source!r} -> {edge.target!r} references "
                        f"unknown node {endpoint!r}"
                    )

        for node in self.nodes:
            seen = {node.id}
            parent = node.parent
            while parent is not None and parent in by_id:
                if parent in seen:
                    raise ValueError(f"Parent cycle through node {node.id!r}")
                seen.add(parent)
                parent = by_id[parent].parent

        return self

    def model_post_init(self, __context) -> None:
        """Index nodes and cluster membership."""
        self._by_id = {node.id: node for node in self.nodes}
        self._children = {}
        for node in self.nodes:
            parent = self.effective_parent(node.id)
            if parent is not None:
                self._children.setdefault(parent, []).append(node)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def node(self, node_id: str) -> GraphNode:
        """Get a node by id (KeyError if absent)."""
        return self._by_id[node_id]

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def effective_parent(self, node_id: str) -> Optional[str]:
        """Parent id if the parent is part of this selection, else None."""
        parent = self._by_id[node_id].parent
        return parent if parent in self._by_id else None

    def is_cluster(self, node_id: str) -> bool:
        return node_id in self._children

    def parents(self) -> List[GraphNode]:
        """Cluster nodes (nodes with at least one child), in selection order."""
        return [node for node in self.nodes if node.id in self._children]

    def children(self, node_id: str) -> List[GraphNode]:
        return list(self._children.get(node_id, []))

    def top_level(self) -> List[GraphNode]:
        return [node for node in self.nodes if self.effective_parent(node.id) is None]

    def point_nodes(self) -> List[GraphNode]:
        """Nodes placed by the engine as shapes (everything except clusters)."""
        return [node for node in self.nodes if node.id not in self._children]

    def first_point_descendant(self, node_id: str) -> Optional[GraphNode]:
        """First point-node inside a cluster, searching depth first."""
        for child in self._children.get(node_id, []):
            if child.id not in self._children:
                return child
            found = self.first_point_descendant(child.id)
            if found is not None:
                return found
        return None

    @property
    def has_clusters(self) -> bool:
        return bool(self._children)

    def subset(self, node_ids: Iterable[str]) -> "Selection":
        """Selection restricted to the given nodes and the edges between them."""
        wanted = set(node_ids)
        return Selection(
            nodes=[node for node in self.nodes if node.id in wanted],
            edges=[
                edge for edge in self.edges
                if edge.source in wanted and edge.target in wanted
            ],
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_networkx(cls, graph: nx.DiGraph) -> "Selection":
        """Build a selection from a DiGraph.

        Node attributes ``parent`` and ``label`` are picked up; all other
        attributes land in ``GraphNode.data``.
        """
        nodes = []
        for node_id, attrs in graph.nodes(data=True):
            extra = {k: v for k, v in attrs.items() if k not in ("parent", "label")}
            parent = attrs.get("parent")
            label = attrs.get("label")
            nodes.append(
                GraphNode(
                    id=str(node_id),
                    parent=str(parent) if parent is not None else None,
                    label=str(label) if label is not None else None,
                    data=extra,
                )
            )

        edges = [
            GraphEdge(
                source=str(source),
                target=str(target),
                id=str(attrs["id"]) if attrs.get("id") is not None else None,
                label=str(attrs["label"]) if attrs.get("label") is not None else None,
            )
            for source, target, attrs in graph.edges(data=True)
        ]
        return cls(nodes=nodes, edges=edges)

    @classmethod
    def from_elements(
        cls, elements: Union[Iterable[Mapping[str, Any]], Mapping[str, Any]]
    ) -> "Selection":
        """Build a selection from cytoscape-style element JSON.

        Accepts a flat list of ``{"group": ..., "data": ...}`` elements or a
        ``{"nodes": [...], "edges": [...]}`` mapping. Elements without a
        ``group`` are treated as edges when their data has ``source`` and
        ``target``. Parents may appear after their children.

        Raises:
            ValueError: If an element has no data id (nodes) or endpoints (edges)
        """
        if isinstance(elements, Mapping):
            flat = [dict(e, group="nodes") for e in elements.get("nodes", [])]
            flat += [dict(e, group="edges") for e in elements.get("edges", [])]
        else:
            flat = list(elements)

        nodes: List[GraphNode] = []
        edges: List[GraphEdge] = []
        for element in flat:
            data = dict(element.get("data", {}))
            group = element.get("group")
            if group is None:
                group = "edges" if "source" in data and "target" in data else "nodes"

            label = next(
                (str(data[k]) for k in LABEL_KEYS if data.get(k) not in (None, "")),
                None,
            )

            if group == "edges":
                if "source" not in data or "target" not in data:
                    raise ValueError(f"Edge element without endpoints: {data!r}")
                edges.append(
                    GraphEdge(
                        source=str(data.pop("source")),
                        target=str(data.pop("target")),
                        id=str(data["id"]) if data.get("id") is not None else None,
                        label=label,
                    )
                )
            elif group == "nodes":
                if data.get("id") is None:
                    raise ValueError(f"Node element without id: {data!r}")
                node_id = str(data.pop("id"))
                parent = data.pop("parent", None)
                for key in LABEL_KEYS:
                    data.pop(key, None)
                nodes.append(
                    GraphNode(
                        id=node_id,
                        parent=str(parent) if parent is not None else None,
                        label=label,
                        data=data,
                    )
                )
            else:
                raise ValueError(f"Unknown element group: {group!r}")

        logger.debug(f"Parsed {len(nodes)} nodes and {len(edges)} edges from elements")
        return cls(nodes=nodes, edges=edges)
