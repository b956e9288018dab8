"""Graph Serializer: selection to DOT text.

Produces the layout description submitted to the Graphviz engine:

    digraph G {
        nodesep="0.35";
        compound=true;
        subgraph "cluster_P" {
            "A"[label="A",fixedsize=true,width=0.6,height=0.3];
            "B"[label="B",fixedsize=true,width=0.6,height=0.3];
        }
        "A" -> "B";
    }

Clusters (nodes with children) become subgraph blocks and are never
declared as point-nodes. Size hints come from the rendering surface and
are divided by ``unit_divisor``, because DOT sizes are inches while
surface sizes are pixels. ``fixedsize=true`` stops the engine from growing
nodes to fit the label text.
"""

import logging
import math
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from dotlayout.config.settings import LayoutSettings, get_settings
from dotlayout.layout.errors import SerializationError
from dotlayout.models.graph_elements import GraphEdge, GraphNode, Selection, SizeHint

logger = logging.getLogger(__name__)

# Subgraph names must start with "cluster" for dot to draw them as boxes
SUBGRAPH_PREFIX = "cluster_"

SizeHintLike = Union[SizeHint, Mapping[str, float], Tuple[float, float]]
SizeHintFn = Callable[[GraphNode, Dict[str, Any]], SizeHintLike]


@dataclass(frozen=True)
class LayoutDescription:
    """DOT text plus what it declares.

    Attributes:
        text: The DOT source
        node_ids: Point-node ids in declaration order
        clusters: Cluster id -> ids of its direct children
    """
    text: str
    node_ids: Tuple[str, ...]
    clusters: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.text


def quote_id(value: str) -> str:
    """Quote an identifier for DOT.

    Double quotes are escaped. Backslashes and control characters are
    rejected: DOT gives them escape meaning inside labels and the SVG
    title would not read back as the original id.

    Raises:
        SerializationError: If the identifier cannot be represented
    """
    if not isinstance(value, str) or not value:
        raise SerializationError(value, "identifier must be a non-empty string")
    if "\\" in value:
        raise SerializationError(value, "backslashes are not supported in identifiers")
    if any(unicodedata.category(ch) == "Cc" for ch in value):
        raise SerializationError(value, "control characters are not supported in identifiers")
    return '"' + value.replace('"', '\\"') + '"'


def format_number(value: float) -> str:
    """Short fixed-point rendering (0.3 rather than 0.30000000000000004).

    DOT numerals have no exponent form, so 1e-05 is written as 0.00001.
    """
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def cluster_name(node_id: str) -> str:
    """Subgraph identifier for a cluster node."""
    return quote_id(SUBGRAPH_PREFIX + node_id)


def _coerce_size_hint(node: GraphNode, hint: SizeHintLike) -> SizeHint:
    try:
        if isinstance(hint, SizeHint):
            return hint
        if isinstance(hint, Mapping):
            # Cytoscape's layoutDimensions returns {w, h}
            width = hint.get("width", hint.get("w"))
            height = hint.get("height", hint.get("h"))
            return SizeHint(width=width, height=height)
        width, height = hint
        return SizeHint(width=width, height=height)
    except (ValidationError, TypeError, ValueError) as e:
        raise SerializationError(node.id, f"invalid size hint {hint!r}") from e


def _node_statement(node: GraphNode, hint: SizeHint, settings: LayoutSettings) -> str:
    name = quote_id(node.id)
    width = hint.width / settings.unit_divisor
    height = hint.height / settings.unit_divisor
    if not (math.isfinite(width) and math.isfinite(height)):
        raise SerializationError(node.id, "size hint overflows engine units")
    if format_number(width) == "0" or format_number(height) == "0":
        raise SerializationError(node.id, "size hint too small for engine units")

    attrs = [f"label={name}"]
    if settings.node_shape:
        attrs.append(f"shape={settings.node_shape}")
    attrs += [
        "fixedsize=true",
        f"width={format_number(width)}",
        f"height={format_number(height)}",
    ]
    return f"{name}[{','.join(attrs)}];"


def _edge_statement(selection: Selection, edge: GraphEdge) -> str:
    source, target = edge.source, edge.target
    attrs = []

    # Edges can only connect point-nodes; clip at the cluster border instead
    if selection.is_cluster(source):
        anchor = selection.first_point_descendant(source)
        if anchor is None:
            raise SerializationError(source, "cluster has no point-node to anchor an edge")
        attrs.append(f"ltail={cluster_name(source)}")
        source = anchor.id
    if selection.is_cluster(target):
        anchor = selection.first_point_descendant(target)
        if anchor is None:
            raise SerializationError(target, "cluster has no point-node to anchor an edge")
        attrs.append(f"lhead={cluster_name(target)}")
        target = anchor.id

    statement = f"{quote_id(source)} -> {quote_id(target)}"
    if attrs:
        statement += f"[{','.join(attrs)}]"
    return statement + ";"


def build_description(
    selection: Selection,
    size_hint: SizeHintFn,
    options: Optional[Dict[str, Any]] = None,
    settings: Optional[LayoutSettings] = None,
) -> LayoutDescription:
    """Serialize a selection into a layout description.

    Args:
        selection: Nodes and edges to lay out
        size_hint: Callable (node, options) -> size in pixels, supplied by the surface
        options: Passed through to ``size_hint`` untouched
        settings: Tunables (process defaults if None)

    Returns:
        LayoutDescription with the DOT text and the declared point-nodes

    Raises:
        SerializationError: If an identifier or size hint cannot be represented
    """
    settings = settings or get_settings()
    options = dict(options or {})

    lines: List[str] = [
        "digraph G {",
        f'\tnodesep="{format_number(settings.node_separation)}";',
        "\tcompound=true;",
    ]
    declared: List[str] = []
    clusters: Dict[str, Tuple[str, ...]] = {}

    def add_node(node: GraphNode, depth: int) -> None:
        hint = _coerce_size_hint(node, size_hint(node, options))
        lines.append("\t" * depth + _node_statement(node, hint, settings))
        declared.append(node.id)

    def add_cluster(node: GraphNode, depth: int) -> None:
        indent = "\t" * depth
        children = selection.children(node.id)
        lines.append(f"{indent}subgraph {cluster_name(node.id)} {{")
        for child in children:
            if selection.is_cluster(child.id):
                add_cluster(child, depth + 1)
            else:
                add_node(child, depth + 1)
        lines.append(f"{indent}}}")
        clusters[node.id] = tuple(child.id for child in children)

    for node in selection.top_level():
        if selection.is_cluster(node.id):
            add_cluster(node, 1)
        else:
            add_node(node, 1)

    for edge in selection.edges:
        lines.append("\t" + _edge_statement(selection, edge))

    lines.append("}")

    logger.debug(
        f"Serialized {len(declared)} nodes, {len(clusters)} clusters, "
        f"{len(selection.edges)} edges"
    )
    return LayoutDescription(
        text="\n".join(lines),
        node_ids=tuple(declared),
        clusters=clusters,
    )


def serialize(
    selection: Selection,
    size_hint: SizeHintFn,
    options: Optional[Dict[str, Any]] = None,
    settings: Optional[LayoutSettings] = None,
) -> str:
    """Serialize a selection and return only the DOT text."""
    return build_description(selection, size_hint, options, settings).text
