"""
Rendered Output Parsing

Recovers node centers from the SVG that Graphviz produces. Graphviz emits
one group per node:

    <g id="node1" class="node">
        <title>A</title>
        <ellipse fill="none" stroke="black" cx="27" cy="-90" rx="27" ry="18"/>
        <text ...>A</text>
    </g>

The title is the node id; the ellipse center is the node position in the
document's own units. Box-like shapes are drawn as a polygon instead, in
which case the center of the polygon's points is used.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from lxml import etree

from dotlayout.layout.errors import ConsistencyError, EngineError

logger = logging.getLogger(__name__)

NODE_CLASS = "node"

# Groups whose class list contains "node" (namespace-agnostic)
_NODE_GROUPS = etree.XPath(
    "//*[local-name()='g']"
    "[contains(concat(' ', normalize-space(@class), ' '), ' node ')]"
)
_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def _local_name(elem: etree._Element) -> str:
    tag = elem.tag
    if not isinstance(tag, str):
        return ""
    return tag.split('}')[-1].lower()  # Remove namespace


def _first_descendant(group: etree._Element, name: str) -> Optional[etree._Element]:
    for elem in group.iter():
        if elem is not group and _local_name(elem) == name:
            return elem
    return None


def parse_svg(svg_text: str, source: str = "graphviz") -> etree._Element:
    """Parse an SVG document.

    Raises:
        EngineError: If the document is not well-formed XML
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    try:
        return etree.fromstring(svg_text.encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        raise EngineError(source, f"rendered output is not valid SVG: {e}") from e


def _ellipse_center(elem: etree._Element) -> Optional[Tuple[float, float]]:
    cx = elem.get('cx')
    cy = elem.get('cy')
    if cx is None or cy is None:
        return None
    return float(cx), float(cy)


def _polygon_center(elem: etree._Element) -> Optional[Tuple[float, float]]:
    """Center of the bounding box of a polygon's points."""
    values = [float(v) for v in _NUMBER.findall(elem.get('points', ''))]
    if len(values) < 2:
        return None
    xs = values[0::2]
    ys = values[1::2]
    return (min(xs) + max(xs)) / 2, (min(ys) + max(ys)) / 2


def node_center(group: etree._Element) -> Optional[Tuple[float, float]]:
    """Center of a node group's primary shape, or None if it has none."""
    ellipse = _first_descendant(group, 'ellipse')
    if ellipse is not None:
        center = _ellipse_center(ellipse)
        if center is not None:
            return center

    polygon = _first_descendant(group, 'polygon')
    if polygon is not None:
        return _polygon_center(polygon)

    return None


def extract_node_centers(svg_text: str, source: str = "graphviz") -> Dict[str, Tuple[float, float]]:
    """
    Extract node id -> shape center from rendered SVG.

    Args:
        svg_text: SVG document produced by the engine
        source: Engine name used in error messages

    Returns:
        Mapping of node id to (cx, cy) in document units, in document order

    Raises:
        EngineError: If the document is not well-formed
        ConsistencyError: If a node group lacks a title or geometry, or two
            groups share a title
    """
    root = parse_svg(svg_text, source)
    centers: Dict[str, Tuple[float, float]] = {}

    for group in _NODE_GROUPS(root):
        title = _first_descendant(group, 'title')
        if title is None:
            raise ConsistencyError(
                [], f"Node group {group.get('id')!r} has no title element"
            )
        node_id = "".join(title.itertext())

        center = node_center(group)
        if center is None:
            raise ConsistencyError([node_id], f"Rendered node {node_id!r} has no shape geometry")
        if node_id in centers:
            raise ConsistencyError([node_id], f"Node {node_id!r} is rendered more than once")
        centers[node_id] = center

    logger.debug(f"Extracted {len(centers)} node centers from rendered output")
    return centers


def scale_centers(
    centers: Dict[str, Tuple[float, float]], factor: float
) -> Dict[str, Tuple[float, float]]:
    """Multiply both coordinates of every center by ``factor``."""
    return {node_id: (x * factor, y * factor) for node_id, (x, y) in centers.items()}


def missing_nodes(declared: Iterable[str], centers: Dict[str, Tuple[float, float]]) -> List[str]:
    """Declared node ids with no rendered center, in declaration order."""
    return [node_id for node_id in declared if node_id not in centers]
