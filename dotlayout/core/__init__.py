"""
Core Layer - Boundaries of the layout adapter

Modules:
- svg_parser: Node centers from rendered SVG
- surface: Rendering surface contract and the networkx-backed surface
"""

from .svg_parser import extract_node_centers, scale_centers
from .surface import NetworkXSurface, RenderingSurface

__all__ = [
    'extract_node_centers',
    'scale_centers',
    'RenderingSurface',
    'NetworkXSurface',
]
