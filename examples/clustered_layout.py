#!/usr/bin/env python3
"""
Clustered Layout Example
Lays out a small superlocation graph (threads grouped by configuration)
with Graphviz dot and prints the resulting positions.

Requires the Graphviz ``dot`` executable on PATH.
"""

import asyncio
import logging

from dotlayout import NetworkXSurface

ELEMENTS = [
    {"group": "nodes", "data": {"id": "conf-0-main", "parent": "conf-0", "str": "main\nch <- v"}},
    {"group": "nodes", "data": {"id": "conf-0-worker", "parent": "conf-0", "str": "worker\n<-ch"}},
    {"group": "nodes", "data": {"id": "conf-1-main", "parent": "conf-1", "str": "main\nwg.Wait()"}},
    {"group": "nodes", "data": {"id": "conf-1-worker", "parent": "conf-1", "str": "worker\nwg.Done()"}},
    {"group": "nodes", "data": {"id": "conf-2-main", "parent": "conf-2", "str": "main\nreturn"}},
    {"group": "edges", "data": {"source": "conf-0-main", "target": "conf-1-main", "str": "ch"}},
    {"group": "edges", "data": {"source": "conf-0-worker", "target": "conf-1-worker", "str": "ch"}},
    {"group": "edges", "data": {"source": "conf-1-main", "target": "conf-2-main"}},
    {"group": "nodes", "data": {"id": "conf-0", "blocks": False}},
    {"group": "nodes", "data": {"id": "conf-1", "blocks": False}},
    {"group": "nodes", "data": {"id": "conf-2", "blocks": True}},
]


async def main():
    """Run one dot layout cycle and print where everything landed."""
    surface = NetworkXSurface.from_elements(ELEMENTS)
    layout = surface.layout({"name": "dot"})

    cycle = layout.run()
    print(f"Started: {cycle}")

    result = await cycle
    print(f"Finished: {cycle}")
    print("=" * 50)

    for node_id, position in surface.positions().items():
        kind = "cluster" if node_id not in result.positions else "node"
        print(f"{kind:8} {node_id:16} x={position.x:8.1f} y={position.y:8.1f}")

    box = result.bounding_box
    print(f"\nBounding box: {box.width:.1f} x {box.height:.1f}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
