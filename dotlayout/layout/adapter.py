"""Layout adapter: hierarchical layout through an external engine.

Ties the pieces of one layout cycle together:

    DotLayout.run()
      -> LayoutCycle
           SERIALIZING  selection -> DOT (serializer)
           RENDERING    DOT -> SVG (engine, the only suspension point)
           PARSING      SVG -> node centers, scaled to display units
           APPLYING     normalized positions -> rendering surface
           DONE | FAILED

``run()`` returns immediately with the cycle; the cycle finishes on the
event loop. Every ``run()`` creates a new cycle that owns its description,
rendered output and positions, so repeated or overlapping runs never share
state. The only shared resource is the surface, written once at the end
of a successful cycle.

Vertical normalization: engine y coordinates are arbitrary (Graphviz
uses negative y), so the minimum y over all rendered nodes is subtracted
and ``vertical_offset`` added, putting the topmost node just below the
viewport top.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from dotlayout.config.settings import LayoutSettings, get_settings
from dotlayout.core.surface import RenderingSurface
from dotlayout.core.svg_parser import extract_node_centers, missing_nodes, scale_centers
from dotlayout.layout.engines.base import LayoutEngine
from dotlayout.layout.engines.graphviz import GraphvizEngine
from dotlayout.layout.errors import ConsistencyError
from dotlayout.layout.registry import register_layout
from dotlayout.layout.serializer import LayoutDescription, build_description
from dotlayout.models.graph_elements import GraphNode, Selection
from dotlayout.models.layout_metadata import LayoutResult, NodePosition

logger = logging.getLogger(__name__)

LAYOUT_NAME = "dot"


class LayoutState(str, Enum):
    """Lifecycle of a single layout cycle."""

    IDLE = "idle"
    SERIALIZING = "serializing"
    RENDERING = "rendering"
    PARSING = "parsing"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"


class DotLayoutOptions(BaseModel):
    """Configuration of a dot layout.

    Attributes:
        name: Registered layout name
        eles: Selection to lay out (element JSON is accepted and converted)
        surface: Rendering surface providing size hints and applying positions
        engine: Layout engine (Graphviz built from ``settings`` if None)
        settings: Tunables (process defaults if not given)

    Any other option is kept and passed to the surface's size hint call.
    """

    model_config = {"arbitrary_types_allowed": True, "extra": "allow"}

    name: str = Field(default=LAYOUT_NAME)
    eles: Selection = Field(..., description="Nodes and edges to lay out")
    surface: RenderingSurface = Field(..., description="Surface receiving positions")
    engine: Optional[LayoutEngine] = Field(default=None)
    settings: LayoutSettings = Field(default_factory=get_settings)

    @field_validator("eles", mode="before")
    @classmethod
    def coerce_elements(cls, v: Any) -> Any:
        """Accept cytoscape-style element JSON in place of a Selection."""
        if isinstance(v, (list, tuple)):
            return Selection.from_elements(v)
        return v

    @model_validator(mode="after")
    def default_engine(self) -> "DotLayoutOptions":
        if self.engine is None:
            self.engine = GraphvizEngine(settings=self.settings)
        return self

    @property
    def size_options(self) -> Dict[str, Any]:
        """Options forwarded to ``surface.layout_dimensions``."""
        return dict(self.model_extra or {})


class LayoutCycle:
    """One run of the layout pipeline.

    Awaiting a cycle returns its LayoutResult or raises the error that
    failed it (SerializationError, EngineError, ConsistencyError, or
    whatever the surface raised).

    Example:
        cycle = layout.run()
        ...
        result = await cycle
    """

    def __init__(self, options: DotLayoutOptions):
        self.options = options
        self.state = LayoutState.IDLE
        self.failed_in: Optional[LayoutState] = None
        self.error: Optional[BaseException] = None
        self.description: Optional[LayoutDescription] = None
        self.rendered: Optional[str] = None
        self._result: Optional[LayoutResult] = None
        self._task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"<LayoutCycle {self.options.name} state={self.state.value}>"

    def start(self) -> "LayoutCycle":
        """Schedule the cycle on the running event loop and return at once.

        Raises:
            RuntimeError: If no event loop is running, or the cycle was already started
        """
        if self._task is not None or self.state is not LayoutState.IDLE:
            raise RuntimeError("A layout cycle can only run once")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise RuntimeError(
                "DotLayout.run() needs a running event loop; use run_sync() from synchronous code"
            ) from e
        self._task = loop.create_task(self._execute())
        self._task.add_done_callback(self._observe)
        return self

    @staticmethod
    def _observe(task: asyncio.Task) -> None:
        # Failures are logged in _execute and re-raised to awaiters
        if not task.cancelled():
            task.exception()

    def __await__(self):
        if self._task is None:
            self.start()
        return self._task.__await__()

    def done(self) -> bool:
        return self.state in (LayoutState.DONE, LayoutState.FAILED)

    def result(self) -> LayoutResult:
        """Result of a finished cycle.

        Raises:
            The error that failed the cycle, or RuntimeError if still running
        """
        if self.state is LayoutState.FAILED:
            raise self.error
        if self.state is not LayoutState.DONE:
            raise RuntimeError(f"Layout cycle not finished (state: {self.state.value})")
        return self._result

    async def _execute(self) -> LayoutResult:
        try:
            result = await self._run_steps()
        except Exception as e:
            self.failed_in = self.state
            self.error = e
            self.state = LayoutState.FAILED
            logger.error(f"Layout '{self.options.name}' failed while {self.failed_in.value}: {e}")
            raise
        self._result = result
        self.state = LayoutState.DONE
        return result

    async def _run_steps(self) -> LayoutResult:
        options = self.options
        settings = options.settings
        selection = options.eles
        engine = options.engine

        self.state = LayoutState.SERIALIZING
        self.description = build_description(
            selection,
            options.surface.layout_dimensions,
            options.size_options,
            settings,
        )

        if not self.description.node_ids:
            logger.debug("Nothing to lay out")
            return LayoutResult(
                algorithm=options.name, engine=engine.name,
                positions={}, min_y=0.0, settings=settings,
            )

        self.state = LayoutState.RENDERING
        rendered = await engine.render(self.description.text)
        self.rendered = rendered.unwrap()

        self.state = LayoutState.PARSING
        centers = scale_centers(
            extract_node_centers(self.rendered, engine.name),
            settings.coordinate_scale,
        )
        missing = missing_nodes(self.description.node_ids, centers)
        if missing:
            raise ConsistencyError(missing)

        min_y = min(y for _, y in centers.values())
        positions: Dict[str, NodePosition] = {}
        for node_id in self.description.node_ids:
            x, y = centers[node_id]
            positions[node_id] = NodePosition(x=x, y=y - min_y + settings.vertical_offset)

        self.state = LayoutState.APPLYING
        nodes = [selection.node(node_id) for node_id in self.description.node_ids]

        def position_of(node: GraphNode) -> NodePosition:
            return positions[node.id]

        options.surface.layout_positions(nodes, position_of, options.size_options)

        logger.info(
            f"Layout '{options.name}' placed {len(positions)} nodes "
            f"in {len(self.description.clusters)} clusters via {engine.name}"
        )
        return LayoutResult(
            algorithm=options.name,
            engine=engine.name,
            positions=positions,
            min_y=min_y,
            settings=settings,
        )


class DotLayout:
    """Hierarchical layout delegated to Graphviz dot.

    Registered under the name ``"dot"``; rendering surfaces create it with
    ``surface.layout({"name": "dot", "eles": selection})``.

    Example:
        layout = DotLayout({"eles": selection, "surface": surface})
        cycle = layout.run()          # returns immediately
        result = await cycle          # positions applied to the surface
    """

    def __init__(self, options: Union[DotLayoutOptions, Mapping[str, Any], None] = None, **kwargs: Any):
        """Initialize the layout.

        Args:
            options: DotLayoutOptions or a mapping validated into one
            **kwargs: Merged over a mapping ``options``

        Raises:
            pydantic.ValidationError: If ``eles`` or ``surface`` is missing or invalid
        """
        if isinstance(options, DotLayoutOptions):
            self.options = options.model_copy(update=kwargs) if kwargs else options
        else:
            merged = dict(options or {})
            merged.update(kwargs)
            self.options = DotLayoutOptions.model_validate(merged)
        self.last_cycle: Optional[LayoutCycle] = None

    def run(self) -> LayoutCycle:
        """Start a new layout cycle and return it without waiting.

        Raises:
            RuntimeError: If called without a running event loop
        """
        cycle = LayoutCycle(self.options).start()
        self.last_cycle = cycle
        return cycle

    async def run_async(self) -> LayoutResult:
        """Run a layout cycle to completion."""
        return await self.run()

    def run_sync(self) -> LayoutResult:
        """Run a layout cycle to completion from synchronous code."""
        return asyncio.run(self.run_async())


register_layout(LAYOUT_NAME, DotLayout)
