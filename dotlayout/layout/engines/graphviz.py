"""Graphviz layout engine via the ``dot`` executable.

Renders DOT text to SVG by piping it through ``dot -Tsvg``. Each render
is a fresh subprocess run in the event loop's default executor, so the
loop stays responsive while Graphviz works. The engine holds no state
between renders.

Failures (missing executable, non-zero exit, timeout, empty output) are
returned as failed RenderResults carrying an EngineError.
"""

import asyncio
import logging
import shutil
import subprocess
from typing import List, Optional

from dotlayout.config.settings import LayoutSettings, get_settings
from dotlayout.layout.engines.base import LayoutEngine, RenderResult
from dotlayout.layout.errors import EngineError

logger = logging.getLogger(__name__)


class GraphvizEngine(LayoutEngine):
    """Hierarchical layout through Graphviz ``dot``.

    Example:
        engine = GraphvizEngine()
        result = await engine.render('digraph G { "a" -> "b"; }')
        svg = result.unwrap()
    """

    def __init__(
        self,
        dot_path: Optional[str] = None,
        timeout: Optional[float] = None,
        settings: Optional[LayoutSettings] = None,
    ):
        """Initialize Graphviz engine.

        Args:
            dot_path: Executable name or path (``settings.dot_path`` if None)
            timeout: Seconds before a render is abandoned (``settings.engine_timeout``
                if None; no timeout when both are None)
            settings: Tunables to default from (process settings if None)
        """
        settings = settings or get_settings()
        self._dot_path = dot_path or settings.dot_path
        self._timeout = timeout if timeout is not None else settings.engine_timeout

    @property
    def name(self) -> str:
        return "graphviz"

    @property
    def dot_path(self) -> str:
        return self._dot_path

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def _find_dot(self) -> Optional[str]:
        """Resolve the executable on PATH (or as given)."""
        return shutil.which(self._dot_path)

    def _command(self, executable: str) -> List[str]:
        return [executable, "-Tsvg"]

    async def is_available(self) -> bool:
        """Check if the dot executable can be run."""
        executable = self._find_dot()
        if executable is None:
            return False
        try:
            result = subprocess.run(
                [executable, "-V"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            return result.returncode == 0
        except (subprocess.SubprocessError, OSError) as e:
            logger.warning(f"Graphviz availability check failed: {e}")
            return False

    def _run(self, description: str) -> RenderResult:
        """Blocking render; runs inside the executor."""
        executable = self._find_dot()
        if executable is None:
            return RenderResult.failure(
                EngineError(self.name, f"executable {self._dot_path!r} not found")
            )

        try:
            proc = subprocess.run(
                self._command(executable),
                input=description,
                encoding="utf-8",
                capture_output=True,
                check=False,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"Graphviz render timed out after {self._timeout}s")
            return RenderResult.failure(
                EngineError(self.name, f"timed out after {self._timeout}s")
            )
        except OSError as e:
            return RenderResult.failure(
                EngineError(self.name, f"failed to execute {executable}: {e}")
            )

        if proc.returncode != 0:
            return RenderResult.failure(
                EngineError(
                    self.name,
                    f"dot exited with status {proc.returncode}",
                    returncode=proc.returncode,
                    stderr=proc.stderr or "",
                )
            )
        if not proc.stdout.strip():
            return RenderResult.failure(
                EngineError(
                    self.name,
                    "dot produced no output",
                    returncode=proc.returncode,
                    stderr=proc.stderr or "",
                )
            )

        if proc.stderr and proc.stderr.strip():
            logger.warning(f"Graphviz reported: {proc.stderr.strip()}")

        return RenderResult.success(proc.stdout)

    async def render(self, description: str) -> RenderResult:
        """Render DOT to SVG without blocking the event loop."""
        loop = asyncio.get_running_loop()
        logger.debug(f"Submitting {len(description)} bytes of DOT to {self._dot_path}")
        return await loop.run_in_executor(None, self._run, description)
