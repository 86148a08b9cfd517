"""Geometry engine: cached rebuilds and the export command channel."""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from core.fabrication.exporter import ExportResult, ModelExporter
from core.fabrication.generator import FurnitureGenerator
from core.fabrication.params import DesignParams
from core.fabrication.types import FurnitureBuild, Stats

from .store import ParameterStore

logger = logging.getLogger(__name__)

StatsListener = Callable[[Stats], None]


@dataclass
class ExportCommand:
    """One user export request. Carries no payload and is handled at most once."""

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    consumed: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def consume(self) -> bool:
        """Mark the command handled; False if it already was."""
        with self._lock:
            if self.consumed:
                return False
            self.consumed = True
            return True


class GeometryEngine:
    """
    Rebuilds furniture geometry whenever the generation-relevant parameters change.

    Each build is published by a single reference swap once it is complete, so
    readers see either the latest or the previous build, never a partial one.
    Every rebuild takes a ticket before generating; a build whose ticket is
    older than the published one is discarded instead of installed. The
    superseded build is released as soon as the new one is installed.
    """

    def __init__(
        self,
        store: ParameterStore,
        generator: Optional[FurnitureGenerator] = None,
        exporter: Optional[ModelExporter] = None,
    ):
        self.store = store
        self.generator = generator or FurnitureGenerator()
        self.exporter = exporter or ModelExporter(
            scale=self.generator.config.export_scale,
            extension=self.generator.config.export_extension,
        )

        self._lock = threading.Lock()
        self._build: Optional[FurnitureBuild] = None
        self._params: Optional[DesignParams] = None
        self._key: Optional[tuple] = None
        self._ticket = 0
        self._published_ticket = 0
        self._stats_listeners: List[StatsListener] = []
        self.rebuild_count = 0

        self._unsubscribe = store.subscribe(self._on_params_changed)
        self.rebuild()

    @property
    def build(self) -> Optional[FurnitureBuild]:
        with self._lock:
            return self._build

    @property
    def params(self) -> Optional[DesignParams]:
        with self._lock:
            return self._params

    @property
    def stats(self) -> Stats:
        with self._lock:
            return self._build.stats if self._build is not None else Stats()

    def summary(self) -> Optional[dict]:
        """Counts for the published build, read while it cannot be released."""
        with self._lock:
            build = self._build
            if build is None:
                return None

            def triangles(soup) -> int:
                return soup.count if soup is not None else 0

            return {
                "nodes": build.node_count,
                "edges": build.edge_count,
                "skipped_edges": build.skipped_edges,
                "tube_triangles": triangles(build.tube),
                "core_triangles": triangles(build.core),
                "ghost_triangles": triangles(build.ghost),
                "joints": build.joints.count,
            }

    def subscribe_stats(self, listener: StatsListener) -> None:
        """Receive the stats of every newly published build."""
        self._stats_listeners.append(listener)

    def _on_params_changed(self, params: DesignParams) -> None:
        # The store snapshot is read when the ticket is taken
        self.rebuild()

    def rebuild(self, params: Optional[DesignParams] = None, force: bool = False) -> Optional[FurnitureBuild]:
        """
        Regenerate geometry for a parameter snapshot.

        Args:
            params: Snapshot to build (defaults to the store's current snapshot)
            force: Rebuild even if the generation key is unchanged

        Returns:
            The published build; if a newer rebuild published first, that build
        """
        with self._lock:
            if params is None:
                params = self.store.snapshot
            key = params.generation_key()

            self._ticket += 1
            ticket = self._ticket
            if not force and self._build is not None and key == self._key:
                # Current build is already the newest; anything still generating is stale
                self._published_ticket = ticket
                logger.debug("Generation key unchanged, keeping current build")
                return self._build

        build = self.generator.generate(params)

        with self._lock:
            stale = ticket < self._published_ticket
            if stale:
                current = self._build
            else:
                previous = self._build
                self._build = build
                self._params = params
                self._key = key
                self._published_ticket = ticket
                self.rebuild_count += 1

        if stale:
            logger.debug(f"Discarding rebuild {ticket}; a newer build is already published")
            build.release()
            return current

        if previous is not None and previous is not build:
            previous.release()

        for listener in list(self._stats_listeners):
            listener(build.stats)
        return build

    def export(self, command: ExportCommand, timestamp: Optional[int] = None) -> Optional[ExportResult]:
        """
        Answer an export command from the settled build.

        Returns:
            ExportResult, or None if the command was already handled or
            there is nothing printable
        """
        if not command.consume():
            logger.debug(f"Export command {command.id} already handled")
            return None

        with self._lock:
            if self._build is None or self._params is None:
                return None
            return self.exporter.export(
                self._build,
                self._params.furniture_type,
                self._params.pattern,
                timestamp=timestamp,
            )

    def close(self) -> None:
        """Stop listening to the store and release the current build."""
        self._unsubscribe()
        with self._lock:
            build, self._build = self._build, None
            self._key = None
            # Rebuilds still generating must not publish after close
            self._ticket += 1
            self._published_ticket = self._ticket
        if build is not None:
            build.release()
