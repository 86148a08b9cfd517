"""Studio runtime: parameter store, cached rebuilds and export commands.

Example usage:
    from core.studio import ExportCommand, GeometryEngine, ParameterStore

    store = ParameterStore()
    engine = GeometryEngine(store)

    store.update(furniture_type="Chair", pattern="Voronoi")
    print(engine.stats.estimated_cost)

    result = engine.export(ExportCommand())
"""

from .engine import ExportCommand, GeometryEngine
from .store import ParameterStore

__all__ = [
    "ParameterStore",
    "GeometryEngine",
    "ExportCommand",
]
