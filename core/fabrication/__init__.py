"""Printable mesh generation for parametric furniture.

This module converts a furniture skeleton into watertight triangle geometry
(serpentine tubes, structural cores, joint spheres), estimates filament use,
and exports the result as a binary STL.

Usage:
    from core.fabrication import DesignParams, FurnitureGenerator, ModelExporter

    build = FurnitureGenerator().generate(DesignParams())
    result = ModelExporter().export(build, "Chair", "Octet")
    Path(result.filename).write_bytes(result.data)
"""

from .config import GeneratorConfig
from .exporter import ExportResult, ModelExporter
from .generator import FREQUENCY_MULTIPLIERS, FurnitureGenerator
from .joints import JointInstancer
from .mass import MassEstimator
from .merge import concatenate, merge_soups
from .params import PARAM_RANGES, DesignParams
from .rods import GhostPreviewBuilder, StructuralCoreBuilder
from .tube import TubeMeshBuilder
from .types import (
    FabricationError,
    FurnitureBuild,
    JointSet,
    MeshMergeError,
    Stats,
    TriangleSoup,
    TubeBuildError,
)

__all__ = [
    # Main API
    "FurnitureGenerator",
    "GeneratorConfig",
    "DesignParams",
    "PARAM_RANGES",
    "FurnitureBuild",
    "TriangleSoup",
    "JointSet",
    "Stats",
    # Export
    "ModelExporter",
    "ExportResult",
    # Sub-processors (for advanced usage)
    "TubeMeshBuilder",
    "StructuralCoreBuilder",
    "GhostPreviewBuilder",
    "JointInstancer",
    "MassEstimator",
    "merge_soups",
    "concatenate",
    "FREQUENCY_MULTIPLIERS",
    # Exceptions
    "FabricationError",
    "MeshMergeError",
    "TubeBuildError",
]
