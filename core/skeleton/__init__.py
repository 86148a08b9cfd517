"""Furniture skeleton graphs and centerline curves.

This module maps a furniture archetype, an infill pattern and overall
dimensions to a node/edge skeleton, and provides the curve primitives that
turn a skeleton edge into a wavy centerline.

Usage:
    from core.skeleton import FurniturePattern, FurnitureType, SkeletonGenerator

    graph = SkeletonGenerator().generate(
        FurnitureType.CHAIR, FurniturePattern.OCTET,
        width=0.6, height=0.9, depth=0.6, seat_height=0.45,
    )
"""

from .curves import polyline_length, safe_unit, sample_bezier, serpentinize
from .generator import ARCHETYPES, GraphBuilder, SkeletonGenerator, add_panel, add_surface
from .types import FurniturePattern, FurnitureType, SkeletonGraph

__all__ = [
    # Main API
    "SkeletonGenerator",
    "SkeletonGraph",
    "FurnitureType",
    "FurniturePattern",
    # Curve primitives
    "sample_bezier",
    "serpentinize",
    "safe_unit",
    "polyline_length",
    # Graph construction (for advanced usage)
    "GraphBuilder",
    "add_panel",
    "add_surface",
    "ARCHETYPES",
]
