"""Straight cylinders along raw skeleton edges: structural cores and ghost previews."""

import math
from typing import Optional

import numpy as np
import trimesh

from core.skeleton.curves import safe_unit

from .types import TriangleSoup

UP = np.array([0.0, 1.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])


def unit_cylinder(sections: int) -> trimesh.Trimesh:
    """Cylinder of radius 1 and height 1 along +Y, with its base on y = 0."""
    cylinder = trimesh.creation.cylinder(radius=1.0, height=1.0, sections=sections)
    # trimesh builds along Z centred on the origin
    cylinder.apply_transform(trimesh.transformations.rotation_matrix(-math.pi / 2, [1, 0, 0]))
    cylinder.apply_translation([0.0, 0.5, 0.0])
    return cylinder


class StructuralCoreBuilder:
    """Builds a straight reinforcing cylinder per skeleton edge."""

    def __init__(self, sections: int = 6):
        self.sections = sections
        self.template = TriangleSoup.from_trimesh(unit_cylinder(sections))

    def core_transform(self, start, end, core_thickness: float) -> np.ndarray:
        """translation(start) . rotation(up -> edge) . scale(t, L, t)."""
        start = np.asarray(start, dtype=np.float64)
        vec = np.asarray(end, dtype=np.float64) - start
        length = float(np.linalg.norm(vec))

        direction = safe_unit(vec)
        if direction.any():
            rotation = trimesh.geometry.align_vectors(UP, direction)
        else:
            rotation = np.eye(4)

        scale = np.diag([core_thickness, length, core_thickness, 1.0])
        return trimesh.transformations.translation_matrix(start) @ rotation @ scale

    def build(self, start, end, core_thickness: float, enabled: bool = True) -> Optional[TriangleSoup]:
        """
        Place the core cylinder between two node positions.

        Returns:
            The placed cylinder, or None when cores are disabled
        """
        if not enabled:
            return None
        return self.template.transformed(self.core_transform(start, end, core_thickness))


class GhostPreviewBuilder:
    """Builds thin, non-exported cylinders spanning raw skeleton edges."""

    def __init__(self, radius: float = 0.003, sections: int = 4):
        self.radius = radius
        self.sections = sections

    def build(self, start, end, enabled: bool = True) -> Optional[TriangleSoup]:
        """
        Thin cylinder centred on the edge midpoint, axis pointing at ``end``.

        Returns:
            The preview cylinder, or None when previews are disabled
        """
        if not enabled:
            return None

        start = np.asarray(start, dtype=np.float64)
        end = np.asarray(end, dtype=np.float64)
        length = float(np.linalg.norm(end - start))

        cylinder = trimesh.creation.cylinder(
            radius=self.radius, height=length, sections=self.sections
        )
        midpoint = start + (end - start) * 0.5
        direction = safe_unit(end - midpoint)
        rotation = trimesh.geometry.align_vectors(FORWARD, direction) if direction.any() else np.eye(4)

        transform = trimesh.transformations.translation_matrix(midpoint) @ rotation
        return TriangleSoup.from_trimesh(cylinder).transformed(transform)
