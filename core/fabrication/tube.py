"""Capped tube sweep along a deformed centerline."""

import logging
from typing import Optional, Tuple

import numpy as np
import trimesh
from scipy.interpolate import CubicSpline

from core.skeleton.curves import safe_unit

from .merge import concatenate
from .types import FabricationError, TriangleSoup, TubeBuildError

logger = logging.getLogger(__name__)


class TubeMeshBuilder:
    """
    Sweeps a circular cross-section along a centerline and closes both ends.

    The side surface has ``segments * radial_segments * 2`` triangles and each
    cap is a fan of ``radial_segments`` triangles around the ring centroid, so
    a successful build always has ``S*R*2 + 2*R`` triangles and is a closed
    manifold with outward-facing winding.
    """

    def __init__(self, radial_segments: int = 6):
        self.radial_segments = radial_segments

    def build(
        self,
        centerline: np.ndarray,
        segments: int,
        radius: float,
        radial_segments: Optional[int] = None,
    ) -> TriangleSoup:
        """
        Build a closed tube.

        Args:
            centerline: (M, 3) points, M >= 2
            segments: Number of longitudinal segments
            radius: Cross-section radius
            radial_segments: Sides of the cross-section (defaults to the builder's)

        Returns:
            Closed TriangleSoup, or an empty soup if the tube could not be built
        """
        radial = radial_segments or self.radial_segments
        try:
            return self._build(np.asarray(centerline, dtype=np.float64), segments, radius, radial)
        except (FabricationError, ValueError, np.linalg.LinAlgError) as e:
            logger.warning(f"Tube construction failed, returning empty geometry: {e}")
            return TriangleSoup.empty()

    def _build(self, centerline: np.ndarray, segments: int, radius: float, radial: int) -> TriangleSoup:
        if segments < 1 or radial < 3:
            raise TubeBuildError(f"Invalid resolution: {segments} x {radial}")
        if radius <= 0:
            raise TubeBuildError(f"Invalid radius: {radius}")

        points, tangents = self.resample(centerline, segments)
        normals, binormals = self.propagate_frames(tangents)
        rings, side = self.sweep(points, normals, binormals, radius, radial)

        if not np.isfinite(rings).all():
            raise TubeBuildError("Degenerate ring geometry")

        start_cap = self.cap(rings[0], radial, at_start=True)
        end_cap = self.cap(rings[-1], radial, at_start=False)

        # uv only exists on the side sweep
        return concatenate([side.without("uv"), start_cap, end_cap])

    def resample(self, centerline: np.ndarray, segments: int) -> Tuple[np.ndarray, np.ndarray]:
        """Resample a smooth curve through the centerline at ``segments + 1`` points."""
        if centerline.ndim != 2 or centerline.shape[1] != 3:
            raise TubeBuildError(f"Centerline must be (M, 3), got {centerline.shape}")

        steps = np.linalg.norm(np.diff(centerline, axis=0), axis=1)
        keep = np.concatenate([[True], steps > 1e-12])
        pts = centerline[keep]
        if len(pts) < 2:
            raise TubeBuildError("Centerline needs at least 2 distinct points")

        chord = np.concatenate([[0.0], np.cumsum(np.linalg.norm(np.diff(pts, axis=0), axis=1))])
        spline = CubicSpline(chord / chord[-1], pts, axis=0)

        s = np.linspace(0.0, 1.0, segments + 1)
        points = spline(s)
        derivative = spline(s, 1)

        fallback = safe_unit(pts[-1] - pts[0])
        tangents = np.zeros_like(points)
        for i, d in enumerate(derivative):
            t = safe_unit(d)
            if not t.any():
                t = tangents[i - 1] if i > 0 else fallback
            tangents[i] = t
        if not tangents.any(axis=1).all():
            raise TubeBuildError("Centerline has no usable direction")

        return points, tangents

    def propagate_frames(self, tangents: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Parallel-transport a normal along the tangents; returns (normals, binormals)."""
        t0 = tangents[0]
        axis = np.zeros(3)
        axis[int(np.argmin(np.abs(t0)))] = 1.0
        normal = safe_unit(np.cross(t0, axis))

        normals = np.zeros_like(tangents)
        normals[0] = normal
        for i in range(1, len(tangents)):
            prev, cur = tangents[i - 1], tangents[i]
            normal = normals[i - 1]
            turn = np.cross(prev, cur)
            if np.linalg.norm(turn) > 1e-12:
                angle = float(np.arccos(np.clip(np.dot(prev, cur), -1.0, 1.0)))
                rotation = trimesh.transformations.rotation_matrix(angle, turn)
                normal = rotation[:3, :3] @ normal
            normal = safe_unit(normal - np.dot(normal, cur) * cur)
            if not normal.any():
                raise TubeBuildError(f"Frame collapsed at sample {i}")
            normals[i] = normal

        binormals = np.cross(tangents, normals)
        return normals, binormals

    def sweep(
        self,
        points: np.ndarray,
        normals: np.ndarray,
        binormals: np.ndarray,
        radius: float,
        radial: int,
    ) -> Tuple[np.ndarray, TriangleSoup]:
        """
        Sweep the cross-section into an open tube.

        Returns:
            rings: (S+1, R+1, 3) ring points, the last point of each ring a copy of the first
            side: Open side surface with a ``uv`` attribute
        """
        theta = 2 * np.pi * np.arange(radial) / radial
        offsets = (
            np.cos(theta)[None, :, None] * normals[:, None, :]
            + np.sin(theta)[None, :, None] * binormals[:, None, :]
        )
        rings = points[:, None, :] + radius * offsets
        rings = np.concatenate([rings, rings[:, :1]], axis=1)

        rows, cols = rings.shape[0], rings.shape[1]
        grid = np.arange(rows * cols).reshape(rows, cols)
        a = grid[:-1, :-1]
        b = grid[1:, :-1]
        c = grid[1:, 1:]
        d = grid[:-1, 1:]
        faces = np.stack(
            [np.stack([a, d, b], axis=-1), np.stack([d, c, b], axis=-1)],
            axis=2,
        ).reshape(-1, 3)

        uu, vv = np.meshgrid(
            np.linspace(0.0, 1.0, rows), np.linspace(0.0, 1.0, cols), indexing="ij"
        )
        uv = np.stack([uu, vv], axis=-1).reshape(-1, 2)

        side = TriangleSoup(
            triangles=rings.reshape(-1, 3)[faces],
            attributes={"uv": uv[faces]},
        )
        return rings, side

    def cap(self, ring: np.ndarray, radial: int, at_start: bool) -> TriangleSoup:
        """Triangle fan from the ring centroid; winding faces away from the tube body."""
        current = ring[:radial]
        following = ring[1 : radial + 1]
        if len(following) != radial:
            raise TubeBuildError(f"Ring has {len(ring)} points, expected {radial + 1}")

        center = np.repeat(current.mean(axis=0)[None, :], radial, axis=0)
        if at_start:
            triangles = np.stack([center, following, current], axis=1)
        else:
            triangles = np.stack([center, current, following], axis=1)
        return TriangleSoup(triangles=triangles)
