"""Data types for furniture mesh fabrication."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import trimesh


class FabricationError(Exception):
    """Base exception for geometry that could not be fabricated."""

    def __init__(self, message: str, error_type: str = "unknown"):
        super().__init__(message)
        self.error_type = error_type


class MeshMergeError(FabricationError):
    """Triangle soups with incompatible per-vertex attributes."""

    def __init__(self, message: str):
        super().__init__(message, error_type="merge")


class TubeBuildError(FabricationError):
    """Swept tube could not be closed."""

    def __init__(self, message: str):
        super().__init__(message, error_type="tube")


def _no_triangles() -> np.ndarray:
    return np.zeros((0, 3, 3), dtype=np.float64)


@dataclass
class TriangleSoup:
    """Unindexed triangle list: every triangle owns its three vertex positions."""

    triangles: np.ndarray = field(default_factory=_no_triangles)
    attributes: Dict[str, np.ndarray] = field(default_factory=dict)  # name -> (T, 3, k)
    released: bool = False

    def __post_init__(self):
        self.triangles = np.asarray(self.triangles, dtype=np.float64).reshape(-1, 3, 3)

    @classmethod
    def empty(cls) -> "TriangleSoup":
        """Create a soup with no triangles."""
        return cls()

    @classmethod
    def from_indexed(cls, vertices: np.ndarray, faces: np.ndarray) -> "TriangleSoup":
        """Flatten an indexed mesh so no vertex is shared between triangles."""
        vertices = np.asarray(vertices, dtype=np.float64)
        faces = np.asarray(faces, dtype=np.int64)
        if vertices.size == 0 or faces.size == 0:
            return cls.empty()
        return cls(triangles=vertices[faces])

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh) -> "TriangleSoup":
        """Create a TriangleSoup from a trimesh object."""
        return cls.from_indexed(mesh.vertices, mesh.faces)

    @property
    def count(self) -> int:
        """Number of triangles."""
        return int(self.triangles.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    @property
    def vertices(self) -> np.ndarray:
        """Flat (3T, 3) view of all vertex positions."""
        return self.triangles.reshape(-1, 3)

    def face_normals(self) -> np.ndarray:
        """Unit normals from the triangle winding (zero for degenerate triangles)."""
        if self.is_empty:
            return np.zeros((0, 3))
        tris = self.triangles
        normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
        lengths = np.linalg.norm(normals, axis=1)
        valid = lengths > 1e-15
        normals[valid] /= lengths[valid, None]
        normals[~valid] = 0.0
        return normals

    def transformed(self, matrix: np.ndarray) -> "TriangleSoup":
        """Return a copy with a 4x4 homogeneous transform applied to every vertex."""
        if self.is_empty:
            return TriangleSoup(attributes=dict(self.attributes))
        points = trimesh.transformations.transform_points(self.vertices, matrix)
        return TriangleSoup(
            triangles=points.reshape(-1, 3, 3),
            attributes={k: v.copy() for k, v in self.attributes.items()},
        )

    def without(self, name: str) -> "TriangleSoup":
        """Return a copy without the named per-vertex attribute."""
        attributes = {k: v for k, v in self.attributes.items() if k != name}
        return TriangleSoup(triangles=self.triangles.copy(), attributes=attributes)

    def to_trimesh(self, process: bool = False) -> trimesh.Trimesh:
        """Convert to trimesh object.

        With ``process=True`` coincident vertices are welded, which is what
        watertightness checks need.
        """
        if self.is_empty:
            return trimesh.Trimesh()
        faces = np.arange(self.count * 3, dtype=np.int64).reshape(-1, 3)
        return trimesh.Trimesh(vertices=self.vertices, faces=faces, process=process)

    def release(self) -> None:
        """Drop the geometry buffers; the soup is unusable afterwards."""
        self.triangles = _no_triangles()
        self.attributes = {}
        self.released = True


@dataclass
class JointSet:
    """One shared sphere plus a translation-only transform per skeleton node."""

    base: TriangleSoup = field(default_factory=TriangleSoup.empty)
    transforms: np.ndarray = field(default_factory=lambda: np.zeros((0, 4, 4)))

    @property
    def count(self) -> int:
        return int(self.transforms.shape[0])

    @property
    def positions(self) -> np.ndarray:
        """Translation component of every instance."""
        return self.transforms[:, :3, 3]

    def baked(self) -> List[TriangleSoup]:
        """Place one world-space copy of the base sphere per instance."""
        return [self.base.transformed(matrix) for matrix in self.transforms]

    def release(self) -> None:
        self.base.release()
        self.transforms = np.zeros((0, 4, 4))


@dataclass(frozen=True)
class Stats:
    """Filament usage estimate for one build."""

    total_length: float = 0.0  # metres of deformed centerline
    volume_cm3: float = 0.0
    estimated_weight: float = 0.0  # grams
    estimated_cost: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "filament_length": self.total_length,
            "volume_cm3": self.volume_cm3,
            "estimated_weight": self.estimated_weight,
            "estimated_cost": self.estimated_cost,
        }


@dataclass
class FurnitureBuild:
    """Everything produced by one rebuild.

    The build owns its buffers exclusively. Tube, core and ghost are ``None``
    when the category produced no geometry.
    """

    tube: Optional[TriangleSoup] = None
    core: Optional[TriangleSoup] = None
    ghost: Optional[TriangleSoup] = None
    joints: JointSet = field(default_factory=JointSet)
    stats: Stats = field(default_factory=Stats)
    node_count: int = 0
    edge_count: int = 0
    skipped_edges: int = 0
    metadata: dict = field(default_factory=dict)

    def export_soups(self) -> List[TriangleSoup]:
        """World-space geometry that makes up the printable solid (ghost excluded)."""
        soups = [s for s in (self.tube, self.core) if s is not None and not s.is_empty]
        soups.extend(s for s in self.joints.baked() if not s.is_empty)
        return soups

    @property
    def is_exportable(self) -> bool:
        return bool(self.export_soups())

    def release(self) -> None:
        """Release every buffer owned by this build."""
        for soup in (self.tube, self.core, self.ghost):
            if soup is not None:
                soup.release()
        self.joints.release()
        self.tube = None
        self.core = None
        self.ghost = None
