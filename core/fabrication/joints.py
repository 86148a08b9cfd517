"""Joint spheres instanced at skeleton nodes."""

from typing import Tuple

import numpy as np
import trimesh

from .types import JointSet, TriangleSoup


class JointInstancer:
    """Builds one shared sphere and a translation-only instance per node."""

    def __init__(self, resolution: Tuple[int, int] = (12, 12)):
        self.resolution = resolution

    def sphere(self, radius: float) -> TriangleSoup:
        """Base sphere centred on the origin."""
        mesh = trimesh.creation.uv_sphere(radius=radius, count=list(self.resolution))
        return TriangleSoup.from_trimesh(mesh)

    def build(self, nodes: np.ndarray, joint_radius: float) -> JointSet:
        """
        Instance the joint sphere once per node, in node order.

        Args:
            nodes: (N, 3) node positions
            joint_radius: Sphere radius

        Returns:
            JointSet with N transforms
        """
        nodes = np.asarray(nodes, dtype=np.float64).reshape(-1, 3)
        transforms = np.array(
            [trimesh.transformations.translation_matrix(p) for p in nodes]
        ).reshape(-1, 4, 4)
        return JointSet(base=self.sphere(joint_radius), transforms=transforms)
