"""Data types for furniture skeleton graphs."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

import numpy as np

Edge = Tuple[int, int]


class FurnitureType(str, Enum):
    """Furniture archetypes the skeleton generator knows how to frame."""

    CHAIR = "Chair"
    TABLE = "Table"
    STOOL = "Stool"
    BENCH = "Bench"
    SHELF = "Shelf"
    VASE = "Vase"
    RECLINER = "Recliner"
    LAMP = "Lamp"
    MOBIUS = "Mobius"
    HYPERBOLIC = "Hyperbolic"
    KLEIN = "Klein"
    FRACTAL_TREE = "FractalTree"


class FurniturePattern(str, Enum):
    """Infill patterns for panels and surfaces."""

    LINEAR = "Linear"
    TRIANGULAR = "Triangular"
    GYROID = "Gyroid"
    VORONOI = "Voronoi"
    SCHWARZ_D = "SchwarzD"
    OCTET = "Octet"
    SPONGE = "Sponge"


@dataclass
class SkeletonGraph:
    """Nodes (3D points, identified by index) and edges (index pairs)."""

    nodes: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    edges: List[Edge] = field(default_factory=list)

    def __post_init__(self):
        self.nodes = np.asarray(self.nodes, dtype=np.float64).reshape(-1, 3)
        self.edges = [(int(i), int(j)) for i, j in self.edges]

    @property
    def node_count(self) -> int:
        return int(self.nodes.shape[0])

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def invalid_edges(self) -> List[Edge]:
        """Edges that reference a node index outside the node list."""
        n = self.node_count
        return [(i, j) for i, j in self.edges if not (0 <= i < n and 0 <= j < n)]

    def edge_length(self, edge: Edge) -> float:
        i, j = edge
        return float(np.linalg.norm(self.nodes[j] - self.nodes[i]))

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Axis-aligned bounding box of the nodes."""
        if self.node_count == 0:
            return np.zeros(3), np.zeros(3)
        return self.nodes.min(axis=0), self.nodes.max(axis=0)
