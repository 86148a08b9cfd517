"""Skeleton graph generation for furniture archetypes.

Every archetype is framed from its dimensions, and panels or surfaces are
filled with the requested pattern. Generation is a pure function of its
inputs: the pseudo-random Voronoi infill draws from a fixed seed.
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import Delaunay

from .types import FurniturePattern, FurnitureType, SkeletonGraph

logger = logging.getLogger(__name__)

UV = Tuple[float, float]
Segment = Tuple[UV, UV]

VORONOI_SEED = 1337


class GraphBuilder:
    """Accumulates nodes and edges, welding nodes that coincide."""

    def __init__(self, tolerance: float = 1e-6, seed: int = VORONOI_SEED):
        self.tolerance = tolerance
        self.rng = np.random.default_rng(seed)
        self._nodes: List[np.ndarray] = []
        self._lookup: Dict[Tuple[int, int, int], int] = {}
        self._edges: List[Tuple[int, int]] = []
        self._seen: set = set()

    def node(self, point) -> int:
        """Index of the node at ``point``, creating it if needed."""
        point = np.asarray(point, dtype=np.float64)
        key = tuple(int(k) for k in np.round(point / self.tolerance))
        index = self._lookup.get(key)
        if index is None:
            index = len(self._nodes)
            self._nodes.append(point)
            self._lookup[key] = index
        return index

    def edge(self, i: int, j: int) -> None:
        if i == j:
            return
        key = (min(i, j), max(i, j))
        if key in self._seen:
            return
        self._seen.add(key)
        self._edges.append((i, j))

    def line(self, p, q) -> None:
        self.edge(self.node(p), self.node(q))

    def polyline(self, points: Sequence, closed: bool = False) -> None:
        indices = [self.node(p) for p in points]
        for a, b in zip(indices, indices[1:]):
            self.edge(a, b)
        if closed and len(indices) > 2:
            self.edge(indices[-1], indices[0])

    def build(self) -> SkeletonGraph:
        nodes = np.array(self._nodes) if self._nodes else np.zeros((0, 3))
        return SkeletonGraph(nodes=nodes, edges=list(self._edges))


# ============================================================================
# Panel infill (flat quads)
# ============================================================================


def _grid_segments(n: int) -> List[Segment]:
    """Cell edges of an n x n grid over the unit square."""
    segments = []
    step = 1.0 / n
    for i in range(n + 1):
        for j in range(n):
            segments.append(((i * step, j * step), (i * step, (j + 1) * step)))
            segments.append(((j * step, i * step), ((j + 1) * step, i * step)))
    return segments


def _panel_segments(pattern: FurniturePattern, rng: np.random.Generator) -> List[Segment]:
    """Interior segments of a unit-square panel for each pattern."""
    if pattern is FurniturePattern.LINEAR:
        return [((k / 3, 0.0), (k / 3, 1.0)) for k in (1, 2)]

    if pattern is FurniturePattern.TRIANGULAR:
        segments = _grid_segments(2)
        for i in range(2):
            for j in range(2):
                segments.append(((i / 2, j / 2), ((i + 1) / 2, (j + 1) / 2)))
        return segments

    if pattern is FurniturePattern.OCTET:
        segments = _grid_segments(2)
        for i in range(2):
            for j in range(2):
                center = ((i + 0.5) / 2, (j + 0.5) / 2)
                for di in (0, 1):
                    for dj in (0, 1):
                        segments.append((center, ((i + di) / 2, (j + dj) / 2)))
        return segments

    if pattern is FurniturePattern.GYROID:
        segments = []
        for row, phase in ((0.25, 0.0), (0.5, math.pi / 2), (0.75, math.pi)):
            wave = [
                (k / 6, row + 0.08 * math.sin(2 * math.pi * k / 6 + phase))
                for k in range(7)
            ]
            segments.extend(zip(wave, wave[1:]))
        return segments

    if pattern is FurniturePattern.VORONOI:
        boundary = [(0, 0), (1, 0), (1, 1), (0, 1), (0.5, 0), (1, 0.5), (0.5, 1), (0, 0.5)]
        interior = rng.uniform(0.15, 0.85, size=(6, 2))
        points = np.vstack([np.array(boundary, dtype=np.float64), interior])
        segments = []
        for simplex in Delaunay(points).simplices:
            for a, b in ((0, 1), (1, 2), (2, 0)):
                p, q = points[simplex[a]], points[simplex[b]]
                segments.append(((float(p[0]), float(p[1])), (float(q[0]), float(q[1]))))
        return segments

    if pattern is FurniturePattern.SCHWARZ_D:
        diamond = [(0.5, 0.0), (1.0, 0.5), (0.5, 1.0), (0.0, 0.5)]
        segments = list(zip(diamond, diamond[1:] + diamond[:1]))
        segments.extend(((0.5, 0.5), m) for m in diamond)
        return segments

    if pattern is FurniturePattern.SPONGE:
        segments = _grid_segments(3)
        for i in range(3):
            for j in range(3):
                if i == 1 and j == 1:
                    continue
                if (i + j) % 2 == 0:
                    segments.append(((i / 3, j / 3), ((i + 1) / 3, (j + 1) / 3)))
                else:
                    segments.append((((i + 1) / 3, j / 3), (i / 3, (j + 1) / 3)))
        return segments

    raise ValueError(f"Unknown pattern: {pattern}")


def _on_boundary(uv: UV, eps: float = 1e-9) -> bool:
    u, v = uv
    return abs(u) < eps or abs(u - 1) < eps or abs(v) < eps or abs(v - 1) < eps


def _perimeter(points: List[UV], eps: float = 1e-9) -> List[UV]:
    """Closed loop around the unit square through every boundary point."""
    corners = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
    on_edge = set(corners) | {p for p in points if _on_boundary(p, eps)}

    def perimeter_param(p: UV) -> float:
        u, v = p
        if abs(v) < eps:
            return u
        if abs(u - 1) < eps:
            return 1 + v
        if abs(v - 1) < eps:
            return 3 - u
        return 4 - v

    return sorted(on_edge, key=perimeter_param)


def add_panel(
    builder: GraphBuilder,
    origin,
    u_axis,
    v_axis,
    pattern: FurniturePattern,
) -> None:
    """Add a flat quad panel spanned by ``u_axis`` and ``v_axis`` with pattern infill."""
    origin = np.asarray(origin, dtype=np.float64)
    u_axis = np.asarray(u_axis, dtype=np.float64)
    v_axis = np.asarray(v_axis, dtype=np.float64)

    def to_world(uv: UV) -> np.ndarray:
        return origin + u_axis * uv[0] + v_axis * uv[1]

    segments = _panel_segments(pattern, builder.rng)
    endpoints = [p for segment in segments for p in segment]

    builder.polyline([to_world(p) for p in _perimeter(endpoints)], closed=True)
    for p, q in segments:
        builder.line(to_world(p), to_world(q))


# ============================================================================
# Surface infill (parametric grids)
# ============================================================================


def add_surface(
    builder: GraphBuilder,
    columns: Sequence[np.ndarray],
    pattern: FurniturePattern,
    closed: bool = False,
    wrap_rows: bool = False,
    flip_seam: bool = False,
) -> None:
    """
    Add a lattice over a grid of points.

    Args:
        builder: Graph under construction
        columns: Columns of the grid, each a (rows, 3) array
        pattern: Infill pattern for each grid cell
        closed: Connect the last column back to the first
        wrap_rows: Connect the last row back to the first
        flip_seam: Reverse the row order across the closing seam
    """
    columns = [np.asarray(c, dtype=np.float64) for c in columns]
    rows = len(columns[0])

    def seam_column(column: np.ndarray) -> np.ndarray:
        if not flip_seam:
            return column
        if wrap_rows:
            return column[(-np.arange(rows)) % rows]
        return column[::-1]

    pairs = [(columns[j], columns[j + 1]) for j in range(len(columns) - 1)]
    if closed:
        pairs.append((columns[-1], seam_column(columns[0])))

    with_ribs = pattern is not FurniturePattern.SCHWARZ_D
    for j, column in enumerate(columns):
        if not with_ribs:
            continue
        if pattern is FurniturePattern.SPONGE and j % 3 == 1:
            continue
        builder.polyline(column, closed=wrap_rows)

    row_pairs = [(i, i + 1) for i in range(rows - 1)]
    if wrap_rows:
        row_pairs.append((rows - 1, 0))

    for j, (left, right) in enumerate(pairs):
        for i in range(rows):
            builder.line(left[i], right[i])
        for i, k in row_pairs:
            a, b, c, d = left[i], right[i], right[k], left[k]
            if pattern is FurniturePattern.TRIANGULAR:
                builder.line(a, c)
            elif pattern in (FurniturePattern.OCTET, FurniturePattern.SCHWARZ_D):
                center = (a + b + c + d) / 4.0
                for corner in (a, b, c, d):
                    builder.line(center, corner)
            elif pattern is FurniturePattern.GYROID:
                if (i + j) % 2 == 0:
                    builder.line(a, c)
                else:
                    builder.line(b, d)
            elif pattern is FurniturePattern.VORONOI:
                if builder.rng.random() < 0.5:
                    builder.line(a, c)
                else:
                    builder.line(b, d)
            elif pattern is FurniturePattern.SPONGE:
                if (i + j) % 3 == 0:
                    builder.line(a, c)


def _ring(center_y: float, radius_x: float, radius_z: float, count: int, phase: float = 0.0):
    angles = phase + 2 * math.pi * np.arange(count) / count
    return np.stack(
        [radius_x * np.cos(angles), np.full(count, center_y), radius_z * np.sin(angles)],
        axis=1,
    )


# ============================================================================
# Archetypes
# ============================================================================


def _chair(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    w, d = width / 2, depth / 2
    stretcher = seat_height * 0.3
    for x in (-w, w):
        for z in (-d, d):
            b.polyline([(x, 0, z), (x, stretcher, z), (x, seat_height, z)])
        b.line((x, stretcher, -d), (x, stretcher, d))

    add_panel(b, (-w, seat_height, -d), (width, 0, 0), (0, 0, depth), pattern)

    back_height = height - seat_height
    if back_height > 0.05:
        add_panel(b, (-w, seat_height, -d), (width, 0, 0), (0, back_height, 0), pattern)


def _table(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    w, d = width / 2, depth / 2
    stretcher = height * 0.25
    for x in (-w, w):
        for z in (-d, d):
            b.polyline([(x, 0, z), (x, stretcher, z), (x, height, z)])
        b.polyline([(x, stretcher, -d), (x, stretcher, 0), (x, stretcher, d)])
    b.line((-w, stretcher, 0), (w, stretcher, 0))

    add_panel(b, (-w, height, -d), (width, 0, 0), (0, 0, depth), pattern)


def _stool(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    w, d = width / 2, depth / 2
    sw, sd = w * 0.7, d * 0.7
    ring_t = 0.35
    ring = []
    for x, z in ((-1, -1), (1, -1), (1, 1), (-1, 1)):
        foot = np.array([x * w, 0.0, z * d])
        top = np.array([x * sw, seat_height, z * sd])
        mid = foot + (top - foot) * ring_t
        ring.append(mid)
        b.polyline([foot, mid, top])
    b.polyline(ring, closed=True)

    add_panel(b, (-sw, seat_height, -sd), (2 * sw, 0, 0), (0, 0, 2 * sd), pattern)


def _bench(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    w, d = width / 2, depth / 2
    stretcher = seat_height * 0.3
    for x in (-w, 0.0, w):
        for z in (-d, d):
            b.polyline([(x, 0, z), (x, stretcher, z), (x, seat_height, z)])
        b.line((x, stretcher, -d), (x, stretcher, d))
    for z in (-d, d):
        b.polyline([(-w, stretcher, z), (0, stretcher, z), (w, stretcher, z)])

    add_panel(b, (-w, seat_height, -d), (w, 0, 0), (0, 0, depth), pattern)
    add_panel(b, (0, seat_height, -d), (w, 0, 0), (0, 0, depth), pattern)


def _shelf(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    w, d = width / 2, depth / 2
    count = max(2, int(round(height / 0.35))) + 1
    levels = np.linspace(0.05 * height, height, count)

    for x in (-w, w):
        for z in (-d, d):
            b.polyline([(x, 0, z)] + [(x, y, z) for y in levels])

    for y in levels:
        b.polyline([(-w, y, -d), (w, y, -d), (w, y, d), (-w, y, d)], closed=True)

    for lower, upper in zip(levels, levels[1:]):
        add_panel(b, (-w, lower, -d), (width, 0, 0), (0, upper - lower, 0), pattern)


def _vase(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    rows = max(3, int(round(height / 0.12))) + 1
    count = 8
    ys = np.linspace(0.0, height, rows)
    profile = 0.6 + 0.4 * np.sin(math.pi * (0.2 + 0.8 * ys / height))

    grid = np.stack(
        [_ring(y, width / 2 * s, depth / 2 * s, count) for y, s in zip(ys, profile)],
        axis=0,
    )
    columns = [grid[:, j] for j in range(count)]
    add_surface(b, columns, pattern, closed=True)

    base = (0.0, 0.0, 0.0)
    for point in grid[0]:
        b.line(base, point)


def _recliner(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    w, d = width / 2, depth / 2
    front_floor = np.array([0.0, 0.0, d])
    front_top = np.array([0.0, seat_height, d])
    seat_rear = np.array([0.0, seat_height * 0.8, -0.3 * d])
    back_top = np.array([0.0, max(height, seat_height * 1.2), -d])
    rear_floor = np.array([0.0, 0.0, -d])

    for x in (-w, w):
        offset = np.array([x, 0.0, 0.0])
        b.polyline([front_floor + offset, front_top + offset, seat_rear + offset, back_top + offset])
        b.line(rear_floor + offset, seat_rear + offset)
        b.line(front_floor + offset, rear_floor + offset)

    origin_x = np.array([-w, 0.0, 0.0])
    across = (width, 0, 0)
    add_panel(b, front_top + origin_x, across, seat_rear - front_top, pattern)
    add_panel(b, seat_rear + origin_x, across, back_top - seat_rear, pattern)


def _lamp(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    size = min(width, depth)
    hub = np.array([0.0, 0.1 * height, 0.0])
    stem_top = np.array([0.0, 0.7 * height, 0.0])

    for foot in _ring(0.0, 0.4 * size, 0.4 * size, 3, phase=math.pi / 2):
        b.line(foot, hub)
    b.polyline([hub, (0.0, 0.4 * height, 0.0), stem_top])

    count = 8
    radii = np.linspace(0.45 * size, 0.25 * size, 3)
    ys = np.linspace(0.7 * height, height, 3)
    grid = np.stack([_ring(y, r, r, count) for y, r in zip(ys, radii)], axis=0)
    add_surface(b, [grid[:, j] for j in range(count)], pattern, closed=True)

    for point in grid[0]:
        b.line(stem_top, point)


def _mobius(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    count = 16
    rows = 3
    radius = 0.35 * min(width, depth)
    band = 0.6 * radius
    center_y = height / 2
    lift = (height / 2) / max(band, 1e-9) * 0.8
    reach = 2 * radius + band

    columns = []
    for u in 2 * math.pi * np.arange(count) / count:
        column = []
        for v in np.linspace(-1.0, 1.0, rows):
            r = radius + v * band / 2 * math.cos(u / 2)
            y = v * band / 2 * math.sin(u / 2)
            column.append(
                (r * math.cos(u) * width / reach, center_y + y * lift, r * math.sin(u) * depth / reach)
            )
        columns.append(np.array(column))

    add_surface(b, columns, pattern, closed=True, flip_seam=True)


def _hyperbolic(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    count = 12
    twist = 3
    rows = 5
    bottom = _ring(0.0, width / 2, depth / 2, count)
    top = _ring(height, width / 2, depth / 2, count)

    columns = []
    for k in range(count):
        start, end = bottom[k], top[(k + twist) % count]
        columns.append(np.array([start + (end - start) * t for t in np.linspace(0, 1, rows)]))

    add_surface(b, columns, pattern, closed=True)

    center = (0.0, height, 0.0)
    for point in top:
        b.line(center, point)


def _klein(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    count = 12
    rows = 8
    a = 2.0
    reach = a + 1.5

    columns = []
    for u in 2 * math.pi * np.arange(count) / count:
        column = []
        for v in 2 * math.pi * np.arange(rows) / rows:
            r = a + math.cos(u / 2) * math.sin(v) - math.sin(u / 2) * math.sin(2 * v)
            x = r * math.cos(u)
            z = r * math.sin(u)
            y = math.sin(u / 2) * math.sin(v) + math.cos(u / 2) * math.sin(2 * v)
            column.append(
                (x * width / (2 * reach), height / 2 + y * height / 4, z * depth / (2 * reach))
            )
        columns.append(np.array(column))

    add_surface(b, columns, pattern, closed=True, wrap_rows=True, flip_seam=True)


_TREE_SHAPES: Dict[FurniturePattern, Tuple[int, int]] = {
    FurniturePattern.LINEAR: (2, 4),
    FurniturePattern.TRIANGULAR: (3, 3),
    FurniturePattern.GYROID: (2, 5),
    FurniturePattern.VORONOI: (3, 3),
    FurniturePattern.SCHWARZ_D: (4, 2),
    FurniturePattern.OCTET: (4, 3),
    FurniturePattern.SPONGE: (3, 4),
}


def _fractal_tree(b: GraphBuilder, pattern, width, height, depth, seat_height) -> None:
    branches, levels = _TREE_SHAPES[pattern]
    jitter = pattern is FurniturePattern.VORONOI
    trunk = 0.35 * height
    tilt = math.radians(35)
    spread = np.array([width / height, 1.0, depth / height])

    def grow(base: np.ndarray, direction: np.ndarray, length: float, level: int, azimuth: float):
        tip = base + direction * length * spread
        b.line(base, tip)
        if level == levels:
            return
        for k in range(branches):
            angle = azimuth + 2 * math.pi * k / branches
            if jitter:
                angle += float(b.rng.uniform(-0.3, 0.3))
            lateral = np.array([math.cos(angle), 0.0, math.sin(angle)])
            child = direction * math.cos(tilt) + lateral * math.sin(tilt)
            child /= np.linalg.norm(child)
            grow(tip, child, length * 0.7, level + 1, azimuth + 0.5)

    grow(np.zeros(3), np.array([0.0, 1.0, 0.0]), trunk, 0, 0.0)


ArchetypeBuilder = Callable[..., None]

ARCHETYPES: Dict[FurnitureType, ArchetypeBuilder] = {
    FurnitureType.CHAIR: _chair,
    FurnitureType.TABLE: _table,
    FurnitureType.STOOL: _stool,
    FurnitureType.BENCH: _bench,
    FurnitureType.SHELF: _shelf,
    FurnitureType.VASE: _vase,
    FurnitureType.RECLINER: _recliner,
    FurnitureType.LAMP: _lamp,
    FurnitureType.MOBIUS: _mobius,
    FurnitureType.HYPERBOLIC: _hyperbolic,
    FurnitureType.KLEIN: _klein,
    FurnitureType.FRACTAL_TREE: _fractal_tree,
}


class SkeletonGenerator:
    """Maps an archetype, a pattern and dimensions to a skeleton graph."""

    def __init__(self, seed: int = VORONOI_SEED, tolerance: float = 1e-6):
        self.seed = seed
        self.tolerance = tolerance

    def generate(
        self,
        furniture_type: FurnitureType,
        pattern: FurniturePattern,
        width: float,
        height: float,
        depth: float,
        seat_height: float,
        builder: Optional[GraphBuilder] = None,
    ) -> SkeletonGraph:
        """
        Generate the skeleton graph for one piece of furniture.

        Args:
            furniture_type: Archetype to frame
            pattern: Infill pattern for panels and surfaces
            width, height, depth: Overall dimensions in metres
            seat_height: Seat (or work surface) height in metres

        Returns:
            SkeletonGraph with nodes in metres, Y up, standing on y = 0
        """
        furniture_type = FurnitureType(furniture_type)
        pattern = FurniturePattern(pattern)
        if min(width, height, depth) <= 0:
            raise ValueError("Furniture dimensions must be positive")

        builder = builder or GraphBuilder(tolerance=self.tolerance, seed=self.seed)
        ARCHETYPES[furniture_type](builder, pattern, width, height, depth, seat_height)
        graph = builder.build()

        logger.debug(
            f"Skeleton {furniture_type.value}/{pattern.value}: "
            f"{graph.node_count} nodes, {graph.edge_count} edges"
        )
        return graph
