"""Main furniture generator that orchestrates the pipeline."""

import logging
from typing import Dict, List, Optional

import numpy as np

from core.skeleton.curves import lerp, polyline_length, safe_unit, sample_bezier, serpentinize
from core.skeleton.generator import SkeletonGenerator
from core.skeleton.types import FurniturePattern, SkeletonGraph

from .config import GeneratorConfig
from .joints import JointInstancer
from .mass import MassEstimator
from .merge import merge_soups
from .params import DesignParams
from .rods import GhostPreviewBuilder, StructuralCoreBuilder
from .tube import TubeMeshBuilder
from .types import FurnitureBuild, TriangleSoup

logger = logging.getLogger(__name__)

# Serpentine waves per metre of edge, relative to the base frequency
FREQUENCY_MULTIPLIERS: Dict[FurniturePattern, float] = {
    FurniturePattern.LINEAR: 1.5,
    FurniturePattern.TRIANGULAR: 0.8,
    FurniturePattern.GYROID: 2.0,
    FurniturePattern.VORONOI: 1.0,
    FurniturePattern.SCHWARZ_D: 1.5,
    FurniturePattern.OCTET: 1.5,
    FurniturePattern.SPONGE: 1.5,
}


class FurnitureGenerator:
    """
    Generates printable furniture geometry from design parameters.

    Pipeline:
    1. Build the skeleton graph for the archetype and pattern
    2. For each non-degenerate edge: structural core, ghost preview, and a
       serpentine capped tube between the trimmed endpoints
    3. Instance a joint sphere at every node
    4. Merge tubes, cores and ghosts into one soup per category
    5. Estimate filament length, weight and cost from the tube centerlines
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        skeleton_generator: Optional[SkeletonGenerator] = None,
    ):
        self.config = config or GeneratorConfig()
        self.skeleton_generator = skeleton_generator or SkeletonGenerator()

        # Initialize sub-processors
        self.tube_builder = TubeMeshBuilder(radial_segments=self.config.radial_segments)
        self.core_builder = StructuralCoreBuilder(sections=self.config.core_sections)
        self.ghost_builder = GhostPreviewBuilder(
            radius=self.config.ghost_radius,
            sections=self.config.ghost_sections,
        )
        self.joint_instancer = JointInstancer(
            resolution=(self.config.joint_rows, self.config.joint_columns)
        )
        self.mass_estimator = MassEstimator(
            density=self.config.filament_density,
            price_per_kg=self.config.price_per_kg,
        )

    def generate(self, params: DesignParams) -> FurnitureBuild:
        """
        Generate a complete build from a parameter snapshot.

        Args:
            params: Design parameters

        Returns:
            FurnitureBuild owning all generated geometry
        """
        graph = self.skeleton_generator.generate(
            params.furniture_type,
            params.pattern,
            width=params.width,
            height=params.height,
            depth=params.depth,
            seat_height=params.seat_height,
        )
        return self.generate_from_graph(graph, params)

    def generate_from_graph(self, graph: SkeletonGraph, params: DesignParams) -> FurnitureBuild:
        """Generate geometry for an existing skeleton graph."""
        joint_radius = self.config.joint_radius(params.thickness)
        multiplier = FREQUENCY_MULTIPLIERS[params.pattern]

        invalid = set(graph.invalid_edges())
        if invalid:
            logger.warning(f"Dropping {len(invalid)} edges with out-of-range node indices")

        tubes: List[TriangleSoup] = []
        cores: List[TriangleSoup] = []
        ghosts: List[TriangleSoup] = []
        total_length = 0.0
        skipped = 0

        for edge in graph.edges:
            if edge in invalid:
                skipped += 1
                continue

            a = graph.nodes[edge[0]]
            b = graph.nodes[edge[1]]
            vec = b - a
            length = float(np.linalg.norm(vec))
            if length < self.config.min_edge_length:
                logger.debug(f"Skipping degenerate edge {edge} (length {length:.6f})")
                skipped += 1
                continue

            core = self.core_builder.build(a, b, params.core_thickness, enabled=params.structural_core)
            if core is not None:
                cores.append(core)

            ghost = self.ghost_builder.build(a, b, enabled=params.show_ghost)
            if ghost is not None:
                ghosts.append(ghost)

            centerline = self._centerline(a, b, length, joint_radius, multiplier, params)
            if centerline is None:
                continue

            total_length += polyline_length(centerline)
            tube = self.tube_builder.build(centerline, params.segments, params.thickness)
            if not tube.is_empty:
                tubes.append(tube)

        joints = self.joint_instancer.build(graph.nodes, joint_radius)
        stats = self.mass_estimator.estimate(total_length, params.thickness)

        build = FurnitureBuild(
            tube=merge_soups(tubes),
            core=merge_soups(cores),
            ghost=merge_soups(ghosts),
            joints=joints,
            stats=stats,
            node_count=graph.node_count,
            edge_count=graph.edge_count,
            skipped_edges=skipped,
            metadata={
                "furniture_type": params.furniture_type.value,
                "pattern": params.pattern.value,
            },
        )

        logger.info(
            f"Generated {params.furniture_type.value}/{params.pattern.value}: "
            f"{graph.node_count} nodes, {len(tubes)} tubes, {len(cores)} cores, "
            f"{skipped} edges skipped, {stats.total_length:.2f} m filament"
        )
        return build

    def _centerline(
        self,
        a: np.ndarray,
        b: np.ndarray,
        length: float,
        joint_radius: float,
        multiplier: float,
        params: DesignParams,
    ) -> Optional[np.ndarray]:
        """Serpentine centerline between the joint-trimmed endpoints, or None if too short."""
        direction = safe_unit(b - a)
        offset = joint_radius * self.config.joint_seat_factor
        start = a + direction * offset
        end = b - direction * offset

        # Trimmed ends must not cross over each other
        if length - 2 * offset <= self.config.min_tube_length:
            return None

        base = sample_bezier(
            start,
            lerp(start, end, 0.33),
            lerp(start, end, 0.66),
            end,
            params.segments,
        )
        frequency = params.frequency * (length * multiplier)
        return serpentinize(base, frequency, params.amplitude, params.taper_length)
