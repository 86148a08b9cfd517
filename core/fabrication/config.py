"""Fabrication configuration management."""

import os
from dataclasses import dataclass


@dataclass
class GeneratorConfig:
    """Fabrication constants shared by every rebuild."""

    # Filament
    filament_density: float = 1.24  # g/cm3
    price_per_kg: float = 20.0

    # Export
    export_scale: float = 1000.0  # metres -> millimetres
    export_extension: str = "stl"

    # Tubes
    radial_segments: int = 6
    min_edge_length: float = 0.001  # shorter edges are skipped entirely
    min_tube_length: float = 0.01  # trimmed centerlines shorter than this get no tube

    # Joints
    joint_radius_factor: float = 1.6  # joint radius = thickness * factor
    joint_seat_factor: float = 0.8  # tubes start joint_radius * factor inside the sphere
    joint_rows: int = 12
    joint_columns: int = 12

    # Cores and previews
    core_sections: int = 6
    ghost_radius: float = 0.003
    ghost_sections: int = 4

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        """Load configuration from environment variables."""
        return cls(
            # Filament
            filament_density=float(os.getenv("FURNITURE_FILAMENT_DENSITY", "1.24")),
            price_per_kg=float(os.getenv("FURNITURE_PRICE_PER_KG", "20.0")),

            # Export
            export_scale=float(os.getenv("FURNITURE_EXPORT_SCALE", "1000.0")),
            export_extension=os.getenv("FURNITURE_EXPORT_EXTENSION", "stl"),

            # Tubes
            radial_segments=int(os.getenv("FURNITURE_RADIAL_SEGMENTS", "6")),
            min_edge_length=float(os.getenv("FURNITURE_MIN_EDGE_LENGTH", "0.001")),
            min_tube_length=float(os.getenv("FURNITURE_MIN_TUBE_LENGTH", "0.01")),

            # Joints
            joint_radius_factor=float(os.getenv("FURNITURE_JOINT_RADIUS_FACTOR", "1.6")),
            joint_seat_factor=float(os.getenv("FURNITURE_JOINT_SEAT_FACTOR", "0.8")),

            # Previews
            ghost_radius=float(os.getenv("FURNITURE_GHOST_RADIUS", "0.003")),
        )

    def joint_radius(self, thickness: float) -> float:
        """Radius of the sphere placed at every node."""
        return thickness * self.joint_radius_factor
