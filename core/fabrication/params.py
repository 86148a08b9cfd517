"""Design parameter snapshot."""

import dataclasses
from dataclasses import dataclass
from typing import Dict, Tuple

from core.skeleton.types import FurniturePattern, FurnitureType

# Inclusive (min, max) accepted for each numeric parameter
PARAM_RANGES: Dict[str, Tuple[float, float]] = {
    "width": (0.2, 3.0),
    "height": (0.2, 3.0),
    "depth": (0.2, 3.0),
    "seat_height": (0.1, 1.2),
    "frequency": (1.0, 40.0),
    "amplitude": (0.0, 0.15),
    "thickness": (0.005, 0.05),
    "segments": (10, 100),
    "core_thickness": (0.002, 0.02),
    "taper_length": (0.0, 0.5),
}


@dataclass(frozen=True)
class DesignParams:
    """Immutable snapshot of everything a rebuild depends on."""

    # Object
    furniture_type: FurnitureType = FurnitureType.HYPERBOLIC
    pattern: FurniturePattern = FurniturePattern.OCTET

    # Dimensions (metres)
    width: float = 0.6
    height: float = 0.9
    depth: float = 0.6
    seat_height: float = 0.45

    # Fabrication
    frequency: float = 15.0
    amplitude: float = 0.04
    thickness: float = 0.02  # tube radius
    segments: int = 40
    structural_core: bool = True
    core_thickness: float = 0.008
    taper_length: float = 0.2

    # View
    show_ghost: bool = False

    def __post_init__(self):
        object.__setattr__(self, "furniture_type", FurnitureType(self.furniture_type))
        object.__setattr__(self, "pattern", FurniturePattern(self.pattern))
        object.__setattr__(self, "segments", int(self.segments))

    def validate(self) -> "DesignParams":
        """Check every numeric parameter against its range.

        Raises:
            ValueError: If a parameter is out of range
        """
        for name, (low, high) in PARAM_RANGES.items():
            value = getattr(self, name)
            if not low <= value <= high:
                raise ValueError(f"{name}={value} is outside [{low}, {high}]")
        return self

    def with_changes(self, **changes) -> "DesignParams":
        """Return a new snapshot with some fields replaced."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ValueError(f"Unknown parameters: {sorted(unknown)}")
        return dataclasses.replace(self, **changes)

    def generation_key(self) -> tuple:
        """Hashable key of every field that affects generated geometry."""
        return dataclasses.astuple(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data = dataclasses.asdict(self)
        data["furniture_type"] = self.furniture_type.value
        data["pattern"] = self.pattern.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DesignParams":
        """Create DesignParams from dictionary, ignoring unknown keys."""
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})
