"""Filament length, weight and cost estimates."""

import math
from dataclasses import dataclass

from .types import Stats

CM3_PER_M3 = 1_000_000


@dataclass
class MassEstimator:
    """
    Idealised constant-cross-section estimate.

    Bends, caps, joints and cores are deliberately ignored; the figures are
    user feedback only and never feed back into geometry.
    """

    density: float = 1.24  # g/cm3 (PLA)
    price_per_kg: float = 20.0

    def estimate(self, total_length: float, radius: float) -> Stats:
        volume_cm3 = total_length * math.pi * radius * radius * CM3_PER_M3
        weight = volume_cm3 * self.density
        cost = (weight / 1000) * self.price_per_kg
        return Stats(
            total_length=total_length,
            volume_cm3=volume_cm3,
            estimated_weight=weight,
            estimated_cost=cost,
        )
