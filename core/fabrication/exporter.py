"""Binary STL export of a finished furniture build."""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Union

import trimesh

from core.skeleton.types import FurniturePattern, FurnitureType

from .merge import concatenate
from .types import FurnitureBuild, TriangleSoup

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Serialized model handed to the file-save boundary."""

    data: bytes
    filename: str
    triangle_count: int

    media_type: str = "application/octet-stream"


def _tag(value: Union[str, FurnitureType, FurniturePattern]) -> str:
    return str(getattr(value, "value", value)).lower()


class ModelExporter:
    """
    Bakes tube, core and joint geometry into one scaled binary STL.

    Model units are metres; the default scale of 1000 writes millimetres,
    which is what slicers expect.
    """

    def __init__(self, scale: float = 1000.0, extension: str = "stl"):
        self.scale = scale
        self.extension = extension

    def bake(self, build: FurnitureBuild) -> List[TriangleSoup]:
        """Scaled world-space soups for everything that gets printed."""
        scale_matrix = trimesh.transformations.scale_matrix(self.scale)
        soups = []

        for soup in (build.tube, build.core):
            if soup is not None and not soup.is_empty:
                soups.append(soup.transformed(scale_matrix))

        joints = build.joints
        if joints.count and not joints.base.is_empty:
            # Spheres need no rotation, so scale once and translate each copy
            base = joints.base.transformed(scale_matrix)
            for position in joints.positions:
                offset = trimesh.transformations.translation_matrix(position * self.scale)
                soups.append(base.transformed(offset))

        return soups

    def serialize(self, soups: List[TriangleSoup]) -> bytes:
        """Binary STL: 80-byte header, triangle count, then normal + 3 vertices per triangle."""
        merged = concatenate(soups)
        return trimesh.exchange.stl.export_stl(merged.to_trimesh(process=False))

    def filename(
        self,
        furniture_type: Union[str, FurnitureType],
        pattern: Union[str, FurniturePattern],
        timestamp: Optional[int] = None,
    ) -> str:
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        return f"furniture_{_tag(furniture_type)}_{_tag(pattern)}_{timestamp}.{self.extension}"

    def export(
        self,
        build: Optional[FurnitureBuild],
        furniture_type: Union[str, FurnitureType],
        pattern: Union[str, FurniturePattern],
        timestamp: Optional[int] = None,
    ) -> Optional[ExportResult]:
        """
        Export a settled build.

        Args:
            build: Build to export; None when nothing has been generated yet
            furniture_type: Archetype tag for the filename
            pattern: Pattern tag for the filename
            timestamp: Epoch milliseconds for the filename (defaults to now)

        Returns:
            ExportResult, or None when there is nothing to export
        """
        if build is None:
            logger.debug("Export requested before any build was published; ignoring")
            return None

        soups = self.bake(build)
        if not soups:
            logger.debug("Export requested for a build with no printable geometry; ignoring")
            return None

        data = self.serialize(soups)
        count = int(sum(s.count for s in soups))
        name = self.filename(furniture_type, pattern, timestamp)
        logger.info(f"Exported {count} triangles to {name} ({len(data)} bytes)")

        return ExportResult(data=data, filename=name, triangle_count=count)

