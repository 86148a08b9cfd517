"""Furniture design routes: parameters, stats readout and STL export."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from core.fabrication import PARAM_RANGES, DesignParams, FurnitureGenerator, GeneratorConfig, Stats
from core.skeleton import FurniturePattern, FurnitureType
from core.studio import ExportCommand, GeometryEngine, ParameterStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _bounded(name: str):
    low, high = PARAM_RANGES[name]
    return Field(default=None, ge=low, le=high)


class ParamsUpdate(BaseModel):
    """Partial parameter update; omitted fields keep their current value."""

    furniture_type: Optional[FurnitureType] = None
    pattern: Optional[FurniturePattern] = None
    width: Optional[float] = _bounded("width")
    height: Optional[float] = _bounded("height")
    depth: Optional[float] = _bounded("depth")
    seat_height: Optional[float] = _bounded("seat_height")
    frequency: Optional[float] = _bounded("frequency")
    amplitude: Optional[float] = _bounded("amplitude")
    thickness: Optional[float] = _bounded("thickness")
    segments: Optional[int] = _bounded("segments")
    structural_core: Optional[bool] = None
    core_thickness: Optional[float] = _bounded("core_thickness")
    taper_length: Optional[float] = _bounded("taper_length")
    show_ghost: Optional[bool] = None


class StatsResponse(BaseModel):
    """Filament usage readout."""

    filament_length: float
    volume_cm3: float
    estimated_weight: float
    estimated_cost: float
    display: dict[str, str]


class BuildSummary(BaseModel):
    """Counts for the currently published build."""

    nodes: int
    edges: int
    skipped_edges: int
    tube_triangles: int
    core_triangles: int
    ghost_triangles: int
    joints: int


# Process-wide store and engine (lazy loading)
_store: Optional[ParameterStore] = None
_engine: Optional[GeometryEngine] = None


def get_store() -> ParameterStore:
    """Get or create the parameter store."""
    global _store
    if _store is None:
        _store = ParameterStore()
    return _store


def get_engine() -> GeometryEngine:
    """Get or create the geometry engine bound to the store."""
    global _engine
    if _engine is None:
        config = GeneratorConfig.from_env()
        _engine = GeometryEngine(get_store(), generator=FurnitureGenerator(config))
    return _engine


def reset_engine() -> None:
    """Drop the store and engine, releasing the current build."""
    global _store, _engine
    if _engine is not None:
        _engine.close()
    _engine = None
    _store = None


def format_stats(stats: Stats) -> StatsResponse:
    return StatsResponse(
        **stats.to_dict(),
        display={
            "filament_length": f"{stats.total_length:.2f} m",
            "estimated_weight": f"{stats.estimated_weight:.0f} g",
            "estimated_cost": f"${stats.estimated_cost:.2f}",
        },
    )


@router.get("/options")
async def get_options():
    """List archetypes, patterns and parameter ranges."""
    return {
        "furniture_types": [t.value for t in FurnitureType],
        "patterns": [p.value for p in FurniturePattern],
        "ranges": {name: {"min": low, "max": high} for name, (low, high) in PARAM_RANGES.items()},
        "defaults": DesignParams().to_dict(),
    }


@router.get("/params")
async def get_params():
    """Get the current parameter snapshot."""
    engine = get_engine()
    return engine.store.snapshot.to_dict()


@router.patch("/params")
async def update_params(request: ParamsUpdate):
    """Update parameters; a changed snapshot triggers a rebuild."""
    engine = get_engine()
    changes = request.model_dump(exclude_none=True)

    try:
        params = engine.store.update(**changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "params": params.to_dict(),
        "stats": format_stats(engine.stats).model_dump(),
    }


@router.get("/stats", response_model=StatsResponse)
async def get_stats():
    """Get the stats of the current build."""
    return format_stats(get_engine().stats)


@router.get("/build", response_model=BuildSummary)
async def get_build():
    """Summarize the current build."""
    summary = get_engine().summary()
    if summary is None:
        raise HTTPException(status_code=404, detail="No build published yet")
    return BuildSummary(**summary)


@router.post("/export")
async def export_model():
    """Export the current build as a binary STL download."""
    command = ExportCommand()
    result = get_engine().export(command)
    if result is None:
        logger.info(f"Export {command.id}: nothing to export")
        return Response(status_code=204)

    return Response(
        content=result.data,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
