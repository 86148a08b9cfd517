"""Centerline sampling and serpentine deformation."""

import math

import numpy as np

EPSILON = 1e-9

WORLD_UP = np.array([0.0, 1.0, 0.0])
WORLD_SIDE = np.array([1.0, 0.0, 0.0])


def safe_unit(v) -> np.ndarray:
    """Normalize a 3D vector, returning the zero vector for near-zero input."""
    v = np.asarray(v, dtype=np.float64)
    length = float(np.linalg.norm(v))
    if length < EPSILON or not math.isfinite(length):
        return np.zeros(3)
    return v / length


def lerp(a, b, t: float) -> np.ndarray:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    return a + (b - a) * t


def sample_bezier(p0, p1, p2, p3, segments: int) -> np.ndarray:
    """
    Sample a cubic Bezier curve.

    Args:
        p0, p1, p2, p3: Control points
        segments: Number of segments; ``segments + 1`` points are returned

    Returns:
        (segments + 1, 3) array from p0 to p3
    """
    if segments < 1:
        raise ValueError("Need at least 1 segment")

    t = np.linspace(0.0, 1.0, segments + 1)[:, None]
    u = 1.0 - t
    control = [np.asarray(p, dtype=np.float64) for p in (p0, p1, p2, p3)]

    return (
        u**3 * control[0]
        + 3 * u**2 * t * control[1]
        + 3 * u * t**2 * control[2]
        + t**3 * control[3]
    )


def _taper_weights(arc: np.ndarray, taper_length: float) -> np.ndarray:
    """Smoothstep ramp from 0 at both ends to 1 once taper_length from either end."""
    if taper_length <= 0:
        return np.ones_like(arc)
    distance = np.minimum(arc, arc[-1] - arc)
    x = np.clip(distance / taper_length, 0.0, 1.0)
    return x * x * (3.0 - 2.0 * x)


def _lateral_axis(direction: np.ndarray) -> np.ndarray:
    """Horizontal axis perpendicular to the chord, or a side axis for vertical chords."""
    axis = safe_unit(np.cross(direction, WORLD_UP))
    if not axis.any():
        axis = safe_unit(np.cross(direction, WORLD_SIDE))
    return axis


def serpentinize(
    points: np.ndarray,
    frequency: float,
    amplitude: float,
    taper_length: float,
) -> np.ndarray:
    """
    Displace a polyline sideways by a tapered sine wave.

    The wave phase is ``frequency * t`` with ``t`` running from 0 to 1 along
    the samples. The displacement fades to zero within ``taper_length`` of
    arc length from each end, so the endpoints never move.

    Returns:
        Array with the same shape as ``points``
    """
    points = np.asarray(points, dtype=np.float64)
    n = len(points)
    if n < 2 or amplitude == 0:
        return points.copy()

    segment_lengths = np.linalg.norm(np.diff(points, axis=0), axis=1)
    arc = np.concatenate([[0.0], np.cumsum(segment_lengths)])
    if arc[-1] < EPSILON:
        return points.copy()

    axis = _lateral_axis(points[-1] - points[0])
    t = np.linspace(0.0, 1.0, n)
    offset = amplitude * np.sin(frequency * t) * _taper_weights(arc, taper_length)

    return points + offset[:, None] * axis[None, :]


def polyline_length(points: np.ndarray) -> float:
    """Sum of consecutive point-to-point distances."""
    points = np.asarray(points, dtype=np.float64)
    if len(points) < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(points, axis=0), axis=1).sum())
