"""
Path geometry for links.

Stateless helpers that turn a link's endpoints (and waypoints) into the ordered
list of (lat, lng) points the map draws:
- straight: the two endpoints
- curved: a quadratic Bezier bowed to the left of A -> B
- custom: a polyline through every control point, or a Catmull-Rom spline

Every function returns a new list and never mutates its input.
"""

import math
from typing import List, Sequence

from mapnet.models import LatLng, Link, LinkStyle

# Curved links: perpendicular bow = |B - A| * CURVATURE, sampled CURVE_SEGMENTS times
CURVATURE = 0.28
CURVE_SEGMENTS = 28

# Curvy custom links: Catmull-Rom samples per control-point span
SAMPLES_PER_SEGMENT = 14

# Converting a curved link to custom: resample the arc at SEED_SEGMENTS and
# keep roughly SEED_SAMPLES interior points as the initial waypoints
SEED_SEGMENTS = 36
SEED_SAMPLES = 10


def straight_path(a: LatLng, b: LatLng) -> List[LatLng]:
    return [a, b]


def curved_path(a: LatLng, b: LatLng, segments: int = CURVE_SEGMENTS,
                curvature: float = CURVATURE) -> List[LatLng]:
    """
    Sample a quadratic Bezier arc from a to b.

    The control point sits on the perpendicular bisector of a-b, offset by
    |b - a| * curvature. The perpendicular is (-v.lng, v.lat), so the bow side
    only depends on endpoint order.

    Returns segments + 1 points; the first is a and the last is b exactly.
    """
    alat, alng = a
    blat, blng = b
    mid_lat, mid_lng = (alat + blat) / 2, (alng + blng) / 2
    vx, vy = blat - alat, blng - alng

    px, py = -vy, vx
    plen = math.hypot(px, py) or 1.0
    px, py = px / plen, py / plen

    k = math.hypot(vx, vy) * curvature
    cx, cy = mid_lat + px * k, mid_lng + py * k

    out: List[LatLng] = []
    for i in range(segments + 1):
        t = i / segments
        omt = 1 - t
        out.append((
            omt * omt * alat + 2 * omt * t * cx + t * t * blat,
            omt * omt * alng + 2 * omt * t * cy + t * t * blng,
        ))
    # Pin the ends so they compare equal to the device positions
    out[0] = a
    out[-1] = b
    return out


def catmull_rom_spline(points: Sequence[LatLng],
                       samples_per_segment: int = SAMPLES_PER_SEGMENT) -> List[LatLng]:
    """
    Smooth curve through every control point.

    The sequence is padded by repeating its first and last point so the curve
    starts and ends on the real endpoints. Each 4-point window contributes
    samples_per_segment points for t in [0, 1); the last control point is
    appended once at the end. Two points or fewer come back unchanged.
    """
    if len(points) <= 2:
        return list(points)

    extended = [points[0]] + list(points) + [points[-1]]

    result: List[LatLng] = []
    for i in range(len(extended) - 3):
        p0, p1, p2, p3 = extended[i], extended[i + 1], extended[i + 2], extended[i + 3]

        for j in range(samples_per_segment):
            t = j / samples_per_segment
            t2 = t * t
            t3 = t2 * t

            lat = 0.5 * ((2 * p1[0]) +
                         (-p0[0] + p2[0]) * t +
                         (2 * p0[0] - 5 * p1[0] + 4 * p2[0] - p3[0]) * t2 +
                         (-p0[0] + 3 * p1[0] - 3 * p2[0] + p3[0]) * t3)

            lng = 0.5 * ((2 * p1[1]) +
                         (-p0[1] + p2[1]) * t +
                         (2 * p0[1] - 5 * p1[1] + 4 * p2[1] - p3[1]) * t2 +
                         (-p0[1] + 3 * p1[1] - 3 * p2[1] + p3[1]) * t3)

            result.append((lat, lng))

    result.append(points[-1])
    return result


def control_points(a: LatLng, waypoints: Sequence[LatLng], b: LatLng) -> List[LatLng]:
    """[a, *waypoints, b], the vertex list used for editing and hit testing."""
    return [a] + [tuple(wp) for wp in waypoints] + [b]


def render_path(link: Link, a: LatLng, b: LatLng) -> List[LatLng]:
    """Dispatch on the link style. Waypoints are ignored unless the style is custom."""
    style = link.style
    if style == LinkStyle.STRAIGHT:
        return straight_path(a, b)
    if style == LinkStyle.CURVED:
        return curved_path(a, b)
    if style == LinkStyle.CUSTOM:
        ctrl = control_points(a, link.waypoints, b)
        if link.curvy:
            return catmull_rom_spline(ctrl)
        return ctrl
    raise ValueError(f"Unknown link style: {style!r}")


def seed_from_curve(a: LatLng, b: LatLng, samples: int = SEED_SAMPLES) -> List[LatLng]:
    """
    Initial custom waypoints that follow a curved link's arc.

    Resamples the arc at SEED_SEGMENTS, drops both endpoints and keeps every
    step-th interior point, step = max(1, len(interior) // samples).
    """
    curve = curved_path(a, b, SEED_SEGMENTS, CURVATURE)
    inner = curve[1:-1]
    step = max(1, len(inner) // samples)
    return [pt for i, pt in enumerate(inner) if i % step == 0]
