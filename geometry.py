"""
AVF Simulator: Geometry Generator
=================================
Builds the 2-D end-to-side junction: a straight artery, a vein that leaves
the anastomosis along a cubic Bezier curve, the wall contours around both,
the carved stoma, the toe patch and the region-tagged wall samples used by
the WSS calculator.

Coordinates are in mm with the anastomosis point at the origin, the artery
running along +x (flow left to right) and the vein rising into +y.
"""

import logging
import math
from typing import List, Sequence, Tuple

from constants import GEOMETRY, PARAMETER_LIMITS
from models import (
    Point2D,
    WallPoint,
    VesselGeometry,
    RegionType,
    WallContour,
    InvalidParameterError,
    require_number
)

logger = logging.getLogger(__name__)

BezierControls = Tuple[Point2D, Point2D, Point2D, Point2D]


# --- Bezier helpers ---

def cubic_bezier(t: float, p0: Point2D, p1: Point2D, p2: Point2D, p3: Point2D) -> Point2D:
    mt = 1.0 - t
    a = mt * mt * mt
    b = 3.0 * mt * mt * t
    c = 3.0 * mt * t * t
    d = t * t * t
    return Point2D(
        x=a * p0.x + b * p1.x + c * p2.x + d * p3.x,
        y=a * p0.y + b * p1.y + c * p2.y + d * p3.y,
    )


def cubic_bezier_tangent(t: float, p0: Point2D, p1: Point2D, p2: Point2D, p3: Point2D) -> Point2D:
    """Unit tangent from the analytic derivative of the curve."""
    mt = 1.0 - t
    dx = 3 * mt * mt * (p1.x - p0.x) + 6 * mt * t * (p2.x - p1.x) + 3 * t * t * (p3.x - p2.x)
    dy = 3 * mt * mt * (p1.y - p0.y) + 6 * mt * t * (p2.y - p1.y) + 3 * t * t * (p3.y - p2.y)
    length = math.hypot(dx, dy)
    if length < 1e-12:
        # Degenerate control polygon: fall back to the chord
        dx, dy = p3.x - p0.x, p3.y - p0.y
        length = math.hypot(dx, dy)
    return Point2D(dx / length, dy / length)


def outward_normal(tangent: Point2D) -> Point2D:
    """Tangent rotated -90 deg; for the vein this points to the outer (toe) side."""
    return Point2D(tangent.y, -tangent.x)


def vein_control_points(angle_rad: float) -> BezierControls:
    """
    P0 at the anastomosis, P1 along the anastomosis angle, P3 at the distal
    terminus and P2 horizontal from P3, so the vein leaves the junction at the
    prescribed angle and arrives travelling along -x.
    """
    length = GEOMETRY.VEIN_CURVE_LENGTH_MM
    depart = GEOMETRY.VEIN_DEPARTURE_FRACTION * length
    terminus = GEOMETRY.VEIN_TERMINUS_FRACTION * length

    p0 = Point2D(0.0, 0.0)
    p1 = Point2D(math.cos(math.pi - angle_rad) * depart, math.sin(angle_rad) * depart)
    p3 = Point2D(-terminus, terminus)
    p2 = Point2D(p3.x + GEOMETRY.VEIN_ENTRY_FRACTION * length, p3.y)
    return p0, p1, p2, p3


def polyline_length(points: Sequence[Point2D]) -> float:
    return sum(math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(points, points[1:]))


def stoma_bounds(vein_radius: float, angle_rad: float) -> Tuple[float, float]:
    """
    (heel_x, toe_x) of the anastomosis opening. The opening is the oblique
    cut of the vein, 2*r_v / sin(angle) long; sin is floored so 0 and 90 deg
    stay finite.
    """
    sin_floor = math.sin(math.radians(GEOMETRY.MIN_OPENING_ANGLE_DEG))
    half_opening = vein_radius / max(math.sin(angle_rad), sin_floor)
    extent = GEOMETRY.OPENING_EXTENT * half_opening
    return -extent, extent


def _in_stoma(x: float, bounds: Tuple[float, float]) -> bool:
    heel_x, toe_x = bounds
    return heel_x < x < toe_x


def _inside_artery_lumen(p: Point2D, artery_radius: float) -> bool:
    """
    Vein-wall samples next to the junction sit inside the artery tube and
    are not real wall locations.
    """
    half_length = GEOMETRY.ARTERY_LENGTH_MM / 2.0
    return abs(p.y) < artery_radius and abs(p.x) <= half_length


# --- Main builder ---

def generate_geometry(artery_diameter: float, vein_diameter: float, angle: float) -> VesselGeometry:
    """
    Builds the end-to-side junction for the given diameters (mm) and
    anastomosis angle (degrees).
    """
    artery_diameter = require_number("artery_diameter", artery_diameter)
    vein_diameter = require_number("vein_diameter", vein_diameter)
    angle = require_number("anastomosis_angle", angle)

    d_min, d_max = PARAMETER_LIMITS.DIAMETER_MM
    if not (d_min <= artery_diameter <= d_max):
        raise InvalidParameterError(f"Invalid artery diameter: {artery_diameter} mm")
    if not (d_min <= vein_diameter <= d_max):
        raise InvalidParameterError(f"Invalid vein diameter: {vein_diameter} mm")
    a_min, a_max = PARAMETER_LIMITS.ANGLE_DEG
    if not (a_min <= angle <= a_max):
        raise InvalidParameterError(f"Invalid anastomosis angle: {angle} deg")

    artery_radius = artery_diameter / 2.0
    vein_radius = vein_diameter / 2.0
    angle_rad = math.radians(angle)
    anastomosis_point = Point2D(0.0, 0.0)

    # 1. Artery centerline: straight, centred on the anastomosis
    artery_length = GEOMETRY.ARTERY_LENGTH_MM
    n_artery = GEOMETRY.ARTERY_SAMPLES
    artery_centerline = [
        Point2D(-artery_length / 2.0 + (i / (n_artery - 1)) * artery_length, 0.0)
        for i in range(n_artery)
    ]

    # 2. Vein centerline with analytic tangents/normals
    controls = vein_control_points(angle_rad)
    n_vein = GEOMETRY.VEIN_SAMPLES
    vein_centerline: List[Point2D] = []
    vein_normals: List[Point2D] = []
    for i in range(n_vein):
        t = i / (n_vein - 1)
        vein_centerline.append(cubic_bezier(t, *controls))
        vein_normals.append(outward_normal(cubic_bezier_tangent(t, *controls)))

    # 3. Wall contours
    artery_upper = [Point2D(p.x, p.y + artery_radius) for p in artery_centerline]
    artery_lower = [Point2D(p.x, p.y - artery_radius) for p in artery_centerline]
    vein_outer = [
        Point2D(p.x + vein_radius * n.x, p.y + vein_radius * n.y)
        for p, n in zip(vein_centerline, vein_normals)
    ]
    vein_inner = [
        Point2D(p.x - vein_radius * n.x, p.y - vein_radius * n.y)
        for p, n in zip(vein_centerline, vein_normals)
    ]

    # 4. Stoma and toe patch
    bounds = stoma_bounds(vein_radius, angle_rad)
    carved_upper = _carve_stoma(artery_upper, bounds, artery_radius)
    toe_connection = _toe_connection(controls, vein_radius, artery_radius)

    # 5. Advisory recirculation zone
    recirculation_zone = _estimate_recirculation_zone(artery_radius, vein_radius, angle_rad)

    # 6. Region-tagged wall samples
    wall_points = _generate_wall_points(
        carved_upper, artery_lower, vein_outer, vein_inner, vein_normals,
        toe_connection, bounds, artery_radius
    )

    logger.debug(
        "Geometry Da=%.2f Dv=%.2f angle=%.1f -> %d wall points",
        artery_diameter, vein_diameter, angle, len(wall_points)
    )

    return VesselGeometry(
        artery_centerline=artery_centerline,
        vein_centerline=vein_centerline,
        artery_upper_wall=carved_upper,
        artery_lower_wall=artery_lower,
        vein_outer_wall=vein_outer,
        vein_inner_wall=vein_inner,
        toe_connection=toe_connection,
        vein_control_points=controls,
        anastomosis_point=anastomosis_point,
        wall_points=wall_points,
        recirculation_zone=recirculation_zone,
        artery_length=artery_length,
        vein_length=polyline_length(vein_centerline),
        artery_diameter=artery_diameter,
        vein_diameter=vein_diameter,
        anastomosis_angle=angle,
    )


def _carve_stoma(upper_wall: List[Point2D], bounds: Tuple[float, float],
                 artery_radius: float) -> List[Point2D]:
    """Pushes the upper-wall samples across the opening into the lumen."""
    depth = GEOMETRY.OPENING_DEPTH * artery_radius
    return [
        Point2D(p.x, p.y - depth) if _in_stoma(p.x, bounds) else p
        for p in upper_wall
    ]


def _toe_connection(controls: BezierControls, vein_radius: float,
                    artery_radius: float) -> List[Point2D]:
    """Secondary Bezier bridging the artery upper wall and the vein outer wall."""
    t_vein = GEOMETRY.TOE_VEIN_PARAM
    centre = cubic_bezier(t_vein, *controls)
    normal = outward_normal(cubic_bezier_tangent(t_vein, *controls))
    vein_pt = Point2D(centre.x + vein_radius * normal.x, centre.y + vein_radius * normal.y)

    artery_pt = Point2D(GEOMETRY.TOE_ARTERY_OFFSET_MM, artery_radius)
    cp1 = Point2D(artery_pt.x + GEOMETRY.TOE_ARTERY_HANDLE_MM, artery_pt.y)
    cp2 = Point2D(vein_pt.x + GEOMETRY.TOE_VEIN_HANDLE_MM, vein_pt.y - GEOMETRY.TOE_VEIN_HANDLE_MM)

    n = GEOMETRY.TOE_SAMPLES
    return [cubic_bezier(i / (n - 1), artery_pt, cp1, cp2, vein_pt) for i in range(n)]


def _estimate_recirculation_zone(artery_radius: float, vein_radius: float,
                                 angle_rad: float) -> List[Point2D]:
    """
    Heuristic arc on the floor side of the junction, growing with the angle.
    Not a physical solve.
    """
    zone_length = 2.0 * vein_radius * (1.0 + GEOMETRY.RECIRC_ANGLE_GAIN * math.sin(angle_rad))
    zone_width = GEOMETRY.RECIRC_WIDTH * artery_radius
    offset = GEOMETRY.RECIRC_OFFSET

    n = GEOMETRY.RECIRC_SAMPLES
    points = []
    for i in range(n):
        t = i / (n - 1)
        theta = t * math.pi
        points.append(Point2D(
            x=zone_length * offset + zone_length * (1.0 - offset) * math.cos(theta),
            y=-artery_radius * offset + zone_width * math.sin(theta) * (1.0 - 0.2 * t),
        ))
    return points


def _classify_upper(dx: float, artery_radius: float) -> RegionType:
    if dx > GEOMETRY.UPPER_DISTAL_RADII * artery_radius:
        return RegionType.DISTAL_ARTERY
    if abs(dx) < GEOMETRY.UPPER_JUNCTION_RADII * artery_radius:
        return RegionType.ANASTOMOSIS_HEEL if dx < 0 else RegionType.ANASTOMOSIS_TOE
    return RegionType.PROXIMAL_ARTERY


def _classify_lower(dx: float, artery_radius: float) -> RegionType:
    if dx > GEOMETRY.LOWER_DISTAL_RADII * artery_radius:
        return RegionType.DISTAL_ARTERY
    if abs(dx) < GEOMETRY.LOWER_FLOOR_RADII * artery_radius:
        return RegionType.ANASTOMOSIS_FLOOR
    return RegionType.PROXIMAL_ARTERY


def _generate_wall_points(artery_upper: List[Point2D], artery_lower: List[Point2D],
                          vein_outer: List[Point2D], vein_inner: List[Point2D],
                          vein_normals: List[Point2D], toe_connection: List[Point2D],
                          bounds: Tuple[float, float], artery_radius: float) -> List[WallPoint]:
    points: List[WallPoint] = []
    up = Point2D(0.0, 1.0)
    down = Point2D(0.0, -1.0)
    diagonal = Point2D(math.cos(math.pi / 4), math.sin(math.pi / 4))

    # Artery upper wall, opening excluded
    last = len(artery_upper) - 1
    for i, p in enumerate(artery_upper):
        if _in_stoma(p.x, bounds):
            continue
        points.append(WallPoint(
            point=p, normal=up,
            region_type=_classify_upper(p.x, artery_radius),
            param_position=i / last,
            contour=WallContour.ARTERY_UPPER,
        ))

    # Toe patch
    last = len(toe_connection) - 1
    for i, p in enumerate(toe_connection):
        points.append(WallPoint(
            point=p, normal=diagonal,
            region_type=RegionType.ANASTOMOSIS_TOE,
            param_position=i / last,
            contour=WallContour.TOE_CONNECTION,
        ))

    # Artery lower wall
    last = len(artery_lower) - 1
    for i, p in enumerate(artery_lower):
        points.append(WallPoint(
            point=p, normal=down,
            region_type=_classify_lower(p.x, artery_radius),
            param_position=i / last,
            contour=WallContour.ARTERY_LOWER,
        ))

    junction = GEOMETRY.VEIN_JUNCTION_PARAM

    # Vein outer wall
    last = len(vein_outer) - 1
    for i, p in enumerate(vein_outer):
        if _inside_artery_lumen(p, artery_radius):
            continue
        t = i / last
        points.append(WallPoint(
            point=p, normal=vein_normals[i],
            region_type=RegionType.ANASTOMOSIS_OUTER if t < junction else RegionType.VEIN_OUTER,
            param_position=t,
            contour=WallContour.VEIN_OUTER,
        ))

    # Vein inner wall, normal flipped
    last = len(vein_inner) - 1
    for i, p in enumerate(vein_inner):
        if _inside_artery_lumen(p, artery_radius):
            continue
        t = i / last
        n = vein_normals[i]
        points.append(WallPoint(
            point=p, normal=Point2D(-n.x, -n.y),
            region_type=RegionType.ANASTOMOSIS_FLOOR if t < junction else RegionType.VEIN_INNER,
            param_position=t,
            contour=WallContour.VEIN_INNER,
        ))

    return points
