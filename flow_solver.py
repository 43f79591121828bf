"""
AVF Simulator: Flow Solver
==========================
Resistive flow partition between the draining vein and the distal artery,
the normalised pulsatile waveform, and a descriptive Poiseuille velocity
field over the junction.
"""

import logging
import math
from typing import List

from constants import FLOW, UNITS
from models import (
    ClinicalParameters,
    FlowSplit,
    VelocityVector,
    VesselGeometry,
    Point2D,
    InvalidParameterError,
    require_number
)
from blood_properties import mean_velocity
from geometry import cubic_bezier, cubic_bezier_tangent, outward_normal

logger = logging.getLogger(__name__)


def compute_flow_split(params: ClinicalParameters) -> FlowSplit:
    """
    Two-branch parallel conductance model with Hagen-Poiseuille R ~ L / r^4.
    Branch lengths are fixed nominal values, not the generated geometry.
    """
    artery_radius = params.artery_diameter / 2.0
    vein_radius = params.vein_diameter / 2.0

    r_vein = FLOW.NOMINAL_VEIN_LENGTH_MM / vein_radius ** 4
    r_distal = FLOW.NOMINAL_DISTAL_LENGTH_MM / (artery_radius * FLOW.DISTAL_RADIUS_FACTOR) ** 4

    # Entrance loss grows with the square of the angle
    angle_correction = 1.0 + FLOW.ANGLE_RESISTANCE_GAIN * (params.anastomosis_angle / 90.0) ** 2
    r_vein_effective = r_vein * angle_correction

    total_conductance = 1.0 / r_vein_effective + 1.0 / r_distal
    vein_fraction = (1.0 / r_vein_effective) / total_conductance

    return FlowSplit(
        vein_flow_rate=params.flow_rate * vein_fraction,
        distal_flow_rate=params.flow_rate * (1.0 - vein_fraction),
        vein_fraction=vein_fraction,
    )


def generate_waveform(heart_rate: float, systolic_ratio: float,
                      steps: int = FLOW.WAVEFORM_STEPS) -> List[float]:
    """
    Flow multiplier over one cardiac cycle (3-term Fourier series).

    The fundamental scales with systolic_ratio / 0.35. Samples are floored at
    0.15 and then rescaled about that floor so the mean is exactly 1.0 while
    floored samples stay on the floor.
    """
    heart_rate = require_number("heart_rate", heart_rate)
    systolic_ratio = require_number("systolic_ratio", systolic_ratio)
    if isinstance(steps, bool) or not isinstance(steps, int) or steps < 1:
        raise InvalidParameterError(f"Waveform needs a positive integer step count, got {steps!r}")
    if heart_rate <= 0:
        raise InvalidParameterError(f"Invalid heart rate: {heart_rate} bpm")
    if systolic_ratio <= 0:
        raise InvalidParameterError(f"Invalid systolic ratio: {systolic_ratio}")

    period = 60.0 / heart_rate
    a1 = FLOW.FUNDAMENTAL_AMPLITUDE * (systolic_ratio / FLOW.REFERENCE_SYSTOLIC_RATIO)
    a2, phi2 = FLOW.SECOND_HARMONIC
    a3, phi3 = FLOW.THIRD_HARMONIC
    floor = FLOW.WAVEFORM_FLOOR

    waveform = []
    for i in range(steps):
        t = (i / steps) * period
        phase = 2.0 * math.pi * t / period
        q = (1.0
             + a1 * math.sin(phase)
             + a2 * math.sin(2.0 * phase + phi2)
             + a3 * math.sin(3.0 * phase + phi3))
        waveform.append(max(q, floor))

    mean = sum(waveform) / steps
    if mean - floor < 1e-12:
        return [1.0] * steps

    gain = (1.0 - floor) / (mean - floor)
    return [floor + (q - floor) * gain for q in waveform]


def compute_velocity_field(params: ClinicalParameters, geometry: VesselGeometry,
                           flow_split: FlowSplit) -> List[VelocityVector]:
    """
    Samples parabolic profiles (v_max = 2 v_mean) over the artery around the
    junction and transversely along the vein centerline. Descriptive output;
    nothing downstream reads it back.
    """
    artery_radius = params.artery_diameter / 2.0
    vein_radius = params.vein_diameter / 2.0
    artery_radius_m = artery_radius * UNITS.MM_TO_M
    vein_radius_m = vein_radius * UNITS.MM_TO_M

    artery_vel = mean_velocity(params.flow_rate * UNITS.ML_MIN_TO_M3_S, artery_radius_m)
    vein_vel = mean_velocity(flow_split.vein_flow_rate * UNITS.ML_MIN_TO_M3_S, vein_radius_m)
    distal_vel = mean_velocity(
        flow_split.distal_flow_rate * UNITS.ML_MIN_TO_M3_S,
        artery_radius_m * FLOW.DISTAL_RADIUS_FACTOR
    )

    angle_rad = math.radians(params.anastomosis_angle)
    origin = geometry.anastomosis_point
    vectors: List[VelocityVector] = []

    # 1. Artery grid
    spacing = FLOW.GRID_SPACING_MM
    span = FLOW.GRID_HALF_SPAN_MM
    inset = FLOW.GRID_WALL_INSET_MM
    n_x = int(math.floor(2.0 * span / spacing)) + 1
    usable = 2.0 * (artery_radius - inset)
    n_y = int(math.floor(usable / spacing)) + 1 if usable >= 0 else 0

    for ix in range(n_x):
        dx = -span + ix * spacing
        for iy in range(n_y):
            dy = -artery_radius + inset + iy * spacing
            radial = abs(dy) / artery_radius
            if radial > FLOW.GRID_MAX_RADIAL:
                continue

            parabolic = 1.0 - radial * radial
            if dx < -artery_radius * FLOW.JUNCTION_PROXIMAL_RADII:
                vx, vy = 2.0 * artery_vel * parabolic, 0.0
            elif dx > artery_radius * FLOW.JUNCTION_DISTAL_RADII:
                vx, vy = 2.0 * distal_vel * parabolic, 0.0
            else:
                # Junction: flow near the upper wall bends into the vein
                blend = max(0.0, (dy + artery_radius) / (2.0 * artery_radius))
                vx = artery_vel * parabolic * (1.0 - 0.5 * blend)
                vy = artery_vel * parabolic * blend * math.sin(angle_rad) * 0.5

            vectors.append(VelocityVector(
                position=Point2D(origin.x + dx, origin.y + dy),
                vx=vx, vy=vy,
                magnitude=math.hypot(vx, vy),
            ))

    # 2. Transverse profiles along the vein
    controls = geometry.vein_control_points
    for k in range(FLOW.VEIN_PROFILE_COUNT):
        s = FLOW.VEIN_PROFILE_START + k * FLOW.VEIN_PROFILE_STEP
        centre = cubic_bezier(s, *controls)
        tangent = cubic_bezier_tangent(s, *controls)
        normal = outward_normal(tangent)

        for r in FLOW.VEIN_PROFILE_OFFSETS:
            v_mag = 2.0 * vein_vel * (1.0 - r * r)
            vectors.append(VelocityVector(
                position=Point2D(centre.x + r * vein_radius * normal.x,
                                 centre.y + r * vein_radius * normal.y),
                vx=v_mag * tangent.x,
                vy=v_mag * tangent.y,
                magnitude=v_mag,
            ))

    logger.debug("Velocity field: %d vectors", len(vectors))
    return vectors
