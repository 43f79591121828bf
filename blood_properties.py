"""
AVF Simulator: Blood Properties Model
=====================================
Non-Newtonian (Carreau) viscosity with a hematocrit-indexed parameter table,
Poiseuille wall shear rate with the Rabinowitsch correction, and the
self-consistent viscosity / shear-rate solve used by every branch.
"""

import logging
import math
from typing import Tuple

from constants import CARREAU, HCT_VISCOSITY_TABLE, BLOOD_DENSITY, UNITS
from models import BloodProperties, InvalidParameterError, require_number

logger = logging.getLogger(__name__)


def interpolate_hct_params(hematocrit: float) -> Tuple[float, float]:
    """
    Returns (mu_inf, mu_0) for a hematocrit value.
    The table is keyed 20-55 and looked up with the value as passed, so a
    ratio (0-1) falls below the first key and takes the 20 % row. Keys
    outside the table use the endpoint row.
    """
    hct_pct = hematocrit
    table = HCT_VISCOSITY_TABLE

    if hct_pct <= table[0].hct_pct:
        return table[0].mu_inf, table[0].mu_0
    if hct_pct >= table[-1].hct_pct:
        return table[-1].mu_inf, table[-1].mu_0

    for lo, hi in zip(table, table[1:]):
        if lo.hct_pct <= hct_pct <= hi.hct_pct:
            frac = (hct_pct - lo.hct_pct) / (hi.hct_pct - lo.hct_pct)
            return (
                lo.mu_inf + frac * (hi.mu_inf - lo.mu_inf),
                lo.mu_0 + frac * (hi.mu_0 - lo.mu_0),
            )

    return CARREAU.MU_INF, CARREAU.MU_0


def carreau_viscosity(shear_rate: float, hematocrit: float) -> float:
    """mu(g) = mu_inf + (mu_0 - mu_inf) * (1 + (lambda*g)^2)^((n-1)/2)"""
    mu_inf, mu_0 = interpolate_hct_params(hematocrit)
    gamma = max(shear_rate, CARREAU.SHEAR_RATE_FLOOR)
    term = 1.0 + (CARREAU.LAMBDA * gamma) ** 2
    return mu_inf + (mu_0 - mu_inf) * term ** ((CARREAU.N - 1.0) / 2.0)


def wall_shear_rate(flow_rate_m3s: float, radius_m: float) -> float:
    """
    Poiseuille wall shear rate 4Q/(pi r^3), scaled by the Rabinowitsch
    factor (3n+1)/(4n) for a shear-thinning fluid. Floored at 0.1 1/s.
    """
    n = CARREAU.N
    newtonian = (4.0 * flow_rate_m3s) / (math.pi * radius_m ** 3)
    correction = (3.0 * n + 1.0) / (4.0 * n)
    return max(correction * newtonian, CARREAU.SHEAR_RATE_FLOOR)


def mean_velocity(flow_rate_m3s: float, radius_m: float) -> float:
    return flow_rate_m3s / (math.pi * radius_m * radius_m)


def reynolds_number(velocity: float, diameter_m: float, viscosity: float) -> float:
    return (BLOOD_DENSITY * velocity * diameter_m) / viscosity


def compute_blood_properties(flow_rate: float, diameter: float, hematocrit: float) -> BloodProperties:
    """
    Self-consistent blood properties for a straight segment.

    flow_rate in mL/min, diameter in mm, hematocrit as a ratio.
    Viscosity depends on shear rate, so the pair is iterated a fixed number
    of times; the residual is checked against CARREAU.CONVERGENCE_TOL and a
    solve that has not settled is reported instead of being ignored.
    """
    flow_rate = require_number("flow_rate", flow_rate)
    diameter = require_number("diameter", diameter)
    hematocrit = require_number("hematocrit", hematocrit)
    if flow_rate < 0:
        raise InvalidParameterError(f"Invalid flow rate: {flow_rate} mL/min")
    if diameter <= 0:
        raise InvalidParameterError(f"Invalid diameter: {diameter} mm")
    if hematocrit < 0:
        raise InvalidParameterError(f"Invalid hematocrit: {hematocrit}")

    flow_m3s = flow_rate * UNITS.ML_MIN_TO_M3_S
    diameter_m = diameter * UNITS.MM_TO_M
    radius_m = diameter_m / 2.0

    viscosity = CARREAU.MU_INF  # initial guess
    shear_rate = CARREAU.SHEAR_RATE_FLOOR
    residual = math.inf
    iterations = 0

    for iterations in range(1, CARREAU.ITERATIONS + 1):
        shear_rate = wall_shear_rate(flow_m3s, radius_m)
        updated = carreau_viscosity(shear_rate, hematocrit)
        residual = abs(updated - viscosity)
        viscosity = updated
        if residual < CARREAU.CONVERGENCE_TOL:
            break

    converged = residual < CARREAU.CONVERGENCE_TOL
    if not converged:
        logger.warning(
            "Viscosity solve did not converge: Q=%.1f mL/min D=%.2f mm Hct=%.2f residual=%.3e",
            flow_rate, diameter, hematocrit, residual
        )

    velocity = mean_velocity(flow_m3s, radius_m)
    re = reynolds_number(velocity, diameter_m, viscosity)

    return BloodProperties(
        viscosity=viscosity,
        density=BLOOD_DENSITY,
        reynolds_number=re,
        shear_rate=shear_rate,
        iterations=iterations,
        converged=converged,
    )
