"""
AVF Simulator: Core Physics Engine
==================================
Orchestrates the pipeline: geometry -> blood properties -> flow split ->
per-wall-point WSS / OSI / RRT -> aggregate metrics, and wraps the whole
run (plus the maturation prediction) in a safe factory for the API.
"""

import logging
import math
from typing import List, Optional

from models import (
    ClinicalParameters,
    HemodynamicMetrics,
    HemodynamicResult,
    RegionType,
    SimulationReport,
    WallShear,
    WSSData,
    AuditLog,
    DataTypeError,
    InvalidParameterError
)
from constants import WSS_CORRECTION, OSI_MODEL, RRT_MODEL, DEAN, UNITS
from blood_properties import compute_blood_properties
from geometry import generate_geometry
from flow_solver import compute_flow_split, generate_waveform, compute_velocity_field
from prediction import predict_maturation, predict_timeline
from safety import classify_metrics

logger = logging.getLogger(__name__)


class AVFPhysicsEngine:
    """
    The Mathematical Core.
    Translates Clinical Parameters -> Wall Shear Field -> Aggregate Metrics.
    """

    @staticmethod
    def _region_correction_factor(region: RegionType, angle_rad: float, diameter_ratio: float) -> float:
        """
        Empirical WSS multiplier per wall region (vein/artery diameter ratio).
        Only the floor is treated as a low-WSS recirculating region.
        """
        if region == RegionType.PROXIMAL_ARTERY:
            return 1.0
        elif region == RegionType.DISTAL_ARTERY:
            return WSS_CORRECTION.DISTAL_ARTERY  # reduced by the flow split
        elif region == RegionType.ANASTOMOSIS_OUTER:
            # Impingement of the jet on the outer wall
            return 1.0 + WSS_CORRECTION.OUTER_GAIN * math.sin(angle_rad) * math.sqrt(diameter_ratio)
        elif region == RegionType.ANASTOMOSIS_TOE:
            return 1.0 + WSS_CORRECTION.TOE_GAIN * math.cos(angle_rad / 2.0)
        elif region == RegionType.ANASTOMOSIS_HEEL:
            return 1.0 + WSS_CORRECTION.HEEL_GAIN * math.sin(angle_rad)
        elif region == RegionType.ANASTOMOSIS_FLOOR:
            damping = 1.0 - WSS_CORRECTION.FLOOR_ANGLE_DAMPING * math.sin(angle_rad / 2.0)
            return WSS_CORRECTION.FLOOR_BASE * damping / diameter_ratio ** WSS_CORRECTION.FLOOR_RATIO_EXPONENT
        elif region == RegionType.VEIN_OUTER:
            return WSS_CORRECTION.VEIN_OUTER_BASE + WSS_CORRECTION.VEIN_OUTER_GAIN * math.sin(angle_rad)
        elif region == RegionType.VEIN_INNER:
            return WSS_CORRECTION.VEIN_INNER
        return 1.0

    @staticmethod
    def _is_recirculating(region: RegionType, angle_rad: float) -> bool:
        if region == RegionType.ANASTOMOSIS_FLOOR:
            return True
        threshold = math.radians(OSI_MODEL.VEIN_INNER_RECIRC_ANGLE_DEG)
        return region == RegionType.VEIN_INNER and angle_rad > threshold

    @staticmethod
    def _calculate_osi(wss_series: List[float], region: RegionType, angle_rad: float) -> float:
        """
        OSI = 0.5 * (1 - |sum(tau)| / sum(|tau|)).
        Unidirectional regions only see pulsatile modulation, so their OSI
        comes from the coefficient of variation and stays <= 0.15.
        """
        n = len(wss_series)

        if not AVFPhysicsEngine._is_recirculating(region, angle_rad):
            mean = sum(wss_series) / n
            variance = sum((w - mean) ** 2 for w in wss_series) / n
            cv = math.sqrt(variance) / (mean + OSI_MODEL.EPS)
            return min(OSI_MODEL.STEADY_BASE + cv * OSI_MODEL.STEADY_CV_GAIN, OSI_MODEL.STEADY_CAP)

        # Recirculation: diastolic phases reverse direction
        reversal = OSI_MODEL.REVERSAL_BASE + OSI_MODEL.REVERSAL_GAIN * math.sin(angle_rad)
        sum_abs = 0.0
        sum_signed = 0.0
        for i, wss in enumerate(wss_series):
            phase = (i / n) * 2.0 * math.pi
            direction = 1.0 if math.sin(phase) > OSI_MODEL.FORWARD_PHASE_THRESHOLD else -reversal
            sum_abs += abs(wss)
            sum_signed += wss * direction

        osi = 0.5 * (1.0 - abs(sum_signed) / (sum_abs + OSI_MODEL.EPS))
        return min(max(osi, 0.0), OSI_MODEL.MAX)

    @staticmethod
    def _calculate_rrt(tawss: float, osi: float) -> float:
        """RRT = 1 / ((1 - 2 OSI) * TAWSS), capped at 100 via the denominator floor."""
        denominator = (1.0 - 2.0 * osi) * tawss
        if denominator < RRT_MODEL.DENOMINATOR_FLOOR:
            return RRT_MODEL.CAP
        return 1.0 / denominator

    @staticmethod
    def compute_hemodynamics(params: ClinicalParameters) -> HemodynamicResult:
        """
        MASTER BUILDER: full wall-shear field and aggregate metrics for one
        parameter snapshot. Pure; identical inputs give identical outputs.
        """
        # 1. Geometry
        geometry = generate_geometry(
            params.artery_diameter, params.vein_diameter, params.anastomosis_angle
        )

        # 2. Base blood properties (whole inflow through the artery)
        base_blood = compute_blood_properties(
            params.flow_rate, params.artery_diameter, params.hematocrit
        )

        # 3. Flow split and waveform
        flow_split = compute_flow_split(params)
        waveform = generate_waveform(params.heart_rate, params.systolic_ratio)

        # 4. Branch baseline WSS = mu * shear rate
        vein_blood = compute_blood_properties(
            flow_split.vein_flow_rate, params.vein_diameter, params.hematocrit
        )
        base_wss_artery = base_blood.viscosity * base_blood.shear_rate
        base_wss_vein = vein_blood.viscosity * vein_blood.shear_rate

        angle_rad = math.radians(params.anastomosis_angle)
        diameter_ratio = params.vein_diameter / params.artery_diameter

        # 5. Per wall point
        wall_wss: List[WallShear] = []
        for wp in geometry.wall_points:
            base_wss = base_wss_vein if wp.region_type.is_vein else base_wss_artery
            correction = AVFPhysicsEngine._region_correction_factor(
                wp.region_type, angle_rad, diameter_ratio
            )
            spatial = 1.0 + WSS_CORRECTION.SPATIAL_AMPLITUDE * math.sin(
                wp.param_position * math.pi * WSS_CORRECTION.SPATIAL_CYCLES
            )

            series = [base_wss * correction * spatial * w for w in waveform]
            tawss = sum(abs(w) for w in series) / len(series)
            osi = AVFPhysicsEngine._calculate_osi(series, wp.region_type, angle_rad)
            rrt = AVFPhysicsEngine._calculate_rrt(tawss, osi)

            wall_wss.append(WallShear(point=wp, data=WSSData(tawss=tawss, osi=osi, rrt=rrt)))

        # 6. Descriptive velocity field
        velocity_field = compute_velocity_field(params, geometry, flow_split)

        # 7. Aggregates
        metrics = AVFPhysicsEngine._aggregate_metrics(params, wall_wss, base_blood)

        logger.debug(
            "Hemodynamics: meanTAWSS=%.3f Pa meanOSI=%.3f Re=%.0f (%d wall points)",
            metrics.mean_tawss, metrics.mean_osi, metrics.reynolds_number, len(wall_wss)
        )

        return HemodynamicResult(
            wall_wss=wall_wss,
            metrics=metrics,
            flow_split=flow_split,
            velocity_field=velocity_field,
            geometry=geometry,
            waveform=waveform,
        )

    @staticmethod
    def _aggregate_metrics(params: ClinicalParameters, wall_wss: List[WallShear],
                           base_blood) -> HemodynamicMetrics:
        tawss_values = [w.data.tawss for w in wall_wss]
        osi_values = [w.data.osi for w in wall_wss]
        rrt_values = [w.data.rrt for w in wall_wss]
        n = len(wall_wss)

        max_tawss = max(tawss_values)
        min_tawss = min(tawss_values)

        # De = Re * sqrt(D / 2R_c), R_c a fixed multiple of the vein diameter
        curvature_radius = params.vein_diameter * DEAN.CURVATURE_RADIUS_DIAMETERS
        dean = base_blood.reynolds_number * math.sqrt(params.vein_diameter / (2.0 * curvature_radius))

        # Spatial WSS spread across one artery diameter (Pa/m)
        wss_gradient = (max_tawss - min_tawss) / (params.artery_diameter * UNITS.MM_TO_M)

        return HemodynamicMetrics(
            mean_tawss=sum(tawss_values) / n,
            max_tawss=max_tawss,
            min_tawss=min_tawss,
            mean_osi=sum(osi_values) / n,
            max_osi=max(osi_values),
            mean_rrt=sum(rrt_values) / n,
            max_rrt=min(max(rrt_values), RRT_MODEL.CAP),
            reynolds_number=base_blood.reynolds_number,
            dean_number=dean,
            wss_gradient=wss_gradient,
            effective_viscosity=base_blood.viscosity,
            total_flow_rate=params.flow_rate,
        )

    @staticmethod
    def create_simulation(data: dict, base_flow_rate: Optional[float] = None) -> SimulationReport:
        """
        SAFE FACTORY: The main entry point for the UI/API.
        Validates the parameter dict, runs the pipeline and the predictor,
        and converts failures into an error report instead of raising.
        """
        audit = None
        try:
            try:
                params = ClinicalParameters(**data)
            except TypeError as e:
                # Unknown or missing keys in the parameter dict
                raise DataTypeError(f"Invalid parameter set: {e}") from e

            hemodynamics = AVFPhysicsEngine.compute_hemodynamics(params)
            prediction = predict_maturation(params, hemodynamics.metrics)
            timeline = predict_timeline(
                prediction,
                base_flow_rate=base_flow_rate if base_flow_rate is not None else params.flow_rate,
                vein_diameter=params.vein_diameter,
            )
            status = classify_metrics(hemodynamics.metrics)

            audit = AuditLog(inputs_hash=hash(params))

            return SimulationReport(
                success=True,
                params=params,
                hemodynamics=hemodynamics,
                prediction=prediction,
                timeline=timeline,
                metric_status=status,
                errors=[],
                audit_log=audit
            )

        except (InvalidParameterError, DataTypeError) as e:
            logger.warning("Parameter validation failed: %s", e)
            return SimulationReport(
                success=False, params=None, hemodynamics=None, prediction=None,
                timeline=[], metric_status={}, errors=[str(e)], audit_log=audit
            )
        except Exception as e:
            logger.error("Simulation failure", exc_info=True)
            return SimulationReport(
                success=False, params=None, hemodynamics=None, prediction=None,
                timeline=[], metric_status={}, errors=[f"System Error: {str(e)}"], audit_log=audit
            )


def compute_hemodynamics(params: ClinicalParameters) -> HemodynamicResult:
    return AVFPhysicsEngine.compute_hemodynamics(params)
