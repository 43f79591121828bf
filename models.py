"""
AVF Simulator: Data Dictionary
==============================
Inputs (clinical parameters), derived physics records (blood, geometry, flow)
and outputs (wall shear, metrics, maturation prediction).

No physics lives here apart from boundary validation of the inputs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
from datetime import datetime
from constants import VERSION, PARAMETER_LIMITS


class InvalidParameterError(ValueError):
    """Raised when an input is out of its documented range or degenerate."""
    pass


class DataTypeError(TypeError):
    """Raised when inputs are wrong python types (str instead of float)."""
    pass


def require_number(name: str, value) -> float:
    """Rejects str/None/bool before any arithmetic touches the value."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataTypeError(f"Field '{name}' must be numeric, got {type(value)}")
    if value != value:
        raise InvalidParameterError(f"Field '{name}' is NaN")
    return float(value)


# --- 1. ENUMS ---

class RegionType(Enum):
    PROXIMAL_ARTERY = "proximal_artery"
    DISTAL_ARTERY = "distal_artery"
    VEIN_OUTER = "vein_outer"
    VEIN_INNER = "vein_inner"
    ANASTOMOSIS_TOE = "anastomosis_toe"
    ANASTOMOSIS_HEEL = "anastomosis_heel"
    ANASTOMOSIS_FLOOR = "anastomosis_floor"
    ANASTOMOSIS_OUTER = "anastomosis_outer"

    @property
    def is_vein(self) -> bool:
        """Regions fed by the draining-vein flow rather than the artery."""
        return self.value.startswith("vein")


class WallContour(Enum):
    ARTERY_UPPER = "artery_upper"
    TOE_CONNECTION = "toe_connection"
    ARTERY_LOWER = "artery_lower"
    VEIN_OUTER = "vein_outer"
    VEIN_INNER = "vein_inner"


class RiskLevel(Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class MaturationStatus(Enum):
    IMMATURE = "immature"
    DEVELOPING = "developing"
    MATURE = "mature"


class MetricStatus(Enum):
    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"


# --- 2. INPUT LAYER ---

@dataclass(frozen=True)
class ClinicalParameters:
    """
    One snapshot of the surgical/clinical situation.
    Immutable for the duration of a run and passed by value everywhere.
    """
    artery_diameter: float      # mm
    vein_diameter: float        # mm
    anastomosis_angle: float    # degrees, 0-90
    flow_rate: float            # mL/min (total arterial inflow)
    hematocrit: float           # ratio, 0-1
    heart_rate: float = 75.0    # bpm
    systolic_ratio: float = 0.35
    blood_pressure: float = 90.0  # mmHg, reporting only

    def __post_init__(self):
        # 1. Type Safety
        numeric_fields = [
            'artery_diameter', 'vein_diameter', 'anastomosis_angle',
            'flow_rate', 'hematocrit', 'heart_rate', 'systolic_ratio',
            'blood_pressure'
        ]
        for name in numeric_fields:
            require_number(name, getattr(self, name))

        # 2. Range Checks
        d_min, d_max = PARAMETER_LIMITS.DIAMETER_MM
        if not (d_min <= self.artery_diameter <= d_max):
            raise InvalidParameterError(f"Invalid artery diameter: {self.artery_diameter} mm")
        if not (d_min <= self.vein_diameter <= d_max):
            raise InvalidParameterError(f"Invalid vein diameter: {self.vein_diameter} mm")

        a_min, a_max = PARAMETER_LIMITS.ANGLE_DEG
        if not (a_min <= self.anastomosis_angle <= a_max):
            raise InvalidParameterError(f"Invalid anastomosis angle: {self.anastomosis_angle} deg")

        q_min, q_max = PARAMETER_LIMITS.FLOW_RATE_ML_MIN
        if not (q_min < self.flow_rate <= q_max):
            raise InvalidParameterError(f"Invalid flow rate: {self.flow_rate} mL/min")

        h_min, h_max = PARAMETER_LIMITS.HEMATOCRIT
        if self.hematocrit >= h_max:
            raise InvalidParameterError(
                f"Invalid hematocrit: {self.hematocrit}. Expected a ratio (e.g. 0.40), not a percentage"
            )
        if self.hematocrit <= h_min:
            raise InvalidParameterError(f"Invalid hematocrit: {self.hematocrit}")

        hr_min, hr_max = PARAMETER_LIMITS.HEART_RATE_BPM
        if not (hr_min <= self.heart_rate <= hr_max):
            raise InvalidParameterError(f"Invalid heart rate: {self.heart_rate} bpm")

        s_min, s_max = PARAMETER_LIMITS.SYSTOLIC_RATIO
        if not (s_min < self.systolic_ratio < s_max):
            raise InvalidParameterError(f"Invalid systolic ratio: {self.systolic_ratio}")

        if self.blood_pressure <= 0:
            raise InvalidParameterError(f"Invalid blood pressure: {self.blood_pressure} mmHg")


# --- 3. DERIVED PHYSICS RECORDS ---

@dataclass
class BloodProperties:
    viscosity: float         # Pa·s
    density: float           # kg/m³
    reynolds_number: float
    shear_rate: float        # 1/s
    iterations: int = 0
    converged: bool = True


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float


@dataclass
class WallPoint:
    point: Point2D
    normal: Point2D           # unit, points out of the lumen
    region_type: RegionType
    param_position: float     # 0-1 along the source contour
    contour: WallContour


@dataclass
class VesselGeometry:
    # Centerlines
    artery_centerline: List[Point2D]
    vein_centerline: List[Point2D]
    # Wall contours (artery upper wall already carved at the stoma)
    artery_upper_wall: List[Point2D]
    artery_lower_wall: List[Point2D]
    vein_outer_wall: List[Point2D]
    vein_inner_wall: List[Point2D]
    toe_connection: List[Point2D]
    vein_control_points: Tuple[Point2D, Point2D, Point2D, Point2D]
    anastomosis_point: Point2D
    wall_points: List[WallPoint]
    recirculation_zone: List[Point2D]   # advisory only
    # Dimensions (mm / degrees)
    artery_length: float
    vein_length: float
    artery_diameter: float
    vein_diameter: float
    anastomosis_angle: float


@dataclass
class FlowSplit:
    vein_flow_rate: float     # mL/min
    distal_flow_rate: float   # mL/min
    vein_fraction: float      # 0-1


@dataclass
class VelocityVector:
    position: Point2D   # mm
    vx: float           # m/s
    vy: float           # m/s
    magnitude: float    # m/s


# --- 4. OUTPUT LAYER ---

@dataclass
class WSSData:
    tawss: float   # Pa
    osi: float     # 0-0.5
    rrt: float     # 1/Pa


@dataclass
class WallShear:
    point: WallPoint
    data: WSSData


@dataclass
class HemodynamicMetrics:
    mean_tawss: float
    max_tawss: float
    min_tawss: float
    mean_osi: float
    max_osi: float
    mean_rrt: float
    max_rrt: float
    reynolds_number: float
    dean_number: float
    wss_gradient: float         # Pa/m
    effective_viscosity: float  # Pa·s
    total_flow_rate: float      # mL/min


@dataclass
class HemodynamicResult:
    wall_wss: List[WallShear]
    metrics: HemodynamicMetrics
    flow_split: FlowSplit
    velocity_field: List[VelocityVector]
    geometry: VesselGeometry
    waveform: List[float]


@dataclass
class MaturationFactor:
    name: str
    value: float
    threshold: str
    score: int
    max_score: int
    passed: bool


@dataclass
class MaturationPrediction:
    score: int
    probability: float                 # 0-1
    factors: Dict[str, int]
    risk_factors: List[str]
    factor_details: List[MaturationFactor] = field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.HIGH
    recommendation: str = ""


@dataclass
class TimelinePoint:
    week: int
    probability: float
    flow_rate: float                   # mL/min
    maturation_status: MaturationStatus
    vein_diameter: Optional[float] = None   # mm


@dataclass
class RiskAlerts:
    """Boolean flags; informational only, never feed back into the score."""
    small_vein: bool = False
    small_artery: bool = False
    low_flow: bool = False
    low_wss: bool = False
    high_wss: bool = False
    high_osi: bool = False
    high_rrt: bool = False
    non_optimal_angle: bool = False
    anemia: bool = False
    polycythemia: bool = False

    def describe(self) -> List[str]:
        messages = []
        if self.small_vein: messages.append("Small vein diameter (< 2.0 mm)")
        if self.small_artery: messages.append("Small artery diameter (< 1.5 mm)")
        if self.low_flow: messages.append("Insufficient blood flow (< 400 mL/min)")
        if self.low_wss: messages.append("Low wall shear stress (thrombosis risk)")
        if self.high_wss: messages.append("High wall shear stress (intimal injury risk)")
        if self.high_osi: messages.append("High OSI (disturbed, oscillating flow)")
        if self.high_rrt: messages.append("High RRT (thrombus formation risk)")
        if self.non_optimal_angle: messages.append("Non-optimal anastomosis angle")
        if self.anemia: messages.append("Anemia tendency (Hct < 0.30)")
        if self.polycythemia: messages.append("Polycythemia tendency (Hct > 0.50)")
        return messages


@dataclass
class AuditLog:
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    action: str = "simulation_run"
    inputs_hash: int = 0
    model_version: str = VERSION


@dataclass
class SimulationReport:
    """Standardized response format for API/UI."""
    success: bool
    params: Optional[ClinicalParameters]
    hemodynamics: Optional[HemodynamicResult]
    prediction: Optional[MaturationPrediction]
    timeline: List[TimelinePoint]
    metric_status: Dict[str, MetricStatus]
    errors: List[str]
    audit_log: Optional[AuditLog] = None
