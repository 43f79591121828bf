from dataclasses import dataclass
VERSION = "1.0.0"


@dataclass(frozen=True)
class HctViscosityRow:
    hct_pct: float
    mu_inf: float  # Pa·s, infinite-shear limit
    mu_0: float    # Pa·s, zero-shear limit


class CARREAU:
    """Carreau non-Newtonian blood model (Cho & Kensey, 1991)."""
    MU_INF = 0.00345   # Pa·s
    MU_0 = 0.056       # Pa·s
    LAMBDA = 3.313     # s, relaxation time
    N = 0.3568         # power-law index

    SHEAR_RATE_FLOOR = 0.1     # 1/s
    ITERATIONS = 5
    CONVERGENCE_TOL = 1e-6     # Pa·s


# Hct-dependent Carreau limits, linearly interpolated and clamped at the ends
HCT_VISCOSITY_TABLE = (
    HctViscosityRow(20.0, 0.00220, 0.025),
    HctViscosityRow(25.0, 0.00260, 0.032),
    HctViscosityRow(30.0, 0.00280, 0.037),
    HctViscosityRow(35.0, 0.00300, 0.042),
    HctViscosityRow(40.0, 0.00320, 0.048),
    HctViscosityRow(45.0, 0.00345, 0.056),
    HctViscosityRow(50.0, 0.00400, 0.065),
    HctViscosityRow(55.0, 0.00450, 0.075),
)

BLOOD_DENSITY = 1060.0  # kg/m³


class UNITS:
    ML_MIN_TO_M3_S = 1.0 / (1e6 * 60.0)
    MM_TO_M = 1e-3


class GEOMETRY:
    """
    Parametric junction layout in mm. Origin = anastomosis point,
    artery along +x, vein rising into +y.
    """
    ARTERY_LENGTH_MM = 22.86
    ARTERY_SAMPLES = 60
    VEIN_CURVE_LENGTH_MM = 12.5
    VEIN_SAMPLES = 50

    # Bezier control layout, as fractions of VEIN_CURVE_LENGTH_MM
    VEIN_DEPARTURE_FRACTION = 0.4
    VEIN_TERMINUS_FRACTION = 0.8
    VEIN_ENTRY_FRACTION = 0.4

    # Stoma carving
    OPENING_EXTENT = 0.8          # heel/toe at ±0.8 of the half-opening
    OPENING_DEPTH = 0.8           # carved samples pushed 0.8·r_a into the lumen
    MIN_OPENING_ANGLE_DEG = 5.0   # floor for sin(angle)

    # Toe patch
    TOE_SAMPLES = 16
    TOE_ARTERY_OFFSET_MM = 0.18
    TOE_ARTERY_HANDLE_MM = 0.71
    TOE_VEIN_HANDLE_MM = 0.36
    TOE_VEIN_PARAM = 0.1

    # Recirculation polygon (advisory)
    RECIRC_SAMPLES = 17
    RECIRC_ANGLE_GAIN = 1.5
    RECIRC_WIDTH = 0.5
    RECIRC_OFFSET = 0.4

    # Region classification thresholds, in artery radii unless stated
    UPPER_DISTAL_RADII = 1.0
    UPPER_JUNCTION_RADII = 1.0
    LOWER_DISTAL_RADII = 0.5
    LOWER_FLOOR_RADII = 1.5
    VEIN_JUNCTION_PARAM = 0.2     # along the vein wall


class FLOW:
    NOMINAL_VEIN_LENGTH_MM = 100.0
    NOMINAL_DISTAL_LENGTH_MM = 80.0
    DISTAL_RADIUS_FACTOR = 0.8    # distal artery is slightly narrower
    ANGLE_RESISTANCE_GAIN = 0.5

    # Pulsatile waveform (3-term Fourier)
    WAVEFORM_STEPS = 20
    FUNDAMENTAL_AMPLITUDE = 0.6
    REFERENCE_SYSTOLIC_RATIO = 0.35
    SECOND_HARMONIC = (0.25, -0.3)   # (amplitude, phase)
    THIRD_HARMONIC = (0.1, -0.6)
    WAVEFORM_FLOOR = 0.15

    # Velocity sampling grid (mm)
    GRID_SPACING_MM = 0.8
    GRID_HALF_SPAN_MM = 5.4
    GRID_WALL_INSET_MM = 0.18
    GRID_MAX_RADIAL = 0.9
    JUNCTION_PROXIMAL_RADII = 0.5
    JUNCTION_DISTAL_RADII = 1.0
    VEIN_PROFILE_START = 0.2
    VEIN_PROFILE_STEP = 0.12
    VEIN_PROFILE_COUNT = 7
    VEIN_PROFILE_OFFSETS = (-0.7, -0.35, 0.0, 0.35, 0.7)


class WSS_CORRECTION:
    """Empirical region factors from published AVF CFD studies."""
    DISTAL_ARTERY = 0.85
    OUTER_GAIN = 2.0
    TOE_GAIN = 1.5
    HEEL_GAIN = 0.5
    FLOOR_BASE = 0.15
    FLOOR_ANGLE_DAMPING = 0.5
    FLOOR_RATIO_EXPONENT = 0.3
    VEIN_OUTER_BASE = 1.1
    VEIN_OUTER_GAIN = 0.3
    VEIN_INNER = 0.7

    SPATIAL_AMPLITUDE = 0.1
    SPATIAL_CYCLES = 4.0   # half-periods of sin over the contour


class OSI_MODEL:
    STEADY_BASE = 0.05
    STEADY_CV_GAIN = 0.1
    STEADY_CAP = 0.15
    VEIN_INNER_RECIRC_ANGLE_DEG = 30.0
    REVERSAL_BASE = 0.3
    REVERSAL_GAIN = 0.4
    FORWARD_PHASE_THRESHOLD = 0.3   # sin(phase) above this is forward flow
    EPS = 1e-10
    MAX = 0.5


class RRT_MODEL:
    DENOMINATOR_FLOOR = 0.01
    CAP = 100.0


class DEAN:
    CURVATURE_RADIUS_DIAMETERS = 3.0


class MATURATION_CRITERIA:
    """KDOQI 2019 + Rule of 6s. Step breakpoints are fixed design constants."""
    # (lower bound inclusive, points), checked top-down; fall-through is FLOOR
    VEIN_DIAMETER = ((2.5, 20), (2.0, 15), (1.5, 10))
    VEIN_DIAMETER_FLOOR = 0
    ARTERY_DIAMETER = ((2.0, 15), (1.5, 10))
    ARTERY_DIAMETER_FLOOR = 5
    FLOW_RATE = ((500.0, 20), (400.0, 15), (300.0, 10))
    FLOW_RATE_FLOOR = 5

    TAWSS_OPTIMAL = (1.0, 7.0)      # exclusive band, 15 pts
    TAWSS_ACCEPTABLE = (0.5, 10.0)  # inclusive band, 10 pts
    TAWSS_POINTS = (15, 10, 5)

    OSI_LIMITS = ((0.15, 10), (0.25, 5))
    OSI_FLOOR = 0

    ANGLE_OPTIMAL = (30.0, 60.0)
    ANGLE_ACCEPTABLE = (20.0, 70.0)
    ANGLE_POINTS = (10, 7, 3)

    HCT_OPTIMAL = (0.35, 0.45)
    HCT_ACCEPTABLE = (0.30, 0.50)
    HCT_POINTS = (10, 7, 3)

    MAX_SCORES = {
        "vein_diameter": 20,
        "artery_diameter": 15,
        "flow_rate": 20,
        "tawss": 15,
        "osi": 10,
        "anastomosis_angle": 10,
        "hematocrit": 10,
    }

    LOGISTIC_SLOPE = 0.1
    LOGISTIC_MIDPOINT = 50.0

    LOW_RISK_PROBABILITY = 0.7
    MODERATE_RISK_PROBABILITY = 0.5


class RISK_THRESHOLDS:
    SMALL_VEIN_MM = 2.0
    SMALL_ARTERY_MM = 1.5
    LOW_FLOW_ML_MIN = 400.0
    LOW_TAWSS_PA = 0.5
    HIGH_TAWSS_PA = 7.0
    HIGH_OSI = 0.25
    HIGH_RRT = 10.0
    ANGLE_RANGE = (30.0, 70.0)
    ANEMIA_HCT = 0.30
    POLYCYTHEMIA_HCT = 0.50


class METRIC_STATUS:
    TAWSS_DANGER = (0.5, 10.0)
    TAWSS_WARNING = (0.7, 3.0)
    OSI_DANGER = 0.3
    OSI_WARNING = 0.2
    RRT_DANGER = 10.0
    RRT_WARNING = 5.0
    REYNOLDS_WARNING = 2000.0


class TIMELINE:
    WEEKS = 12
    RATE = 0.3
    PROBABILITY_GAIN = 0.5
    PROBABILITY_CAP = 0.95
    FLOW_GAIN = 0.4
    BASE_FLOW_ML_MIN = 500.0
    DIAMETER_GAIN = 1.8
    # Rule of 6s
    MATURE_FLOW_ML_MIN = 600.0
    MATURE_DIAMETER_MM = 6.0
    DEVELOPING_FLOW_ML_MIN = 500.0
    DEVELOPING_DIAMETER_MM = 4.0
    MATURE_PROBABILITY = 0.8
    DEVELOPING_PROBABILITY = 0.6


class PARAMETER_LIMITS:
    # (min, max); see ClinicalParameters.__post_init__ for open/closed ends
    DIAMETER_MM = (0.5, 12.0)
    ANGLE_DEG = (0.0, 90.0)
    FLOW_RATE_ML_MIN = (0.0, 5000.0)
    HEMATOCRIT = (0.0, 1.0)
    HEART_RATE_BPM = (30.0, 220.0)
    SYSTOLIC_RATIO = (0.0, 1.0)


DEFAULT_PARAMS = {
    "artery_diameter": 4.0,
    "vein_diameter": 4.0,
    "anastomosis_angle": 45.0,
    "flow_rate": 600.0,
    "hematocrit": 0.40,
    "heart_rate": 75.0,
    "systolic_ratio": 0.35,
    "blood_pressure": 90.0,
}
