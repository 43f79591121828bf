# prediction.py
"""
AVF maturation predictor: step-function scoring of the clinical parameters
and computed metrics, converted to a probability with a logistic curve, plus
an illustrative 12-week projection.
"""
import logging
import math
from typing import List, Optional, Sequence, Tuple

from models import (
    ClinicalParameters,
    HemodynamicMetrics,
    MaturationFactor,
    MaturationPrediction,
    MaturationStatus,
    RiskLevel,
    TimelinePoint
)
from constants import MATURATION_CRITERIA as MC, TIMELINE
from safety import identify_risk_factors

logger = logging.getLogger(__name__)


def _step_score(value: float, steps: Sequence[Tuple[float, int]], floor: int) -> int:
    """First (lower bound, points) pair the value reaches, top-down."""
    for bound, points in steps:
        if value >= bound:
            return points
    return floor


def _band_score(value: float, optimal: Tuple[float, float], acceptable: Tuple[float, float],
                points: Tuple[int, int, int]) -> int:
    best, fair, poor = points
    if optimal[0] <= value <= optimal[1]:
        return best
    if acceptable[0] <= value <= acceptable[1]:
        return fair
    return poor


class MaturationPredictor:
    @staticmethod
    def score_vein_diameter(diameter: float) -> int:
        return _step_score(diameter, MC.VEIN_DIAMETER, MC.VEIN_DIAMETER_FLOOR)

    @staticmethod
    def score_artery_diameter(diameter: float) -> int:
        return _step_score(diameter, MC.ARTERY_DIAMETER, MC.ARTERY_DIAMETER_FLOOR)

    @staticmethod
    def score_flow_rate(flow_rate: float) -> int:
        return _step_score(flow_rate, MC.FLOW_RATE, MC.FLOW_RATE_FLOOR)

    @staticmethod
    def score_tawss(tawss: float) -> int:
        # Optimal band is open at both ends; extremes either way lose points
        best, fair, poor = MC.TAWSS_POINTS
        lo, hi = MC.TAWSS_OPTIMAL
        if lo < tawss < hi:
            return best
        lo, hi = MC.TAWSS_ACCEPTABLE
        if lo <= tawss <= hi:
            return fair
        return poor

    @staticmethod
    def score_osi(osi: float) -> int:
        for limit, points in MC.OSI_LIMITS:
            if osi < limit:
                return points
        return MC.OSI_FLOOR

    @staticmethod
    def score_anastomosis_angle(angle: float) -> int:
        return _band_score(angle, MC.ANGLE_OPTIMAL, MC.ANGLE_ACCEPTABLE, MC.ANGLE_POINTS)

    @staticmethod
    def score_hematocrit(hematocrit: float) -> int:
        return _band_score(hematocrit, MC.HCT_OPTIMAL, MC.HCT_ACCEPTABLE, MC.HCT_POINTS)

    @staticmethod
    def logistic(score: float) -> float:
        """Score 50 -> ~50%, 70 -> ~88%, 90 -> ~98%."""
        return 1.0 / (1.0 + math.exp(-MC.LOGISTIC_SLOPE * (score - MC.LOGISTIC_MIDPOINT)))

    @staticmethod
    def risk_level(probability: float) -> RiskLevel:
        if probability >= MC.LOW_RISK_PROBABILITY:
            return RiskLevel.LOW
        if probability >= MC.MODERATE_RISK_PROBABILITY:
            return RiskLevel.MODERATE
        return RiskLevel.HIGH

    @staticmethod
    def recommendation(params: ClinicalParameters, metrics: HemodynamicMetrics,
                       probability: float) -> str:
        """Single headline finding, most limiting factor first."""
        if params.artery_diameter < MC.ARTERY_DIAMETER[0][0]:
            return ("Artery diameter is below 2.0 mm, under the guideline threshold for "
                    "radiocephalic AVF creation; the risk of maturation failure is high.")
        if params.anastomosis_angle < MC.ANGLE_OPTIMAL[0]:
            return ("Anastomosis angle is acute (< 30 deg), which is associated with "
                    "juxta-anastomotic stenosis and re-intervention.")
        if metrics.mean_tawss < MC.TAWSS_OPTIMAL[0]:
            return ("Predicted wall shear stress is low; the outward-remodelling signal "
                    "for vein dilation is weak.")
        if metrics.mean_osi >= MC.OSI_LIMITS[-1][0]:
            return ("Oscillatory shear is high around the anastomosis; disturbed flow "
                    "favours neointimal hyperplasia.")
        return (f"Maturation probability is {round(probability * 100)}%. Geometry and "
                f"wall shear stress are within the favourable range.")

    @staticmethod
    def predict(params: ClinicalParameters, metrics: HemodynamicMetrics) -> MaturationPrediction:
        factors = {
            "vein_diameter": MaturationPredictor.score_vein_diameter(params.vein_diameter),
            "artery_diameter": MaturationPredictor.score_artery_diameter(params.artery_diameter),
            "flow_rate": MaturationPredictor.score_flow_rate(metrics.total_flow_rate),
            "tawss": MaturationPredictor.score_tawss(metrics.mean_tawss),
            "osi": MaturationPredictor.score_osi(metrics.mean_osi),
            "anastomosis_angle": MaturationPredictor.score_anastomosis_angle(params.anastomosis_angle),
            "hematocrit": MaturationPredictor.score_hematocrit(params.hematocrit),
        }
        score = sum(factors.values())
        probability = MaturationPredictor.logistic(score)

        values = {
            "vein_diameter": (params.vein_diameter, ">= 2.5 mm"),
            "artery_diameter": (params.artery_diameter, ">= 2.0 mm"),
            "flow_rate": (metrics.total_flow_rate, ">= 500 mL/min"),
            "tawss": (metrics.mean_tawss, "1.0-7.0 Pa"),
            "osi": (metrics.mean_osi, "< 0.15"),
            "anastomosis_angle": (params.anastomosis_angle, "30-60 deg"),
            "hematocrit": (params.hematocrit, "0.35-0.45"),
        }
        details = []
        for name, points in factors.items():
            value, threshold = values[name]
            max_score = MC.MAX_SCORES[name]
            details.append(MaturationFactor(
                name=name, value=value, threshold=threshold,
                score=points, max_score=max_score, passed=points == max_score
            ))

        logger.debug("Maturation score=%d probability=%.3f", score, probability)

        return MaturationPrediction(
            score=score,
            probability=probability,
            factors=factors,
            risk_factors=identify_risk_factors(params, metrics),
            factor_details=details,
            risk_level=MaturationPredictor.risk_level(probability),
            recommendation=MaturationPredictor.recommendation(params, metrics, probability),
        )

    @staticmethod
    def _timeline_status(flow_rate: float, probability: float,
                         vein_diameter: Optional[float]) -> MaturationStatus:
        # Rule of 6s when the vein calibre is known, probability otherwise
        if vein_diameter is not None:
            if flow_rate >= TIMELINE.MATURE_FLOW_ML_MIN and vein_diameter >= TIMELINE.MATURE_DIAMETER_MM:
                return MaturationStatus.MATURE
            if flow_rate >= TIMELINE.DEVELOPING_FLOW_ML_MIN or vein_diameter >= TIMELINE.DEVELOPING_DIAMETER_MM:
                return MaturationStatus.DEVELOPING
            return MaturationStatus.IMMATURE

        if flow_rate >= TIMELINE.MATURE_FLOW_ML_MIN and probability >= TIMELINE.MATURE_PROBABILITY:
            return MaturationStatus.MATURE
        if flow_rate >= TIMELINE.DEVELOPING_FLOW_ML_MIN or probability >= TIMELINE.DEVELOPING_PROBABILITY:
            return MaturationStatus.DEVELOPING
        return MaturationStatus.IMMATURE

    @staticmethod
    def timeline(prediction: MaturationPrediction,
                 base_flow_rate: float = TIMELINE.BASE_FLOW_ML_MIN,
                 vein_diameter: Optional[float] = None) -> List[TimelinePoint]:
        """
        Exponential-saturation projection over 12 weeks, scaled by the
        initial probability. Illustrative; not re-derived from the physics.
        """
        base_prob = prediction.probability
        points = []
        for week in range(TIMELINE.WEEKS + 1):
            progress = 1.0 - math.exp(-TIMELINE.RATE * week)
            probability = min(base_prob + (1.0 - base_prob) * progress * TIMELINE.PROBABILITY_GAIN,
                              TIMELINE.PROBABILITY_CAP)
            flow_rate = base_flow_rate * (1.0 + progress * TIMELINE.FLOW_GAIN)

            diameter = None
            if vein_diameter is not None:
                # Dilates toward d0 * (1 + 1.8 p)
                diameter = vein_diameter * (1.0 + TIMELINE.DIAMETER_GAIN * base_prob * progress)

            points.append(TimelinePoint(
                week=week,
                probability=probability,
                flow_rate=flow_rate,
                maturation_status=MaturationPredictor._timeline_status(flow_rate, probability, diameter),
                vein_diameter=diameter,
            ))
        return points


def predict_maturation(params: ClinicalParameters, metrics: HemodynamicMetrics) -> MaturationPrediction:
    return MaturationPredictor.predict(params, metrics)


def predict_timeline(prediction: MaturationPrediction,
                     base_flow_rate: float = TIMELINE.BASE_FLOW_ML_MIN,
                     vein_diameter: Optional[float] = None) -> List[TimelinePoint]:
    return MaturationPredictor.timeline(prediction, base_flow_rate, vein_diameter)
