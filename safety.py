# safety.py
from typing import Dict
from models import ClinicalParameters, HemodynamicMetrics, RiskAlerts, MetricStatus
from constants import RISK_THRESHOLDS, METRIC_STATUS


class RiskSupervisor:
    """
    Clinical risk checks on a finished run.
    Returns a RiskAlerts object (Flags). Purely informational: the maturation
    score is computed independently of these flags.
    """
    @staticmethod
    def check(params: ClinicalParameters, metrics: HemodynamicMetrics) -> RiskAlerts:
        alerts = RiskAlerts()

        # 1. Vessel calibre
        if params.vein_diameter < RISK_THRESHOLDS.SMALL_VEIN_MM:
            alerts.small_vein = True
        if params.artery_diameter < RISK_THRESHOLDS.SMALL_ARTERY_MM:
            alerts.small_artery = True

        # 2. Access flow
        if metrics.total_flow_rate < RISK_THRESHOLDS.LOW_FLOW_ML_MIN:
            alerts.low_flow = True

        # 3. Shear environment
        # Low WSS -> thrombosis / neointimal hyperplasia; high WSS -> intimal injury
        if metrics.mean_tawss < RISK_THRESHOLDS.LOW_TAWSS_PA:
            alerts.low_wss = True
        if metrics.mean_tawss > RISK_THRESHOLDS.HIGH_TAWSS_PA:
            alerts.high_wss = True
        if metrics.mean_osi > RISK_THRESHOLDS.HIGH_OSI:
            alerts.high_osi = True
        if metrics.mean_rrt > RISK_THRESHOLDS.HIGH_RRT:
            alerts.high_rrt = True

        # 4. Surgical geometry
        lo, hi = RISK_THRESHOLDS.ANGLE_RANGE
        if params.anastomosis_angle < lo or params.anastomosis_angle > hi:
            alerts.non_optimal_angle = True

        # 5. Blood composition
        if params.hematocrit < RISK_THRESHOLDS.ANEMIA_HCT:
            alerts.anemia = True
        if params.hematocrit > RISK_THRESHOLDS.POLYCYTHEMIA_HCT:
            alerts.polycythemia = True

        return alerts


def identify_risk_factors(params: ClinicalParameters, metrics: HemodynamicMetrics) -> list:
    """Human-readable strings for every triggered risk flag."""
    return RiskSupervisor.check(params, metrics).describe()


def classify_metrics(metrics: HemodynamicMetrics) -> Dict[str, MetricStatus]:
    """
    Traffic-light status for the headline metrics.
    Used by the /simulate endpoint alongside the raw numbers.
    """
    status = {}

    tawss = metrics.mean_tawss
    d_lo, d_hi = METRIC_STATUS.TAWSS_DANGER
    w_lo, w_hi = METRIC_STATUS.TAWSS_WARNING
    if tawss < d_lo or tawss > d_hi:
        status["tawss"] = MetricStatus.DANGER
    elif tawss < w_lo or tawss > w_hi:
        status["tawss"] = MetricStatus.WARNING
    else:
        status["tawss"] = MetricStatus.NORMAL

    if metrics.mean_osi > METRIC_STATUS.OSI_DANGER:
        status["osi"] = MetricStatus.DANGER
    elif metrics.mean_osi > METRIC_STATUS.OSI_WARNING:
        status["osi"] = MetricStatus.WARNING
    else:
        status["osi"] = MetricStatus.NORMAL

    if metrics.mean_rrt > METRIC_STATUS.RRT_DANGER:
        status["rrt"] = MetricStatus.DANGER
    elif metrics.mean_rrt > METRIC_STATUS.RRT_WARNING:
        status["rrt"] = MetricStatus.WARNING
    else:
        status["rrt"] = MetricStatus.NORMAL

    # Transitional flow in the feeding artery
    if metrics.reynolds_number > METRIC_STATUS.REYNOLDS_WARNING:
        status["reynolds_number"] = MetricStatus.WARNING
    else:
        status["reynolds_number"] = MetricStatus.NORMAL

    return status
