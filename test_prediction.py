import unittest
import math
from prediction import MaturationPredictor, predict_maturation, predict_timeline
from safety import RiskSupervisor, classify_metrics
from models import (
    ClinicalParameters,
    HemodynamicMetrics,
    MaturationPrediction,
    MaturationStatus,
    MetricStatus,
    RiskLevel
)
from constants import DEFAULT_PARAMS


def make_metrics(**overrides):
    values = dict(
        mean_tawss=3.0, max_tawss=6.0, min_tawss=0.5,
        mean_osi=0.08, max_osi=0.3,
        mean_rrt=0.5, max_rrt=4.0,
        reynolds_number=1000.0, dean_number=400.0,
        wss_gradient=1500.0, effective_viscosity=0.0034,
        total_flow_rate=600.0,
    )
    values.update(overrides)
    return HemodynamicMetrics(**values)


class TestMaturationScoring(unittest.TestCase):

    def test_01_diameter_breakpoints(self):
        """Lower bounds are inclusive; fall-through gets the floor."""
        print("\nTEST 1: Diameter Scores")
        score = MaturationPredictor.score_vein_diameter
        self.assertEqual([score(d) for d in (3.0, 2.5, 2.49, 2.0, 1.5, 1.49)],
                         [20, 20, 15, 15, 10, 0])
        score = MaturationPredictor.score_artery_diameter
        self.assertEqual([score(d) for d in (2.0, 1.99, 1.5, 1.0)], [15, 10, 10, 5])

    def test_02_flow_breakpoints(self):
        print("\nTEST 2: Flow Scores")
        score = MaturationPredictor.score_flow_rate
        self.assertEqual([score(q) for q in (800, 500, 400, 300, 299)], [20, 20, 15, 10, 5])

    def test_03_tawss_band(self):
        """Optimal band 1-7 Pa is open; 0.5-10 Pa inclusive is acceptable."""
        print("\nTEST 3: TAWSS Scores")
        score = MaturationPredictor.score_tawss
        self.assertEqual(score(4.0), 15)
        self.assertEqual(score(1.0), 10)
        self.assertEqual(score(7.0), 10)
        self.assertEqual(score(0.5), 10)
        self.assertEqual(score(10.0), 10)
        self.assertEqual(score(0.4), 5)
        self.assertEqual(score(12.0), 5)

    def test_04_osi_angle_hematocrit(self):
        print("\nTEST 4: OSI / Angle / Hct Scores")
        osi = MaturationPredictor.score_osi
        self.assertEqual([osi(x) for x in (0.1, 0.15, 0.2, 0.25)], [10, 5, 5, 0])

        angle = MaturationPredictor.score_anastomosis_angle
        self.assertEqual([angle(a) for a in (45, 30, 60, 25, 70, 85, 10)], [10, 10, 10, 7, 7, 3, 3])

        hct = MaturationPredictor.score_hematocrit
        self.assertEqual([hct(h) for h in (0.40, 0.32, 0.48, 0.25, 0.55)], [10, 7, 7, 3, 3])

    def test_05_logistic_and_risk_level(self):
        """Score 50 is a coin flip; probability thresholds 0.7 / 0.5."""
        print("\nTEST 5: Logistic Mapping")
        self.assertAlmostEqual(MaturationPredictor.logistic(50), 0.5)
        self.assertAlmostEqual(MaturationPredictor.logistic(70), 1.0 / (1.0 + math.exp(-2.0)))
        self.assertEqual(MaturationPredictor.risk_level(0.7), RiskLevel.LOW)
        self.assertEqual(MaturationPredictor.risk_level(0.5), RiskLevel.MODERATE)
        self.assertEqual(MaturationPredictor.risk_level(0.49), RiskLevel.HIGH)

    def test_06_full_marks(self):
        """Ideal inputs: 100 points, every factor passed, favourable recommendation."""
        print("\nTEST 6: Full-Score Prediction")
        params = ClinicalParameters(**DEFAULT_PARAMS)
        pred = predict_maturation(params, make_metrics())

        self.assertEqual(pred.score, 100)
        self.assertIsInstance(pred.score, int)
        self.assertAlmostEqual(pred.probability, 1.0 / (1.0 + math.exp(-5.0)))
        self.assertEqual(len(pred.factor_details), 7)
        self.assertTrue(all(f.passed for f in pred.factor_details))
        self.assertEqual(pred.risk_factors, [])
        self.assertEqual(pred.risk_level, RiskLevel.LOW)
        self.assertTrue(pred.recommendation.startswith("Maturation probability is 99%"))

    def test_07_recommendation_priority(self):
        """Small artery outranks acute angle, which outranks low TAWSS and high OSI."""
        print("\nTEST 7: Recommendation Priority")
        low_wss_high_osi = make_metrics(mean_tawss=0.4, mean_osi=0.3)

        params = ClinicalParameters(**{**DEFAULT_PARAMS, "artery_diameter": 1.8,
                                       "anastomosis_angle": 20.0})
        self.assertIn("Artery diameter", predict_maturation(params, low_wss_high_osi).recommendation)

        params = ClinicalParameters(**{**DEFAULT_PARAMS, "anastomosis_angle": 20.0})
        self.assertIn("acute", predict_maturation(params, low_wss_high_osi).recommendation)

        params = ClinicalParameters(**DEFAULT_PARAMS)
        self.assertIn("shear stress is low", predict_maturation(params, low_wss_high_osi).recommendation)
        self.assertIn("Oscillatory", predict_maturation(params, make_metrics(mean_osi=0.3)).recommendation)

    def test_08_flow_uses_metric_total(self):
        """Flow factor reads the simulated total flow, not a separate input."""
        print("\nTEST 8: Flow Factor Source")
        params = ClinicalParameters(**DEFAULT_PARAMS)
        pred = predict_maturation(params, make_metrics(total_flow_rate=350.0))
        self.assertEqual(pred.factors["flow_rate"], 10)


class TestTimeline(unittest.TestCase):

    def make_prediction(self, probability):
        return MaturationPrediction(score=0, probability=probability, factors={}, risk_factors=[])

    def test_01_shape_and_monotonicity(self):
        """Weeks 0-12; probability and flow never decrease; cap at 0.95."""
        print("\nTEST 1: Timeline Shape")
        timeline = predict_timeline(self.make_prediction(0.9))
        self.assertEqual([p.week for p in timeline], list(range(13)))
        self.assertAlmostEqual(timeline[0].probability, 0.9)
        self.assertEqual(timeline[0].flow_rate, 500.0)

        for a, b in zip(timeline, timeline[1:]):
            self.assertGreaterEqual(b.probability, a.probability)
            self.assertGreater(b.flow_rate, a.flow_rate)
        self.assertLessEqual(max(p.probability for p in timeline), 0.95)

        final_progress = 1.0 - math.exp(-0.3 * 12)
        self.assertAlmostEqual(timeline[-1].flow_rate, 500.0 * (1.0 + 0.4 * final_progress))

    def test_02_rule_of_sixes(self):
        """With a vein calibre: developing at week 0, mature once >= 600 mL/min and >= 6 mm."""
        print("\nTEST 2: Rule of 6s")
        timeline = predict_timeline(self.make_prediction(0.95), base_flow_rate=600.0, vein_diameter=4.0)

        self.assertEqual(timeline[0].vein_diameter, 4.0)
        self.assertEqual(timeline[0].maturation_status, MaturationStatus.DEVELOPING)
        self.assertEqual(timeline[-1].maturation_status, MaturationStatus.MATURE)
        self.assertGreater(timeline[-1].vein_diameter, 6.0)

    def test_03_probability_fallback(self):
        """Without a calibre, status follows flow and probability."""
        print("\nTEST 3: Probability-Based Status")
        timeline = predict_timeline(self.make_prediction(0.3), base_flow_rate=300.0)
        self.assertIsNone(timeline[0].vein_diameter)
        self.assertEqual(timeline[0].maturation_status, MaturationStatus.IMMATURE)

        timeline = predict_timeline(self.make_prediction(0.9), base_flow_rate=650.0)
        self.assertEqual(timeline[0].maturation_status, MaturationStatus.MATURE)


class TestRiskSupervisor(unittest.TestCase):

    def test_01_flags(self):
        """Each condition raises exactly its own flag."""
        print("\nTEST 1: Risk Flags")
        params = ClinicalParameters(**DEFAULT_PARAMS)
        alerts = RiskSupervisor.check(params, make_metrics())
        self.assertEqual(alerts.describe(), [])

        alerts = RiskSupervisor.check(params, make_metrics(mean_tawss=8.0, mean_rrt=12.0))
        self.assertTrue(alerts.high_wss)
        self.assertTrue(alerts.high_rrt)
        self.assertFalse(alerts.low_wss)

        anemic = ClinicalParameters(**{**DEFAULT_PARAMS, "hematocrit": 0.25, "anastomosis_angle": 80.0})
        alerts = RiskSupervisor.check(anemic, make_metrics())
        self.assertTrue(alerts.anemia)
        self.assertTrue(alerts.non_optimal_angle)

    def test_02_metric_status(self):
        """Traffic lights for TAWSS, OSI, RRT and Reynolds."""
        print("\nTEST 2: Metric Status")
        status = classify_metrics(make_metrics())
        self.assertEqual(status["tawss"], MetricStatus.NORMAL)
        self.assertEqual(status["osi"], MetricStatus.NORMAL)
        self.assertEqual(status["rrt"], MetricStatus.NORMAL)
        self.assertEqual(status["reynolds_number"], MetricStatus.NORMAL)

        status = classify_metrics(make_metrics(mean_tawss=5.0, mean_osi=0.35,
                                               mean_rrt=6.0, reynolds_number=2500.0))
        self.assertEqual(status["tawss"], MetricStatus.WARNING)
        self.assertEqual(status["osi"], MetricStatus.DANGER)
        self.assertEqual(status["rrt"], MetricStatus.WARNING)
        self.assertEqual(status["reynolds_number"], MetricStatus.WARNING)


if __name__ == '__main__':
    unittest.main()
