import unittest
import math
from unittest import mock
from core_physics import AVFPhysicsEngine, compute_hemodynamics
from models import (
    ClinicalParameters,
    RegionType,
    RiskLevel,
    MetricStatus,
    InvalidParameterError
)
from constants import RRT_MODEL, DEAN, DEFAULT_PARAMS


class TestClinicalScenarios(unittest.TestCase):
    """
    Representative fistula cases run end to end through the safe factory.
    Run with: python -m unittest test_clinical_scenarios.py
    """

    def create_base_case(self, **overrides):
        # Helper: well-sized radiocephalic AVF, 45 deg take-off
        data = {
            'artery_diameter': 4.0,
            'vein_diameter': 4.0,
            'anastomosis_angle': 45.0,
            'flow_rate': 600.0,
            'hematocrit': 0.40,
            'heart_rate': 75.0,
            'systolic_ratio': 0.35,
        }
        data.update(overrides)
        return data

    def test_01_standard_fistula(self):
        """[SCENARIO A] 4/4 mm, 45 deg, 600 mL/min: low OSI, plausible TAWSS, good outlook."""
        print("\nTEST 1: Standard Radiocephalic AVF")
        report = AVFPhysicsEngine.create_simulation(self.create_base_case())
        self.assertTrue(report.success, report.errors)

        m = report.hemodynamics.metrics
        print(f"   -> TAWSS={m.mean_tawss:.2f} Pa, OSI={m.mean_osi:.3f}, "
              f"P(maturation)={report.prediction.probability:.2f}")

        self.assertLess(m.mean_osi, 0.2)
        self.assertTrue(1.0 <= m.mean_tawss <= 5.0)
        self.assertGreater(report.prediction.probability, 0.5)
        self.assertEqual(report.prediction.risk_level, RiskLevel.LOW)
        self.assertEqual(report.prediction.factors["tawss"], 15)
        self.assertNotIn("Small vein diameter (< 2.0 mm)", report.prediction.risk_factors)
        self.assertNotIn("High wall shear stress (intimal injury risk)", report.prediction.risk_factors)

    def test_02_small_vessels_low_flow(self):
        """[SCENARIO B] 1.5/1.5 mm, 85 deg, 150 mL/min, Hct 0.55: flagged and unlikely to mature."""
        print("\nTEST 2: Small Vessels, Low Flow, Polycythemia")
        data = self.create_base_case(
            artery_diameter=1.5, vein_diameter=1.5, anastomosis_angle=85.0,
            flow_rate=150.0, hematocrit=0.55
        )
        report = AVFPhysicsEngine.create_simulation(data)
        self.assertTrue(report.success, report.errors)

        pred = report.prediction
        print(f"   -> Score={pred.score}, P(maturation)={pred.probability:.2f}")
        print(f"   -> Risks: {pred.risk_factors}")

        self.assertIn("Small vein diameter (< 2.0 mm)", pred.risk_factors)
        self.assertIn("Insufficient blood flow (< 400 mL/min)", pred.risk_factors)
        self.assertIn("Polycythemia tendency (Hct > 0.50)", pred.risk_factors)
        self.assertLess(pred.probability, 0.5)
        self.assertEqual(pred.risk_level, RiskLevel.HIGH)
        # Artery < 2.0 mm dominates the recommendation
        self.assertIn("Artery diameter", pred.recommendation)

    def test_03_rrt_and_osi_bounds(self):
        """Every wall sample: 0 <= OSI <= 0.5 and 0 < RRT <= 100."""
        print("\nTEST 3: RRT / OSI Bounds")
        for angle in [0.0, 30.0, 60.0, 90.0]:
            params = ClinicalParameters(**self.create_base_case(anastomosis_angle=angle))
            result = compute_hemodynamics(params)
            for ws in result.wall_wss:
                self.assertTrue(0.0 <= ws.data.osi <= 0.5)
                self.assertTrue(0.0 < ws.data.rrt <= RRT_MODEL.CAP)
                self.assertGreaterEqual(ws.data.tawss, 0.0)
            self.assertLessEqual(result.metrics.max_rrt, RRT_MODEL.CAP)

    def test_04_floor_recirculates(self):
        """Floor samples carry the highest OSI; unidirectional regions stay <= 0.15."""
        print("\nTEST 4: Recirculation at the Floor")
        params = ClinicalParameters(**self.create_base_case(anastomosis_angle=60.0))
        result = compute_hemodynamics(params)

        floor_osi = [w.data.osi for w in result.wall_wss
                     if w.point.region_type == RegionType.ANASTOMOSIS_FLOOR]
        steady_osi = [w.data.osi for w in result.wall_wss
                      if w.point.region_type in (RegionType.PROXIMAL_ARTERY, RegionType.VEIN_OUTER)]

        self.assertTrue(floor_osi)
        for osi in steady_osi:
            self.assertLessEqual(osi, 0.15)
        self.assertGreater(max(floor_osi), max(steady_osi))

    def test_05_idempotence(self):
        """Same parameters -> identical metrics and wall field."""
        print("\nTEST 5: Idempotence")
        params = ClinicalParameters(**DEFAULT_PARAMS)
        first = compute_hemodynamics(params)
        second = compute_hemodynamics(params)
        self.assertEqual(first.metrics, second.metrics)
        self.assertEqual([w.data for w in first.wall_wss], [w.data for w in second.wall_wss])

    def test_06_aggregate_definitions(self):
        """Dean, WSS gradient and total flow follow their definitions."""
        print("\nTEST 6: Aggregate Metrics")
        params = ClinicalParameters(**DEFAULT_PARAMS)
        m = compute_hemodynamics(params).metrics

        expected_dean = m.reynolds_number * math.sqrt(1.0 / (2.0 * DEAN.CURVATURE_RADIUS_DIAMETERS))
        self.assertAlmostEqual(m.dean_number, expected_dean, places=9)
        self.assertAlmostEqual(m.wss_gradient, (m.max_tawss - m.min_tawss) / 4.0e-3, places=6)
        self.assertEqual(m.total_flow_rate, params.flow_rate)
        self.assertTrue(m.min_tawss <= m.mean_tawss <= m.max_tawss)

    def test_07_right_angle_anastomosis(self):
        """90 and 89.9 deg run without numerical failure."""
        print("\nTEST 7: Right-Angle Anastomosis")
        for angle in [90.0, 89.9]:
            report = AVFPhysicsEngine.create_simulation(self.create_base_case(anastomosis_angle=angle))
            self.assertTrue(report.success, report.errors)
            self.assertTrue(math.isfinite(report.hemodynamics.metrics.mean_tawss))

    def test_08_percent_hematocrit_rejected(self):
        """[SAFETY] Hct given as 40 (percent) is rejected with a hint, not simulated."""
        print("\nTEST 8: Hematocrit Unit Guard")
        report = AVFPhysicsEngine.create_simulation(self.create_base_case(hematocrit=40.0))
        self.assertFalse(report.success)
        self.assertIn("ratio", report.errors[0])
        self.assertIsNone(report.hemodynamics)

        with self.assertRaises(InvalidParameterError):
            ClinicalParameters(**self.create_base_case(hematocrit=40.0))

    def test_09_type_errors_reported(self):
        """[SAFETY] String input becomes an error report, never an exception."""
        print("\nTEST 9: Type Guard")
        report = AVFPhysicsEngine.create_simulation(self.create_base_case(flow_rate="600"))
        self.assertFalse(report.success)
        self.assertIn("flow_rate", report.errors[0])

        report = AVFPhysicsEngine.create_simulation(self.create_base_case(vein_diameter=15.0))
        self.assertFalse(report.success)

    def test_10_audit_and_status(self):
        """Successful runs carry an audit hash and a status for each headline metric."""
        print("\nTEST 10: Audit Trail & Metric Status")
        first = AVFPhysicsEngine.create_simulation(self.create_base_case())
        second = AVFPhysicsEngine.create_simulation(self.create_base_case())

        self.assertEqual(first.audit_log.inputs_hash, second.audit_log.inputs_hash)
        self.assertEqual(first.audit_log.model_version, "1.0.0")
        self.assertEqual(set(first.metric_status), {"tawss", "osi", "rrt", "reynolds_number"})
        for status in first.metric_status.values():
            self.assertIsInstance(status, MetricStatus)

    def test_11_timeline_attached(self):
        """Factory projects 13 weeks starting from the simulated flow."""
        print("\nTEST 11: Timeline")
        report = AVFPhysicsEngine.create_simulation(self.create_base_case())
        self.assertEqual(len(report.timeline), 13)
        self.assertEqual(report.timeline[0].flow_rate, 600.0)
        self.assertEqual(report.timeline[0].vein_diameter, 4.0)

        report = AVFPhysicsEngine.create_simulation(self.create_base_case(), base_flow_rate=500.0)
        self.assertEqual(report.timeline[0].flow_rate, 500.0)

    def test_12_unknown_key_reported(self):
        """[SAFETY] Unknown or missing keys are a parameter error, not a crash."""
        print("\nTEST 12: Parameter Set Guard")
        report = AVFPhysicsEngine.create_simulation(self.create_base_case(vein_length=30.0))
        self.assertFalse(report.success)
        self.assertFalse(report.errors[0].startswith("System Error"))

        data = self.create_base_case()
        del data['flow_rate']
        report = AVFPhysicsEngine.create_simulation(data)
        self.assertFalse(report.success)
        self.assertIn("flow_rate", report.errors[0])

    def test_13_engine_defect_is_system_error(self):
        """A TypeError raised inside the pipeline is a system failure, not bad input."""
        print("\nTEST 13: Engine Defect Routing")
        with mock.patch("core_physics.compute_flow_split", side_effect=TypeError("bad operand")):
            report = AVFPhysicsEngine.create_simulation(self.create_base_case())
        self.assertFalse(report.success)
        self.assertTrue(report.errors[0].startswith("System Error"))

        with mock.patch("core_physics.generate_waveform", side_effect=ValueError("math domain error")):
            report = AVFPhysicsEngine.create_simulation(self.create_base_case())
        self.assertTrue(report.errors[0].startswith("System Error"))


if __name__ == '__main__':
    unittest.main()
