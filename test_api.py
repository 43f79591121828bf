import unittest
from fastapi.testclient import TestClient
from main import app


class TestAPI(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)
        self.case = {
            "artery_diameter": 4.0,
            "vein_diameter": 4.0,
            "anastomosis_angle": 45.0,
            "flow_rate": 600.0,
            "hematocrit": 0.40,
        }

    def test_01_health(self):
        """Liveness probe reports the model version."""
        print("\nAPI TEST 1: Health")
        res = self.client.get("/health")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["version"], "1.0.0")
        self.assertEqual(self.client.get("/").status_code, 200)

    def test_02_blood_properties(self):
        print("\nAPI TEST 2: Blood Properties")
        res = self.client.post("/blood-properties",
                               json={"flow_rate": 600.0, "diameter": 4.0, "hematocrit": 0.40})
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["converged"])
        self.assertGreater(body["viscosity"], 0.0)

    def test_03_geometry(self):
        """Wall points come back with region and contour as plain strings."""
        print("\nAPI TEST 3: Geometry")
        res = self.client.post("/geometry", json={
            "artery_diameter": 4.0, "vein_diameter": 4.0, "anastomosis_angle": 90.0
        })
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["wall_points"])
        self.assertIn(body["wall_points"][0]["region_type"],
                      {"proximal_artery", "distal_artery", "anastomosis_heel", "anastomosis_toe"})
        self.assertEqual(len(body["toe_connection"]), 16)

    def test_04_simulate(self):
        """Full run without the wall field by default."""
        print("\nAPI TEST 4: Simulate")
        res = self.client.post("/simulate", json=self.case)
        self.assertEqual(res.status_code, 200)
        body = res.json()

        self.assertGreater(body["prediction"]["probability"], 0.5)
        self.assertEqual(body["prediction"]["risk_level"], "low")
        self.assertEqual(len(body["timeline"]), 13)
        self.assertIn(body["metric_status"]["osi"], {"normal", "warning", "danger"})
        self.assertAlmostEqual(body["flow_split"]["vein_fraction"], 0.6345, places=3)
        self.assertNotIn("wall_wss", body)

    def test_05_simulate_with_wall(self):
        print("\nAPI TEST 5: Simulate With Wall Field")
        res = self.client.post("/simulate", json={**self.case, "include_wall": True})
        self.assertEqual(res.status_code, 200)
        wall = res.json()["wall_wss"]
        self.assertTrue(wall)
        self.assertIn("tawss", wall[0]["data"])

    def test_06_validation_errors(self):
        """[SAFETY] Out-of-range input is a 422, never a simulation."""
        print("\nAPI TEST 6: Validation")
        res = self.client.post("/simulate", json={**self.case, "hematocrit": 40.0})
        self.assertEqual(res.status_code, 422)

        res = self.client.post("/geometry", json={
            "artery_diameter": 4.0, "vein_diameter": 4.0, "anastomosis_angle": 120.0
        })
        self.assertEqual(res.status_code, 422)

        res = self.client.post("/blood-properties", json={"flow_rate": 600.0, "diameter": 4.0})
        self.assertEqual(res.status_code, 422)


if __name__ == '__main__':
    unittest.main()
