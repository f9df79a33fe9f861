import json
import os
import tempfile
import unittest
from flocksim.domain.models import SimulationConfig, VehicleType
from flocksim.experiments.run_experiment import load_config, run_simulation, run_headless_experiment

class TestHeadlessExperiment(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.tmp.name, "config.json")
        self.output_path = os.path.join(self.tmp.name, "out.json")
        with open(self.config_path, "w") as f:
            json.dump({"fleet_mix": {"sedan": 3, "bike": 2}, "duration": 2.0, "weather": "fog"}, f)

    def tearDown(self):
        self.tmp.cleanup()

    def test_load_config(self):
        sim_config = load_config(self.config_path)
        self.assertEqual(sim_config.fleet_mix, {VehicleType.SEDAN: 3, VehicleType.BIKE: 2})
        self.assertEqual(sim_config.duration, 2.0)
        self.assertTrue(sim_config.enable_flocking)

    def test_missing_config_uses_defaults(self):
        self.assertEqual(load_config(os.path.join(self.tmp.name, "missing.json")), SimulationConfig())

    def test_run_simulation_records_every_tick(self):
        result, records = run_simulation(load_config(self.config_path), seed=3)
        self.assertEqual(len(records), 20)
        self.assertEqual([r["tick"] for r in records], list(range(1, 21)))
        self.assertEqual(records[-1]["vehicle_count"], 5)
        self.assertEqual(result.final_metrics.fuel_consumed, records[-1]["fuel_consumed"])

    def test_writes_output(self):
        output = run_headless_experiment(self.config_path, self.output_path, seed=3, compare=True)
        with open(self.output_path) as f:
            written = json.load(f)

        self.assertEqual(len(written["ticks"]), 20)
        self.assertEqual(written["result"]["config"]["weather"], "fog")
        comparison = written["measuredComparison"]
        self.assertIn("withFlocking", comparison)
        self.assertIn("withoutFlocking", comparison)
        self.assertEqual(output["measuredComparison"]["improvement"], comparison["improvement"])

if __name__ == '__main__':
    unittest.main()
