import json
import logging
import os
import random
import time
from typing import Any, Dict, List, Optional

from flocksim.core.logging import configure_logging
from flocksim.domain.graph import RoadNetwork, generate_grid_network
from flocksim.domain.models import SimulationConfig, SimulationResult
from flocksim.kernel.scheduler import ManualScheduler
from flocksim.kernel.simulation_kernel import SimulationKernel

logger = logging.getLogger(__name__)

def load_config(config_path: Optional[str]) -> SimulationConfig:
    if config_path and os.path.exists(config_path):
        with open(config_path) as f:
            return SimulationConfig.model_validate_json(f.read())
    logger.info("No config at %s, using defaults", config_path)
    return SimulationConfig()

def run_simulation(sim_config: SimulationConfig, seed: int = 42, network: Optional[RoadNetwork] = None):
    """Run one configuration to completion. Returns (result, per-tick records)."""
    network = network or generate_grid_network(rng=random.Random(seed))
    scheduler = ManualScheduler()
    kernel = SimulationKernel(network, sim_config, scheduler=scheduler, seed=seed)

    records: List[Dict[str, Any]] = []
    results: List[SimulationResult] = []

    def on_update(vehicles, metrics):
        records.append({
            "tick": kernel.state.tick_id,
            "vehicle_count": len(vehicles),
            "average_speed": metrics.average_speed,
            "fuel_consumed": metrics.fuel_consumed,
            "congestion_level": metrics.congestion_level
        })

    kernel.start(on_update, results.append)
    scheduler.run_until_idle()
    return results[0], records

def run_comparison(sim_config: SimulationConfig, seed: int = 42) -> Dict[str, Any]:
    """Run the same seeded setup with and without flocking on identical networks."""
    flocking_config = sim_config.model_copy(update={"enable_flocking": True})
    baseline_config = sim_config.model_copy(update={"enable_flocking": False})
    with_flocking, _ = run_simulation(flocking_config, seed)
    without_flocking, _ = run_simulation(baseline_config, seed)

    base_speed = without_flocking.final_metrics.average_speed
    improvement = 0.0
    if base_speed > 0:
        improvement = (with_flocking.final_metrics.average_speed - base_speed) / base_speed * 100
    return {
        "withFlocking": with_flocking.final_metrics.model_dump(mode="json"),
        "withoutFlocking": without_flocking.final_metrics.model_dump(mode="json"),
        "improvement": improvement
    }

def run_headless_experiment(config_path: str, output_path: str, seed: int = 42, compare: bool = False):
    sim_config = load_config(config_path)

    start_time = time.time()
    result, records = run_simulation(sim_config, seed)
    output: Dict[str, Any] = {
        "ticks": records,
        "result": result.model_dump(mode="json")
    }
    if compare:
        output["measuredComparison"] = run_comparison(sim_config, seed)
    end_time = time.time()
    logger.info("Experiment finished in %.4fs", end_time - start_time)

    with open(output_path, 'w') as f:
        json.dump(output, f, indent=2)
    return output

if __name__ == "__main__":
    import sys
    configure_logging()
    if len(sys.argv) > 2:
        run_headless_experiment(sys.argv[1], sys.argv[2], compare="--compare" in sys.argv[3:])
    else:
        print("Usage: python -m flocksim.experiments.run_experiment <config> <output> [--compare]")
