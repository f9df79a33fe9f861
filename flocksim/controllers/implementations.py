import logging
import math
import random
from typing import List, Optional

from flocksim.controllers.base import ParameterAdjuster
from flocksim.domain.models import FlockingWeights, SimulationMetrics
from flocksim.domain import config

logger = logging.getLogger(__name__)

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class FixedWeights(ParameterAdjuster):
    def adjust(self, base_weights: FlockingWeights, traffic_density: float, average_speed: float) -> FlockingWeights:
        return base_weights

    def learn(self, metrics: SimulationMetrics):
        pass


class InterferenceAdjuster(ParameterAdjuster):
    """Heuristic weight tuning through a small symmetric feedback matrix.

    Traffic density and speed become a state vector ``[d, s, 1-d, 1-s]``,
    the matrix maps it linearly, and a sinusoidal phase turns the result into
    per-weight multipliers. ``learn`` drifts the off-diagonal entries with a
    flow/congestion feedback signal; there is no convergence guarantee.
    """

    def __init__(self, size: int = config.ADJUSTER_SIZE, rng: Optional[random.Random] = None):
        if size < 4:
            raise ValueError(f"Adjuster matrix needs at least 4 rows, got {size}")
        self.size = size
        self.rng = rng or random.Random()
        self.matrix: List[List[float]] = [[0.0] * size for _ in range(size)]
        for i in range(size):
            self.matrix[i][i] = 1.0
            for j in range(i + 1, size):
                value = self.rng.random() * 0.3
                self.matrix[i][j] = value
                self.matrix[j][i] = value

    def encode_state(self, traffic_density: float, average_speed: float) -> List[float]:
        density = _clamp(traffic_density / config.DENSITY_SATURATION, 0.0, 1.0)
        speed = _clamp(average_speed / config.SPEED_SATURATION, 0.0, 1.0)
        state = [density, speed, 1 - density, 1 - speed]
        return state + [0.0] * (self.size - len(state))

    def interference(self, state: List[float]) -> List[float]:
        mixed = [sum(self.matrix[i][j] * state[j] for j in range(self.size)) for i in range(self.size)]
        return [math.sin(v * math.pi + i * math.pi / 4) * 0.5 for i, v in enumerate(mixed)]

    def adjust(self, base_weights: FlockingWeights, traffic_density: float, average_speed: float) -> FlockingWeights:
        terms = self.interference(self.encode_state(traffic_density, average_speed))
        return FlockingWeights(
            cohesion=_clamp(base_weights.cohesion * (1 + terms[0] * 0.3), config.WEIGHT_MIN, config.WEIGHT_MAX),
            alignment=_clamp(base_weights.alignment * (1 + terms[1] * 0.3), config.WEIGHT_MIN, config.WEIGHT_MAX),
            separation=_clamp(base_weights.separation * (1 + terms[2] * 0.3), config.WEIGHT_MIN, config.WEIGHT_MAX),
            perception_radius=base_weights.perception_radius
        )

    def learn(self, metrics: SimulationMetrics):
        flow = _clamp(metrics.average_speed / config.SPEED_SATURATION, 0.0, 1.0)
        feedback = flow / (metrics.congestion_level + 1)
        nudge = (feedback - 0.5) * 0.01
        for i in range(self.size):
            for j in range(i + 1, self.size):
                value = _clamp(self.matrix[i][j] + nudge, 0.0, 1.0)
                self.matrix[i][j] = value
                self.matrix[j][i] = value
        logger.debug("Adjuster feedback %.3f (nudge %.4f)", feedback, nudge)
