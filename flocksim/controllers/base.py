from abc import ABC, abstractmethod
from flocksim.domain.models import FlockingWeights, SimulationMetrics

class ParameterAdjuster(ABC):
    """Rewrites the global flocking weights between ticks."""

    @abstractmethod
    def adjust(self, base_weights: FlockingWeights, traffic_density: float, average_speed: float) -> FlockingWeights:
        pass

    @abstractmethod
    def learn(self, metrics: SimulationMetrics):
        pass
