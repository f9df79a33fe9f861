from collections import deque
from typing import Deque, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from flocksim.domain.models import Vehicle, FlockingWeights, SimulationMetrics
from flocksim.domain.graph import RoadNetwork
from flocksim.domain import config

def _metrics_history() -> Deque[SimulationMetrics]:
    return deque(maxlen=config.METRICS_HISTORY_LIMIT)

class SimulationState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    tick_id: int = 0
    time: float = 0.0
    vehicles: List[Vehicle] = []
    weights: FlockingWeights = FlockingWeights() # Global flocking weights
    metrics_history: Deque[SimulationMetrics] = Field(default_factory=_metrics_history)
    trips_completed: int = 0

    # Graph based structure
    road_network: Optional[RoadNetwork] = None
