from typing import Any, Dict, List
from flocksim.domain.state import SimulationState
from flocksim.domain.models import Vehicle

class SnapshotBuilder:
    def vehicles(self, state: SimulationState) -> List[Vehicle]:
        # Observers keep these after the tick, so they must not alias live vehicles
        return [v.model_copy(deep=True) for v in state.vehicles]

    def build(self, state: SimulationState) -> Dict[str, Any]:
        network = state.road_network
        return {
            "tick": state.tick_id,
            "time": state.time,
            "vehicles": [
                {
                    "id": v.id,
                    "type": v.type.value,
                    "pos": (v.position.x, v.position.y),
                    "speed": v.velocity.speed,
                    "heading": v.velocity.heading,
                    "state": v.state.value,
                    "edge": v.current_edge_index
                }
                for v in state.vehicles
            ],
            "lights": [
                {
                    "id": n.id,
                    "state": n.traffic_light.state.value
                }
                for n in (network.nodes.values() if network else [])
                if n.traffic_light is not None
            ]
        }
