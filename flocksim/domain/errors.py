class SimulationError(Exception):
    """Base class for simulation failures."""


class ConfigurationError(SimulationError):
    """The network or config cannot support a run. Fatal to start()."""


class PathNotFound(SimulationError):
    def __init__(self, from_id: str, to_id: str):
        super().__init__(f"No path from {from_id} to {to_id}")
        self.from_id = from_id
        self.to_id = to_id


class StateInconsistency(SimulationError):
    """A vehicle references a route node the network does not have."""

    def __init__(self, vehicle_id: str, node_id: str):
        super().__init__(f"Vehicle {vehicle_id} references missing node {node_id}")
        self.vehicle_id = vehicle_id
        self.node_id = node_id
