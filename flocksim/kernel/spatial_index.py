import math
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from flocksim.domain.models import Vehicle, VehicleType, NeighborInfo, Position, Velocity
from flocksim.domain import config

CellKey = Tuple[int, int]

class _Entry(NamedTuple):
    id: str
    type: VehicleType
    x: float
    y: float
    vx: float
    vy: float
    speed: float
    heading: float


class SpatialIndex:
    """Uniform grid over vehicle positions, rebuilt once per tick.

    Entries are copies taken at rebuild time, so every query during a tick
    sees the same positions and velocities even while vehicles move.
    """

    def __init__(self, cell_size: float = config.SPATIAL_CELL_SIZE):
        self.cell_size = cell_size
        self._cells: Dict[CellKey, List[_Entry]] = {}
        self._size = 0
        self.built_tick: Optional[int] = None

    def __len__(self) -> int:
        return self._size

    def cell_of(self, x: float, y: float) -> CellKey:
        return (math.floor(x / self.cell_size), math.floor(y / self.cell_size))

    def is_stale(self, tick_id: int) -> bool:
        return self.built_tick != tick_id

    def clear(self):
        self._cells = {}
        self._size = 0
        self.built_tick = None

    def rebuild(self, vehicles: Iterable[Vehicle], tick_id: int):
        if not self.is_stale(tick_id):
            return
        self._cells = {}
        self._size = 0
        for v in vehicles:
            entry = _Entry(
                v.id, v.type, v.position.x, v.position.y,
                v.velocity.vx, v.velocity.vy, v.velocity.speed, v.velocity.heading
            )
            self._cells.setdefault(self.cell_of(entry.x, entry.y), []).append(entry)
            self._size += 1
        self.built_tick = tick_id

    def neighbors_of(self, vehicle: Vehicle, radius: float) -> List[NeighborInfo]:
        if radius <= 0 or not self._cells:
            return []
        ring = math.ceil(radius / self.cell_size)
        cx, cy = self.cell_of(vehicle.position.x, vehicle.position.y)
        px, py = vehicle.position.x, vehicle.position.y
        neighbors: List[NeighborInfo] = []

        for dx in range(-ring, ring + 1):
            for dy in range(-ring, ring + 1):
                cell = self._cells.get((cx + dx, cy + dy))
                if not cell:
                    continue
                for other in cell:
                    if other.id == vehicle.id:
                        continue
                    distance = math.hypot(other.x - px, other.y - py)
                    if distance > radius:
                        continue
                    rvx = other.vx - vehicle.velocity.vx
                    rvy = other.vy - vehicle.velocity.vy
                    neighbors.append(NeighborInfo(
                        vehicle_id=other.id,
                        vehicle_type=other.type,
                        position=Position(x=other.x, y=other.y),
                        velocity=Velocity(vx=other.vx, vy=other.vy, speed=other.speed, heading=other.heading),
                        distance=distance,
                        relative_velocity=Velocity(vx=rvx, vy=rvy, speed=math.hypot(rvx, rvy), heading=math.atan2(rvy, rvx))
                    ))
        return neighbors
