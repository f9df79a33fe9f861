import math
from typing import List, Tuple

from flocksim.domain.models import (
    Vehicle, VehicleType, FlockingBehavior, FlockingWeights, NeighborInfo, SteeringResult, Velocity,
    VEHICLE_PROFILES
)
from flocksim.domain import config
from flocksim.systems.vehicle_system import VehicleDynamics

Vector = Tuple[float, float]

PERCEPTION_SCALE = {
    FlockingBehavior.AGGRESSIVE: 0.7,
    FlockingBehavior.NORMAL: 1.0,
    FlockingBehavior.CONSERVATIVE: 1.3,
}

# cohesion, alignment, separation multipliers
BEHAVIOR_WEIGHTS = {
    FlockingBehavior.AGGRESSIVE: (0.8, 0.6, 1.5),
    FlockingBehavior.NORMAL: (1.0, 1.0, 1.0),
    FlockingBehavior.CONSERVATIVE: (1.2, 1.3, 1.2),
}


class FlockingPolicy:
    """Boids steering: cohesion, alignment and separation from local neighbors.

    Stateless; neighbor sets come from the kernel's SpatialIndex.
    """

    def __init__(self, dynamics: VehicleDynamics):
        self.dynamics = dynamics

    def perception_radius(self, vehicle_type: VehicleType, base_radius: float) -> float:
        return base_radius * PERCEPTION_SCALE[VEHICLE_PROFILES[vehicle_type].behavior]

    def type_weights(self, vehicle_type: VehicleType, weights: FlockingWeights) -> FlockingWeights:
        c, a, s = BEHAVIOR_WEIGHTS[VEHICLE_PROFILES[vehicle_type].behavior]
        return FlockingWeights(
            cohesion=weights.cohesion * c,
            alignment=weights.alignment * a,
            separation=weights.separation * s,
            perception_radius=weights.perception_radius
        )

    def min_separation(self, a: VehicleType, b: VehicleType) -> float:
        length_sum = VEHICLE_PROFILES[a].length + VEHICLE_PROFILES[b].length
        return length_sum / self.dynamics.scale + config.SEPARATION_MARGIN

    def cohesion(self, vehicle: Vehicle, neighbors: List[NeighborInfo]) -> Vector:
        if not neighbors:
            return (0.0, 0.0)
        avg_x = sum(n.position.x for n in neighbors) / len(neighbors)
        avg_y = sum(n.position.y for n in neighbors) / len(neighbors)

        dx = avg_x - vehicle.position.x
        dy = avg_y - vehicle.position.y
        dist = math.hypot(dx, dy)
        if dist < 0.001:
            return (0.0, 0.0)

        scale = self.dynamics.max_speed(vehicle.type) * config.COHESION_SPEED_FRACTION
        return (dx / dist * scale, dy / dist * scale)

    def alignment(self, vehicle: Vehicle, neighbors: List[NeighborInfo]) -> Vector:
        if not neighbors:
            return (0.0, 0.0)
        avg_vx = sum(n.velocity.vx for n in neighbors) / len(neighbors)
        avg_vy = sum(n.velocity.vy for n in neighbors) / len(neighbors)
        return (
            (avg_vx - vehicle.velocity.vx) * config.ALIGNMENT_GAIN,
            (avg_vy - vehicle.velocity.vy) * config.ALIGNMENT_GAIN,
        )

    def separation(self, vehicle: Vehicle, neighbors: List[NeighborInfo]) -> Vector:
        sep_x = 0.0
        sep_y = 0.0
        for n in neighbors:
            dist = n.distance
            if dist < 0.001:
                continue  # coincident, no defined direction
            min_sep = self.min_separation(vehicle.type, n.vehicle_type)
            if dist < min_sep:
                force = (min_sep - dist) / min_sep
                sep_x += (vehicle.position.x - n.position.x) / dist * force
                sep_y += (vehicle.position.y - n.position.y) / dist * force
        return (sep_x * config.SEPARATION_GAIN, sep_y * config.SEPARATION_GAIN)

    def compute_steering(self, vehicle: Vehicle, neighbors: List[NeighborInfo], weights: FlockingWeights) -> SteeringResult:
        radius = self.perception_radius(vehicle.type, weights.perception_radius)
        visible = [n for n in neighbors if n.distance <= radius]

        fx = fy = 0.0
        if visible:
            w = self.type_weights(vehicle.type, weights)
            cx, cy = self.cohesion(vehicle, visible)
            ax, ay = self.alignment(vehicle, visible)
            sx, sy = self.separation(vehicle, visible)
            fx = cx * w.cohesion + ax * w.alignment + sx * w.separation
            fy = cy * w.cohesion + ay * w.alignment + sy * w.separation

        dvx = vehicle.velocity.vx + fx
        dvy = vehicle.velocity.vy + fy
        magnitude = math.hypot(dvx, dvy)
        desired_heading = math.atan2(dvy, dvx) if magnitude > 0 else vehicle.velocity.heading

        return SteeringResult(
            force=Velocity(vx=fx, vy=fy, speed=math.hypot(fx, fy), heading=math.atan2(fy, fx)),
            desired_velocity=Velocity(vx=dvx, vy=dvy, speed=magnitude, heading=desired_heading),
            desired_speed=min(magnitude, self.dynamics.max_speed(vehicle.type)),
            desired_heading=desired_heading
        )
