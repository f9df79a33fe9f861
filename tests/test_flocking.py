import math
import unittest
from flocksim.domain.models import (
    Vehicle, VehicleType, NeighborInfo, Position, Velocity, FlockingWeights
)
from flocksim.systems.vehicle_system import VehicleDynamics
from flocksim.systems.flocking_system import FlockingPolicy

def make_vehicle(vehicle_type=VehicleType.SEDAN, x=0.0, y=0.0, vx=0.0, vy=0.0) -> Vehicle:
    return Vehicle(
        id="self",
        type=vehicle_type,
        position=Position(x=x, y=y),
        velocity=Velocity(vx=vx, vy=vy, speed=math.hypot(vx, vy), heading=math.atan2(vy, vx))
    )

def neighbor(vehicle: Vehicle, x: float, y: float, vx=0.0, vy=0.0, vehicle_type=VehicleType.SEDAN, vehicle_id="n") -> NeighborInfo:
    rvx = vx - vehicle.velocity.vx
    rvy = vy - vehicle.velocity.vy
    return NeighborInfo(
        vehicle_id=vehicle_id,
        vehicle_type=vehicle_type,
        position=Position(x=x, y=y),
        velocity=Velocity(vx=vx, vy=vy, speed=math.hypot(vx, vy), heading=math.atan2(vy, vx)),
        distance=math.hypot(x - vehicle.position.x, y - vehicle.position.y),
        relative_velocity=Velocity(vx=rvx, vy=rvy, speed=math.hypot(rvx, rvy), heading=math.atan2(rvy, rvx))
    )

class TestFlockingPolicy(unittest.TestCase):
    def setUp(self):
        self.policy = FlockingPolicy(VehicleDynamics())

    def test_no_neighbors_keeps_velocity(self):
        vehicle = make_vehicle(vx=1.0, vy=0.5)
        result = self.policy.compute_steering(vehicle, [], FlockingWeights())
        self.assertEqual(result.force.vx, 0.0)
        self.assertEqual(result.force.vy, 0.0)
        self.assertAlmostEqual(result.desired_velocity.vx, 1.0)
        self.assertAlmostEqual(result.desired_velocity.vy, 0.5)
        self.assertAlmostEqual(result.desired_heading, math.atan2(0.5, 1.0))

    def test_separation_pushes_away(self):
        vehicle = make_vehicle()
        close = neighbor(vehicle, 1.0, 0.0)
        sx, sy = self.policy.separation(vehicle, [close])
        # min separation for two sedans is 0.9 + 1 = 1.9 units
        self.assertAlmostEqual(sx, -2 * (1.9 - 1.0) / 1.9)
        self.assertAlmostEqual(sy, 0.0)

        weights = FlockingWeights(cohesion=0.0, alignment=0.0, separation=1.0)
        result = self.policy.compute_steering(vehicle, [close], weights)
        self.assertLess(result.force.vx, 0.0)
        self.assertAlmostEqual(result.force.vy, 0.0)

    def test_separation_ignores_distant_and_coincident(self):
        vehicle = make_vehicle()
        self.assertEqual(self.policy.separation(vehicle, [neighbor(vehicle, 5.0, 0.0)]), (0.0, 0.0))
        self.assertEqual(self.policy.separation(vehicle, [neighbor(vehicle, 0.0, 0.0)]), (0.0, 0.0))

    def test_min_separation_uses_lengths(self):
        self.assertAlmostEqual(self.policy.min_separation(VehicleType.TRUCK, VehicleType.BUS), 3.2)
        self.assertAlmostEqual(self.policy.min_separation(VehicleType.BIKE, VehicleType.BIKE), 1.4)

    def test_cohesion_points_to_center(self):
        vehicle = make_vehicle()
        neighbors = [neighbor(vehicle, 10.0, 10.0, vehicle_id="a"), neighbor(vehicle, 10.0, -10.0, vehicle_id="b")]
        cx, cy = self.policy.cohesion(vehicle, neighbors)
        self.assertAlmostEqual(cx, VehicleDynamics().max_speed(VehicleType.SEDAN) * 0.1)
        self.assertAlmostEqual(cy, 0.0)

    def test_alignment_matches_average_velocity(self):
        vehicle = make_vehicle(vx=1.0)
        ax, ay = self.policy.alignment(vehicle, [neighbor(vehicle, 5.0, 5.0, vx=0.0, vy=1.0)])
        self.assertAlmostEqual(ax, -0.1)
        self.assertAlmostEqual(ay, 0.1)

    def test_perception_radius_by_behavior(self):
        self.assertAlmostEqual(self.policy.perception_radius(VehicleType.SEDAN, 35.0), 35.0)
        self.assertAlmostEqual(self.policy.perception_radius(VehicleType.BIKE, 35.0), 24.5)
        self.assertAlmostEqual(self.policy.perception_radius(VehicleType.TRUCK, 35.0), 45.5)

    def test_type_weights(self):
        weights = FlockingWeights(cohesion=1.0, alignment=1.0, separation=1.0)
        bike = self.policy.type_weights(VehicleType.BIKE, weights)
        self.assertAlmostEqual(bike.cohesion, 0.8)
        self.assertAlmostEqual(bike.alignment, 0.6)
        self.assertAlmostEqual(bike.separation, 1.5)
        self.assertEqual(self.policy.type_weights(VehicleType.SEDAN, weights), weights)

    def test_neighbors_outside_perception_ignored(self):
        vehicle = make_vehicle(VehicleType.BIKE, vx=0.5)
        far = neighbor(vehicle, 30.0, 0.0, vx=-1.0)
        result = self.policy.compute_steering(vehicle, [far], FlockingWeights())
        self.assertEqual(result.force.vx, 0.0)
        self.assertEqual(result.force.vy, 0.0)

    def test_desired_speed_capped(self):
        dynamics = VehicleDynamics()
        cap = dynamics.max_speed(VehicleType.SEDAN)
        vehicle = make_vehicle(vx=cap)
        fast = [neighbor(vehicle, 3.0, float(i), vx=100.0, vehicle_id=f"n{i}") for i in range(5)]
        result = self.policy.compute_steering(vehicle, fast, FlockingWeights(alignment=3.0))
        self.assertGreater(result.desired_velocity.speed, cap)
        self.assertLessEqual(result.desired_speed, cap)

if __name__ == '__main__':
    unittest.main()
