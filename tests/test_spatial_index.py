import math
import random
import unittest
from flocksim.domain.models import Vehicle, VehicleType, Position, Velocity
from flocksim.kernel.spatial_index import SpatialIndex

def random_vehicles(rng: random.Random, count: int, extent: float):
    types = list(VehicleType)
    vehicles = []
    for i in range(count):
        heading = rng.uniform(-math.pi, math.pi)
        speed = rng.uniform(0, 1.5)
        vehicles.append(Vehicle(
            id=f"v{i}",
            type=rng.choice(types),
            position=Position(x=rng.uniform(0, extent), y=rng.uniform(0, extent)),
            velocity=Velocity(vx=math.cos(heading) * speed, vy=math.sin(heading) * speed, speed=speed, heading=heading)
        ))
    return vehicles

class TestSpatialIndex(unittest.TestCase):
    def test_matches_brute_force(self):
        rng = random.Random(5)
        vehicles = random_vehicles(rng, 60, 100.0)
        index = SpatialIndex(cell_size=10.0)
        index.rebuild(vehicles, 0)
        self.assertEqual(len(index), 60)

        for radius in [0.5, 5.0, 12.0, 30.0, 150.0]:
            for v in vehicles:
                found = {n.vehicle_id for n in index.neighbors_of(v, radius)}
                expected = {
                    o.id for o in vehicles
                    if o.id != v.id and math.hypot(o.position.x - v.position.x, o.position.y - v.position.y) <= radius
                }
                self.assertEqual(found, expected)

    def test_negative_coordinates(self):
        vehicles = [
            Vehicle(id="a", type=VehicleType.SEDAN, position=Position(x=-0.5, y=-0.5)),
            Vehicle(id="b", type=VehicleType.SEDAN, position=Position(x=0.5, y=0.5)),
        ]
        index = SpatialIndex(cell_size=10.0)
        index.rebuild(vehicles, 0)
        self.assertEqual([n.vehicle_id for n in index.neighbors_of(vehicles[0], 2.0)], ["b"])

    def test_neighbor_info(self):
        a = Vehicle(id="a", type=VehicleType.SEDAN, position=Position(x=0, y=0),
                    velocity=Velocity(vx=1.0, vy=0.0, speed=1.0, heading=0.0))
        b = Vehicle(id="b", type=VehicleType.TRUCK, position=Position(x=3, y=4),
                    velocity=Velocity(vx=0.0, vy=2.0, speed=2.0, heading=math.pi / 2))
        index = SpatialIndex()
        index.rebuild([a, b], 0)

        [info] = index.neighbors_of(a, 10.0)
        self.assertEqual(info.vehicle_type, VehicleType.TRUCK)
        self.assertAlmostEqual(info.distance, 5.0)
        self.assertAlmostEqual(info.relative_velocity.vx, -1.0)
        self.assertAlmostEqual(info.relative_velocity.vy, 2.0)

    def test_coincident_vehicles_are_neighbors(self):
        a = Vehicle(id="a", type=VehicleType.BIKE, position=Position(x=4, y=4))
        b = Vehicle(id="b", type=VehicleType.BIKE, position=Position(x=4, y=4))
        index = SpatialIndex()
        index.rebuild([a, b], 0)
        [info] = index.neighbors_of(a, 1.0)
        self.assertEqual(info.vehicle_id, "b")
        self.assertEqual(info.distance, 0.0)

    def test_zero_radius(self):
        vehicles = random_vehicles(random.Random(1), 10, 5.0)
        index = SpatialIndex()
        index.rebuild(vehicles, 0)
        self.assertEqual(index.neighbors_of(vehicles[0], 0.0), [])

    def test_snapshot_is_fixed_within_tick(self):
        a = Vehicle(id="a", type=VehicleType.SEDAN, position=Position(x=0, y=0))
        b = Vehicle(id="b", type=VehicleType.SEDAN, position=Position(x=2, y=0))
        index = SpatialIndex()
        index.rebuild([a, b], 0)

        b.position.x = 50.0
        # Same tick: no rebuild, queries still see the old position
        index.rebuild([a, b], 0)
        self.assertFalse(index.is_stale(0))
        [info] = index.neighbors_of(a, 5.0)
        self.assertAlmostEqual(info.position.x, 2.0)

        self.assertTrue(index.is_stale(1))
        index.rebuild([a, b], 1)
        self.assertEqual(index.neighbors_of(a, 5.0), [])

    def test_clear(self):
        index = SpatialIndex()
        index.rebuild(random_vehicles(random.Random(2), 5, 10.0), 3)
        index.clear()
        self.assertEqual(len(index), 0)
        self.assertTrue(index.is_stale(3))

if __name__ == '__main__':
    unittest.main()
