import math
from typing import Optional

from flocksim.domain.models import Vehicle, VehicleType, VehicleState, Position, VEHICLE_PROFILES
from flocksim.domain import config

SPEED_TOLERANCE = 1e-9

def distance(p1: Position, p2: Position) -> float:
    return math.hypot(p2.x - p1.x, p2.y - p1.y)

def heading(p1: Position, p2: Position) -> float:
    return math.atan2(p2.y - p1.y, p2.x - p1.x)

def normalize_angle(angle: float) -> float:
    """Wrap an angle into [-pi, pi]."""
    while angle > math.pi:
        angle -= 2 * math.pi
    while angle < -math.pi:
        angle += 2 * math.pi
    return angle


class VehicleDynamics:
    """Per-vehicle kinematics in simulation units (1 unit = ``scale`` metres).

    Speeds are stored in units/s; physical limits in the vehicle profiles are
    SI values and get converted here.
    """

    def __init__(self, time_step: float = config.TICK_SECONDS, scale: float = config.UNIT_METERS):
        self.time_step = time_step
        self.scale = scale

    def kmh_to_units(self, kmh: float) -> float:
        return (kmh * 1000 / 3600) / self.scale

    def units_to_kmh(self, units: float) -> float:
        return units * self.scale * 3.6

    def max_speed(self, vehicle_type: VehicleType) -> float:
        return self.kmh_to_units(VEHICLE_PROFILES[vehicle_type].max_speed_kmh)

    def integrate(self, vehicle: Vehicle, desired_speed: float, desired_heading: float, dt: Optional[float] = None):
        dt = self.time_step if dt is None else dt
        profile = VEHICLE_PROFILES[vehicle.type]
        velocity = vehicle.velocity
        current_speed = velocity.speed
        speed_diff = desired_speed - current_speed

        max_accel = self.max_acceleration(vehicle, current_speed, dt)
        max_brake = profile.max_braking * dt / self.scale

        if speed_diff > SPEED_TOLERANCE:
            delta = min(speed_diff, max_accel)
            vehicle.state = VehicleState.ACCELERATING
        elif speed_diff < -SPEED_TOLERANCE:
            delta = max(speed_diff, -max_brake)
            vehicle.state = VehicleState.BRAKING
        else:
            delta = 0.0
            vehicle.state = VehicleState.MOVING

        new_speed = min(max(0.0, current_speed + delta), self.max_speed(vehicle.type))
        if new_speed <= config.STOP_EPSILON and desired_speed <= config.STOP_EPSILON:
            vehicle.state = VehicleState.STOPPED

        # Turning is limited by lateral comfort and turning radius
        heading_diff = normalize_angle(desired_heading - velocity.heading)
        max_turn = self.max_turn_rate(vehicle, new_speed, dt)
        turn = max(-max_turn, min(max_turn, heading_diff))
        new_heading = normalize_angle(velocity.heading + turn)

        old_vx, old_vy = velocity.vx, velocity.vy
        velocity.speed = new_speed
        velocity.heading = new_heading
        velocity.vx = math.cos(new_heading) * new_speed
        velocity.vy = math.sin(new_heading) * new_speed

        if dt > 0:
            vehicle.acceleration.ax = (velocity.vx - old_vx) / dt
            vehicle.acceleration.ay = (velocity.vy - old_vy) / dt

        self.advance_position(vehicle, dt)
        self.update_fuel(vehicle, abs(new_speed - current_speed), dt)

    def max_acceleration(self, vehicle: Vehicle, speed: float, dt: float) -> float:
        """Largest speed gain this step once aerodynamic drag is paid for."""
        profile = VEHICLE_PROFILES[vehicle.type]
        drag_force = 0.5 * config.AIR_DENSITY * profile.drag_coefficient * config.FRONTAL_AREA * (speed * self.scale) ** 2
        max_force = profile.mass * profile.max_acceleration
        available_force = max(0.0, max_force - drag_force)
        return (available_force / profile.mass) * dt / self.scale

    def max_turn_rate(self, vehicle: Vehicle, speed: float, dt: float) -> float:
        profile = VEHICLE_PROFILES[vehicle.type]
        speed_ms = speed * self.scale
        if speed_ms < config.SLOW_TURN_SPEED:
            return config.SLOW_TURN_RATE

        from_lateral = config.MAX_LATERAL_ACCEL / speed_ms
        from_radius = speed_ms / profile.turning_radius
        return min(from_lateral, from_radius) * dt

    def update_fuel(self, vehicle: Vehicle, speed_change: float, dt: Optional[float] = None) -> float:
        dt = self.time_step if dt is None else dt
        profile = VEHICLE_PROFILES[vehicle.type]
        speed_kmh = self.units_to_kmh(vehicle.velocity.speed)

        # Consumption per distance is lowest at the optimal speed
        speed_factor = 0.5 + 0.5 * (speed_kmh / config.OPTIMAL_SPEED_KMH) ** 2
        accel_factor = 1 + speed_change * config.ACCEL_FUEL_PENALTY
        idle_factor = config.IDLE_FUEL_FACTOR if vehicle.state == VehicleState.STOPPED else 1.0

        consumption = max(0.0, profile.fuel_rate * speed_factor * accel_factor * idle_factor * dt)
        vehicle.fuel_consumed += consumption
        return consumption

    def braking_distance(self, vehicle: Vehicle) -> float:
        """Metres needed to stop from the current speed at full braking."""
        speed_ms = vehicle.velocity.speed * self.scale
        return (speed_ms * speed_ms) / (2 * VEHICLE_PROFILES[vehicle.type].max_braking)

    def needs_braking(self, vehicle: Vehicle, stop_distance: float) -> bool:
        return self.braking_distance(vehicle) >= stop_distance - config.BRAKING_MARGIN

    def apply_braking(self, vehicle: Vehicle, stop_distance: float, dt: Optional[float] = None) -> bool:
        """Brake fully if the stop point (metres ahead) is inside braking range.

        Returns True once the vehicle has come to rest. Does nothing and
        returns False while there is still room to stop later.
        """
        dt = self.time_step if dt is None else dt
        if not self.needs_braking(vehicle, stop_distance):
            return False

        profile = VEHICLE_PROFILES[vehicle.type]
        velocity = vehicle.velocity
        current_speed = velocity.speed
        new_speed = max(0.0, current_speed - profile.max_braking * dt / self.scale)
        old_vx, old_vy = velocity.vx, velocity.vy
        velocity.speed = new_speed
        velocity.vx = math.cos(velocity.heading) * new_speed
        velocity.vy = math.sin(velocity.heading) * new_speed
        if dt > 0:
            vehicle.acceleration.ax = (velocity.vx - old_vx) / dt
            vehicle.acceleration.ay = (velocity.vy - old_vy) / dt

        stopped = new_speed <= config.STOP_EPSILON
        vehicle.state = VehicleState.STOPPED if stopped else VehicleState.BRAKING
        self.update_fuel(vehicle, current_speed - new_speed, dt)
        return stopped

    def advance_position(self, vehicle: Vehicle, dt: Optional[float] = None):
        dt = self.time_step if dt is None else dt
        vehicle.position.x += vehicle.velocity.vx * dt
        vehicle.position.y += vehicle.velocity.vy * dt
        vehicle.distance_traveled += vehicle.velocity.speed * dt * self.scale

    def apply_weather(self, vehicle: Vehicle, friction: float):
        # Only the target speed is capped; acceleration and braking limits stay as-is
        limit = self.kmh_to_units(VEHICLE_PROFILES[vehicle.type].max_speed_kmh * friction)
        vehicle.target_speed = min(vehicle.target_speed, limit)
