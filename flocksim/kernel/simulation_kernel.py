import logging
import math
import random
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from flocksim.domain.models import (
    Vehicle, VehicleType, VehicleState, RoadNode, Position, Velocity, SimulationConfig, SimulationMetrics,
    SimulationResult, ROIMetrics, FlockingComparison, WEATHER_CONDITIONS, VEHICLE_PROFILES
)
from flocksim.domain.state import SimulationState
from flocksim.domain.graph import RoadNetwork
from flocksim.domain.errors import ConfigurationError, PathNotFound, StateInconsistency
from flocksim.domain import config
from flocksim.controllers.base import ParameterAdjuster
from flocksim.controllers.implementations import FixedWeights, InterferenceAdjuster
from flocksim.kernel.scheduler import TickScheduler, ManualScheduler
from flocksim.kernel.spatial_index import SpatialIndex
from flocksim.kernel.snapshot_builder import SnapshotBuilder
from flocksim.systems.vehicle_system import VehicleDynamics, distance, heading, normalize_angle
from flocksim.systems.flocking_system import FlockingPolicy
from flocksim.systems.signal_system import SignalSystem

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[List[Vehicle], SimulationMetrics], None]
CompleteCallback = Callable[[SimulationResult], None]

class KernelStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    COMPLETED = "completed"

class SimulationKernel:
    def __init__(
        self,
        network: RoadNetwork,
        sim_config: Optional[SimulationConfig] = None,
        scheduler: Optional[TickScheduler] = None,
        adjuster: Optional[ParameterAdjuster] = None,
        seed: Optional[int] = None,
    ):
        self.network = network
        self.sim_config = sim_config or SimulationConfig()
        # Later edits to the caller's dict must not change the run
        self.fleet_mix = dict(self.sim_config.fleet_mix)
        self.scheduler = scheduler or ManualScheduler()
        self.rng = random.Random(seed)
        if adjuster is None:
            adjuster = InterferenceAdjuster(rng=self.rng) if self.sim_config.enable_adjustment else FixedWeights()
        self.adjuster = adjuster

        self.dt = config.TICK_SECONDS # Fixed timestep
        self.total_ticks = max(1, math.ceil(self.sim_config.duration / self.dt - 1e-9))
        self.friction = WEATHER_CONDITIONS[self.sim_config.weather].friction

        self.dynamics = VehicleDynamics(self.dt)
        self.flocking = FlockingPolicy(self.dynamics)
        self.signals = SignalSystem()
        self.spatial_index = SpatialIndex()
        self.snapshots = SnapshotBuilder()

        self.state = SimulationState(road_network=network, weights=self.sim_config.flocking_params)
        self.status = KernelStatus.IDLE
        self._on_update: Optional[UpdateCallback] = None
        self._on_complete: Optional[CompleteCallback] = None

    @property
    def vehicles(self) -> List[Vehicle]:
        return self.state.vehicles

    def start(self, on_update: Optional[UpdateCallback] = None, on_complete: Optional[CompleteCallback] = None):
        if self.status == KernelStatus.RUNNING:
            return

        self._validate_network()
        self._on_update = on_update
        self._on_complete = on_complete
        self._reset()
        self.state.vehicles = self._create_vehicles()
        self.status = KernelStatus.RUNNING
        logger.info(
            "Simulation started: %d vehicles, %d ticks, flocking=%s, weather=%s",
            len(self.state.vehicles), self.total_ticks, self.sim_config.enable_flocking, self.sim_config.weather.value
        )
        self.scheduler.schedule_next(self._on_tick)

    def stop(self):
        if self.status != KernelStatus.RUNNING:
            return
        self.status = KernelStatus.STOPPED
        self.scheduler.cancel()
        logger.info("Simulation stopped at tick %d", self.state.tick_id)

    def _validate_network(self):
        if not self.network.nodes:
            raise ConfigurationError("No network nodes available")
        if not self.network.entry_nodes():
            raise ConfigurationError("No entry nodes available")

    def _reset(self):
        self.state = SimulationState(road_network=self.network, weights=self.sim_config.flocking_params)
        self.spatial_index.clear()

    def _create_vehicles(self) -> List[Vehicle]:
        entries = self.network.entry_nodes()
        vehicles: List[Vehicle] = []
        requested = 0
        attempts = 0

        for vehicle_type in VehicleType:
            count = min(self.fleet_mix.get(vehicle_type, 0), config.MAX_VEHICLES_PER_TYPE)
            requested += count
            placed = 0
            while placed < count and attempts < config.MAX_SPAWN_ATTEMPTS:
                # Next entry on every attempt, placed or not
                entry = entries[attempts % len(entries)]
                attempts += 1
                destination = self.network.random_destination(self.rng, entry.id)
                if destination is None:
                    continue
                route = self.network.find_shortest_path(entry.id, destination.id)
                if not route or len(route) < 2:
                    continue
                vehicles.append(self._new_vehicle(f"v{len(vehicles)}", vehicle_type, entry, route))
                placed += 1

        if len(vehicles) < requested:
            logger.warning("Placed %d of %d vehicles after %d attempts", len(vehicles), requested, attempts)
        return vehicles

    def _new_vehicle(self, vehicle_id: str, vehicle_type: VehicleType, entry: RoadNode, route: List[str]) -> Vehicle:
        vehicle = Vehicle(
            id=vehicle_id,
            type=vehicle_type,
            position=Position(x=entry.position.x, y=entry.position.y),
            target_speed=self.dynamics.max_speed(vehicle_type)
        )
        self._place(vehicle, entry, route)
        self.dynamics.apply_weather(vehicle, self.friction)
        return vehicle

    def _place(self, vehicle: Vehicle, entry: RoadNode, route: List[str]):
        first_hop = self.network.get_node(route[1])
        vehicle.position = Position(x=entry.position.x, y=entry.position.y)
        vehicle.velocity = Velocity(heading=heading(entry.position, first_hop.position))
        vehicle.acceleration.ax = 0.0
        vehicle.acceleration.ay = 0.0
        vehicle.route = route
        vehicle.current_edge_index = 0
        vehicle.distance_traveled = 0.0
        vehicle.flocking_params = self.state.weights
        vehicle.state = VehicleState.MOVING

    def _respawn(self, vehicle: Vehicle) -> bool:
        for _ in range(config.RESPAWN_ATTEMPTS):
            entry = self.network.random_entry_node(self.rng)
            if entry is None:
                break
            destination = self.network.random_destination(self.rng, entry.id)
            if destination is None:
                break
            try:
                route = self.network.require_path(entry.id, destination.id)
            except PathNotFound as e:
                logger.debug("Respawn of %s deferred: %s", vehicle.id, e)
                continue
            self._place(vehicle, entry, route)
            return True

        vehicle.state = VehicleState.WAITING
        return False

    def _on_tick(self):
        if self.status != KernelStatus.RUNNING:
            return

        metrics = self.run_tick()
        self._emit_update(metrics)

        # An observer may have stopped the run
        if self.status != KernelStatus.RUNNING:
            return
        if self.state.tick_id >= self.total_ticks:
            self._complete()
        else:
            self.scheduler.schedule_next(self._on_tick)

    def _emit_update(self, metrics: SimulationMetrics):
        if self._on_update is None:
            return
        try:
            self._on_update(self.snapshots.vehicles(self.state), metrics)
        except Exception:
            logger.exception("Update callback failed at tick %d", self.state.tick_id)

    def _complete(self):
        self.status = KernelStatus.COMPLETED
        self.scheduler.cancel()
        result = self.get_result()
        logger.info(
            "Simulation completed at t=%.1fs: avg speed %.1f km/h, fuel %.2f L",
            self.state.time, result.final_metrics.average_speed, result.final_metrics.fuel_consumed
        )
        if self._on_complete is None:
            return
        try:
            self._on_complete(result)
        except Exception:
            logger.exception("Complete callback failed")

    def run_tick(self) -> SimulationMetrics:
        state = self.state

        # 1. Neighbor snapshot for this tick
        if self.spatial_index.is_stale(state.tick_id):
            self.spatial_index.rebuild(state.vehicles, state.tick_id)

        # 2. Signals & Vehicles
        self.signals.update(self.network.traffic_lights(), self.dt)
        for vehicle in state.vehicles:
            self._update_vehicle(vehicle)

        # 3. Advance Time
        state.tick_id += 1
        state.time = state.tick_id * self.dt

        # 4. Metrics & weight adjustment
        metrics = self._collect_metrics()
        state.metrics_history.append(metrics)
        if self.sim_config.enable_adjustment:
            self._adjust_weights(metrics)
        return metrics

    def _next_target(self, vehicle: Vehicle) -> RoadNode:
        node_id = vehicle.route[vehicle.current_edge_index + 1]
        node = self.network.get_node(node_id)
        if node is None:
            raise StateInconsistency(vehicle.id, node_id)
        return node

    def _arrival_radius(self, vehicle: Vehicle) -> float:
        turning_radius = VEHICLE_PROFILES[vehicle.type].turning_radius / self.dynamics.scale
        return max(config.ARRIVAL_RADIUS, 2 * turning_radius)

    def _route_finished(self, vehicle: Vehicle) -> bool:
        return vehicle.current_edge_index >= len(vehicle.route) - 1

    def _update_vehicle(self, vehicle: Vehicle):
        if vehicle.state == VehicleState.WAITING or self._route_finished(vehicle):
            self._respawn(vehicle)
            return

        try:
            target = self._next_target(vehicle)
            arrival = self._arrival_radius(vehicle)
            dist = distance(vehicle.position, target.position)
            if dist < arrival:
                vehicle.current_edge_index += 1
                if self._route_finished(vehicle):
                    vehicle.trips_completed += 1
                    self.state.trips_completed += 1
                    self._respawn(vehicle)
                    return
                target = self._next_target(vehicle)
                dist = distance(vehicle.position, target.position)
        except StateInconsistency as e:
            logger.warning("%s; respawning", e)
            self._respawn(vehicle)
            return

        light = target.traffic_light
        gap = max(0.0, dist - arrival) * self.dynamics.scale
        if light is not None and self.signals.is_stop_signal(light) and self.dynamics.needs_braking(vehicle, gap):
            self.dynamics.apply_braking(vehicle, gap, self.dt)
            self.dynamics.advance_position(vehicle, self.dt)
        else:
            desired_speed, desired_heading = self._steer(vehicle, target, gap)
            self.dynamics.integrate(vehicle, desired_speed, desired_heading, self.dt)

        if vehicle.velocity.speed <= config.STOP_EPSILON:
            vehicle.wait_time += self.dt
        vehicle.eta = self._estimate_eta(vehicle, target)

    def _steer(self, vehicle: Vehicle, target: RoadNode, gap: float) -> Tuple[float, float]:
        seek_heading = heading(vehicle.position, target.position)
        cruise = min(vehicle.target_speed, self._corner_speed_cap(vehicle, target, seek_heading, gap))

        if self.sim_config.enable_flocking:
            radius = self.flocking.perception_radius(vehicle.type, vehicle.flocking_params.perception_radius)
            neighbors = self.spatial_index.neighbors_of(vehicle, radius)
            steering = self.flocking.compute_steering(vehicle, neighbors, vehicle.flocking_params)
            blend = self._flocking_blend(vehicle, target)
            dvx = math.cos(seek_heading) * cruise + steering.force.vx * blend
            dvy = math.sin(seek_heading) * cruise + steering.force.vy * blend
            magnitude = math.hypot(dvx, dvy)
            desired_heading = math.atan2(dvy, dvx) if magnitude > 0 else seek_heading
            desired_speed = min(magnitude, cruise)
        else:
            desired_heading = seek_heading
            desired_speed = cruise

        # Slow down while pointing away from where we want to go
        error = normalize_angle(desired_heading - vehicle.velocity.heading)
        return desired_speed * max(0.0, math.cos(error)), desired_heading

    def _flocking_blend(self, vehicle: Vehicle, target: RoadNode) -> float:
        """Share of the flocking force kept; fades to 0 at the arrival ring."""
        arrival = self._arrival_radius(vehicle)
        fade_start = arrival * config.FLOCKING_FADE_RADIUS
        dist = distance(vehicle.position, target.position)
        if dist >= fade_start:
            return 1.0
        return max(0.0, (dist - arrival) / (fade_start - arrival))

    def _corner_speed_cap(self, vehicle: Vehicle, target: RoadNode, approach_heading: float, gap: float) -> float:
        """Highest speed from which a sharp turn at ``target`` can still be taken."""
        after_index = vehicle.current_edge_index + 2
        if after_index >= len(vehicle.route):
            return vehicle.target_speed
        after = self.network.get_node(vehicle.route[after_index])
        if after is None:
            return vehicle.target_speed

        turn = abs(normalize_angle(heading(target.position, after.position) - approach_heading))
        if turn <= config.CORNER_ANGLE:
            return vehicle.target_speed

        corner_ms = config.CORNER_SPEED_KMH / 3.6
        max_braking = VEHICLE_PROFILES[vehicle.type].max_braking
        safe_ms = (corner_ms ** 2 + 2 * max_braking * gap) ** 0.5 * 0.8
        return safe_ms / self.dynamics.scale

    def _estimate_eta(self, vehicle: Vehicle, target: RoadNode) -> float:
        remaining = distance(vehicle.position, target.position)
        route = vehicle.route
        for i in range(vehicle.current_edge_index + 1, len(route) - 1):
            edge = self.network.get_edge_data(route[i], route[i + 1])
            if edge is not None:
                remaining += edge["length"]
        speed = vehicle.velocity.speed if vehicle.velocity.speed > config.STOP_EPSILON else vehicle.target_speed
        if speed <= 0:
            return 0.0
        return remaining / speed

    def _collect_metrics(self) -> SimulationMetrics:
        state = self.state
        active = [v for v in state.vehicles if v.state != VehicleState.WAITING]
        count = len(active)
        total_distance = sum(v.distance_traveled for v in state.vehicles)
        total_fuel = sum(v.fuel_consumed for v in state.vehicles)
        throughput = state.trips_completed / state.time * 3600 if state.time > 0 else 0.0

        if count == 0:
            return SimulationMetrics(
                timestamp=state.time,
                active_vehicles=0,
                average_speed=0.0,
                average_wait_time=0.0,
                total_distance=total_distance,
                fuel_consumed=total_fuel,
                emissions=total_fuel * config.CO2_PER_LITRE,
                throughput=throughput,
                congestion_level=0.0,
                idle_time_percentage=0.0
            )

        total_speed = sum(self.dynamics.units_to_kmh(v.velocity.speed) for v in active)
        total_wait = sum(v.wait_time for v in active)
        congestion = 0.0
        for v in active:
            if v.target_speed > 0:
                congestion += min(1.0, max(0.0, 1 - v.velocity.speed / v.target_speed))
        idle = total_wait / (count * state.time) * 100 if state.time > 0 else 0.0

        return SimulationMetrics(
            timestamp=state.time,
            active_vehicles=count,
            average_speed=total_speed / count,
            average_wait_time=total_wait / count,
            total_distance=total_distance,
            fuel_consumed=total_fuel,
            emissions=total_fuel * config.CO2_PER_LITRE,
            throughput=throughput,
            congestion_level=congestion / count,
            idle_time_percentage=min(100.0, idle)
        )

    def _traffic_density(self, active_vehicles: int) -> float:
        road_km = self.network.total_length() * self.dynamics.scale / 1000
        if road_km <= 0:
            return 0.0
        return active_vehicles / road_km

    def _adjust_weights(self, metrics: SimulationMetrics):
        previous = self.state.weights
        weights = self.adjuster.adjust(
            self.sim_config.flocking_params, self._traffic_density(metrics.active_vehicles), metrics.average_speed
        )
        self.adjuster.learn(metrics)
        if weights == previous:
            return
        self.state.weights = weights
        # Vehicles with individually tuned weights keep them, even at equal values
        for vehicle in self.state.vehicles:
            if vehicle.flocking_params is previous:
                vehicle.flocking_params = weights

    def get_metrics(self) -> SimulationMetrics:
        if self.state.metrics_history:
            return self.state.metrics_history[-1]
        return self._collect_metrics()

    def get_state(self) -> Dict[str, Any]:
        return self.snapshots.build(self.state)

    def get_result(self) -> SimulationResult:
        final = self.get_metrics()
        count = final.active_vehicles or config.DEFAULT_FLEET_SIZE
        duration = self.sim_config.duration

        baseline = SimulationMetrics(
            timestamp=self.state.time,
            active_vehicles=int(count * config.BASELINE_ACTIVE_FRACTION),
            average_speed=config.BASELINE_AVERAGE_SPEED,
            average_wait_time=config.BASELINE_WAIT_TIME,
            total_distance=config.BASELINE_TOTAL_DISTANCE,
            fuel_consumed=count * duration * config.BASELINE_FUEL_RATE,
            emissions=count * duration * config.BASELINE_EMISSION_RATE,
            throughput=count * config.BASELINE_THROUGHPUT_PER_VEHICLE,
            congestion_level=config.BASELINE_CONGESTION,
            idle_time_percentage=config.BASELINE_IDLE_PERCENT
        )
        improvement = (final.average_speed - baseline.average_speed) / baseline.average_speed * 100

        fuel_savings = count * duration * config.FUEL_SAVING_RATE
        fuel_savings_inr = fuel_savings * config.FUEL_PRICE_INR
        roi = ROIMetrics(
            fuel_savings_liters=fuel_savings,
            fuel_savings_inr=fuel_savings_inr,
            time_savings_hours=count * config.TIME_SAVING_HOURS_PER_VEHICLE,
            emissions_reduced_kg=fuel_savings * config.CO2_PER_LITRE,
            eta_improvement_percent=max(0.0, improvement),
            fleet_efficiency_gain=config.FLEET_EFFICIENCY_GAIN,
            projected_annual_savings_inr=fuel_savings_inr * config.DAYS_PER_YEAR * (config.REFERENCE_FLEET_SIZE / count)
        )

        return SimulationResult(
            id=f"sim_{int(time.time() * 1000)}",
            config=self.sim_config,
            start_time=0.0,
            end_time=self.state.time,
            metrics=list(self.state.metrics_history),
            final_metrics=final,
            roi=roi,
            comparison=FlockingComparison(with_flocking=final, without_flocking=baseline, improvement=improvement)
        )
