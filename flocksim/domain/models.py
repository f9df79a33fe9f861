from enum import Enum
from typing import List, Optional, Dict, Tuple
from pydantic import BaseModel, ConfigDict, Field

class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0

class Velocity(BaseModel):
    vx: float = 0.0
    vy: float = 0.0
    speed: float = 0.0 # units/s
    heading: float = 0.0 # radians

class Acceleration(BaseModel):
    ax: float = 0.0
    ay: float = 0.0

# Road Network

class NodeKind(str, Enum):
    INTERSECTION = "intersection"
    ENTRY = "entry"
    EXIT = "exit"
    TRAFFIC_LIGHT = "traffic_light"

class SignalState(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"

class TrafficLight(BaseModel):
    state: SignalState = SignalState.GREEN
    timer: float = 0.0 # Seconds left in the current phase
    cycle_duration: float = 30.0

class RoadNode(BaseModel):
    id: str # e.g., "n_3_2"
    position: Position
    kind: NodeKind = NodeKind.INTERSECTION
    traffic_light: Optional[TrafficLight] = None

class RoadClass(str, Enum):
    HIGHWAY = "highway"
    ARTERIAL = "arterial"
    RESIDENTIAL = "residential"

class RoadEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    from_node: str
    to_node: str
    lanes: int = 2
    max_speed: float = 50.0 # km/h
    length: float = 0.0 # units
    one_way: bool = False
    road_class: RoadClass = RoadClass.ARTERIAL

class Bounds(BaseModel):
    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0

class TrafficNetwork(BaseModel):
    nodes: List[RoadNode] = []
    edges: List[RoadEdge] = []
    bounds: Bounds = Bounds()

# Vehicles

class VehicleType(str, Enum):
    SEDAN = "sedan"
    BIKE = "bike"
    AUTO = "auto"
    TRUCK = "truck"
    BUS = "bus"

class FlockingBehavior(str, Enum):
    AGGRESSIVE = "aggressive"
    NORMAL = "normal"
    CONSERVATIVE = "conservative"

class VehicleProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_speed_kmh: float
    max_acceleration: float # m/s^2
    max_braking: float # m/s^2
    turning_radius: float # m
    length: float # m
    width: float # m
    mass: float # kg
    drag_coefficient: float
    fuel_rate: float # litres/s at the reference speed
    behavior: FlockingBehavior

VEHICLE_PROFILES: Dict[VehicleType, VehicleProfile] = {
    VehicleType.SEDAN: VehicleProfile(
        max_speed_kmh=60, max_acceleration=2.5, max_braking=6.0, turning_radius=5.5,
        length=4.5, width=1.8, mass=1500, drag_coefficient=0.3,
        fuel_rate=0.08, behavior=FlockingBehavior.NORMAL
    ),
    VehicleType.BIKE: VehicleProfile(
        max_speed_kmh=40, max_acceleration=4.0, max_braking=8.0, turning_radius=2.5,
        length=2.0, width=0.8, mass=200, drag_coefficient=0.6,
        fuel_rate=0.02, behavior=FlockingBehavior.AGGRESSIVE
    ),
    VehicleType.AUTO: VehicleProfile(
        max_speed_kmh=45, max_acceleration=1.8, max_braking=4.5, turning_radius=4.0,
        length=3.2, width=1.4, mass=800, drag_coefficient=0.5,
        fuel_rate=0.04, behavior=FlockingBehavior.CONSERVATIVE
    ),
    VehicleType.TRUCK: VehicleProfile(
        max_speed_kmh=50, max_acceleration=1.0, max_braking=3.5, turning_radius=12.0,
        length=12.0, width=2.5, mass=15000, drag_coefficient=0.7,
        fuel_rate=0.35, behavior=FlockingBehavior.CONSERVATIVE
    ),
    VehicleType.BUS: VehicleProfile(
        max_speed_kmh=45, max_acceleration=0.8, max_braking=3.0, turning_radius=11.0,
        length=10.0, width=2.5, mass=12000, drag_coefficient=0.65,
        fuel_rate=0.25, behavior=FlockingBehavior.CONSERVATIVE
    ),
}

class FlockingWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    cohesion: float = 1.0
    alignment: float = 0.8
    separation: float = 1.2
    perception_radius: float = 35.0 # units

class VehicleState(str, Enum):
    MOVING = "moving"
    STOPPED = "stopped"
    BRAKING = "braking"
    ACCELERATING = "accelerating"
    WAITING = "waiting" # Route exhausted, respawn pending

class Vehicle(BaseModel):
    id: str
    type: VehicleType
    position: Position
    velocity: Velocity = Field(default_factory=Velocity)
    acceleration: Acceleration = Field(default_factory=Acceleration)
    target_speed: float = 0.0 # units/s
    route: List[str] = [] # Node ids
    current_edge_index: int = 0
    flocking_params: FlockingWeights = FlockingWeights()
    state: VehicleState = VehicleState.MOVING
    wait_time: float = 0.0
    fuel_consumed: float = 0.0 # litres
    distance_traveled: float = 0.0 # metres
    eta: float = 0.0 # seconds to destination
    trips_completed: int = 0

# Spatial queries / steering

class NeighborInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    vehicle_type: VehicleType
    position: Position
    velocity: Velocity
    distance: float
    relative_velocity: Velocity

class SteeringResult(BaseModel):
    force: Velocity
    desired_velocity: Velocity
    desired_speed: float
    desired_heading: float

# Run configuration

class Weather(str, Enum):
    CLEAR = "clear"
    RAIN = "rain"
    FOG = "fog"

class WeatherCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    friction: float # Target speed multiplier
    visibility: float # m

WEATHER_CONDITIONS: Dict[Weather, WeatherCondition] = {
    Weather.CLEAR: WeatherCondition(friction=1.0, visibility=1000),
    Weather.RAIN: WeatherCondition(friction=0.7, visibility=300),
    Weather.FOG: WeatherCondition(friction=0.85, visibility=100),
}

class Obstacle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    kind: str # accident, construction, pedestrian, pothole
    position: Position
    radius: float
    duration: float
    severity: str # low, medium, high

def default_fleet_mix() -> Dict[VehicleType, int]:
    return {
        VehicleType.SEDAN: 25,
        VehicleType.BIKE: 20,
        VehicleType.AUTO: 15,
        VehicleType.TRUCK: 12,
        VehicleType.BUS: 8,
    }

class SimulationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    fleet_mix: Dict[VehicleType, int] = Field(default_factory=default_fleet_mix)
    duration: float = 30.0 # Simulated seconds
    enable_flocking: bool = True
    enable_adjustment: bool = False
    scenario: str = "custom" # Advisory label only
    weather: Weather = Weather.CLEAR
    flocking_params: FlockingWeights = FlockingWeights()
    obstacles: Tuple[Obstacle, ...] = ()

# Metrics / Results

class SimulationMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: float
    active_vehicles: int
    average_speed: float # km/h
    average_wait_time: float # s
    total_distance: float # m
    fuel_consumed: float # litres
    emissions: float # kg CO2
    throughput: float # completed trips per hour
    congestion_level: float # 0..1
    idle_time_percentage: float # 0..100

class ROIMetrics(BaseModel):
    fuel_savings_liters: float
    fuel_savings_inr: float
    time_savings_hours: float
    emissions_reduced_kg: float
    eta_improvement_percent: float
    fleet_efficiency_gain: float
    projected_annual_savings_inr: float

class FlockingComparison(BaseModel):
    with_flocking: SimulationMetrics
    without_flocking: SimulationMetrics
    improvement: float # Percent average speed gain

class SimulationResult(BaseModel):
    id: str
    config: SimulationConfig
    start_time: float
    end_time: float
    metrics: List[SimulationMetrics]
    final_metrics: SimulationMetrics
    roi: ROIMetrics
    comparison: FlockingComparison
