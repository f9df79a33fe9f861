# Simulation Configuration

# Units
UNIT_METERS = 10.0       # 1 simulation unit = 10 m
TICK_SECONDS = 0.1       # Logical step per tick

# Network Generation
NETWORK_WIDTH = 80.0
NETWORK_HEIGHT = 60.0
NETWORK_CELL_SIZE = 8.0
TRAFFIC_LIGHT_PROBABILITY = 0.15
DIAGONAL_EDGE_PROBABILITY = 0.2
LIGHT_CYCLE_MIN = 30
LIGHT_CYCLE_SPREAD = 20
EDGE_LANES = 2
EDGE_MAX_SPEED = 50.0    # km/h

# Signal Timings
YELLOW_TIME = 3.0

# Spatial Index
SPATIAL_CELL_SIZE = 10.0

# Vehicle Physics
AIR_DENSITY = 1.225
FRONTAL_AREA = 2.5       # m^2
MAX_LATERAL_ACCEL = 4.0  # m/s^2, comfort limit
SLOW_TURN_SPEED = 0.1    # m/s, below this heading may snap quickly
SLOW_TURN_RATE = 0.7853981633974483  # pi/4 per tick
BRAKING_MARGIN = 2.0     # m
STOP_EPSILON = 0.01      # units/s
IDLE_FUEL_FACTOR = 0.1
ACCEL_FUEL_PENALTY = 10.0
OPTIMAL_SPEED_KMH = 60.0

# Route Following
ARRIVAL_RADIUS = 1.5     # units
CORNER_ANGLE = 0.5236    # rad (~30 deg), sharper turns slow to corner speed
CORNER_SPEED_KMH = 15.0
FLOCKING_FADE_RADIUS = 1.5  # x arrival radius, flocking fades out inside this

# Flocking
COHESION_SPEED_FRACTION = 0.1
ALIGNMENT_GAIN = 0.1
SEPARATION_GAIN = 2.0
SEPARATION_MARGIN = 1.0  # units

# Parameter Adjustment
ADJUSTER_SIZE = 4
WEIGHT_MIN = 0.5
WEIGHT_MAX = 3.0
DENSITY_SATURATION = 100.0   # vehicles per km of road
SPEED_SATURATION = 60.0      # km/h

# Spawning
MAX_VEHICLES_PER_TYPE = 30
MAX_SPAWN_ATTEMPTS = 200
RESPAWN_ATTEMPTS = 5

# Metrics
METRICS_HISTORY_LIMIT = 10000
CO2_PER_LITRE = 2.3      # kg

# ROI Projection
REFERENCE_FLEET_SIZE = 10000
DEFAULT_FLEET_SIZE = 80
FUEL_SAVING_RATE = 0.015     # litres per vehicle-second
FUEL_PRICE_INR = 100.0
TIME_SAVING_HOURS_PER_VEHICLE = 0.1
FLEET_EFFICIENCY_GAIN = 35.0
DAYS_PER_YEAR = 365

# Baseline (without flocking) constants
BASELINE_ACTIVE_FRACTION = 0.7
BASELINE_AVERAGE_SPEED = 18.0
BASELINE_WAIT_TIME = 10.0
BASELINE_TOTAL_DISTANCE = 3000.0
BASELINE_FUEL_RATE = 0.02
BASELINE_EMISSION_RATE = 0.05
BASELINE_THROUGHPUT_PER_VEHICLE = 8
BASELINE_CONGESTION = 0.25
BASELINE_IDLE_PERCENT = 20.0
