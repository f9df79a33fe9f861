import logging
import math
import random
import networkx as nx
from typing import Dict, Any, List, Optional

from flocksim.domain.models import (
    RoadNode, RoadEdge, Position, NodeKind, TrafficLight, SignalState, Bounds, TrafficNetwork
)
from flocksim.domain.errors import ConfigurationError, PathNotFound
from flocksim.domain import config

logger = logging.getLogger(__name__)

class RoadNetwork:
    """Road nodes and edges plus the directed adjacency used for routing.

    The adjacency lives in a ``networkx.DiGraph`` whose successor order is
    edge-insertion order, so path search is deterministic for a fixed
    sequence of ``add_road`` calls.
    """

    def __init__(self, bounds: Optional[Bounds] = None):
        self.graph = nx.DiGraph()
        self.nodes: Dict[str, RoadNode] = {}
        self.edges: List[RoadEdge] = []
        self.bounds = bounds or Bounds()

    @classmethod
    def from_traffic_network(cls, network: TrafficNetwork) -> "RoadNetwork":
        road_network = cls(bounds=network.bounds)
        for node in network.nodes:
            road_network.add_node(node)
        for edge in network.edges:
            road_network.add_road(edge)
        return road_network

    def to_traffic_network(self) -> TrafficNetwork:
        return TrafficNetwork(nodes=list(self.nodes.values()), edges=list(self.edges), bounds=self.bounds)

    def add_node(self, node: RoadNode):
        self.nodes[node.id] = node
        self.graph.add_node(node.id, pos=(node.position.x, node.position.y), kind=node.kind)

    def add_road(self, edge: RoadEdge):
        for node_id in (edge.from_node, edge.to_node):
            if node_id not in self.nodes:
                raise ConfigurationError(f"Edge {edge.id} references unknown node {node_id}")
        self.edges.append(edge)
        self._link(edge)

    def connect(self, from_id: str, to_id: str, **attrs: Any) -> RoadEdge:
        """Create an edge between two existing nodes, deriving its length."""
        a = self.get_node(from_id)
        b = self.get_node(to_id)
        if a is None or b is None:
            raise ConfigurationError(f"Cannot connect {from_id} -> {to_id}: unknown node")
        attrs.setdefault("lanes", config.EDGE_LANES)
        attrs.setdefault("max_speed", config.EDGE_MAX_SPEED)
        edge = RoadEdge(
            id=f"e_{from_id}_{to_id}",
            from_node=from_id,
            to_node=to_id,
            length=math.hypot(b.position.x - a.position.x, b.position.y - a.position.y),
            **attrs
        )
        self.add_road(edge)
        return edge

    def _link(self, edge: RoadEdge):
        self.graph.add_edge(edge.from_node, edge.to_node, length=edge.length, lanes=edge.lanes, edge_id=edge.id)
        if not edge.one_way:
            self.graph.add_edge(edge.to_node, edge.from_node, length=edge.length, lanes=edge.lanes, edge_id=edge.id)

    def get_node(self, node_id: str) -> Optional[RoadNode]:
        return self.nodes.get(node_id)

    def get_edge_data(self, u: str, v: str) -> Optional[Dict[str, Any]]:
        return self.graph.get_edge_data(u, v)

    def has_edge(self, u: str, v: str) -> bool:
        return self.graph.has_edge(u, v)

    def neighbors(self, node_id: str) -> List[str]:
        if node_id not in self.graph:
            return []
        return list(self.graph.successors(node_id))

    def find_shortest_path(self, from_id: str, to_id: str) -> Optional[List[str]]:
        """Fewest-edge path from ``from_id`` to ``to_id``, or None.

        Neighbors are expanded in insertion order and the first discovery of
        a node fixes its parent, so equal-length alternatives resolve the same
        way every time.
        """
        if from_id not in self.nodes or to_id not in self.nodes:
            return None
        if from_id == to_id:
            return [from_id]

        parents: Dict[str, str] = {}
        for parent, child in nx.bfs_edges(self.graph, from_id):
            parents[child] = parent
            if child == to_id:
                break
        if to_id not in parents:
            return None

        path = [to_id]
        while path[-1] != from_id:
            path.append(parents[path[-1]])
        path.reverse()
        return path

    def require_path(self, from_id: str, to_id: str) -> List[str]:
        path = self.find_shortest_path(from_id, to_id)
        if path is None:
            raise PathNotFound(from_id, to_id)
        return path

    def entry_nodes(self) -> List[RoadNode]:
        return [n for n in self.nodes.values() if n.kind == NodeKind.ENTRY]

    def traffic_lights(self) -> List[TrafficLight]:
        return [n.traffic_light for n in self.nodes.values() if n.traffic_light is not None]

    def random_entry_node(self, rng: random.Random) -> Optional[RoadNode]:
        entries = self.entry_nodes()
        if not entries:
            return None
        return rng.choice(entries)

    def random_destination(self, rng: random.Random, exclude_id: str) -> Optional[RoadNode]:
        others = [n for n in self.nodes.values() if n.id != exclude_id]
        if not others:
            return None
        return rng.choice(others)

    def total_length(self) -> float:
        return sum(e.length for e in self.edges)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "nodes": len(self.nodes),
            "edges": len(self.edges),
            "totalLength": self.total_length(),
            "entryPoints": len(self.entry_nodes()),
        }


def generate_grid_network(
    width: float = config.NETWORK_WIDTH,
    height: float = config.NETWORK_HEIGHT,
    cell_size: float = config.NETWORK_CELL_SIZE,
    rng: Optional[random.Random] = None,
    light_probability: float = config.TRAFFIC_LIGHT_PROBABILITY,
    diagonal_probability: float = config.DIAGONAL_EDGE_PROBABILITY,
) -> RoadNetwork:
    """Build a rectangular grid network ``cell_size`` units apart.

    Border nodes alternate entry/exit by parity of ``x + y``; interior
    intersections may carry a traffic light. Every adjacent pair is joined
    horizontally and vertically, and some cells get an extra diagonal.
    """
    if cell_size <= 0:
        raise ConfigurationError(f"cell_size must be positive, got {cell_size}")
    rng = rng or random.Random()

    nodes_x = int(width // cell_size)
    nodes_y = int(height // cell_size)
    if nodes_x < 1 and nodes_y < 1:
        raise ConfigurationError(f"A {width}x{height} area with cell {cell_size} yields a single node")

    network = RoadNetwork(bounds=Bounds(min_x=0.0, max_x=width, min_y=0.0, max_y=height))

    for y in range(nodes_y + 1):
        for x in range(nodes_x + 1):
            is_border = x == 0 or x == nodes_x or y == 0 or y == nodes_y
            if is_border:
                kind = NodeKind.ENTRY if (x + y) % 2 == 0 else NodeKind.EXIT
            else:
                kind = NodeKind.INTERSECTION

            light = None
            if not is_border and rng.random() < light_probability:
                light = TrafficLight(
                    state=SignalState.GREEN,
                    cycle_duration=float(config.LIGHT_CYCLE_MIN + rng.randrange(config.LIGHT_CYCLE_SPREAD)),
                )
                light.timer = light.cycle_duration / 2 - config.YELLOW_TIME

            network.add_node(RoadNode(
                id=f"n_{x}_{y}",
                position=Position(x=x * cell_size, y=y * cell_size),
                kind=kind,
                traffic_light=light
            ))

    # Horizontal
    for y in range(nodes_y + 1):
        for x in range(nodes_x):
            network.connect(f"n_{x}_{y}", f"n_{x + 1}_{y}")

    # Vertical
    for x in range(nodes_x + 1):
        for y in range(nodes_y):
            network.connect(f"n_{x}_{y}", f"n_{x}_{y + 1}")

    # Diagonals for extra connectivity
    for y in range(nodes_y):
        for x in range(nodes_x):
            if rng.random() < diagonal_probability:
                network.connect(f"n_{x}_{y}", f"n_{x + 1}_{y + 1}")

    logger.info("Generated grid network: %s", network.get_stats())
    return network
