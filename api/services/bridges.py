"""Bridge nodes: discovered persons tying several seed persons together."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

import networkx as nx

from api.services.discovery import DiscoveredEdge
from api.services.metrics import build_graph

BRIDGE_TYPES = ["kinship", "association", "office", "mixed"]


@dataclass
class BridgeNode:
    person_id: int
    connects_to: List[int]
    connection_types: Dict[int, List[str]] = field(default_factory=dict)
    bridge_type: str = "association"
    bridge_score: float = 0.0
    label: Optional[str] = None


def calculate_bridge_score(connection_types: Dict[int, List[str]]) -> float:
    """One point per seed reached, half a point per extra relation to the same seed."""
    score = float(len(connection_types))
    for relations in connection_types.values():
        if len(relations) > 1:
            score += 0.5 * (len(relations) - 1)
    return score


def determine_bridge_type(connection_types: Dict[int, List[str]]) -> str:
    types = {t for relations in connection_types.values() for t in relations}
    if len(types) == 1:
        return types.pop()
    return "mixed" if types else "association"


def find_bridge_nodes(
    edges: Iterable[DiscoveredEdge],
    seed_ids: Iterable[int],
    labels: Optional[Dict[int, str]] = None,
) -> List[BridgeNode]:
    """Find non-seed persons directly related to two or more distinct seeds.

    This is a pairwise-reachability approximation: a bridge here is not
    necessarily a cut vertex of the whole graph. See
    ``find_articulation_points`` for the exact test.

    Returns:
        Bridge nodes sorted by score, highest first, ties by person id.
    """
    seeds = set(seed_ids)
    connections: Dict[int, Dict[int, List[str]]] = {}

    for edge in edges:
        if edge.source in seeds and edge.target not in seeds:
            candidate, seed = edge.target, edge.source
        elif edge.target in seeds and edge.source not in seeds:
            candidate, seed = edge.source, edge.target
        else:
            continue
        connections.setdefault(candidate, {}).setdefault(seed, []).append(edge.edge_type)

    labels = labels or {}
    bridges = []
    for person_id, connection_types in connections.items():
        if len(connection_types) < 2:
            continue
        bridges.append(
            BridgeNode(
                person_id=person_id,
                connects_to=sorted(connection_types),
                connection_types=connection_types,
                bridge_type=determine_bridge_type(connection_types),
                bridge_score=calculate_bridge_score(connection_types),
                label=labels.get(person_id),
            )
        )
    return sorted(bridges, key=lambda b: (-b.bridge_score, b.person_id))


def filter_by_min_connections(bridges: Iterable[BridgeNode], min_connections: int) -> List[BridgeNode]:
    return [b for b in bridges if len(b.connects_to) >= min_connections]


def filter_by_type(bridges: Iterable[BridgeNode], bridge_type: str) -> List[BridgeNode]:
    return [b for b in bridges if b.bridge_type == bridge_type]


def bridge_statistics(bridges: List[BridgeNode]) -> dict:
    stats = {
        "total": len(bridges),
        "by_type": {t: 0 for t in BRIDGE_TYPES},
        "avg_connections_per_bridge": 0.0,
        "max_connections": 0,
    }
    if not bridges:
        return stats

    total_connections = 0
    for bridge in bridges:
        stats["by_type"][bridge.bridge_type] = stats["by_type"].get(bridge.bridge_type, 0) + 1
        total_connections += len(bridge.connects_to)
        stats["max_connections"] = max(stats["max_connections"], len(bridge.connects_to))
    stats["avg_connections_per_bridge"] = total_connections / len(bridges)
    return stats


def find_articulation_points(
    node_ids: Iterable[int],
    edges: Iterable[DiscoveredEdge],
    seed_ids: Iterable[int],
) -> List[int]:
    """Non-seed cut vertices whose removal separates at least two seeds.

    Exact counterpart of ``find_bridge_nodes``: runs networkx's DFS-based
    articulation point search over the discovered graph, then keeps the
    points that actually disconnect a pair of seeds that was connected.
    """
    graph = build_graph(node_ids, edges)
    seeds: Set[int] = {s for s in seed_ids if s in graph}
    if len(seeds) < 2:
        return []

    result = []
    for node in nx.articulation_points(graph):
        if node in seeds:
            continue
        before = _seed_groups(graph, seeds)
        reduced = graph.copy()
        reduced.remove_node(node)
        after = _seed_groups(reduced, seeds)
        if after > before:
            result.append(node)
    return sorted(result)


def _seed_groups(graph: nx.Graph, seeds: Set[int]) -> int:
    """Number of connected components holding at least one seed."""
    return sum(1 for component in nx.connected_components(graph) if component & seeds)
