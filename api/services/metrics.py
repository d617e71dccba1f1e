"""Graph metrics over a discovered network, computed with networkx.

Every function accepts empty input and returns zeros or empty mappings
rather than raising.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx

from api.services.discovery import DiscoveredEdge

logger = logging.getLogger(__name__)


@dataclass
class NetworkMetrics:
    total_persons: int = 0
    query_persons: int = 0
    discovered_persons: int = 0
    total_edges: int = 0
    direct_connections: int = 0
    bridge_nodes: int = 0
    density: float = 0.0
    average_path_length: float = 0.0
    components: int = 0
    clustering_coefficient: float = 0.0
    diameter: int = 0
    average_degree: float = 0.0
    edge_types: Dict[str, int] = field(default_factory=dict)


def _nodes_from_edges(edges: Iterable[DiscoveredEdge]) -> Set[int]:
    nodes = set()
    for edge in edges:
        nodes.add(edge.source)
        nodes.add(edge.target)
    return nodes


def build_graph(node_ids: Optional[Iterable[int]], edges: Iterable[DiscoveredEdge]) -> nx.Graph:
    """Undirected simple graph; parallel relations collapse into one edge."""
    edges = list(edges)
    G = nx.Graph()
    G.add_nodes_from(node_ids if node_ids is not None else _nodes_from_edges(edges))
    for edge in edges:
        if edge.source == edge.target:
            continue
        G.add_edge(edge.source, edge.target, edge_type=edge.edge_type)
    return G


def calculate_density(node_count: int, edge_count: int) -> float:
    """Edges over possible undirected edges. Not clamped to 1."""
    if node_count <= 1:
        return 0.0
    return edge_count / (node_count * (node_count - 1) / 2)


def calculate_average_degree(node_count: int, edge_count: int) -> float:
    if node_count == 0:
        return 0.0
    return 2 * edge_count / node_count


def _average_path_length(G: nx.Graph) -> float:
    """Mean shortest-path length over every connected pair of nodes."""
    total = 0.0
    pairs = 0
    for component in nx.connected_components(G):
        n = len(component)
        if n < 2:
            continue
        total += nx.average_shortest_path_length(G.subgraph(component)) * n * (n - 1)
        pairs += n * (n - 1)
    return total / pairs if pairs else 0.0


def _diameter(G: nx.Graph) -> int:
    diameters = [
        nx.diameter(G.subgraph(c)) for c in nx.connected_components(G) if len(c) > 1
    ]
    return max(diameters) if diameters else 0


def _clustering(G: nx.Graph) -> float:
    if G.number_of_nodes() == 0:
        return 0.0
    return nx.average_clustering(G)


def calculate_metrics(
    node_ids: Iterable[int],
    edges: List[DiscoveredEdge],
    seed_count: int,
    direct_connections: int = 0,
    bridge_nodes: int = 0,
) -> NetworkMetrics:
    """Summary statistics for a network.

    ``total_edges`` and ``density`` count relation rows, so a pair joined by
    two relation types counts twice. Path length, components, clustering and
    diameter are computed on the collapsed simple graph.
    """
    node_ids = set(node_ids)
    total = len(node_ids)

    return NetworkMetrics(
        total_persons=total,
        query_persons=seed_count,
        discovered_persons=total - seed_count,
        total_edges=len(edges),
        direct_connections=direct_connections,
        bridge_nodes=bridge_nodes,
        density=calculate_density(total, len(edges)),
        average_path_length=calculate_average_path_length(edges, node_ids),
        components=count_connected_components(edges, node_ids),
        clustering_coefficient=calculate_clustering_coefficient(edges, node_ids),
        diameter=calculate_diameter(edges, node_ids),
        average_degree=calculate_average_degree(total, len(edges)),
        edge_types=edge_type_statistics(edges),
    )


def calculate_eigenvector_centrality(
    edges: List[DiscoveredEdge], nodes: Optional[Iterable[int]] = None
) -> Dict[int, float]:
    if not edges:
        return {}
    G = build_graph(nodes, edges)
    try:
        return nx.eigenvector_centrality(G, max_iter=1000)
    except nx.PowerIterationFailedConvergence:
        logger.warning("Eigenvector centrality did not converge on %d nodes", G.number_of_nodes())
        return {node: 0.0 for node in G}


def calculate_centrality(
    edges: List[DiscoveredEdge],
    node_ids: Iterable[int],
    all_nodes: Optional[Iterable[int]] = None,
) -> Dict[int, Dict[str, float]]:
    """Betweenness, closeness, degree and eigenvector centrality per node.

    Ids missing from the graph, and every id when there are no edges, get
    zero for each measure.
    """
    zero = {"betweenness": 0.0, "closeness": 0.0, "degree": 0.0, "eigenvector": 0.0}
    node_ids = list(node_ids)
    if not edges:
        return {node_id: dict(zero) for node_id in node_ids}

    G = build_graph(all_nodes, edges)
    betweenness = nx.betweenness_centrality(G)
    closeness = nx.closeness_centrality(G)
    degree = nx.degree_centrality(G)
    eigenvector = calculate_eigenvector_centrality(edges, G.nodes)

    result = {}
    for node_id in node_ids:
        if node_id not in G:
            result[node_id] = dict(zero)
            continue
        result[node_id] = {
            "betweenness": betweenness.get(node_id, 0.0),
            "closeness": closeness.get(node_id, 0.0),
            "degree": degree.get(node_id, 0.0),
            "eigenvector": eigenvector.get(node_id, 0.0),
        }
    return result


def calculate_clustering_coefficient(
    edges: List[DiscoveredEdge], nodes: Optional[Iterable[int]] = None
) -> float:
    if not edges:
        return 0.0
    return _clustering(build_graph(nodes, edges))


def calculate_local_clustering(
    edges: List[DiscoveredEdge],
    node_ids: Iterable[int],
    all_nodes: Optional[Iterable[int]] = None,
) -> Dict[int, float]:
    node_ids = list(node_ids)
    if not edges or not node_ids:
        return {}
    G = build_graph(all_nodes, edges)
    present = [n for n in node_ids if n in G]
    clustering = nx.clustering(G, present) if present else {}
    return {n: clustering.get(n, 0.0) for n in node_ids}


def calculate_average_path_length(edges: List[DiscoveredEdge], node_ids: Iterable[int]) -> float:
    """Mean shortest-path length over all connected pairs, across components."""
    node_ids = list(node_ids)
    if not edges or not node_ids:
        return 0.0
    return _average_path_length(build_graph(node_ids, edges))


def count_connected_components(edges: List[DiscoveredEdge], node_ids: Iterable[int]) -> int:
    node_ids = list(node_ids)
    if not node_ids:
        return 0
    if not edges:
        return len(set(node_ids))
    return nx.number_connected_components(build_graph(node_ids, edges))


def calculate_diameter(edges: List[DiscoveredEdge], node_ids: Iterable[int]) -> int:
    """Longest shortest path found in any connected component."""
    node_ids = list(node_ids)
    if not edges or len(node_ids) <= 1:
        return 0
    return _diameter(build_graph(node_ids, edges))


def calculate_degree_distribution(edges: Iterable[DiscoveredEdge]) -> Dict[int, int]:
    """Relation count per node; parallel relations each count."""
    degrees: Dict[int, int] = {}
    for edge in edges:
        degrees[edge.source] = degrees.get(edge.source, 0) + 1
        degrees[edge.target] = degrees.get(edge.target, 0) + 1
    return degrees


def find_high_degree_nodes(edges: Iterable[DiscoveredEdge], top_n: int = 10) -> List[Tuple[int, int]]:
    degrees = calculate_degree_distribution(edges)
    return sorted(degrees.items(), key=lambda item: (-item[1], item[0]))[:top_n]


def edge_type_statistics(edges: Iterable[DiscoveredEdge]) -> Dict[str, int]:
    stats = {"kinship": 0, "association": 0, "office": 0, "total": 0}
    for edge in edges:
        stats[edge.edge_type] = stats.get(edge.edge_type, 0) + 1
        stats["total"] += 1
    return stats


def distance_distribution(node_depths: Dict[int, int]) -> Dict[int, int]:
    """Number of nodes found at each hop."""
    distribution: Dict[int, int] = {}
    for depth in node_depths.values():
        distribution[depth] = distribution.get(depth, 0) + 1
    return dict(sorted(distribution.items()))
