"""Paths between seed persons."""
from __future__ import annotations

from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx

from api.services.discovery import DiscoveredEdge
from api.services.metrics import build_graph


@dataclass
class Pathway:
    from_person: int
    to_person: int
    path: List[int]
    edges: List[DiscoveredEdge] = field(default_factory=list)
    path_length: int = 0
    path_type: str = "association"


def determine_path_type(edges: Iterable[DiscoveredEdge]) -> str:
    types = {edge.edge_type for edge in edges}
    if len(types) == 1:
        return types.pop()
    return "mixed" if types else "association"


def _edge_index(edges: Iterable[DiscoveredEdge]) -> Dict[Tuple[int, int], DiscoveredEdge]:
    """First edge seen for each unordered pair."""
    index: Dict[Tuple[int, int], DiscoveredEdge] = {}
    for edge in edges:
        index.setdefault(tuple(sorted((edge.source, edge.target))), edge)
    return index


def _pathway_from_path(path: List[int], index: Dict[Tuple[int, int], DiscoveredEdge]) -> Optional[Pathway]:
    if len(path) < 2:
        return None
    path_edges = []
    for a, b in zip(path, path[1:]):
        edge = index.get(tuple(sorted((a, b))))
        if edge is None:
            return None
        path_edges.append(edge)
    return Pathway(
        from_person=path[0],
        to_person=path[-1],
        path=list(path),
        edges=path_edges,
        path_length=len(path_edges),
        path_type=determine_path_type(path_edges),
    )


def find_shortest_path(
    edges: List[DiscoveredEdge],
    from_node: int,
    to_node: int,
    all_nodes: Optional[Iterable[int]] = None,
) -> Optional[Pathway]:
    """Shortest unweighted path, or None when the two are not connected."""
    G = build_graph(all_nodes, edges)
    if from_node not in G or to_node not in G:
        return None
    try:
        path = nx.shortest_path(G, from_node, to_node)
    except nx.NetworkXNoPath:
        return None
    return _pathway_from_path(path, _edge_index(edges))


def find_pathways(
    edges: List[DiscoveredEdge],
    seed_ids: Iterable[int],
    all_nodes: Optional[Iterable[int]] = None,
) -> List[Pathway]:
    """One shortest path for each connected pair of seeds."""
    G = build_graph(all_nodes, edges)
    index = _edge_index(edges)
    seeds = sorted(set(seed_ids))

    pathways = []
    for source, target in combinations(seeds, 2):
        if source not in G or target not in G:
            continue
        try:
            path = nx.shortest_path(G, source, target)
        except nx.NetworkXNoPath:
            continue
        pathway = _pathway_from_path(path, index)
        if pathway:
            pathways.append(pathway)
    return pathways
