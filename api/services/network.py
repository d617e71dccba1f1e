"""Person network exploration: discovery, enrichment and analysis in one call."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import networkx as nx

from api.config import Settings
from api.services.bridges import (
    BRIDGE_TYPES,
    BridgeNode,
    bridge_statistics,
    filter_by_min_connections,
    filter_by_type,
    find_articulation_points,
    find_bridge_nodes,
)
from api.services.db import Database
from api.services.discovery import DiscoveredEdge, DiscoveryResult, discover_network, restrict_edges
from api.services.enrichment import NODE_COLORS, DEFAULT_NODE_COLOR, enrich_edges, node_size, node_types
from api.services.metrics import NetworkMetrics, build_graph, calculate_metrics
from api.services.pathways import Pathway, find_pathways, find_shortest_path
from api.services.relations import (
    filter_persons,
    find_existing_person_ids,
    get_network_edges,
    get_nodes_batch,
    get_primary_locations,
    validate_relation_types,
)

logger = logging.getLogger(__name__)


class PersonNotFoundError(LookupError):
    """Raised when none of the requested persons exist in BIOG_MAIN."""

    def __init__(self, person_ids: Sequence[int]):
        self.person_ids = list(person_ids)
        ids = ", ".join(str(pid) for pid in self.person_ids)
        super().__init__(f"Person not found: {ids}")


@dataclass
class NetworkQuery:
    person_id: int
    depth: int = 1
    relation_types: List[str] = field(default_factory=lambda: ["kinship", "association"])
    include_reciprocal: bool = False
    proximity_radius: Optional[float] = None
    max_nodes: Optional[int] = None


@dataclass
class MultiPersonQuery:
    person_ids: List[int]
    depth: int = 1
    relation_types: List[str] = field(default_factory=lambda: ["kinship", "association"])
    include_reciprocal: bool = False
    max_nodes: Optional[int] = None
    index_year_range: Optional[Tuple[int, int]] = None
    dynasties: Optional[List[int]] = None
    include_male: bool = True
    include_female: bool = True
    min_bridge_connections: int = 2
    bridge_type: Optional[str] = None
    exact_bridges: bool = False


@dataclass
class PersonNode:
    id: int
    label: str
    dynasty_code: Optional[int] = None
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    depth: int = 0
    is_seed: bool = False
    node_type: str = "association"
    color: str = DEFAULT_NODE_COLOR
    size: int = 10


@dataclass
class DirectConnection:
    """All relations running directly between two seed persons."""
    person1: int
    person2: int
    relationships: List[DiscoveredEdge] = field(default_factory=list)
    connection_strength: int = 0


@dataclass
class NetworkResult:
    seed_ids: List[int]
    nodes: List[PersonNode]
    edges: List[DiscoveredEdge]
    metrics: NetworkMetrics
    bridge_nodes: List[BridgeNode] = field(default_factory=list)
    direct_connections: List[DirectConnection] = field(default_factory=list)
    pathways: List[Pathway] = field(default_factory=list)
    bridge_statistics: Optional[Dict] = None
    articulation_points: List[int] = field(default_factory=list)
    truncated: bool = False
    query_time_ms: int = 0


def _check_depth(depth: int, settings: Settings) -> None:
    if depth < 0 or depth > settings.max_depth:
        raise ValueError(f"depth must be between 0 and {settings.max_depth}, got {depth}")


def _node_limit(requested: Optional[int], settings: Settings) -> int:
    """The requested node cap, never above the configured one."""
    if requested is None:
        return settings.max_nodes
    return min(requested, settings.max_nodes)


def find_direct_connections(edges: Iterable[DiscoveredEdge], seed_ids: Iterable[int]) -> List[DirectConnection]:
    """Group the edges joining two seeds by unordered pair."""
    seeds = set(seed_ids)
    pairs: Dict[Tuple[int, int], List[DiscoveredEdge]] = {}
    for edge in edges:
        if edge.source == edge.target:
            continue
        if edge.source in seeds and edge.target in seeds:
            pairs.setdefault(tuple(sorted((edge.source, edge.target))), []).append(edge)

    return [
        DirectConnection(person1=a, person2=b, relationships=rels, connection_strength=len(rels))
        for (a, b), rels in sorted(pairs.items())
    ]


def apply_proximity_filter(
    db: Database, discovery: DiscoveryResult, seed_id: int, radius: float
) -> Set[int]:
    """Drop discovered persons located more than ``radius`` degrees from the seed.

    The test is a box on longitude and latitude around the seed's primary
    address. Persons with no located address are dropped too. If the seed
    itself has no location nothing is filtered.
    """
    locations = get_primary_locations(db, sorted(discovery.node_ids))
    center = locations.get(seed_id)
    if center is None:
        logger.info("Person %s has no located address, skipping proximity filter", seed_id)
        return set(discovery.node_ids)

    kept = set(discovery.seed_ids)
    for node_id in discovery.discovered_ids:
        location = locations.get(node_id)
        if location is None:
            continue
        if abs(location[0] - center[0]) <= radius and abs(location[1] - center[1]) <= radius:
            kept.add(node_id)
    logger.debug("Proximity filter kept %d of %d persons", len(kept), len(discovery.node_ids))
    return kept


def build_nodes(
    db: Database,
    node_ids: Iterable[int],
    node_depths: Dict[int, int],
    seed_ids: Sequence[int],
    edges: List[DiscoveredEdge],
) -> List[PersonNode]:
    """Labelled nodes, seeds first, then by hop and id."""
    seeds = set(seed_ids)
    ordered = sorted(node_ids, key=lambda n: (n not in seeds, node_depths.get(n, 0), n))
    types = node_types(ordered, edges, seeds)

    nodes = []
    for row in get_nodes_batch(db, ordered):
        depth = node_depths.get(row.node_id, 0)
        node_type = types[row.node_id]
        nodes.append(
            PersonNode(
                id=row.node_id,
                label=row.label,
                dynasty_code=row.dynasty_code,
                birth_year=row.birth_year,
                death_year=row.death_year,
                depth=depth,
                is_seed=row.node_id in seeds,
                node_type=node_type,
                color=NODE_COLORS.get(node_type, DEFAULT_NODE_COLOR),
                size=node_size(depth),
            )
        )
    return nodes


def _analyze(
    db: Database,
    seed_ids: List[int],
    node_ids: Set[int],
    edges: List[DiscoveredEdge],
    node_depths: Dict[int, int],
    with_pathways: bool = False,
) -> NetworkResult:
    enrich_edges(edges)
    nodes = build_nodes(db, node_ids, node_depths, seed_ids, edges)
    labels = {node.id: node.label for node in nodes}

    direct = find_direct_connections(edges, seed_ids)
    bridges = find_bridge_nodes(edges, seed_ids, labels) if len(seed_ids) > 1 else []
    pathways = find_pathways(edges, seed_ids, node_ids) if with_pathways else []

    metrics = calculate_metrics(
        node_ids,
        edges,
        seed_count=len(seed_ids),
        direct_connections=len(direct),
        bridge_nodes=len(bridges),
    )
    return NetworkResult(
        seed_ids=list(seed_ids),
        nodes=nodes,
        edges=edges,
        metrics=metrics,
        bridge_nodes=bridges,
        direct_connections=direct,
        pathways=pathways,
    )


def explore_person_network(
    db: Database, query: NetworkQuery, settings: Optional[Settings] = None
) -> NetworkResult:
    """Discover and analyze the network around one person.

    Raises:
        PersonNotFoundError: If the person is not in BIOG_MAIN.
        ValueError: For an unknown relation type or an out-of-range depth.
    """
    settings = settings or Settings()
    _check_depth(query.depth, settings)
    started = time.perf_counter()

    if not find_existing_person_ids(db, [query.person_id]):
        raise PersonNotFoundError([query.person_id])

    max_nodes = _node_limit(query.max_nodes, settings)
    discovery = discover_network(
        db,
        [query.person_id],
        query.depth,
        query.relation_types,
        include_reciprocal=query.include_reciprocal,
        max_nodes=max_nodes,
    )

    node_ids = discovery.node_ids
    edges = discovery.edges
    if query.proximity_radius is not None:
        node_ids = apply_proximity_filter(db, discovery, query.person_id, query.proximity_radius)
        edges = restrict_edges(edges, node_ids)

    result = _analyze(db, discovery.seed_ids, node_ids, edges, discovery.node_depths)
    result.truncated = discovery.truncated
    result.query_time_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "Explored network of %s at depth %d: %d persons, %d edges in %d ms",
        query.person_id,
        query.depth,
        len(result.nodes),
        len(result.edges),
        result.query_time_ms,
    )
    return result


def build_multi_person_network(
    db: Database, query: MultiPersonQuery, settings: Optional[Settings] = None
) -> NetworkResult:
    """Discover the network joining several persons.

    Seeds missing from BIOG_MAIN are dropped with a warning. Adds direct
    connections between seeds, bridge nodes with their statistics and one
    shortest pathway per connected seed pair. With ``exact_bridges`` the
    cut vertices separating seeds are reported too.

    Raises:
        ValueError: With fewer than two person ids, or bad depth or types.
        PersonNotFoundError: If none of the persons exist.
    """
    settings = settings or Settings()
    person_ids = list(dict.fromkeys(int(pid) for pid in query.person_ids))
    if len(person_ids) < 2:
        raise ValueError("At least 2 person IDs are required for network analysis")
    _check_depth(query.depth, settings)
    validate_relation_types(query.relation_types)
    if query.bridge_type is not None and query.bridge_type not in BRIDGE_TYPES:
        raise ValueError(f"Invalid bridge type: {query.bridge_type}. Valid types: {BRIDGE_TYPES}")
    if query.min_bridge_connections < 2:
        raise ValueError("A bridge connects at least 2 persons")
    started = time.perf_counter()

    seeds = find_existing_person_ids(db, person_ids)
    if not seeds:
        raise PersonNotFoundError(person_ids)
    missing = [pid for pid in person_ids if pid not in seeds]
    if missing:
        logger.warning("Dropping unknown persons from query: %s", missing)

    max_nodes = _node_limit(query.max_nodes, settings)
    discovery = discover_network(
        db,
        seeds,
        query.depth,
        query.relation_types,
        include_reciprocal=query.include_reciprocal,
        max_nodes=max_nodes,
    )

    node_ids = set(
        filter_persons(
            db,
            sorted(discovery.node_ids),
            set(seeds),
            index_year_range=query.index_year_range,
            dynasties=query.dynasties,
            include_male=query.include_male,
            include_female=query.include_female,
        )
    )
    edges = restrict_edges(discovery.edges, node_ids)

    result = _analyze(db, seeds, node_ids, edges, discovery.node_depths, with_pathways=True)
    bridges = filter_by_min_connections(result.bridge_nodes, query.min_bridge_connections)
    if query.bridge_type:
        bridges = filter_by_type(bridges, query.bridge_type)
    result.bridge_nodes = bridges
    result.metrics.bridge_nodes = len(bridges)
    result.bridge_statistics = bridge_statistics(bridges)
    if query.exact_bridges:
        result.articulation_points = find_articulation_points(node_ids, edges, seeds)
    result.truncated = discovery.truncated
    result.query_time_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "Built network for %d persons at depth %d: %d persons, %d edges, %d bridges in %d ms",
        len(seeds),
        query.depth,
        len(result.nodes),
        len(result.edges),
        len(result.bridge_nodes),
        result.query_time_ms,
    )
    return result


def find_connection_path(
    db: Database,
    from_person: int,
    to_person: int,
    depth: int = 2,
    relation_types: Optional[List[str]] = None,
    include_reciprocal: bool = False,
    settings: Optional[Settings] = None,
) -> Optional[Pathway]:
    """Shortest chain of relations linking two persons, or None.

    Both persons are expanded ``depth`` hops, so paths up to twice that
    length can be found.

    Raises:
        PersonNotFoundError: If either person is not in BIOG_MAIN.
        ValueError: For an unknown relation type or an out-of-range depth.
    """
    settings = settings or Settings()
    _check_depth(depth, settings)
    relation_types = relation_types or settings.default_relation_types
    person_ids = list(dict.fromkeys([int(from_person), int(to_person)]))

    found = find_existing_person_ids(db, person_ids)
    missing = [pid for pid in person_ids if pid not in found]
    if missing:
        raise PersonNotFoundError(missing)

    discovery = discover_network(
        db,
        person_ids,
        depth,
        relation_types,
        include_reciprocal=include_reciprocal,
        max_nodes=settings.max_nodes,
    )
    enrich_edges(discovery.edges)
    pathway = find_shortest_path(discovery.edges, from_person, to_person, discovery.node_ids)
    logger.info(
        "Path from %s to %s at depth %d: %s",
        from_person,
        to_person,
        depth,
        pathway.path if pathway else "none",
    )
    return pathway


def explore_recursive_network(
    db: Database,
    person_id: int,
    max_degrees: int,
    relation_types: Optional[List[str]] = None,
    max_nodes: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> NetworkResult:
    """Same shape of result as ``explore_person_network``, fetched with one recursive query.

    Node depths are hop distances from the center over the returned edges.
    When the node cap cuts the result short, persons no longer linked to
    the center get ``max_degrees``.
    """
    settings = settings or Settings()
    _check_depth(max_degrees, settings)
    started = time.perf_counter()

    if not find_existing_person_ids(db, [person_id]):
        raise PersonNotFoundError([person_id])

    limit = _node_limit(max_nodes, settings)
    rows = get_network_edges(db, person_id, max_degrees, relation_types, limit)
    edges = [DiscoveredEdge.from_row(row, depth=0) for row in rows]
    node_ids = {person_id}
    for edge in edges:
        node_ids.add(edge.source)
        node_ids.add(edge.target)

    # a truncated result can leave persons cut off from the center
    reached = nx.single_source_shortest_path_length(build_graph(node_ids, edges), person_id)
    node_depths = {node_id: reached.get(node_id, max_degrees) for node_id in node_ids}
    for edge in edges:
        edge.depth = max(node_depths[edge.source], node_depths[edge.target])

    result = _analyze(db, [person_id], node_ids, edges, node_depths)
    result.truncated = len(rows) >= limit
    result.query_time_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "Recursive network of %s at %d degrees: %d persons, %d edges in %d ms",
        person_id,
        max_degrees,
        len(result.nodes),
        len(result.edges),
        result.query_time_ms,
    )
    return result
