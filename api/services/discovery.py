"""Breadth-first network discovery from one or more seed persons."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from api.services.db import Database
from api.services.relations import (
    EdgeRow,
    find_edges_within_group,
    get_edges_batch,
    validate_relation_types,
)

logger = logging.getLogger(__name__)

EdgeKey = Tuple[int, int, str, Optional[int]]


@dataclass
class DiscoveredEdge:
    """An edge plus the hop at which discovery fetched it."""
    source: int
    target: int
    edge_type: str
    edge_code: Optional[int] = None
    edge_label: Optional[str] = None
    weight: Optional[float] = None
    depth: int = 0
    color: Optional[str] = None

    @property
    def key(self) -> EdgeKey:
        return (self.source, self.target, self.edge_type, self.edge_code)

    @classmethod
    def from_row(cls, row: EdgeRow, depth: int) -> "DiscoveredEdge":
        return cls(
            source=row.source_id,
            target=row.target_id,
            edge_type=row.edge_type,
            edge_code=row.edge_code,
            edge_label=row.edge_label,
            weight=row.edge_weight,
            depth=depth,
        )


@dataclass
class DiscoveryResult:
    """Nodes and edges reachable from the seeds within the depth bound."""
    seed_ids: List[int]
    node_ids: Set[int]
    edges: List[DiscoveredEdge]
    node_depths: Dict[int, int] = field(default_factory=dict)
    truncated: bool = False

    @property
    def discovered_ids(self) -> Set[int]:
        return self.node_ids - set(self.seed_ids)


def restrict_edges(edges: Iterable[DiscoveredEdge], node_ids: Set[int]) -> List[DiscoveredEdge]:
    """Keep only edges whose two endpoints are in ``node_ids``."""
    return [e for e in edges if e.source in node_ids and e.target in node_ids]


def discover_network(
    db: Database,
    seed_ids: Sequence[int],
    max_depth: int,
    relation_types: Iterable[str],
    include_reciprocal: bool = False,
    max_nodes: Optional[int] = None,
) -> DiscoveryResult:
    """Expand the network around the seeds one hop at a time.

    Each level fetches the edges of the current frontier in one batch per
    relation type. Endpoints not seen before form the next frontier; a node
    is expanded at most once, so cycles in the relation data are harmless.
    Edges already collected at an earlier level are not added again, but
    rows fetched within one level are all kept.

    Args:
        db: Database handle
        seed_ids: Starting persons
        max_depth: Number of hops to expand (0 returns the seeds only)
        relation_types: Relation types to follow
        include_reciprocal: Also follow relations where the person is the target
        max_nodes: Stop admitting new nodes once the network holds this many

    Returns:
        DiscoveryResult with every edge's endpoints inside ``node_ids``.

    Raises:
        ValueError: For an unknown relation type or a negative depth.
        sqlite3.Error: Propagated from the repository; no partial result.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}")
    types = validate_relation_types(relation_types)

    seeds = list(dict.fromkeys(int(sid) for sid in seed_ids))
    visited: Set[int] = set(seeds)
    node_depths: Dict[int, int] = {sid: 0 for sid in seeds}
    edges: List[DiscoveredEdge] = []
    seen_keys: Set[EdgeKey] = set()
    truncated = False

    if max_depth == 0 and len(seeds) > 1 and types:
        # Depth 0 still reports the relations running between seeds.
        for row in find_edges_within_group(db, seeds, types):
            edges.append(DiscoveredEdge.from_row(row, depth=0))
        return DiscoveryResult(seeds, visited, edges, node_depths)

    frontier = list(seeds)
    for depth in range(1, max_depth + 1):
        if not frontier or not types:
            break

        rows = get_edges_batch(db, frontier, types, include_reciprocal)
        level_keys: Set[EdgeKey] = set()
        next_frontier: List[int] = []

        for row in rows:
            edge = DiscoveredEdge.from_row(row, depth=depth)
            if edge.key in seen_keys:
                continue
            level_keys.add(edge.key)
            edges.append(edge)

            for node_id in (edge.source, edge.target):
                if node_id in visited:
                    continue
                if max_nodes is not None and len(visited) >= max_nodes:
                    truncated = True
                    continue
                visited.add(node_id)
                node_depths[node_id] = depth
                next_frontier.append(node_id)

        seen_keys |= level_keys
        logger.debug(
            "Depth %d: %d edges fetched, %d new nodes (total %d)",
            depth,
            len(rows),
            len(next_frontier),
            len(visited),
        )
        frontier = next_frontier
        if truncated:
            logger.warning(
                "Node limit %s reached at depth %d, stopping discovery", max_nodes, depth
            )
            break

    return DiscoveryResult(
        seed_ids=seeds,
        node_ids=visited,
        edges=restrict_edges(edges, visited),
        node_depths=node_depths,
        truncated=truncated,
    )
