"""Presentation data for network edges: colours, labels and weights."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from api.services.discovery import DiscoveredEdge

EDGE_COLORS = {
    "kinship": "#95e77e",      # Green
    "association": "#4ecdc4",  # Teal
    "office": "#f7b731",       # Amber
}
DEFAULT_EDGE_COLOR = "#6d727e99"

NODE_COLORS = {
    "seed": "#ff6b6b",  # Red
    **EDGE_COLORS,
}
DEFAULT_NODE_COLOR = "#666666"

BASE_WEIGHTS = {
    "kinship": 1.5,
    "association": 1.0,
    "office": 0.75,
}

# Immediate family ties count double.
KINSHIP_WEIGHT_MULTIPLIERS = {
    75: 2.0,   # father
    111: 2.0,  # mother
    223: 2.0,  # son
    47: 2.0,   # daughter
    0: 0.5,    # unknown
}

COMMON_KINSHIP_LABELS = {
    75: "父 (Father)",
    111: "母 (Mother)",
    223: "子 (Son)",
    47: "女 (Daughter)",
    0: "未詳 (Unknown)",
}

DEFAULT_LABEL_PREFIXES = {
    "kinship": "Kinship",
    "association": "Association",
    "office": "Office",
}


def default_label(edge_type: str, code: Optional[int]) -> str:
    if edge_type == "kinship" and code in COMMON_KINSHIP_LABELS:
        return COMMON_KINSHIP_LABELS[code]
    prefix = DEFAULT_LABEL_PREFIXES.get(edge_type, edge_type.title())
    return f"{prefix} {code}" if code is not None else prefix


def edge_weight(edge_type: str, code: Optional[int]) -> float:
    weight = BASE_WEIGHTS.get(edge_type, 1.0)
    if edge_type == "kinship" and code in KINSHIP_WEIGHT_MULTIPLIERS:
        weight *= KINSHIP_WEIGHT_MULTIPLIERS[code]
    return weight


def enrich_edges(edges: Iterable[DiscoveredEdge]) -> List[DiscoveredEdge]:
    """Fill colour, label and weight on each edge in place.

    Labels already loaded from the code tables are kept. An explicit weight
    on the edge wins over the lookup tables.
    """
    edges = list(edges)
    for edge in edges:
        edge.color = EDGE_COLORS.get(edge.edge_type, DEFAULT_EDGE_COLOR)
        if not edge.edge_label:
            edge.edge_label = default_label(edge.edge_type, edge.edge_code)
        if edge.weight is None:
            edge.weight = edge_weight(edge.edge_type, edge.edge_code)
    return edges


def _info_score(edge: DiscoveredEdge) -> int:
    score = 0
    if edge.edge_label:
        score += 2
    if edge.edge_code is not None:
        score += 1
    return score


def deduplicate_edges(edges: Iterable[DiscoveredEdge]) -> List[DiscoveredEdge]:
    """Collapse parallel edges between the same pair, keeping the most informative one."""
    by_pair: Dict[tuple, DiscoveredEdge] = {}
    for edge in edges:
        pair = tuple(sorted((edge.source, edge.target)))
        existing = by_pair.get(pair)
        if existing is None or _info_score(edge) > _info_score(existing):
            by_pair[pair] = edge
    return list(by_pair.values())


def group_edges_by_type(edges: Iterable[DiscoveredEdge]) -> Dict[str, List[DiscoveredEdge]]:
    groups: Dict[str, List[DiscoveredEdge]] = {t: [] for t in EDGE_COLORS}
    for edge in edges:
        groups.setdefault(edge.edge_type, []).append(edge)
    return groups


def node_types(
    node_ids: Iterable[int], edges: Iterable[DiscoveredEdge], seed_ids: Iterable[int]
) -> Dict[int, str]:
    """Seeds are ``seed``; other nodes take the strongest type among their edges."""
    seeds = set(seed_ids)
    touching: Dict[int, set] = {}
    for edge in edges:
        touching.setdefault(edge.source, set()).add(edge.edge_type)
        touching.setdefault(edge.target, set()).add(edge.edge_type)

    result = {}
    for node_id in node_ids:
        if node_id in seeds:
            result[node_id] = "seed"
            continue
        types = touching.get(node_id, set())
        result[node_id] = next(
            (t for t in ("kinship", "association", "office") if t in types), "association"
        )
    return result


def node_size(depth: int) -> int:
    """Seeds largest, shrinking with each hop."""
    return max(6, 20 - 5 * depth)
