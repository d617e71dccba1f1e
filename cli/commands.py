from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from api.config import Settings, load_settings
from api.services.db import Database
from api.services.network import (
    NetworkQuery,
    NetworkResult,
    explore_person_network,
    explore_recursive_network,
    find_connection_path,
)
from api.services.metrics import find_high_degree_nodes
from api.services.pathways import Pathway
from api.services.relations import get_edge_stats
from cli.db import connect, init_db, insert_rows


def _database(settings: Settings, db_path: Optional[Path]) -> Database:
    db = Database(db_path or settings.db_path)
    if not db.exists():
        raise FileNotFoundError(f"Database not found: {db.path}")
    return db


def explore(
    person_id: int,
    depth: int,
    relation_types: List[str],
    include_reciprocal: bool = False,
    proximity_radius: Optional[float] = None,
    max_nodes: Optional[int] = None,
    db_path: Optional[Path] = None,
) -> NetworkResult:
    settings = load_settings()
    query = NetworkQuery(
        person_id=person_id,
        depth=depth,
        relation_types=relation_types or settings.default_relation_types,
        include_reciprocal=include_reciprocal,
        proximity_radius=proximity_radius,
        max_nodes=max_nodes,
    )
    return explore_person_network(_database(settings, db_path), query, settings)


def recursive(
    person_id: int,
    max_degrees: int,
    relation_types: Optional[List[str]] = None,
    max_nodes: Optional[int] = None,
    db_path: Optional[Path] = None,
) -> NetworkResult:
    settings = load_settings()
    return explore_recursive_network(
        _database(settings, db_path), person_id, max_degrees, relation_types, max_nodes, settings
    )


def path(
    from_person: int,
    to_person: int,
    depth: int,
    relation_types: List[str],
    include_reciprocal: bool = False,
    db_path: Optional[Path] = None,
) -> Optional[Pathway]:
    settings = load_settings()
    return find_connection_path(
        _database(settings, db_path),
        from_person,
        to_person,
        depth,
        relation_types or None,
        include_reciprocal,
        settings,
    )


def stats(person_id: int, db_path: Optional[Path] = None) -> Dict[str, int]:
    settings = load_settings()
    return get_edge_stats(_database(settings, db_path), person_id)


def create_db(db_path: Optional[Path] = None) -> Path:
    path = db_path or load_settings().db_path
    path.parent.mkdir(parents=True, exist_ok=True)
    init_db(path)
    return path


def load_table(table: str, csv_path: Path, db_path: Optional[Path] = None) -> int:
    """Append the rows of a CSV export to one CBDB table."""
    path = db_path or load_settings().db_path
    if not Database(path).table_exists(table):
        raise ValueError(f"Unknown table {table!r} in {path}; run init-db first")
    df = pd.read_csv(csv_path)
    df = df.astype(object).where(pd.notna(df), None)
    conn = connect(path)
    try:
        count = insert_rows(conn, table, df.to_dict(orient="records"))
        conn.commit()
    finally:
        conn.close()
    return count


def network_json(result: NetworkResult) -> str:
    return json.dumps(asdict(result), ensure_ascii=False, indent=2, default=str)


def print_network_report(result: NetworkResult, verbose: bool = False) -> List[str]:
    """Format a NetworkResult for CLI output.

    Args:
        result: The NetworkResult to format
        verbose: If True, list every node and edge

    Returns:
        List of formatted output lines
    """
    m = result.metrics
    labels = {n.id: n.label for n in result.nodes}
    seeds = ", ".join(f"{labels.get(s, s)} ({s})" for s in result.seed_ids)

    lines = [f"\nNetwork of {seeds}"]
    lines.append(f"  Persons: {m.total_persons} ({m.discovered_persons} discovered)")
    type_counts = ", ".join(
        f"{t} {n}" for t, n in m.edge_types.items() if t != "total" and n
    )
    lines.append(f"  Edges: {m.total_edges}" + (f" ({type_counts})" if type_counts else ""))
    lines.append(
        f"  Density: {m.density:.4f}  Components: {m.components}  "
        f"Avg path: {m.average_path_length:.2f}  Diameter: {m.diameter}"
    )
    if result.truncated:
        lines.append("  [truncated] node limit reached")

    hubs = find_high_degree_nodes(result.edges, top_n=3)
    if hubs:
        lines.append(
            "  Most connected: " + ", ".join(f"{labels.get(n, n)} ({count})" for n, count in hubs)
        )

    if verbose:
        lines.append("\n  Nodes:")
        for node in result.nodes:
            marker = "*" if node.is_seed else " "
            lines.append(f"   {marker} {node.id:>8}  {node.label}  (depth {node.depth})")
        lines.append("\n  Edges:")
        for edge in result.edges:
            lines.append(
                f"    {edge.source:>8} -> {edge.target:<8} {edge.edge_type:<12} {edge.edge_label or ''}"
            )

    for bridge in result.bridge_nodes:
        lines.append(
            f"  Bridge: {bridge.label or bridge.person_id} connects {bridge.connects_to} "
            f"({bridge.bridge_type}, score {bridge.bridge_score:g})"
        )
    if result.articulation_points:
        cut = ", ".join(str(labels.get(n, n)) for n in result.articulation_points)
        lines.append(f"  Cut persons: {cut}")

    lines.append(f"  Query time: {result.query_time_ms} ms")
    return lines


def print_pathway(pathway: Optional[Pathway]) -> List[str]:
    if pathway is None:
        return ["No path found"]
    lines = [
        " -> ".join(str(p) for p in pathway.path),
        f"  {pathway.path_length} hops, {pathway.path_type}",
    ]
    for edge in pathway.edges:
        lines.append(f"    {edge.source:>8} -> {edge.target:<8} {edge.edge_type:<12} {edge.edge_label or ''}")
    return lines
