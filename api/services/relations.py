"""Relation repository: minimal edge and node projections for graph use.

These queries return only the ids, codes and labels needed to build a
network, never full biography records. Every function takes an explicit
``Database`` handle.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pandas as pd

from api.services.db import Database, placeholders

logger = logging.getLogger(__name__)

RELATION_TYPES = ["kinship", "association", "office"]

# Office colleagues come from a self-join over all postings, too large to
# recompute inside every recursive step.
RECURSIVE_RELATION_TYPES = ["kinship", "association"]

NODE_CHUNK_SIZE = 500

# Address types tried in order when picking a person's primary location.
PRIMARY_ADDRESS_TYPES = [8, 1]


@dataclass
class EdgeRow:
    """One relation between two persons."""
    source_id: int
    target_id: int
    edge_type: str  # kinship, association or office
    edge_code: Optional[int] = None
    edge_label: Optional[str] = None
    edge_weight: Optional[float] = None


@dataclass
class NodeRow:
    """Display data for one person."""
    node_id: int
    label: str
    dynasty_code: Optional[int] = None
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    found: bool = True


@dataclass(frozen=True)
class PairTable:
    """A relation table holding a source person column and a target person column."""
    table: str
    source_col: str
    target_col: str
    code_col: str
    label_join: str
    label_col: str


PAIR_TABLES: Dict[str, PairTable] = {
    "kinship": PairTable(
        table="KIN_DATA",
        source_col="c_personid",
        target_col="c_kin_id",
        code_col="c_kin_code",
        label_join="LEFT JOIN KINSHIP_CODES c ON c.c_kincode = r.c_kin_code",
        label_col="c.c_kinrel_chn",
    ),
    "association": PairTable(
        table="ASSOC_DATA",
        source_col="c_personid",
        target_col="c_assoc_id",
        code_col="c_assoc_code",
        label_join="LEFT JOIN ASSOC_CODES c ON c.c_assoc_code = r.c_assoc_code",
        label_col="c.c_assoc_desc_chn",
    ),
}

# Two persons are office colleagues when they held the same office with
# overlapping tenure. Unknown offices (id <= 0) and unknown years are ignored.
OFFICE_COLLEAGUE_JOIN = """
    FROM POSTED_TO_OFFICE_DATA a
    JOIN POSTED_TO_OFFICE_DATA b
      ON b.c_office_id = a.c_office_id
     AND b.c_personid != a.c_personid
     AND b.c_firstyear <= a.c_lastyear
     AND a.c_firstyear <= b.c_lastyear
"""
OFFICE_COLLEAGUE_WHERE = "a.c_office_id > 0 AND a.c_firstyear > 0 AND b.c_firstyear > 0"


def validate_relation_types(relation_types: Iterable[str]) -> List[str]:
    """Return relation types in canonical order.

    Raises:
        ValueError: If an unknown relation type is given.
    """
    requested = list(relation_types)
    invalid = [t for t in requested if t not in RELATION_TYPES]
    if invalid:
        raise ValueError(f"Invalid relation types: {invalid}. Valid types: {RELATION_TYPES}")
    return [t for t in RELATION_TYPES if t in requested]


def _optional_int(value) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


def _optional_str(value) -> Optional[str]:
    if value is None or pd.isna(value) or value == "":
        return None
    return str(value)


def _pair_edges_sql(
    relation_type: str, person_ids: Sequence[int], include_reciprocal: bool
) -> Tuple[str, List[int]]:
    pair = PAIR_TABLES[relation_type]
    marks = placeholders(person_ids)
    if include_reciprocal:
        where = f"(r.{pair.source_col} IN ({marks}) OR r.{pair.target_col} IN ({marks}))"
        params = list(person_ids) + list(person_ids)
    else:
        where = f"r.{pair.source_col} IN ({marks})"
        params = list(person_ids)
    sql = f"""
        SELECT
            r.{pair.source_col} AS source_id,
            r.{pair.target_col} AS target_id,
            r.{pair.code_col} AS edge_code,
            {pair.label_col} AS edge_label
        FROM {pair.table} r
        {pair.label_join}
        WHERE {where}
          AND r.{pair.target_col} IS NOT NULL
    """
    return sql, params


def _office_edges_sql(person_ids: Sequence[int]) -> Tuple[str, List[int]]:
    # Colleague relations are symmetric, so reciprocal fetching adds nothing.
    sql = f"""
        SELECT DISTINCT
            a.c_personid AS source_id,
            b.c_personid AS target_id,
            a.c_office_id AS edge_code,
            o.c_office_chn AS edge_label
        {OFFICE_COLLEAGUE_JOIN}
        LEFT JOIN OFFICE_CODES o ON o.c_office_id = a.c_office_id
        WHERE a.c_personid IN ({placeholders(person_ids)})
          AND {OFFICE_COLLEAGUE_WHERE}
    """
    return sql, list(person_ids)


def _edges_sql(
    relation_type: str, person_ids: Sequence[int], include_reciprocal: bool
) -> Tuple[str, List[int]]:
    if relation_type == "office":
        return _office_edges_sql(person_ids)
    return _pair_edges_sql(relation_type, person_ids, include_reciprocal)


def _edges_from_df(df: pd.DataFrame, edge_type: str) -> List[EdgeRow]:
    edges = []
    for _, row in df.iterrows():
        target_id = _optional_int(row["target_id"])
        source_id = _optional_int(row["source_id"])
        if target_id is None or source_id is None:
            continue
        edges.append(
            EdgeRow(
                source_id=source_id,
                target_id=target_id,
                edge_type=edge_type,
                edge_code=_optional_int(row["edge_code"]),
                edge_label=_optional_str(row["edge_label"]),
            )
        )
    return edges


def get_edges_batch(
    db: Database,
    person_ids: Sequence[int],
    relation_types: Iterable[str] = RELATION_TYPES,
    include_reciprocal: bool = False,
) -> List[EdgeRow]:
    """Fetch edges for many persons, one query per relation type.

    Args:
        db: Database handle
        person_ids: Persons whose relations are wanted
        relation_types: Any of kinship, association, office
        include_reciprocal: Also match persons on the target column

    Returns:
        Edges of all requested types, concatenated in type order. Rows of
        different types between the same pair are all kept.
    """
    person_ids = list(dict.fromkeys(int(pid) for pid in person_ids))
    if not person_ids:
        return []

    edges: List[EdgeRow] = []
    for relation_type in validate_relation_types(relation_types):
        sql, params = _edges_sql(relation_type, person_ids, include_reciprocal)
        df = db.query_df(sql, params)
        batch = _edges_from_df(df, relation_type)
        logger.debug(
            "Fetched %d %s edges for %d persons", len(batch), relation_type, len(person_ids)
        )
        edges.extend(batch)
    return edges


def find_edges_within_group(
    db: Database,
    person_ids: Sequence[int],
    relation_types: Iterable[str] = RELATION_TYPES,
) -> List[EdgeRow]:
    """Edges whose source and target both belong to ``person_ids``."""
    group = set(int(pid) for pid in person_ids)
    if not group:
        return []
    edges = get_edges_batch(db, sorted(group), relation_types)
    return [e for e in edges if e.target_id in group]


def get_nodes_batch(db: Database, node_ids: Sequence[int]) -> List[NodeRow]:
    """Load display labels and basic metadata for a set of persons.

    Label preference is Chinese name, then romanized name, then a
    ``Person {id}`` placeholder. Ids missing from BIOG_MAIN are returned as
    placeholder nodes with ``found=False``, in the order they were asked for.
    """
    node_ids = list(dict.fromkeys(int(nid) for nid in node_ids))
    if not node_ids:
        return []

    found: Dict[int, NodeRow] = {}
    for start in range(0, len(node_ids), NODE_CHUNK_SIZE):
        chunk = node_ids[start:start + NODE_CHUNK_SIZE]
        df = db.query_df(
            f"""
            SELECT
                c_personid AS node_id,
                COALESCE(NULLIF(c_name_chn, ''), NULLIF(c_name, ''), 'Person ' || c_personid) AS label,
                c_dy AS dynasty_code,
                c_birthyear AS birth_year,
                c_deathyear AS death_year
            FROM BIOG_MAIN
            WHERE c_personid IN ({placeholders(chunk)})
            """,
            chunk,
        )
        for _, row in df.iterrows():
            node_id = int(row["node_id"])
            found[node_id] = NodeRow(
                node_id=node_id,
                label=str(row["label"]),
                dynasty_code=_optional_int(row["dynasty_code"]),
                birth_year=_optional_int(row["birth_year"]),
                death_year=_optional_int(row["death_year"]),
            )

    return [
        found.get(nid) or NodeRow(node_id=nid, label=f"Person {nid}", found=False)
        for nid in node_ids
    ]


def find_existing_person_ids(db: Database, person_ids: Sequence[int]) -> List[int]:
    """Return the subset of ``person_ids`` present in BIOG_MAIN, input order kept."""
    return [node.node_id for node in get_nodes_batch(db, person_ids) if node.found]


def _edge_union_sql(relation_types: Sequence[str]) -> str:
    parts = []
    for relation_type in relation_types:
        pair = PAIR_TABLES[relation_type]
        parts.append(
            f"""
            SELECT {pair.source_col} AS source_id, {pair.target_col} AS target_id,
                   '{relation_type}' AS edge_type, {pair.code_col} AS edge_code
            FROM {pair.table}
            WHERE {pair.target_col} IS NOT NULL
            """
        )
    return "\nUNION ALL\n".join(parts)


def get_network_edges(
    db: Database,
    center_person_id: int,
    max_degrees: int,
    relation_types: Optional[Iterable[str]] = None,
    max_nodes: Optional[int] = None,
) -> List[EdgeRow]:
    """Fetch every edge within ``max_degrees`` hops of a person in one query.

    The walk runs inside SQLite as a recursive CTE: ``all_edges`` unions the
    edge subqueries of every requested type, ``network`` grows from the
    center one hop per step until ``degree >= max_degrees``, and the result
    keeps the edges whose two endpoints were reached. Edges are followed in
    both directions. ``max_nodes`` caps the number of returned rows.

    Raises:
        ValueError: For office relations, which only the breadth-first
            explorer follows.
    """
    types = validate_relation_types(relation_types or ["kinship"])
    unsupported = [t for t in types if t not in RECURSIVE_RELATION_TYPES]
    if unsupported:
        raise ValueError(
            f"Recursive query supports {RECURSIVE_RELATION_TYPES} only, got {unsupported}"
        )
    if not types or max_degrees < 0:
        return []

    sql = f"""
        WITH RECURSIVE
        all_edges AS (
            {_edge_union_sql(types)}
        ),
        network(person_id, degree) AS (
            SELECT ?, 0
            UNION
            SELECT
                CASE WHEN e.source_id = n.person_id THEN e.target_id ELSE e.source_id END,
                n.degree + 1
            FROM network n
            JOIN all_edges e
              ON e.source_id = n.person_id OR e.target_id = n.person_id
            WHERE n.degree < ?
        ),
        network_persons AS (
            SELECT DISTINCT person_id FROM network
        )
        SELECT DISTINCT
            e.source_id AS source_id,
            e.target_id AS target_id,
            e.edge_type AS edge_type,
            e.edge_code AS edge_code
        FROM all_edges e
        WHERE e.source_id IN (SELECT person_id FROM network_persons)
          AND e.target_id IN (SELECT person_id FROM network_persons)
        ORDER BY e.edge_type, e.source_id, e.target_id, e.edge_code
    """
    params: List = [int(center_person_id), int(max_degrees)]
    if max_nodes:
        sql += "\nLIMIT ?"
        params.append(int(max_nodes))

    df = db.query_df(sql, params)
    edges = []
    for _, row in df.iterrows():
        edges.append(
            EdgeRow(
                source_id=int(row["source_id"]),
                target_id=int(row["target_id"]),
                edge_type=str(row["edge_type"]),
                edge_code=_optional_int(row["edge_code"]),
            )
        )
    logger.debug(
        "Recursive query for %s at %d degrees returned %d edges",
        center_person_id,
        max_degrees,
        len(edges),
    )
    return edges


def count_edges(
    db: Database,
    person_ids: Sequence[int],
    relation_types: Iterable[str] = ("kinship",),
    include_reciprocal: bool = False,
) -> int:
    """Count the edges ``get_edges_batch`` would return, without loading them."""
    person_ids = list(dict.fromkeys(int(pid) for pid in person_ids))
    if not person_ids:
        return 0
    total = 0
    for relation_type in validate_relation_types(relation_types):
        sql, params = _edges_sql(relation_type, person_ids, include_reciprocal)
        row = db.query_one(f"SELECT COUNT(*) AS count FROM ({sql})", params)
        total += int(row["count"]) if row else 0
    return total


def get_edge_stats(db: Database, person_id: int) -> Dict[str, int]:
    """Per-type edge counts for one person, used to size a query before running it."""
    stats = {}
    for relation_type in RELATION_TYPES:
        stats[f"{relation_type}_count"] = count_edges(db, [person_id], [relation_type])
    stats["total_count"] = sum(stats.values())
    return stats


def filter_persons(
    db: Database,
    person_ids: Sequence[int],
    seed_ids: Set[int],
    index_year_range: Optional[Tuple[int, int]] = None,
    dynasties: Optional[Sequence[int]] = None,
    include_male: bool = True,
    include_female: bool = True,
) -> List[int]:
    """Apply biography filters to discovered persons.

    Seeds are never filtered out. With no filter set the input comes back
    unchanged.
    """
    discovered = [pid for pid in person_ids if pid not in seed_ids]
    has_filters = bool(index_year_range or dynasties) or not include_male or not include_female
    if not discovered or not has_filters:
        return list(person_ids)

    clauses = [f"c_personid IN ({placeholders(discovered)})"]
    params: List = list(discovered)
    if index_year_range:
        clauses.append("c_index_year BETWEEN ? AND ?")
        params.extend([int(index_year_range[0]), int(index_year_range[1])])
    if dynasties:
        clauses.append(f"c_dy IN ({placeholders(dynasties)})")
        params.extend(int(d) for d in dynasties)
    if not include_male:
        clauses.append("c_female = 1")
    if not include_female:
        clauses.append("c_female = 0")

    df = db.query_df(
        f"SELECT c_personid FROM BIOG_MAIN WHERE {' AND '.join(clauses)}",
        params,
    )
    kept = {int(pid) for pid in df["c_personid"].tolist()}
    return [pid for pid in person_ids if pid in seed_ids or pid in kept]


def get_primary_locations(
    db: Database, person_ids: Sequence[int]
) -> Dict[int, Tuple[float, float]]:
    """Map person id to the (longitude, latitude) of their primary address.

    Birthplace-type addresses win, then basic affiliation, then the first
    located address. Persons without coordinates are absent from the result,
    and so is everyone when the address tables are missing.
    """
    person_ids = list(dict.fromkeys(int(pid) for pid in person_ids))
    if not person_ids or not db.table_exists("ADDR_CODES"):
        return {}

    candidates: Dict[int, List[Tuple[Optional[int], float, float]]] = {}
    for start in range(0, len(person_ids), NODE_CHUNK_SIZE):
        chunk = person_ids[start:start + NODE_CHUNK_SIZE]
        df = db.query_df(
            f"""
            SELECT ba.c_personid AS person_id, ba.c_addr_type AS addr_type,
                   ac.x_coord AS x_coord, ac.y_coord AS y_coord
            FROM BIOG_ADDR_DATA ba
            JOIN ADDR_CODES ac ON ac.c_addr_id = ba.c_addr_id
            WHERE ba.c_personid IN ({placeholders(chunk)})
              AND ac.x_coord IS NOT NULL
              AND ac.y_coord IS NOT NULL
            ORDER BY ba.c_personid, ba.c_sequence
            """,
            chunk,
        )
        for _, row in df.iterrows():
            candidates.setdefault(int(row["person_id"]), []).append(
                (_optional_int(row["addr_type"]), float(row["x_coord"]), float(row["y_coord"]))
            )

    locations = {}
    for person_id, addresses in candidates.items():
        chosen = None
        for addr_type in PRIMARY_ADDRESS_TYPES:
            chosen = next((a for a in addresses if a[0] == addr_type), None)
            if chosen:
                break
        chosen = chosen or addresses[0]
        locations[person_id] = (chosen[1], chosen[2])
    return locations
