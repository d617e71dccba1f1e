"""Person network API endpoints."""
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.config import Settings, get_settings
from api.services.db import Database
from api.services.discovery import discover_network
from api.services.metrics import calculate_centrality, calculate_local_clustering
from api.services.network import (
    MultiPersonQuery,
    NetworkQuery,
    NetworkResult,
    PersonNotFoundError,
    build_multi_person_network,
    explore_person_network,
    explore_recursive_network,
    find_connection_path,
)
from api.services.relations import find_existing_person_ids, get_edge_stats

from api.schemas.network import (
    CentralityRequest,
    CentralityResponse,
    CentralityScores,
    EdgeStats,
    MultiPersonNetworkRequest,
    NetworkResponse,
    Pathway,
)

router = APIRouter(tags=["network"])


def get_db(settings: Settings = Depends(get_settings)) -> Database:
    db = Database(settings.db_path)
    if not db.exists():
        raise HTTPException(status_code=503, detail=f"Database not found at {settings.db_path}")
    return db


def _response(result: NetworkResult) -> NetworkResponse:
    return NetworkResponse(**asdict(result))


@router.get("/persons/{person_id}/network", response_model=NetworkResponse)
def get_person_network(
    person_id: int,
    depth: int = Query(default=1, ge=0, le=5),
    relation_types: Optional[List[str]] = Query(default=None),
    include_reciprocal: bool = Query(default=False),
    proximity_radius: Optional[float] = Query(default=None, gt=0),
    max_nodes: Optional[int] = Query(default=None, ge=1),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Explore the relation network around one person."""
    query = NetworkQuery(
        person_id=person_id,
        depth=depth,
        relation_types=relation_types or settings.default_relation_types,
        include_reciprocal=include_reciprocal,
        proximity_radius=proximity_radius,
        max_nodes=max_nodes,
    )
    try:
        result = explore_person_network(db, query, settings)
    except PersonNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response(result)


@router.get("/persons/{person_id}/network/recursive", response_model=NetworkResponse)
def get_recursive_network(
    person_id: int,
    max_degrees: int = Query(default=1, ge=0, le=5),
    relation_types: Optional[List[str]] = Query(default=None),
    max_nodes: Optional[int] = Query(default=None, ge=1),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Explore a network with a single recursive query. Kinship only unless types are given."""
    try:
        result = explore_recursive_network(
            db, person_id, max_degrees, relation_types, max_nodes, settings
        )
    except PersonNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response(result)


@router.get("/persons/{person_id}/network/stats", response_model=EdgeStats)
def get_network_stats(person_id: int, db: Database = Depends(get_db)):
    """Relation counts for a person, to size a query before running it."""
    if not find_existing_person_ids(db, [person_id]):
        raise HTTPException(status_code=404, detail=f"Person not found: {person_id}")
    return EdgeStats(person_id=person_id, **get_edge_stats(db, person_id))


@router.post("/network/multi-person", response_model=NetworkResponse)
def post_multi_person_network(
    request: MultiPersonNetworkRequest,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Build the network joining several persons, with bridges and pathways."""
    query = MultiPersonQuery(
        person_ids=request.person_ids,
        depth=request.depth,
        relation_types=request.relation_types,
        include_reciprocal=request.include_reciprocal,
        max_nodes=request.max_nodes,
        index_year_range=tuple(request.index_year_range) if request.index_year_range else None,
        dynasties=request.dynasties,
        include_male=request.include_male,
        include_female=request.include_female,
        min_bridge_connections=request.min_bridge_connections,
        bridge_type=request.bridge_type,
        exact_bridges=request.exact_bridges,
    )
    try:
        result = build_multi_person_network(db, query, settings)
    except PersonNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response(result)


@router.post("/network/centrality", response_model=CentralityResponse)
def post_network_centrality(
    request: CentralityRequest,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Centrality scores for persons in a discovered network."""
    if request.depth > settings.max_depth:
        raise HTTPException(
            status_code=400,
            detail=f"depth must be between 0 and {settings.max_depth}, got {request.depth}",
        )
    if not find_existing_person_ids(db, [request.person_id]):
        raise HTTPException(status_code=404, detail=f"Person not found: {request.person_id}")

    try:
        discovery = discover_network(
            db,
            [request.person_id],
            request.depth,
            request.relation_types,
            include_reciprocal=request.include_reciprocal,
            max_nodes=settings.max_nodes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    node_ids = request.node_ids or sorted(discovery.node_ids)
    scores = calculate_centrality(discovery.edges, node_ids, discovery.node_ids)
    clustering = calculate_local_clustering(discovery.edges, node_ids, discovery.node_ids)
    return CentralityResponse(
        person_id=request.person_id,
        depth=request.depth,
        scores=[
            CentralityScores(person_id=nid, clustering=clustering.get(nid, 0.0), **scores[nid])
            for nid in node_ids
        ],
    )


@router.get("/network/path", response_model=Pathway)
def get_network_path(
    from_person: int,
    to_person: int,
    depth: int = Query(default=2, ge=0, le=5),
    relation_types: Optional[List[str]] = Query(default=None),
    include_reciprocal: bool = Query(default=False),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Shortest chain of relations linking two persons."""
    try:
        pathway = find_connection_path(
            db, from_person, to_person, depth, relation_types, include_reciprocal, settings
        )
    except PersonNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if pathway is None:
        raise HTTPException(
            status_code=404, detail=f"No path between {from_person} and {to_person} within depth {depth}"
        )
    return Pathway(**asdict(pathway))
