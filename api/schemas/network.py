"""Person network Pydantic models."""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class PersonNode(BaseModel):
    """A person in the network."""

    id: int
    label: str
    dynasty_code: Optional[int] = None
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    depth: int = 0
    is_seed: bool = False
    node_type: str
    color: str
    size: int


class RelationEdge(BaseModel):
    """A relation between two persons."""

    source: int
    target: int
    edge_type: str
    edge_code: Optional[int] = None
    edge_label: Optional[str] = None
    weight: Optional[float] = None
    depth: int = 0
    color: Optional[str] = None


class NetworkMetrics(BaseModel):
    """Summary statistics for a network."""

    total_persons: int
    query_persons: int
    discovered_persons: int
    total_edges: int
    direct_connections: int
    bridge_nodes: int
    density: float
    average_path_length: float
    components: int
    clustering_coefficient: float = 0.0
    diameter: int = 0
    average_degree: float = 0.0
    edge_types: Dict[str, int] = {}


class BridgeNode(BaseModel):
    """A discovered person tied to two or more seed persons."""

    person_id: int
    connects_to: List[int]
    bridge_type: str
    bridge_score: float
    label: Optional[str] = None


class BridgeStatistics(BaseModel):
    """Counts over the bridge nodes of a network."""

    total: int
    by_type: Dict[str, int]
    avg_connections_per_bridge: float
    max_connections: int


class DirectConnection(BaseModel):
    """Relations running directly between two seed persons."""

    person1: int
    person2: int
    relationships: List[RelationEdge] = []
    connection_strength: int = 0


class Pathway(BaseModel):
    """Shortest path between two seed persons."""

    from_person: int
    to_person: int
    path: List[int]
    edges: List[RelationEdge] = []
    path_length: int
    path_type: str


class NetworkResponse(BaseModel):
    """An explored person network."""

    seed_ids: List[int]
    nodes: List[PersonNode]
    edges: List[RelationEdge]
    metrics: NetworkMetrics
    bridge_nodes: List[BridgeNode] = []
    direct_connections: List[DirectConnection] = []
    pathways: List[Pathway] = []
    bridge_statistics: Optional[BridgeStatistics] = None
    articulation_points: List[int] = []
    truncated: bool = False
    query_time_ms: int = 0


class MultiPersonNetworkRequest(BaseModel):
    """Request body for a network joining several persons."""

    person_ids: List[int] = Field(..., description="At least two CBDB person ids")
    depth: int = Field(default=1, ge=0, description="Hops to expand from each person")
    relation_types: List[str] = Field(default_factory=lambda: ["kinship", "association"])
    include_reciprocal: bool = False
    max_nodes: Optional[int] = Field(default=None, ge=1)
    index_year_range: Optional[List[int]] = Field(
        default=None, min_length=2, max_length=2, description="Inclusive [start, end] index years"
    )
    dynasties: Optional[List[int]] = None
    include_male: bool = True
    include_female: bool = True
    min_bridge_connections: int = Field(default=2, ge=2, description="Seeds a bridge must connect")
    bridge_type: Optional[str] = Field(
        default=None, description="kinship, association, office or mixed"
    )
    exact_bridges: bool = Field(
        default=False, description="Also report cut vertices separating the seeds"
    )


class CentralityRequest(BaseModel):
    """Request body for per-person centrality within an explored network."""

    person_id: int
    depth: int = Field(default=1, ge=0)
    relation_types: List[str] = Field(default_factory=lambda: ["kinship", "association"])
    include_reciprocal: bool = False
    node_ids: Optional[List[int]] = Field(
        default=None, description="Persons to score; defaults to every node in the network"
    )


class CentralityScores(BaseModel):
    """Centrality measures for one person."""

    person_id: int
    betweenness: float
    closeness: float
    degree: float
    eigenvector: float
    clustering: float = 0.0


class CentralityResponse(BaseModel):
    """Centrality for the requested persons."""

    person_id: int
    depth: int
    scores: List[CentralityScores]


class EdgeStats(BaseModel):
    """Relation counts for one person."""

    person_id: int
    kinship_count: int
    association_count: int
    office_count: int
    total_count: int
