"""Pydantic schemas for API request/response models."""
from api.schemas.network import (
    BridgeNode,
    BridgeStatistics,
    CentralityRequest,
    CentralityResponse,
    CentralityScores,
    DirectConnection,
    EdgeStats,
    MultiPersonNetworkRequest,
    NetworkMetrics,
    NetworkResponse,
    Pathway,
    PersonNode,
    RelationEdge,
)

__all__ = [
    "PersonNode",
    "RelationEdge",
    "NetworkMetrics",
    "BridgeNode",
    "DirectConnection",
    "Pathway",
    "NetworkResponse",
    "MultiPersonNetworkRequest",
    "CentralityRequest",
    "CentralityScores",
    "CentralityResponse",
    "BridgeStatistics",
    "EdgeStats",
]
