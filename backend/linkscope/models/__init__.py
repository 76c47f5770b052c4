"""Data models for linkscope"""

from .blockchain import (
    Transaction,
    TransactionInput,
    TransactionOutput,
)
from .privacy import (
    AnalysisFailure,
    EntropyResult,
    EntropyStatistics,
    Link,
    MappingView,
    TransactionClass,
)
from .graph import (
    DistanceEntry,
    EdgeKind,
    GraphEdge,
    GraphModel,
    GraphNode,
    GraphStatistics,
)
from .api import (
    AlgorithmResponse,
    BatchEntropyRequest,
    BatchEntropyResponse,
    EntropyRequest,
    GraphResponse,
    PathResponse,
)

__all__ = [
    "Transaction",
    "TransactionInput",
    "TransactionOutput",
    "AnalysisFailure",
    "EntropyResult",
    "EntropyStatistics",
    "Link",
    "MappingView",
    "TransactionClass",
    "DistanceEntry",
    "EdgeKind",
    "GraphEdge",
    "GraphModel",
    "GraphNode",
    "GraphStatistics",
    "AlgorithmResponse",
    "BatchEntropyRequest",
    "BatchEntropyResponse",
    "EntropyRequest",
    "GraphResponse",
    "PathResponse",
]
