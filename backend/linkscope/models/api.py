"""API request and response models"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field
from .graph import GraphModel, GraphStatistics
from .privacy import AnalysisFailure, EntropyResult, EntropyStatistics


# Request Models


class EntropyRequest(BaseModel):
    """Request to analyze raw input/output values"""

    inputs: List[int] = Field(..., description="Input values in satoshis (empty for coinbase)")
    outputs: List[int] = Field(..., description="Output values in satoshis")


class BatchTransactionValues(EntropyRequest):
    """Values of one transaction in a batch request"""

    txid: str = Field(..., description="Transaction ID")


class BatchEntropyRequest(BaseModel):
    """Request to analyze multiple transactions"""

    transactions: List[BatchTransactionValues] = Field(
        ..., min_length=1, description="Transactions to analyze"
    )


# Response Models


class BatchEntropyResponse(BaseModel):
    """Response for batch entropy analysis"""

    results: Dict[str, Union[EntropyResult, AnalysisFailure]] = Field(
        ..., description="Result or failure per txid"
    )
    statistics: EntropyStatistics = Field(..., description="Statistics over successful results")


class GraphResponse(BaseModel):
    """Response for transaction graph lookup"""

    graph: GraphModel = Field(..., description="Transaction graph")
    statistics: GraphStatistics = Field(..., description="Graph summary")


class AlgorithmResponse(BaseModel):
    """Response for a graph algorithm run"""

    algorithm: str = Field(..., description="Algorithm name")
    root_txid: str = Field(..., description="Root transaction ID")
    depth: int = Field(..., description="Traversal depth")
    result: Any = Field(..., description="Algorithm output")


class PathResponse(BaseModel):
    """Response for a shortest path query"""

    source: str = Field(..., description="Source transaction ID")
    target: str = Field(..., description="Target transaction ID")
    path: Optional[List[str]] = Field(None, description="Transactions along the path, None if unreachable")
    hops: Optional[int] = Field(None, description="Number of edges on the path")
