"""Transaction reference graph models"""

from enum import Enum
from typing import Any, Dict, List, Optional
import networkx as nx
from pydantic import BaseModel, Field


class EdgeKind(str, Enum):
    """Direction semantics of a graph edge"""

    SPENDS = "spends"  # input transaction -> transaction spending it
    SPENT_BY = "spent_by"  # transaction -> transaction consuming its outputs


class GraphNode(BaseModel):
    """Transaction node; payload fields are opaque to the graph algorithms"""

    txid: str = Field(..., description="Transaction ID")
    depth: int = Field(default=0, ge=0, description="Hops from the root transaction")
    resolved: bool = Field(default=True, description="False when the transaction could not be fetched")
    block_height: Optional[int] = Field(None, description="Block height")
    fee: Optional[int] = Field(None, description="Fee in satoshis")
    timestamp: Optional[int] = Field(None, description="Block timestamp")
    confirmations: Optional[int] = Field(None, description="Number of confirmations")
    total_output_value: Optional[int] = Field(None, description="Sum of output values in satoshis")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional metadata")


class GraphEdge(BaseModel):
    """Directed edge between two transactions"""

    from_txid: str = Field(..., description="Source transaction ID")
    to_txid: str = Field(..., description="Target transaction ID")
    kind: EdgeKind = Field(..., description="Edge kind")


class GraphModel(BaseModel):
    """Subgraph reachable from a root transaction within a bounded number of hops"""

    root_txid: str = Field(..., description="Root transaction ID")
    depth: int = Field(..., ge=0, description="Traversal depth requested")
    nodes: List[GraphNode] = Field(default_factory=list, description="Transaction nodes")
    edges: List[GraphEdge] = Field(default_factory=list, description="Reference edges")
    truncated: bool = Field(default=False, description="True when the node ceiling stopped traversal")

    def node_ids(self) -> List[str]:
        return [node.txid for node in self.nodes]

    def get_node(self, txid: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.txid == txid:
                return node
        return None

    def adjacency(self) -> Dict[str, List[str]]:
        """
        Successor lists keyed by source txid

        Every node gets an entry. Duplicate edges collapse to one successor and
        edges pointing outside the node set are dropped.
        """
        adjacency: Dict[str, List[str]] = {node.txid: [] for node in self.nodes}
        for edge in self.edges:
            successors = adjacency.get(edge.from_txid)
            if successors is None or edge.to_txid not in adjacency:
                continue
            if edge.to_txid not in successors:
                successors.append(edge.to_txid)
        return adjacency

    def to_networkx(self) -> nx.DiGraph:
        """Convert to a NetworkX DiGraph (node payloads become node attributes)"""
        graph = nx.DiGraph()
        for node in self.nodes:
            attrs = node.model_dump(exclude={"txid", "metadata"}, exclude_none=True)
            graph.add_node(node.txid, **attrs)
        for edge in self.edges:
            if edge.from_txid in graph and edge.to_txid in graph:
                graph.add_edge(edge.from_txid, edge.to_txid, kind=edge.kind.value)
        return graph


class DistanceEntry(BaseModel):
    """Shortest-path distance between two transactions (None = unreachable)"""

    source: str = Field(..., description="Source transaction ID")
    target: str = Field(..., description="Target transaction ID")
    distance: Optional[int] = Field(None, description="Hop count, None when no path exists")


class GraphStatistics(BaseModel):
    """Summary figures for a transaction graph"""

    transaction_count: int = Field(..., ge=0, description="Number of transactions")
    edge_count: int = Field(..., ge=0, description="Number of edges")
    total_output_value: int = Field(..., ge=0, description="Sum of output values in satoshis")
    average_confirmations: float = Field(..., ge=0.0, description="Mean confirmations of known nodes")
