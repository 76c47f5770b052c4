"""Bounded-depth transaction graph traversal"""

import asyncio
import logging
from typing import Dict, List, Optional, Protocol, Set

from linkscope.analysis.errors import TransactionNotFoundError
from linkscope.config import settings
from linkscope.models.blockchain import Transaction
from linkscope.models.graph import EdgeKind, GraphEdge, GraphModel, GraphNode

logger = logging.getLogger(__name__)


class TransactionLookup(Protocol):
    """Anything that can resolve a txid to a Transaction (None when unknown)"""

    async def get_transaction(self, txid: str) -> Optional[Transaction]:
        ...


class GraphBuilder:
    """
    Build the transaction reference graph around a root transaction

    Traversal runs level by level: every transaction at distance d < depth is
    expanded into the transactions it spends from and the transactions
    spending its outputs. Lookups for one level run concurrently; the visited
    set is never touched while lookups are in flight. The result is exactly the
    subgraph within ``depth`` hops of the root in either direction.
    """

    def __init__(
        self,
        lookup: TransactionLookup,
        max_nodes: Optional[int] = None,
        strict: bool = False,
    ):
        self.lookup = lookup
        self.max_nodes = max_nodes if max_nodes is not None else settings.graph_max_nodes
        self.strict = strict

    async def build_graph(self, root_txid: str, depth: int) -> GraphModel:
        """
        Args:
            root_txid: Transaction to start from
            depth: Maximum hops from the root (0 = root only)

        Returns:
            GraphModel

        Raises:
            TransactionNotFoundError: root (or, when strict, any neighbour) missing
        """
        if depth < 0:
            raise ValueError("depth must be non-negative")

        logger.info(f"Building transaction graph from {root_txid[:16]}, depth={depth}")

        root = await self.lookup.get_transaction(root_txid)
        if root is None:
            raise TransactionNotFoundError(root_txid)

        graph = GraphModel(root_txid=root_txid, depth=depth)
        graph.nodes.append(_make_node(root_txid, root, 0))
        visited: Set[str] = {root_txid}
        frontier: Dict[str, Transaction] = {root_txid: root}

        for level in range(depth):
            discovered: List[str] = []

            for txid, transaction in frontier.items():
                for input_txid in transaction.input_txids():
                    if self._admit(input_txid, visited, discovered, graph):
                        graph.edges.append(
                            GraphEdge(from_txid=input_txid, to_txid=txid, kind=EdgeKind.SPENDS)
                        )
                for output_txid in transaction.output_txids():
                    if self._admit(output_txid, visited, discovered, graph):
                        graph.edges.append(
                            GraphEdge(from_txid=txid, to_txid=output_txid, kind=EdgeKind.SPENT_BY)
                        )

            if not discovered:
                break

            fetched = await asyncio.gather(
                *(self.lookup.get_transaction(txid) for txid in discovered)
            )

            frontier = {}
            for txid, transaction in zip(discovered, fetched):
                if transaction is None:
                    if self.strict:
                        raise TransactionNotFoundError(txid)
                    logger.warning(f"Transaction {txid[:16]} not found, keeping unresolved node")
                    graph.nodes.append(GraphNode(txid=txid, depth=level + 1, resolved=False))
                    continue
                graph.nodes.append(_make_node(txid, transaction, level + 1))
                frontier[txid] = transaction

        logger.info(
            f"Graph complete: {len(graph.nodes)} nodes, {len(graph.edges)} edges"
            + (" (truncated)" if graph.truncated else "")
        )
        return graph

    def _admit(self, txid: str, visited: Set[str], discovered: List[str], graph: GraphModel) -> bool:
        """Mark ``txid`` visited if room remains; True if an edge to it may be added"""
        if txid in visited:
            return True
        if len(visited) >= self.max_nodes:
            if not graph.truncated:
                logger.warning(f"Node limit {self.max_nodes} reached, truncating graph")
            graph.truncated = True
            return False
        visited.add(txid)
        discovered.append(txid)
        return True


def _make_node(txid: str, transaction: Transaction, depth: int) -> GraphNode:
    return GraphNode(
        txid=txid,
        depth=depth,
        block_height=transaction.block_height,
        fee=transaction.fee,
        timestamp=transaction.timestamp,
        confirmations=transaction.confirmations,
        total_output_value=transaction.total_output_value,
    )


async def build_graph(
    root_txid: str,
    depth: int,
    lookup: TransactionLookup,
    max_nodes: Optional[int] = None,
    strict: bool = False,
) -> GraphModel:
    """Convenience wrapper around GraphBuilder.build_graph"""
    builder = GraphBuilder(lookup, max_nodes=max_nodes, strict=strict)
    return await builder.build_graph(root_txid, depth)
