"""Transaction graph API endpoints"""

import logging
import networkx as nx
from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from linkscope.config import settings
from linkscope.analysis.errors import AnalysisError
from linkscope.analysis.graph_algorithms import (
    ALGORITHMS,
    graph_statistics,
    run_algorithm,
    shortest_path,
)
from linkscope.analysis.graph_traversal import GraphBuilder
from linkscope.api.errors import to_http_exception
from linkscope.models.api import AlgorithmResponse, GraphResponse, PathResponse
from linkscope.models.graph import GraphModel
from linkscope.services.transaction_store import (
    MempoolTransactionStore,
    get_transaction_store,
    validate_txid,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def depth_query():
    return Query(
        default=settings.default_graph_depth,
        ge=0,
        le=settings.max_graph_depth,
        description="Hops to follow from the root in both directions",
    )


async def _load_graph(txid: str, depth: int, store: MempoolTransactionStore) -> GraphModel:
    txid = validate_txid(txid)
    return await GraphBuilder(store).build_graph(txid, depth)


@router.get("/{txid}", response_model=GraphResponse)
async def get_graph(
    txid: str,
    depth: int = depth_query(),
    store: MempoolTransactionStore = Depends(get_transaction_store),
):
    """
    Transaction reference graph around a transaction

    Example: GET /api/graph/abcd1234...?depth=2
    """
    try:
        graph = await _load_graph(txid, depth, store)
        return GraphResponse(graph=graph, statistics=graph_statistics(graph))

    except AnalysisError as e:
        logger.warning(f"Graph lookup failed for {txid}: {e}")
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to build graph: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to build graph: {str(e)}")


@router.get("/{txid}/algorithms/{algorithm}", response_model=AlgorithmResponse)
async def get_graph_algorithm(
    txid: str,
    algorithm: str,
    depth: int = depth_query(),
    store: MempoolTransactionStore = Depends(get_transaction_store),
):
    """
    Run a graph algorithm on the graph around a transaction

    Algorithms: centrality, cycles, components, shortest_paths
    """
    if algorithm not in ALGORITHMS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown algorithm '{algorithm}', expected one of: {', '.join(ALGORITHMS)}",
        )

    try:
        graph = await _load_graph(txid, depth, store)
        logger.info(f"Running {algorithm} on {len(graph.nodes)} nodes")
        result = await run_in_threadpool(run_algorithm, algorithm, graph)
        return AlgorithmResponse(
            algorithm=algorithm, root_txid=graph.root_txid, depth=depth, result=result
        )

    except AnalysisError as e:
        logger.warning(f"Graph algorithm failed for {txid}: {e}")
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to run {algorithm}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to run {algorithm}: {str(e)}")


@router.get("/{txid}/path/{target}", response_model=PathResponse)
async def get_shortest_path(
    txid: str,
    target: str,
    depth: int = depth_query(),
    store: MempoolTransactionStore = Depends(get_transaction_store),
):
    """Shortest directed path from the root to another transaction in its graph"""
    try:
        target = validate_txid(target)
        graph = await _load_graph(txid, depth, store)
        path = shortest_path(graph, graph.root_txid, target)
        return PathResponse(
            source=graph.root_txid,
            target=target,
            path=path,
            hops=len(path) - 1 if path else None,
        )

    except AnalysisError as e:
        logger.warning(f"Path lookup failed for {txid}: {e}")
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to find path: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to find path: {str(e)}")


@router.get("/{txid}/graphml")
async def export_graphml(
    txid: str,
    depth: int = depth_query(),
    store: MempoolTransactionStore = Depends(get_transaction_store),
):
    """GraphML export of the graph for external visualization tools"""
    try:
        graph = await _load_graph(txid, depth, store)
        document = "\n".join(nx.generate_graphml(graph.to_networkx()))
        return Response(content=document, media_type="application/xml")

    except AnalysisError as e:
        logger.warning(f"GraphML export failed for {txid}: {e}")
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to export graph: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to export graph: {str(e)}")
