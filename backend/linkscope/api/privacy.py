"""Transaction privacy (Boltzmann entropy) API endpoints"""

import logging
from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.concurrency import run_in_threadpool

from linkscope.config import settings
from linkscope.analysis.boltzmann import BoltzmannAnalyzer, entropy_statistics
from linkscope.analysis.errors import AnalysisError
from linkscope.api.errors import to_http_exception
from linkscope.models.api import BatchEntropyRequest, BatchEntropyResponse, EntropyRequest
from linkscope.models.privacy import EntropyResult
from linkscope.services.transaction_store import (
    MempoolTransactionStore,
    get_transaction_store,
    validate_txid,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_analyzer() -> BoltzmannAnalyzer:
    return BoltzmannAnalyzer()


@router.post("/entropy", response_model=EntropyResult)
def calculate_entropy(
    request: EntropyRequest,
    analyzer: BoltzmannAnalyzer = Depends(get_analyzer),
):
    """
    Boltzmann entropy of a transaction given its values

    Input and output sums must match; subtract or add the fee before calling.

    Example:
    ```json
    {"inputs": [10, 10], "outputs": [10, 10]}
    ```
    """
    try:
        return analyzer.analyze(request.inputs, request.outputs)
    except AnalysisError as e:
        logger.warning(f"Entropy analysis rejected: {e}")
        raise to_http_exception(e) from e


@router.post("/entropy/batch", response_model=BatchEntropyResponse)
def calculate_entropy_batch(
    request: BatchEntropyRequest,
    analyzer: BoltzmannAnalyzer = Depends(get_analyzer),
):
    """
    Entropy for several transactions at once

    Each transaction is analyzed independently; failures are reported per txid
    and do not affect the others.
    """
    if len(request.transactions) > settings.max_batch_transactions:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {settings.max_batch_transactions} transactions per request",
        )

    logger.info(f"Batch entropy for {len(request.transactions)} transactions")
    results = analyzer.batch_analyze_values(
        (tx.txid, tx.inputs, tx.outputs) for tx in request.transactions
    )
    stats = entropy_statistics(
        result.entropy for result in results.values() if isinstance(result, EntropyResult)
    )
    return BatchEntropyResponse(results=results, statistics=stats)


@router.get("/transaction/{txid}", response_model=EntropyResult)
async def transaction_entropy(
    txid: str,
    include_fee_output: bool = Query(
        default=True, description="Treat the fee as an extra output so input and output sums match"
    ),
    store: MempoolTransactionStore = Depends(get_transaction_store),
    analyzer: BoltzmannAnalyzer = Depends(get_analyzer),
):
    """
    Fetch a transaction and compute its entropy

    Example: GET /api/privacy/transaction/abcd1234...
    """
    try:
        txid = validate_txid(txid)
        logger.info(f"Entropy lookup for transaction: {txid}")

        transaction = await store.get_transaction(txid)
        if transaction is None:
            raise HTTPException(status_code=404, detail=f"Transaction {txid} not found")

        return await run_in_threadpool(
            analyzer.analyze_transaction, transaction, include_fee_output=include_fee_output
        )

    except HTTPException:
        raise
    except AnalysisError as e:
        logger.warning(f"Entropy analysis failed for {txid}: {e}")
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to analyze transaction: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to analyze transaction: {str(e)}")
