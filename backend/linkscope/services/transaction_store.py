"""Transaction sources implementing the graph traversal lookup"""

import json
import logging
import re
import time
from typing import Any, Dict, Iterable, List, Optional

import httpx
import redis.asyncio as aioredis

from linkscope.analysis.errors import DataSourceError, InvalidTxidError
from linkscope.config import settings
from linkscope.models.blockchain import Transaction, TransactionInput, TransactionOutput

logger = logging.getLogger(__name__)

TXID_PATTERN = re.compile(r"^[a-fA-F0-9]{64}$")
TIP_HEIGHT_TTL = 60  # seconds


def validate_txid(txid: str) -> str:
    """
    Normalize and validate a transaction ID

    Returns:
        The trimmed, lower-cased txid

    Raises:
        InvalidTxidError: empty, wrong length or non-hex
    """
    if not isinstance(txid, str):
        raise InvalidTxidError("Invalid transaction ID format.")

    cleaned = txid.strip()
    if not cleaned:
        raise InvalidTxidError("Please enter a transaction ID.")
    if len(cleaned) != 64:
        raise InvalidTxidError(
            f"Transaction ID must be exactly 64 characters long, got {len(cleaned)}."
        )
    if not TXID_PATTERN.match(cleaned):
        raise InvalidTxidError(
            "Transaction ID must contain only hexadecimal characters (0-9, a-f, A-F)."
        )
    return cleaned.lower()


class InMemoryTransactionStore:
    """Dict-backed store for preloaded transaction snapshots"""

    def __init__(self, transactions: Iterable[Transaction] = ()):
        self._transactions: Dict[str, Transaction] = {}
        for transaction in transactions:
            self.add(transaction)

    def add(self, transaction: Transaction) -> None:
        self._transactions[transaction.txid] = transaction

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, txid: str) -> bool:
        return txid in self._transactions

    async def get_transaction(self, txid: str) -> Optional[Transaction]:
        return self._transactions.get(txid)


class MempoolTransactionStore:
    """
    Fetch transactions from a mempool.space compatible REST API

    Uses ``/tx/{txid}`` for the transaction (inputs carry their prevout value)
    and ``/tx/{txid}/outspends`` for the spending transactions. The raw
    transaction body is cached in Redis when a connection is configured;
    outspends are always fetched fresh since unspent outputs can be spent later.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._owns_client = client is None
        self.redis: Optional[aioredis.Redis] = None
        self._tip_height: Optional[int] = None
        self._tip_fetched_at = 0.0

    async def init_redis(self) -> None:
        """Initialize Redis connection"""
        if not settings.redis_enabled:
            return
        try:
            self.redis = aioredis.from_url(
                f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}",
                password=settings.redis_password if settings.redis_password else None,
                decode_responses=True,
            )
            await self.redis.ping()
            logger.info("Redis connection initialized")
        except Exception as e:
            logger.warning(f"Redis connection failed: {e}. Running without cache.")
            self.redis = None

    async def close(self) -> None:
        """Close HTTP client and Redis connection"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=settings.mempool_url,
                timeout=settings.mempool_request_timeout,
                headers={
                    "User-Agent": settings.mempool_user_agent,
                    "Accept": "application/json",
                },
            )
        return self._client

    async def _get_cache(self, key: str) -> Optional[str]:
        """Get value from cache"""
        if not self.redis:
            return None
        try:
            return await self.redis.get(key)
        except Exception as e:
            logger.warning(f"Cache get failed: {e}")
            return None

    async def _set_cache(self, key: str, value: str, ttl: int) -> None:
        """Set value in cache with TTL"""
        if not self.redis:
            return
        try:
            await self.redis.setex(key, ttl, value)
        except Exception as e:
            logger.warning(f"Cache set failed: {e}")

    async def _get_json(self, path: str) -> Optional[Any]:
        """GET a JSON document; None on 404, DataSourceError on any other failure"""
        try:
            response = await self._get_client().get(path)
        except httpx.HTTPError as e:
            raise DataSourceError(f"Request to {path} failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise DataSourceError(f"Request to {path} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise DataSourceError(f"Invalid JSON from {path}") from e

    async def _get_tip_height(self) -> Optional[int]:
        now = time.monotonic()
        if self._tip_height is None or now - self._tip_fetched_at > TIP_HEIGHT_TTL:
            try:
                tip = await self._get_json("/blocks/tip/height")
            except DataSourceError as e:
                logger.debug(f"Tip height unavailable: {e}")
                return self._tip_height
            if tip is not None:
                self._tip_height = int(tip)
                self._tip_fetched_at = now
        return self._tip_height

    async def get_transaction(self, txid: str) -> Optional[Transaction]:
        """
        Fetch a transaction with its output spenders

        Returns:
            Transaction, or None if the endpoint does not know the txid
        """
        cache_key = f"tx:{txid}"
        data = None
        cached = await self._get_cache(cache_key)
        if cached:
            data = json.loads(cached)

        if data is None:
            data = await self._get_json(f"/tx/{txid}")
            if data is None:
                logger.debug(f"TX {txid[:20]} not found on mempool endpoint")
                return None
            if (data.get("status") or {}).get("confirmed"):
                await self._set_cache(cache_key, json.dumps(data), settings.cache_ttl_transaction)

        outspends = await self._get_json(f"/tx/{txid}/outspends") or []
        tip_height = await self._get_tip_height()
        return parse_mempool_transaction(txid, data, outspends, tip_height)


def parse_mempool_transaction(
    txid: str,
    data: Dict[str, Any],
    outspends: List[Dict[str, Any]],
    tip_height: Optional[int] = None,
) -> Transaction:
    """
    Parse transaction from mempool API format

    vin[].prevout already carries the spent value, so no extra lookups are
    needed to obtain input values.
    """
    if not data or not isinstance(data, dict):
        raise DataSourceError(f"Invalid transaction data for {txid}: expected dict, got {type(data)}")

    inputs = []
    for vin in data.get("vin", []):
        if not vin or not isinstance(vin, dict):
            logger.warning(f"Skipping invalid vin entry in TX {txid}: {type(vin)}")
            continue
        prevout = vin.get("prevout") or {}
        inputs.append(
            TransactionInput(
                txid=None if vin.get("is_coinbase") else vin.get("txid"),
                vout=vin.get("vout"),
                address=prevout.get("scriptpubkey_address"),
                value=prevout.get("value"),
            )
        )

    outputs = []
    for i, vout in enumerate(data.get("vout", [])):
        if not vout or not isinstance(vout, dict):
            logger.warning(f"Skipping invalid vout entry {i} in TX {txid}: {type(vout)}")
            continue
        spend = outspends[i] if i < len(outspends) and isinstance(outspends[i], dict) else {}
        outputs.append(
            TransactionOutput(
                n=i,
                value=vout.get("value", 0),
                address=vout.get("scriptpubkey_address"),
                script_type=vout.get("scriptpubkey_type"),
                spent=bool(spend.get("spent")),
                spending_txid=spend.get("txid") if spend.get("spent") else None,
            )
        )

    status = data.get("status") or {}
    block_height = status.get("block_height")
    confirmations = None
    if block_height is not None and tip_height is not None and block_height <= tip_height:
        confirmations = tip_height - block_height + 1
    elif not status.get("confirmed", True):
        confirmations = 0

    return Transaction(
        txid=txid,
        inputs=inputs,
        outputs=outputs,
        block_height=block_height,
        block_hash=status.get("block_hash"),
        timestamp=status.get("block_time"),
        confirmations=confirmations,
        fee=data.get("fee"),
    )


# Global store instance
_store: Optional[MempoolTransactionStore] = None


async def get_transaction_store() -> MempoolTransactionStore:
    """Get or create global MempoolTransactionStore instance"""
    global _store
    if _store is None:
        _store = MempoolTransactionStore()
        await _store.init_redis()
    return _store


async def close_transaction_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
