"""Tests for transaction sources"""

import httpx
import pytest
from linkscope.analysis.errors import DataSourceError, InvalidTxidError
from linkscope.models.blockchain import Transaction, TransactionOutput
from linkscope.services.transaction_store import (
    InMemoryTransactionStore,
    MempoolTransactionStore,
    parse_mempool_transaction,
    validate_txid,
)

TXID = "ab" * 32
PREV_TXID = "cd" * 32
SPENDER_TXID = "ef" * 32

MEMPOOL_TX = {
    "txid": TXID,
    "fee": 500,
    "vin": [
        {
            "txid": PREV_TXID,
            "vout": 1,
            "is_coinbase": False,
            "prevout": {"scriptpubkey_address": "bc1qsender", "value": 10_000},
        }
    ],
    "vout": [
        {"scriptpubkey_address": "bc1qreceiver", "scriptpubkey_type": "v0_p2wpkh", "value": 6_000},
        {"scriptpubkey_address": "bc1qchange", "scriptpubkey_type": "v0_p2wpkh", "value": 3_500},
    ],
    "status": {
        "confirmed": True,
        "block_height": 800_000,
        "block_hash": "00" * 32,
        "block_time": 1_690_000_000,
    },
}

MEMPOOL_OUTSPENDS = [{"spent": True, "txid": SPENDER_TXID, "vin": 0}, {"spent": False}]


class TestValidateTxid:
    """Test txid normalization"""

    def test_normalizes(self):
        assert validate_txid(f"  {TXID.upper()}\n") == TXID

    @pytest.mark.parametrize("txid", ["", "   ", "abc", "g" * 64, TXID + "0"])
    def test_rejects(self, txid):
        with pytest.raises(InvalidTxidError):
            validate_txid(txid)

    def test_length_message(self):
        with pytest.raises(InvalidTxidError, match="got 3"):
            validate_txid("abc")


class TestParseMempoolTransaction:
    """Test mempool.space response parsing"""

    def test_parse(self):
        tx = parse_mempool_transaction(TXID, MEMPOOL_TX, MEMPOOL_OUTSPENDS, tip_height=800_009)

        assert tx.txid == TXID
        assert tx.fee == 500
        assert tx.inputs[0].txid == PREV_TXID
        assert tx.inputs[0].value == 10_000
        assert tx.inputs[0].address == "bc1qsender"
        assert [out.value for out in tx.outputs] == [6_000, 3_500]
        assert tx.outputs[0].spending_txid == SPENDER_TXID
        assert tx.outputs[1].spent is False
        assert tx.outputs[1].spending_txid is None
        assert tx.block_height == 800_000
        assert tx.confirmations == 10
        assert tx.input_txids() == [PREV_TXID]
        assert tx.output_txids() == [SPENDER_TXID]

    def test_coinbase(self):
        data = {
            "vin": [{"txid": "0" * 64, "vout": 4294967295, "is_coinbase": True, "prevout": None}],
            "vout": [{"value": 625_000_000}],
            "status": {"confirmed": True, "block_height": 1},
        }

        tx = parse_mempool_transaction(TXID, data, [])

        assert tx.is_coinbase
        assert tx.inputs[0].txid is None
        assert tx.input_txids() == []
        assert tx.confirmations is None

    def test_unconfirmed(self):
        data = dict(MEMPOOL_TX, status={"confirmed": False})

        tx = parse_mempool_transaction(TXID, data, [], tip_height=800_009)

        assert tx.confirmations == 0
        assert tx.block_height is None

    def test_invalid(self):
        with pytest.raises(DataSourceError):
            parse_mempool_transaction(TXID, None, [])


def _mock_client(routes):
    """AsyncClient answering from a {path: (status, json)} table"""

    def handler(request):
        path = request.url.path.removeprefix("/api")
        status, body = routes.get(path, (404, None))
        if body is None:
            return httpx.Response(status, text="Not Found")
        return httpx.Response(status, json=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://mempool.test/api")


class TestMempoolTransactionStore:
    """Test the HTTP-backed store against a mocked API"""

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        store = MempoolTransactionStore(
            client=_mock_client(
                {
                    f"/tx/{TXID}": (200, MEMPOOL_TX),
                    f"/tx/{TXID}/outspends": (200, MEMPOOL_OUTSPENDS),
                    "/blocks/tip/height": (200, 800_001),
                }
            )
        )

        tx = await store.get_transaction(TXID)

        assert tx.txid == TXID
        assert tx.confirmations == 2
        assert tx.output_txids() == [SPENDER_TXID]

    @pytest.mark.asyncio
    async def test_not_found(self):
        store = MempoolTransactionStore(client=_mock_client({}))

        assert await store.get_transaction(TXID) is None

    @pytest.mark.asyncio
    async def test_server_error(self):
        """Test that upstream failures surface as DataSourceError"""
        store = MempoolTransactionStore(client=_mock_client({f"/tx/{TXID}": (500, {"error": "boom"})}))

        with pytest.raises(DataSourceError):
            await store.get_transaction(TXID)

    @pytest.mark.asyncio
    async def test_tip_height_optional(self):
        """Test that a missing tip height leaves confirmations unknown"""
        store = MempoolTransactionStore(
            client=_mock_client(
                {
                    f"/tx/{TXID}": (200, MEMPOOL_TX),
                    f"/tx/{TXID}/outspends": (200, MEMPOOL_OUTSPENDS),
                    "/blocks/tip/height": (503, {"error": "unavailable"}),
                }
            )
        )

        tx = await store.get_transaction(TXID)

        assert tx.confirmations is None

    @pytest.mark.asyncio
    async def test_close_keeps_injected_client(self):
        client = _mock_client({})
        store = MempoolTransactionStore(client=client)

        await store.close()

        assert not client.is_closed


class TestInMemoryTransactionStore:
    """Test the dict-backed store"""

    @pytest.mark.asyncio
    async def test_lookup(self):
        tx = Transaction(txid=TXID, inputs=[], outputs=[TransactionOutput(n=0, value=1)])
        store = InMemoryTransactionStore([tx])

        assert len(store) == 1
        assert TXID in store
        assert await store.get_transaction(TXID) is tx
        assert await store.get_transaction(PREV_TXID) is None
