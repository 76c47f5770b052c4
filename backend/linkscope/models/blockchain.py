"""Blockchain data models"""

from typing import List, Optional
from pydantic import BaseModel, Field

NULL_TXID = "0" * 64


class TransactionInput(BaseModel):
    """Transaction input"""

    txid: Optional[str] = Field(None, description="Previous transaction ID")
    vout: Optional[int] = Field(None, description="Output index in previous transaction")
    address: Optional[str] = Field(None, description="Resolved address")
    value: Optional[int] = Field(None, ge=0, description="Value in satoshis")

    @property
    def is_coinbase(self) -> bool:
        return not self.txid or self.txid == NULL_TXID


class TransactionOutput(BaseModel):
    """Transaction output"""

    n: int = Field(..., description="Output index")
    value: int = Field(..., ge=0, description="Value in satoshis")
    address: Optional[str] = Field(None, description="Recipient address")
    script_type: Optional[str] = Field(None, description="Script type")
    spent: bool = Field(default=False, description="Whether this output is spent")
    spending_txid: Optional[str] = Field(None, description="Transaction that spent this output")


class Transaction(BaseModel):
    """Bitcoin transaction snapshot as seen by the analyzers"""

    txid: str = Field(..., description="Transaction ID")
    inputs: List[TransactionInput] = Field(default_factory=list, description="Transaction inputs")
    outputs: List[TransactionOutput] = Field(default_factory=list, description="Transaction outputs")
    block_height: Optional[int] = Field(None, description="Block height (None if unconfirmed)")
    block_hash: Optional[str] = Field(None, description="Block hash")
    timestamp: Optional[int] = Field(None, description="Block timestamp")
    confirmations: Optional[int] = Field(None, description="Number of confirmations")
    fee: Optional[int] = Field(None, description="Transaction fee in satoshis")

    @property
    def is_coinbase(self) -> bool:
        return bool(self.inputs) and all(inp.is_coinbase for inp in self.inputs)

    def input_txids(self) -> List[str]:
        """Distinct previous transaction IDs, in input order (coinbase inputs skipped)"""
        seen = set()
        txids = []
        for inp in self.inputs:
            if inp.is_coinbase or inp.txid in seen:
                continue
            seen.add(inp.txid)
            txids.append(inp.txid)
        return txids

    def output_txids(self) -> List[str]:
        """Distinct transaction IDs spending this transaction's outputs, in output order"""
        seen = set()
        txids = []
        for out in self.outputs:
            if not out.spending_txid or out.spending_txid in seen:
                continue
            seen.add(out.spending_txid)
            txids.append(out.spending_txid)
        return txids

    @property
    def total_output_value(self) -> int:
        return sum(out.value for out in self.outputs)
