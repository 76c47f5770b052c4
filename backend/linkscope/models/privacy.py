"""Privacy analysis models (Boltzmann entropy)"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class TransactionClass(str, Enum):
    """Structural classification of a transaction"""

    COINBASE = "coinbase"
    SIMPLE_SEND = "simple_send"  # 1 input, 1 output
    BASIC_PAYMENT = "basic_payment"  # 1 input, 2 outputs, single interpretation
    AMOUNT_SPLIT = "amount_split"  # 1 input, 3+ outputs
    CONSOLIDATION = "consolidation"  # 2+ inputs, 1 output
    UNAMBIGUOUS = "unambiguous"
    AMBIGUOUS_LOW = "ambiguous_low"  # 2 combinations
    AMBIGUOUS_MEDIUM = "ambiguous_medium"  # 3-10 combinations
    AMBIGUOUS_HIGH = "ambiguous_high"  # 11+ combinations
    COMPLEX = "complex"


class Link(BaseModel):
    """Input to output link"""

    input_index: int = Field(..., ge=0, description="Index of the input")
    output_index: int = Field(..., ge=0, description="Index of the output")


class MappingView(BaseModel):
    """One valid interpretation: input blocks funding output blocks of equal sums"""

    input_blocks: List[List[int]] = Field(..., description="Input partition as lists of input indices")
    output_blocks: List[List[int]] = Field(..., description="Output partition as lists of output indices")


class EntropyResult(BaseModel):
    """Result of a Boltzmann entropy analysis"""

    txid: Optional[str] = Field(None, description="Transaction ID, when analyzed from a transaction")
    combinations: int = Field(..., ge=1, description="Number of valid input/output mappings")
    entropy: float = Field(..., ge=0.0, description="Shannon entropy, log2(combinations)")
    classification: TransactionClass = Field(..., description="Transaction classification")
    deterministic_links: List[Link] = Field(
        default_factory=list, description="Links present in every valid mapping"
    )
    link_probabilities: List[List[float]] = Field(
        default_factory=list,
        description="Share of valid mappings linking input i to output j (inputs x outputs)",
    )
    valid_mappings: List[MappingView] = Field(default_factory=list, description="All valid mappings")
    input_count: int = Field(..., ge=0, description="Number of inputs analyzed")
    output_count: int = Field(..., ge=0, description="Number of outputs analyzed")
    fee_output_index: Optional[int] = Field(
        None, description="Index of the pseudo-output carrying the fee, if one was added"
    )


class AnalysisFailure(BaseModel):
    """Per-transaction failure in a batch analysis"""

    error: str = Field(..., description="Error kind")
    detail: str = Field(..., description="Human-readable description")


class EntropyStatistics(BaseModel):
    """Summary statistics over a set of entropy values"""

    count: int = Field(..., ge=0)
    min: Optional[float] = None
    max: Optional[float] = None
    average: Optional[float] = None
    median: Optional[float] = None
