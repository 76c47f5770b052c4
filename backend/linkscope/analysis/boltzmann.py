"""Boltzmann entropy analysis of transaction input/output linkability"""

import logging
import math
import statistics
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

from linkscope.analysis.errors import (
    AnalysisError,
    CombinatorialExplosionError,
    EmptyOutputsError,
    InvalidValueError,
    MissingValueError,
    ValueMismatchError,
)
from linkscope.analysis.partitions import Mapping, Partition, bell_number, partitions_of
from linkscope.config import settings
from linkscope.models.blockchain import Transaction
from linkscope.models.privacy import (
    AnalysisFailure,
    EntropyResult,
    EntropyStatistics,
    Link,
    MappingView,
    TransactionClass,
)

logger = logging.getLogger(__name__)


class BoltzmannAnalyzer:
    """
    Count the plausible input/output mappings of a transaction

    Based on Greg Maxwell's Boltzmann method: every partition of the inputs is
    paired with every partition of the outputs whose block sums match. Each
    such pair is one interpretation of who paid whom, and

        entropy = log2(number of interpretations)

    Enumeration is exponential (Bell numbers), so transactions above the
    configured ceilings are rejected with CombinatorialExplosionError instead
    of running unbounded.
    """

    def __init__(
        self,
        max_io_count: Optional[int] = None,
        max_partitions: Optional[int] = None,
        max_combinations: Optional[int] = None,
    ):
        self.max_io_count = (
            max_io_count if max_io_count is not None else settings.boltzmann_max_io_count
        )
        self.max_partitions = (
            max_partitions if max_partitions is not None else settings.boltzmann_max_partitions
        )
        self.max_combinations = (
            max_combinations
            if max_combinations is not None
            else settings.boltzmann_max_combinations
        )

    def analyze(
        self,
        inputs: Sequence[int],
        outputs: Sequence[int],
        txid: Optional[str] = None,
    ) -> EntropyResult:
        """
        Analyze one transaction given its input and output values

        Args:
            inputs: Input values in satoshis (original order)
            outputs: Output values in satoshis (original order)
            txid: Optional transaction ID carried into the result

        Returns:
            EntropyResult

        Raises:
            EmptyOutputsError: outputs empty on a non-coinbase transaction
            ValueMismatchError: sum(inputs) != sum(outputs); fees must be
                accounted for by the caller
            CombinatorialExplosionError: transaction too large to enumerate
        """
        inputs = list(inputs)
        outputs = list(outputs)
        self._check_values(inputs, "input")
        self._check_values(outputs, "output")

        if not inputs:
            return EntropyResult(
                txid=txid,
                combinations=1,
                entropy=0.0,
                classification=TransactionClass.COINBASE,
                input_count=0,
                output_count=len(outputs),
            )

        if not outputs:
            raise EmptyOutputsError()

        input_total = sum(inputs)
        output_total = sum(outputs)
        if input_total != output_total:
            raise ValueMismatchError(input_total, output_total)

        self._check_limits(len(inputs), len(outputs))

        mappings = self.find_valid_mappings(inputs, outputs)
        combinations = len(mappings)
        link_sets = [mapping.links(inputs, outputs) for mapping in mappings]

        logger.debug(
            f"Boltzmann {txid or '<values>'}: {len(inputs)} inputs, "
            f"{len(outputs)} outputs, {combinations} combinations"
        )

        return EntropyResult(
            txid=txid,
            combinations=combinations,
            entropy=entropy_from_combinations(combinations),
            classification=classify_transaction(len(inputs), len(outputs), combinations),
            deterministic_links=[
                Link(input_index=i, output_index=o)
                for i, o in sorted(find_deterministic_links(link_sets))
            ],
            link_probabilities=link_probability_matrix(link_sets, len(inputs), len(outputs)),
            valid_mappings=[
                MappingView(
                    input_blocks=mapping.input_partition.as_lists(),
                    output_blocks=mapping.output_partition.as_lists(),
                )
                for mapping in mappings
            ],
            input_count=len(inputs),
            output_count=len(outputs),
        )

    def analyze_transaction(
        self, transaction: Transaction, include_fee_output: bool = False
    ) -> EntropyResult:
        """
        Analyze a Transaction model

        Coinbase transactions are analyzed with no inputs. When
        ``include_fee_output`` is set and the inputs exceed the outputs, the
        difference is appended as one extra pseudo-output so that the value
        equality holds for ordinary fee-paying transactions.

        Raises:
            MissingValueError: an input has no known value
        """
        if transaction.is_coinbase:
            return self.analyze([], [out.value for out in transaction.outputs], txid=transaction.txid)

        input_values = []
        for index, inp in enumerate(transaction.inputs):
            if inp.value is None:
                raise MissingValueError(
                    f"Input {index} of {transaction.txid} has no value (prevout not resolved)"
                )
            input_values.append(inp.value)
        output_values = [out.value for out in transaction.outputs]

        fee_output_index = None
        if include_fee_output and output_values:
            fee = sum(input_values) - sum(output_values)
            if fee > 0:
                fee_output_index = len(output_values)
                output_values.append(fee)

        result = self.analyze(input_values, output_values, txid=transaction.txid)
        if fee_output_index is not None:
            result.fee_output_index = fee_output_index
        return result

    def find_valid_mappings(self, inputs: Sequence[int], outputs: Sequence[int]) -> List[Mapping]:
        """
        All (input partition, output partition) pairs with equal sorted block sums

        Output partitions are enumerated once and bucketed by signature, so the
        enumeration cost is Bell(len(inputs)) + Bell(len(outputs)). The number of
        matches can still approach their product, so the running count is
        checked against ``max_combinations`` before any mapping is built.

        Raises:
            CombinatorialExplosionError: more than ``max_combinations`` mappings
        """
        by_signature: Dict[Tuple[int, ...], List[Partition]] = {}
        for partition in partitions_of(range(len(outputs))):
            by_signature.setdefault(partition.signature(outputs), []).append(partition)

        mappings = []
        total = 0
        for input_partition in partitions_of(range(len(inputs))):
            bucket = by_signature.get(input_partition.signature(inputs), ())
            total += len(bucket)
            if total > self.max_combinations:
                raise CombinatorialExplosionError(
                    f"More than {self.max_combinations} valid mappings, transaction too "
                    "ambiguous to enumerate"
                )
            mappings.extend(
                Mapping(input_partition, output_partition) for output_partition in bucket
            )
        return mappings

    def batch_calculate_entropy(
        self, transactions: Iterable[Transaction], include_fee_output: bool = False
    ) -> Dict[str, Union[EntropyResult, AnalysisFailure]]:
        """
        Analyze several transactions independently

        Returns:
            Dict mapping txid to EntropyResult, or AnalysisFailure for
            transactions that could not be analyzed
        """
        results: Dict[str, Union[EntropyResult, AnalysisFailure]] = {}
        for transaction in transactions:
            results[transaction.txid] = self._analyze_or_fail(
                transaction.txid,
                lambda: self.analyze_transaction(transaction, include_fee_output=include_fee_output),
            )
        return results

    def batch_analyze_values(
        self, entries: Iterable[Tuple[str, Sequence[int], Sequence[int]]]
    ) -> Dict[str, Union[EntropyResult, AnalysisFailure]]:
        """Batch variant over raw (txid, input values, output values) triples"""
        results: Dict[str, Union[EntropyResult, AnalysisFailure]] = {}
        for txid, inputs, outputs in entries:
            results[txid] = self._analyze_or_fail(
                txid, lambda: self.analyze(inputs, outputs, txid=txid)
            )
        return results

    @staticmethod
    def _analyze_or_fail(
        txid: str, run: Callable[[], EntropyResult]
    ) -> Union[EntropyResult, AnalysisFailure]:
        try:
            return run()
        except AnalysisError as e:
            logger.info(f"Entropy analysis failed for {txid}: {e}")
            return AnalysisFailure(error=e.kind, detail=str(e))

    def _check_limits(self, input_count: int, output_count: int) -> None:
        if input_count + output_count > self.max_io_count:
            raise CombinatorialExplosionError(
                f"{input_count} inputs + {output_count} outputs exceeds the limit of "
                f"{self.max_io_count}"
            )
        partitions = bell_number(input_count) + bell_number(output_count)
        if partitions > self.max_partitions:
            raise CombinatorialExplosionError(
                f"{partitions} partitions to enumerate exceeds the limit of {self.max_partitions}"
            )

    @staticmethod
    def _check_values(values: Sequence[int], side: str) -> None:
        for index, value in enumerate(values):
            if value is None:
                raise MissingValueError(f"{side} {index} has no value")
            if value < 0:
                raise InvalidValueError(f"{side} {index} has negative value {value}")


def entropy_from_combinations(combinations: int) -> float:
    if combinations <= 1:
        return 0.0
    return math.log2(combinations)


def find_deterministic_links(
    link_sets: Sequence[FrozenSet[Tuple[int, int]]],
) -> FrozenSet[Tuple[int, int]]:
    """
    Links present in every mapping's link set

    Equal-sum blocks inside a mapping are paired by index order. When several
    inputs or outputs share a value, links between them follow that ordering
    and are not certain from the amounts alone: swapping equal-value blocks
    gives an equally valid interpretation.
    """
    if not link_sets:
        return frozenset()
    return frozenset.intersection(*link_sets)


def link_probability_matrix(
    link_sets: Sequence[FrozenSet[Tuple[int, int]]], input_count: int, output_count: int
) -> List[List[float]]:
    """Fraction of mappings in which input i is linked to output j"""
    counts = [[0] * output_count for _ in range(input_count)]
    for links in link_sets:
        for i, o in links:
            counts[i][o] += 1
    total = len(link_sets)
    if total == 0:
        return [[0.0] * output_count for _ in range(input_count)]
    return [[count / total for count in row] for row in counts]


def classify_transaction(input_count: int, output_count: int, combinations: int) -> TransactionClass:
    """Classify by structure first, then by number of interpretations"""
    if input_count == 1 and output_count == 1:
        return TransactionClass.SIMPLE_SEND
    if input_count == 1 and output_count == 2 and combinations == 1:
        return TransactionClass.BASIC_PAYMENT
    if input_count == 1 and output_count > 2:
        return TransactionClass.AMOUNT_SPLIT
    if input_count > 1 and output_count == 1:
        return TransactionClass.CONSOLIDATION
    if combinations == 1:
        return TransactionClass.UNAMBIGUOUS
    if combinations == 2:
        return TransactionClass.AMBIGUOUS_LOW
    if 2 < combinations <= 10:
        return TransactionClass.AMBIGUOUS_MEDIUM
    if combinations > 10:
        return TransactionClass.AMBIGUOUS_HIGH
    return TransactionClass.COMPLEX


def entropy_statistics(entropy_values: Iterable[Optional[float]]) -> EntropyStatistics:
    """Count, min, max, average and median of the non-null entropy values"""
    values = [value for value in entropy_values if value is not None]
    if not values:
        return EntropyStatistics(count=0)

    return EntropyStatistics(
        count=len(values),
        min=min(values),
        max=max(values),
        average=sum(values) / len(values),
        median=statistics.median(values),
    )
