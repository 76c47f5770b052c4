"""Errors raised by the analysis core"""


class AnalysisError(Exception):
    kind = "analysis_error"


class EmptyOutputsError(AnalysisError):
    kind = "empty_outputs"

    def __init__(self, message: str = "outputs to the transaction are empty"):
        super().__init__(message)


class ValueMismatchError(AnalysisError):
    kind = "value_mismatch"

    def __init__(self, input_total: int, output_total: int):
        super().__init__(
            f"Input/output value mismatch: inputs sum to {input_total}, outputs sum to {output_total}"
        )
        self.input_total = input_total
        self.output_total = output_total


class MissingValueError(AnalysisError):
    kind = "missing_value"


class InvalidValueError(AnalysisError):
    kind = "invalid_value"


class CombinatorialExplosionError(AnalysisError):
    kind = "combinatorial_explosion"


class TransactionNotFoundError(AnalysisError):
    kind = "transaction_not_found"

    def __init__(self, txid: str):
        super().__init__(f"Transaction {txid} not found")
        self.txid = txid


class InvalidTxidError(AnalysisError):
    kind = "invalid_txid"


class DataSourceError(AnalysisError):
    kind = "data_source_error"
