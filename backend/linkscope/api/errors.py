"""Translate analysis errors into HTTP errors"""

from fastapi import HTTPException

from linkscope.analysis.errors import (
    AnalysisError,
    CombinatorialExplosionError,
    DataSourceError,
    EmptyOutputsError,
    InvalidTxidError,
    InvalidValueError,
    MissingValueError,
    TransactionNotFoundError,
    ValueMismatchError,
)

STATUS_CODES = {
    EmptyOutputsError: 422,
    ValueMismatchError: 422,
    MissingValueError: 422,
    InvalidValueError: 422,
    CombinatorialExplosionError: 413,
    TransactionNotFoundError: 404,
    InvalidTxidError: 400,
    DataSourceError: 502,
}


def to_http_exception(error: AnalysisError) -> HTTPException:
    status_code = STATUS_CODES.get(type(error), 500)
    return HTTPException(status_code=status_code, detail={"error": error.kind, "message": str(error)})
