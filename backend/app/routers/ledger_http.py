"""Translate ledger failures into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from ..schemas import LedgerErrorDetail
from ..services.ledger_errors import (
    BudgetNotFound,
    DuplicateShiftDeduction,
    InsufficientFunds,
    InvalidDuration,
    InvalidShiftRecord,
    LedgerError,
    NoRateConfigured,
    NonPositiveAmount,
)

_STATUS_BY_ERROR: tuple[tuple[type[LedgerError], int], ...] = (
    (BudgetNotFound, status.HTTP_404_NOT_FOUND),
    (InsufficientFunds, status.HTTP_409_CONFLICT),
    (DuplicateShiftDeduction, status.HTTP_409_CONFLICT),
    (NoRateConfigured, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidDuration, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NonPositiveAmount, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidShiftRecord, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def ledger_http_error(exc: LedgerError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(
                status_code=status_code,
                detail=LedgerErrorDetail(reason=exc.reason, message=str(exc)).model_dump(),
            )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=LedgerErrorDetail(
            reason=exc.reason, message="The budget ledger is unavailable"
        ).model_dump(),
    )
