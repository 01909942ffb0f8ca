"""Shapes shared by the ledger listings and error responses."""

from __future__ import annotations

from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a tenant-scoped listing."""

    items: Sequence[T]
    total: int = Field(..., ge=0, description="Rows matching the filters across all pages")
    limit: int = Field(..., ge=1)
    skip: int = Field(..., ge=0)


class LedgerErrorDetail(BaseModel):
    """Body of ``detail`` when a ledger operation is refused."""

    reason: str = Field(..., description="Stable machine-readable failure code")
    message: str
