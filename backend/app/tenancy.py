"""Request-scoped tenant resolution.

Authentication lives in front of this service; by the time a request reaches
the ledger the gateway has stamped the caller's tenant on ``X-Tenant-ID``.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, status

TENANT_HEADER = "X-Tenant-ID"


def require_tenant(
    x_tenant_id: str | None = Header(default=None, alias=TENANT_HEADER),
) -> int:
    if x_tenant_id is None or not x_tenant_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{TENANT_HEADER} header is required",
        )
    try:
        tenant_id = int(x_tenant_id.strip())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{TENANT_HEADER} must be an integer",
        ) from exc
    if tenant_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{TENANT_HEADER} must be positive",
        )
    return tenant_id
