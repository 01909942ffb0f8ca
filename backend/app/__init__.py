"""NDIS budget ledger application package."""

from __future__ import annotations


def get_app():
    """Return the FastAPI application without importing it eagerly.

    Alembic and the backfill CLI import this package without needing the
    web stack.
    """

    from .main import app as fastapi_app

    return fastapi_app


__all__ = ["get_app"]
