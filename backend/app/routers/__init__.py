"""Routers package."""

from .budget_transactions import router as budget_transactions_router
from .budgets import router as budgets_router
from .pricing import router as pricing_router

__all__ = [
    "budget_transactions_router",
    "budgets_router",
    "pricing_router",
]
