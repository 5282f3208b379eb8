"""
Marketplace service route modules.

Each module handles a specific area of functionality.
"""

from .accounts import router as accounts_router
from .dashboards import router as dashboards_router
from .jobs import router as jobs_router

__all__ = [
    "accounts_router",
    "dashboards_router",
    "jobs_router",
]
