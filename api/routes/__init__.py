"""
API Routes Package

This package contains all the route modules organized by functionality.
"""

from api.routes.mapping import router as mapping_router
from api.routes.system import router as system_router

__all__ = [
    "mapping_router",
    "system_router",
]
