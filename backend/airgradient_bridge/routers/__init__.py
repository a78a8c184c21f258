"""
Routers Package
===============

Routers direct incoming requests to the right place.
"""

from .measures import router as measures_router, get_bridge

__all__ = [
    "measures_router",
    "get_bridge",
]
