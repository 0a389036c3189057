"""
API Routes Module
"""
from .analytics import router as analytics_router
from .data import router as data_router
from .health import router as health_router

__all__ = [
    "analytics_router",
    "data_router",
    "health_router",
]
