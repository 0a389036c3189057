"""
FastAPI Dependencies
"""

from fastapi import Request

from retail_analytics.services import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    """Service container built during application startup"""
    return request.app.state.services
