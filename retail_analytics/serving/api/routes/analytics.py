"""
Analytics API Endpoints

Dashboard summaries computed from the cached data snapshot.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Query

from retail_analytics.services import ServiceContainer
from retail_analytics.serving.api.dependencies import get_services
from retail_analytics.serving.cache import CacheResult
from retail_analytics.transformation.aggregations import (
    calculate_brand_summary,
    calculate_customer_summary,
    calculate_employee_performance,
    calculate_product_summary,
    calculate_sales_summary,
)
from retail_analytics.transformation.segmentation import get_segment_tables

router = APIRouter()
logger = structlog.get_logger(__name__)


def _envelope(data: Any, result: CacheResult) -> Dict[str, Any]:
    return {
        "success": True,
        "data": data,
        "cached": result.cached,
        "stale": result.stale,
        "loaded_at": result.loaded_at,
    }


@router.get("/sales/summary")
async def get_sales_summary(
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """
    Revenue, traffic, margin and order value, overall and per store.
    """
    result = await services.data_cache.get()
    summary = calculate_sales_summary(
        result.value.sales,
        combined_store_id=services.settings.ingestion.combined_store_id,
    )
    return _envelope(summary, result)


@router.get("/brands/summary")
async def get_brand_summary(
    top: int = Query(50, ge=1, le=500),
    low_margin_threshold: float = Query(40.0, ge=0, le=100),
    min_sales: float = Query(1000.0, ge=0),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Top brands, low-margin brands and brands by product type"""
    result = await services.data_cache.get()
    snapshot = result.value
    summary = calculate_brand_summary(
        snapshot.brands,
        snapshot.mappings,
        top=top,
        low_margin_threshold=low_margin_threshold,
        min_sales_for_analysis=min_sales,
    )
    return _envelope(summary, result)


@router.get("/products/summary")
async def get_product_summary(
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    result = await services.data_cache.get()
    return _envelope(calculate_product_summary(result.value.products), result)


@router.get("/customers/summary")
async def get_customer_summary(
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Customer counts per value and recency segment"""
    result = await services.data_cache.get()
    value_table, recency_table = get_segment_tables(services.settings.ingestion.segment_profile)
    summary = calculate_customer_summary(result.value.customers, value_table, recency_table)
    return _envelope(summary, result)


@router.get("/employees/performance")
async def get_employee_performance(
    top: Optional[int] = Query(None, ge=1, le=500),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Employees ranked by net sales"""
    result = await services.data_cache.get()
    return _envelope(calculate_employee_performance(result.value.employees, top=top), result)
